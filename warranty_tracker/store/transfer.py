"""
Import / Export
================
Serialization of the whole collection to and from the exchange document:

    {"products": [...], "exportDate": "<ISO timestamp>", "version": "1.0"}

Import validates the document shape before anything is touched; a document
with the wrong shape leaves the collection exactly as it was. Individual
entries are taken best-effort: unusable field values fall back to defaults.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_snake

from warranty_tracker.errors import ImportFormatError
from warranty_tracker.models.product import Product, format_timestamp, generate_id
from warranty_tracker.models.state import ExportArtifact


logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

ImportPayload = Union[str, bytes, Mapping[str, Any]]


def export_filename(now: datetime) -> str:
    return f"product_data_{now.date().isoformat()}.json"


def build_export(products: Sequence[Product], now: datetime) -> ExportArtifact:
    """Serialize the collection as an indented export document."""
    document = {
        "products": [p.to_dict() for p in products],
        "exportDate": format_timestamp(now),
        "version": EXPORT_VERSION,
    }
    return ExportArtifact(
        filename=export_filename(now),
        content=json.dumps(document, indent=2, ensure_ascii=False),
        product_count=len(products)
    )


def write_export(artifact: ExportArtifact, directory: str) -> ExportArtifact:
    """Write the artifact into ``directory`` and return it with its path set."""
    target = Path(directory).expanduser() / artifact.filename
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(artifact.content, encoding="utf-8")
    logger.info(f"Exported {artifact.product_count} products to {target}")
    return artifact.model_copy(update={"path": str(target)})


def parse_import(payload: ImportPayload, now: datetime) -> List[Product]:
    """
    Turn an import document into products.

    Args:
        payload: JSON text/bytes or an already-decoded mapping
        now: Moment stamped as ``importedAt`` on every product

    Returns:
        Products in document order, each with an id and ``importedAt``

    Raises:
        ImportFormatError: the document is not an object with a ``products`` array
    """
    if isinstance(payload, (str, bytes)):
        try:
            document = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ImportFormatError(f"File format error, please check file content ({e.msg})") from e
    else:
        document = payload

    if not isinstance(document, Mapping):
        raise ImportFormatError("Invalid data format: expected a JSON object")

    records = document.get("products")
    if not isinstance(records, list):
        raise ImportFormatError("Invalid data format: 'products' must be an array")

    stamp = format_timestamp(now)
    products = []
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            logger.warning(f"Skipping import entry #{index + 1}: not an object")
            continue
        products.append(_coerce_product(record, index, stamp))

    logger.info(f"Parsed import document - products={len(products)}, version={document.get('version')}")
    return products


def _coerce_product(record: Mapping[str, Any], index: int, stamp: str) -> Product:
    """
    Best-effort conversion of one import entry.

    Fields that cannot be coerced fall back to their defaults with a warning,
    so a well-shaped document is never rejected because of a single value.
    """
    data = dict(record)
    data["id"] = str(data.get("id") or generate_id())
    data["importedAt"] = stamp
    data.setdefault("createdAt", stamp)
    data["name"] = data.get("name")

    try:
        return Product.model_validate(data)
    except PydanticValidationError as e:
        rejected = sorted({str(detail["loc"][0]) for detail in e.errors() if detail.get("loc")})

    for field in rejected:
        for key in {field, to_camel(field), to_snake(field)}:
            data.pop(key, None)
    logger.warning(f"Import entry #{index + 1}: defaulted unusable fields {rejected}")

    data.setdefault("createdAt", stamp)
    data["name"] = data.get("name")
    try:
        return Product.model_validate(data)
    except PydanticValidationError as e:
        raise ImportFormatError(f"Invalid data format: product #{index + 1} - {_first_error(e)}") from e


def _first_error(error: PydanticValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}"


def read_import_file(path: str) -> Optional[str]:
    """Read an import file, returning None when it does not exist."""
    source = Path(path).expanduser()
    if not source.exists():
        return None
    return source.read_text(encoding="utf-8")
