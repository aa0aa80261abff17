"""
Product Models

Pydantic models for owned products and their derived warranty status.
Products are frozen; every change produces a new instance through
``model_copy``. Field names are snake_case in Python and camelCase on the
wire so stored and exported documents keep their established shape.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
import uuid

from dateutil.parser import isoparse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    """Current local time, timezone-aware."""
    return datetime.now().astimezone()


def generate_id() -> str:
    """Generate a globally unique product id."""
    return uuid.uuid4().hex


def format_timestamp(moment: datetime) -> str:
    """Render a moment as an ISO UTC timestamp with millisecond precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware UTC datetime, or None if unusable."""
    if not value:
        return None
    try:
        parsed = isoparse(value)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class WarrantyState(str, Enum):
    """Warranty status values."""
    UNKNOWN = "unknown"
    VALID = "valid"
    EXPIRING = "expiring"
    EXPIRED = "expired"


STATUS_TEXT = {
    WarrantyState.UNKNOWN: "Unknown",
    WarrantyState.VALID: "Valid",
    WarrantyState.EXPIRING: "Expiring Soon",
    WarrantyState.EXPIRED: "Expired",
}


class WarrantyStatus(BaseModel):
    """Derived warranty status. Never persisted."""
    model_config = ConfigDict(frozen=True)

    status: WarrantyState = WarrantyState.UNKNOWN
    expiry_date: Optional[str] = None
    days_remaining: Optional[int] = None

    @property
    def status_text(self) -> str:
        return STATUS_TEXT[self.status]


class Product(BaseModel):
    """
    A purchased product tracked for warranty.

    Unknown fields found in imported documents are kept so that a later
    export returns them unchanged.
    """
    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str = Field(default_factory=generate_id)
    name: str
    brand: str = ""
    model: str = ""
    category: str = ""
    serial_number: str = ""
    purchase_date: str = ""
    warranty_period: int = 0
    price: float = Field(default=0.0, allow_inf_nan=False)
    store: str = ""
    notes: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    imported_at: Optional[str] = None

    @field_validator(
        "name", "brand", "model", "category", "serial_number",
        "purchase_date", "store", "notes",
        mode="before",
    )
    @classmethod
    def _blank_strings(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("warranty_period", "price", mode="before")
    @classmethod
    def _blank_numbers(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0
        return value

    @property
    def content_version(self) -> str:
        """Value that changes whenever the persisted content changes."""
        return self.updated_at or self.created_at or ""

    @property
    def created_moment(self) -> datetime:
        return parse_timestamp(self.created_at) or EPOCH

    def to_dict(self) -> dict:
        """Serialize with wire (camelCase) field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ProductDraft(BaseModel):
    """
    Editable product fields as entered by the user.

    Drafts are deliberately loose; ``validate_draft`` decides what is
    acceptable and reports every failing field at once.
    """
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    name: Optional[str] = None
    brand: str = ""
    model: str = ""
    category: str = ""
    serial_number: str = ""
    purchase_date: Optional[str] = None
    warranty_period: Optional[int] = 0
    price: Optional[float] = Field(default=0.0, allow_inf_nan=False)
    store: str = ""
    notes: str = ""

    def editable_fields(self) -> dict:
        """Field values to apply onto a Product."""
        data = self.model_dump()
        data["name"] = (self.name or "").strip()
        data["purchase_date"] = (self.purchase_date or "").strip()
        data["warranty_period"] = self.warranty_period or 0
        data["price"] = self.price or 0.0
        return data
