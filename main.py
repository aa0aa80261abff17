"""
Warranty Tracker - Main Entry Point

Command-line surface for the product engine. Runs an interactive session
over the local store; ``--demo`` seeds a handful of sample products so the
filters and warranty states can be tried straight away.
"""

import asyncio
import json
import shlex
import sys
import logging
from typing import Dict, List, Optional

from warranty_tracker import ProductEngine, load_config
from warranty_tracker.models import Notification, RenderResult
from warranty_tracker.scheduling import AsyncioScheduler
from warranty_tracker.store import JsonFileAdapter


logger = logging.getLogger(__name__)


# =============================================================================
# DEMO DATA
# =============================================================================

DEMO_PRODUCTS = [
    {
        "name": "Phone",
        "brand": "Pixel",
        "model": "8 Pro",
        "category": "Electronics",
        "serialNumber": "PX8-2024-001234",
        "purchaseDate": "2024-01-15",
        "warrantyPeriod": 12,
        "price": 3999.00,
        "store": "Digital Mall"
    },
    {
        "name": "Espresso Machine",
        "brand": "Breville",
        "model": "Barista Express",
        "category": "Kitchen",
        "purchaseDate": "2023-11-02",
        "warrantyPeriod": 24,
        "price": 2599.00
    },
    {
        "name": "Laptop",
        "brand": "Lenovo",
        "model": "ThinkPad X1",
        "category": "Electronics",
        "serialNumber": "X1C-2022-009876",
        "purchaseDate": "2022-03-15",
        "warrantyPeriod": 36,
        "price": 6899.00,
        "notes": "Extended warranty card in the drawer"
    },
    {
        "name": "Desk Lamp",
        "brand": "IKEA",
        "category": "Furniture",
        "purchaseDate": "2024-06-01",
        "warrantyPeriod": 0
    }
]

HELP_TEXT = """
Commands:
  /add key=value ...       - Add a product (name=, purchaseDate=, warrantyPeriod=, ...)
  /edit <id> key=value ... - Edit a product
  /delete <id>             - Delete a product
  /list                    - Show the visible products
  /search <text>           - Free-text search (empty to clear)
  /category <name>         - Exact category filter (empty to clear)
  /warranty <status>       - valid, expiring, expired or unknown (empty to clear)
  /reset-filters           - Clear all filters
  /scroll <offset>         - Move the virtualization window
  /export [dir]            - Export products (prints JSON without a directory)
  /import <path>           - Replace products with an export file
  /clear                   - Delete all products
  /stats                   - Collection statistics
  /perf                    - Performance statistics
  /quit                    - Exit
"""


def parse_assignments(tokens: List[str]) -> Dict[str, str]:
    """Turn ``key=value`` tokens into a dict; bare tokens are ignored."""
    fields = {}
    for token in tokens:
        if "=" in token:
            key, value = token.split("=", 1)
            fields[key.strip()] = value
    return fields


class TrackerRunner:
    """Interactive session over a ProductEngine."""

    def __init__(self, engine: ProductEngine):
        self.engine = engine
        engine.subscribe(self.show_notification)

    def show_notification(self, notification: Notification) -> None:
        print(f"[{notification.level.value.upper()}] {notification.message}")

    def show_render(self, result: Optional[RenderResult] = None) -> None:
        result = result or self.engine.last_render
        if result is None:
            return
        if result.error:
            print(f"Render failed: {result.error}")
            return
        if result.empty:
            print("\n  No products to show.\n")
            return
        print()
        for card in result.items:
            print(card.render_text())
            print("-" * 60)
        if result.virtualized:
            print(f"  Showing {result.window_start + 1}-{result.window_end} of {result.total_visible}")
        print(f"  {self.engine.collection_stats().summary}\n")

    def seed_demo(self) -> None:
        if len(self.engine.store) > 0:
            return
        for product in DEMO_PRODUCTS:
            self.engine.add_product(product)

    def handle(self, line: str) -> bool:
        """Run one command. Returns False when the session should end."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            print(f"Could not parse command: {e}")
            return True
        if not parts:
            return True

        cmd, args = parts[0].lower(), parts[1:]
        arg = " ".join(args)
        engine = self.engine

        if cmd in ("/quit", "/exit"):
            print("\nGoodbye!")
            return False
        elif cmd == "/add":
            result = engine.add_product(parse_assignments(args))
            self._show_errors(result)
            self.show_render()
        elif cmd == "/edit":
            if not args:
                print("Usage: /edit <id> key=value ...")
                return True
            result = engine.update_product(args[0], parse_assignments(args[1:]))
            self._show_errors(result)
            self.show_render()
        elif cmd == "/delete":
            if not args:
                print("Usage: /delete <id>")
                return True
            engine.delete_product(args[0])
            self.show_render()
        elif cmd == "/list":
            self.show_render(engine.render())
        elif cmd == "/search":
            self.show_render(engine.search(arg))
        elif cmd == "/category":
            self.show_render(engine.filter_category(arg))
        elif cmd == "/warranty":
            self.show_render(engine.filter_warranty(arg))
        elif cmd == "/reset-filters":
            self.show_render(engine.reset_filters())
        elif cmd == "/scroll":
            try:
                engine.scroll_to(int(arg or 0))
            except ValueError:
                print("Usage: /scroll <offset>")
                return True
            self.show_render()
        elif cmd == "/export":
            result = engine.export_data(arg or None)
            if result["status"] == "ok":
                artifact = result["data"]
                if artifact.path:
                    print(f"Written to {artifact.path}")
                else:
                    print(artifact.content)
        elif cmd == "/import":
            if not arg:
                print("Usage: /import <path>")
                return True
            engine.import_file(arg)
            self.show_render()
        elif cmd == "/clear":
            confirm = input("Are you sure you want to clear all product data? (yes/no): ").strip().lower()
            if confirm in ("y", "yes"):
                engine.clear_all()
        elif cmd == "/stats":
            stats = engine.collection_stats()
            print(f"\n  {stats.summary}")
            for status, count in stats.by_status.items():
                print(f"    {status}: {count}")
            print()
        elif cmd == "/perf":
            stats = engine.performance_stats()
            if stats is None:
                print("No performance samples yet.")
            else:
                print(json.dumps(stats.model_dump(), indent=2))
        elif cmd in ("/help", "/?"):
            print(HELP_TEXT)
        else:
            print("Unknown command. Use /help to list commands")
        return True

    def _show_errors(self, result: dict) -> None:
        for error in result.get("errors", []):
            print(f"  - {error['field']}: {error['message']}")

    async def interactive_mode(self) -> None:
        print("\n" + "=" * 60)
        print("  WARRANTY TRACKER - Interactive Mode")
        print("=" * 60)
        print(HELP_TEXT)
        self.show_render()

        loop = asyncio.get_running_loop()
        while True:
            try:
                line = await loop.run_in_executor(None, input, "> ")
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye!")
                break
            if not self.handle(line.strip()):
                break


async def main(argv: List[str]) -> None:
    """Main entry point."""
    if "--help" in argv:
        print("Usage:")
        print("  python main.py                 - Interactive mode")
        print("  python main.py --demo          - Interactive mode with sample products")
        print("  python main.py --data <path>   - Use a specific store file")
        print("  python main.py --config <path> - Load settings from a TOML file")
        print("  python main.py --help          - Show this help")
        return

    config_path = argv[argv.index("--config") + 1] if "--config" in argv[:-1] else None
    config = load_config(config_path)
    if "--data" in argv[:-1]:
        config = config.model_copy(update={"data_path": argv[argv.index("--data") + 1]})

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )

    engine = ProductEngine(
        config=config,
        adapter=JsonFileAdapter(config.data_path),
        scheduler=AsyncioScheduler()
    )
    runner = TrackerRunner(engine)
    with engine:
        if "--demo" in argv:
            runner.seed_demo()
        await runner.interactive_mode()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
