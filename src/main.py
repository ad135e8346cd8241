"""Command line entrypoint.

Commands:
  run    Seed orders from a JSON file and run their work items
  serve  Start the Flask API with a background worker pool
  check  Validate the configuration
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from src.config import settings
from src.graphs.orchestrator import PipelineOrchestrator
from src.memory.store import SourceStore
from src.nodes.intake import create_work_item
from src.state.models import Order

logger = logging.getLogger(__name__)


async def seed_orders(store: SourceStore, path: Path) -> list[str]:
    """
    Load orders from a JSON file and create a work item per order item.

    The file holds either a list of orders or ``{"orders": [...]}``.

    Returns:
        Ids of the created work items.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    raw_orders = data.get("orders", []) if isinstance(data, dict) else data

    work_item_ids = []
    for raw in raw_orders:
        order = Order.model_validate(raw)
        await store.save_order(order)
        for item in order.items:
            work_item = await create_work_item(store, order.id, item.id)
            work_item_ids.append(work_item.id)
    logger.info(f"Seeded {len(raw_orders)} orders, {len(work_item_ids)} work items")
    return work_item_ids


async def run_command(items_file: Path) -> int:
    store = SourceStore()
    ids = await seed_orders(store, items_file)
    if not ids:
        print("No work items to run.")
        return 1

    orchestrator = PipelineOrchestrator.from_settings(store)
    summary = await orchestrator.run_batch(ids)

    print(f"\n{summary.succeeded}/{summary.total} work items completed")
    for result in summary.results:
        mark = "✅" if result.success else "❌"
        detail = result.status.value if result.status else result.error
        print(f"  {mark} {result.work_item_id}: {detail}")
    return 0 if summary.failed == 0 else 2


def check_command() -> int:
    errors = settings.validate()
    if errors:
        print("\n⚠️  Configuration Issues:")
        for error in errors:
            print(f"   - {error}")
        print("\nPlease check your .env file.")
        return 1

    print("\n✅ Configuration valid")
    print(f"   Model: {settings.default_model}")
    print(f"   Query model: {settings.query_model}")
    print(f"   Scraper: {settings.scraper_url}")
    print(f"   Workers: {settings.max_concurrent_pipelines}")
    return 0


def serve_command(port: int) -> int:
    from src.server import create_app

    create_app().run(port=port, host="0.0.0.0")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docgen",
        description="Document generation pipeline",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        help="Seed orders from a file and run their work items",
        description=(
            "The store is in-memory and lives only for this process, so every "
            "run seeds its orders from --items and runs all of their work items."
        ),
    )
    run_parser.add_argument(
        "--items",
        type=Path,
        required=True,
        help="JSON file with orders to seed before running",
    )

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument(
        "--port", type=int, default=int(os.environ.get("PORT", 5001))
    )

    subparsers.add_parser("check", help="Validate the configuration")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "check":
        return check_command()
    if args.command == "serve":
        return serve_command(args.port)
    return asyncio.run(run_command(args.items))


if __name__ == "__main__":
    sys.exit(main())
