"""Command-line maintenance tasks for the interview catalog."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List

from interview_catalog.services.ai_insights import AIInsightsService
from interview_catalog.services.catalog_service import CatalogService, build_store
from interview_catalog.services.cooldown import CooldownGate
from interview_catalog.services.key_value import JsonFileKeyValue
from interview_catalog.services.stats_service import summarize
from interview_catalog.utils.config import Settings, get_settings
from interview_catalog.utils.errors import CatalogError, CooldownActiveError

logger = logging.getLogger("interview_catalog.cli")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="interview-catalog",
        description="Maintenance tasks for the interview problem catalog.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Log at DEBUG level.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    bulk = sub.add_parser("bulk-import", help="Reconcile rows from a JSON file.")
    bulk.add_argument(
        "--kind",
        choices=["company", "problem"],
        required=True,
        help="Which collection the rows describe.",
    )
    bulk.add_argument(
        "path", help="JSON file holding a list of rows or an object with 'rows'."
    )

    sub.add_parser("recalculate-stats", help="Recompute aggregates for every company.")

    insights = sub.add_parser("insights", help="Generate AI study insights for a problem.")
    insights.add_argument("problem_id", help="Problem ID.")
    insights.add_argument(
        "-d",
        "--description",
        default="",
        help="Optional problem statement passed to the model.",
    )

    sub.add_parser("cooldown-status", help="Show the AI cooldown state.")
    return parser


def _load_rows(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("rows", [])
    if not isinstance(data, list):
        raise CatalogError(f"{path} must hold a list of rows")
    return data


async def _run_bulk_import(service: CatalogService, kind: str, path: str) -> int:
    rows = _load_rows(path)
    result = await service.bulk_reconcile(kind, rows)
    for row in result.detailedResults:
        print(f"{row.rowIndex:>5}  {row.status.value:<8} {row.name}: {row.message}")
    print(
        f"Added: {result.addedCount}, Updated: {result.updatedCount}, "
        f"Skipped: {result.skippedCount}, Errors: {result.errorCount}"
    )
    return 1 if result.errorCount else 0


async def _run_recalculate(service: CatalogService) -> int:
    result = await service.recalculate_all_aggregates()
    print(summarize(result))
    return 1 if result.errors else 0


def _cooldown_gate(settings: Settings) -> CooldownGate:
    return CooldownGate(
        JsonFileKeyValue(settings.cooldown_state_path), duration=settings.cooldown_seconds
    )


async def _run_insights(
    service: CatalogService, settings: Settings, problem_id: str, description: str
) -> int:
    gate = _cooldown_gate(settings)
    if not gate.can_use():
        raise CooldownActiveError(gate.remaining_time())
    problem = await service.get_problem(problem_id)
    if problem is None:
        print(f"Problem with ID '{problem_id}' not found", file=sys.stderr)
        return 1

    insights = await AIInsightsService(settings).generate_insights(problem, description)
    if insights.generatedBy == "ai":
        gate.start_cooldown()
    print(json.dumps(insights.model_dump(), indent=2))
    await gate.close()
    return 0


def _run_cooldown_status(settings: Settings) -> int:
    gate = _cooldown_gate(settings)
    print(f"AI features: {gate.formatted_remaining()}")
    return 0


async def _dispatch(args: argparse.Namespace, settings: Settings) -> int:
    service = CatalogService(build_store(settings), settings=settings)
    await service.connect()
    try:
        if args.command == "bulk-import":
            return await _run_bulk_import(service, args.kind, args.path)
        if args.command == "recalculate-stats":
            return await _run_recalculate(service)
        return await _run_insights(service, settings, args.problem_id, args.description)
    finally:
        service.disconnect()


def main(argv: List[str] = None) -> None:
    """Parse arguments and run the chosen task."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = get_settings()
        if args.command == "cooldown-status":
            exit_code = _run_cooldown_status(settings)
        else:
            exit_code = asyncio.run(_dispatch(args, settings))
    except CooldownActiveError as e:
        print(str(e), file=sys.stderr)
        exit_code = 2
    except (CatalogError, OSError, json.JSONDecodeError) as e:
        logger.error("%s failed: %s", args.command, e)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
