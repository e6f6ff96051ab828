#!/usr/bin/env python3
"""Bootstrap a tracker store and print what it holds.

Runs the same startup barrier the application uses: the store is seeded
only when its schema version marker differs from the expected version.

Usage
-----
::

    python scripts/inspect_store.py --db ./gsetrack.sqlite3
    GSETRACK_DB_PATH=:memory: python scripts/inspect_store.py --json

Options::

    --db FILE              SQLite store (default: $GSETRACK_DB_PATH or the user data dir)
    --memory               Use a throwaway in-memory store
    --dataset FILE         Seed from this JSON reference dataset
    --schema-version V     Expected schema version (default: the bundled one)
    --equipment ID         Only show this equipment with its faults and handovers
    --json                 Output as machine-readable JSON
    -v, --verbose          Enable DEBUG logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from gsetrack import BootstrapError, EquipmentNotFoundError, TrackerConfig, start_tracker  # noqa: E402
from gsetrack.state.store import SharedStateStore  # noqa: E402


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _collect(state: SharedStateStore, equipment_id: str | None) -> dict[str, Any]:
    if equipment_id is not None:
        record = state.get_equipment(equipment_id)
        return {
            "equipment": [record.to_document()],
            "faults": [f.to_document() for f in state.list_faults(equipment_id=equipment_id)],
            "handovers": [h.to_document() for h in state.list_handovers(equipment_id=equipment_id)],
        }
    return {
        "summary": state.summary().model_dump(mode="json"),
        "equipment": [r.to_document() for r in state.list_equipment()],
        "faults": [f.to_document() for f in state.list_faults()],
        "handovers": [h.to_document() for h in state.list_handovers()],
    }


def _print_text(data: dict[str, Any]) -> None:
    summary = data.get("summary")
    if summary:
        print(_section("Summary"))
        for key, value in summary.items():
            print(f"  {key}: {value}")

    print(_section("Equipment"))
    for record in data["equipment"]:
        print(
            f"  {record['id']:<8} {record['type']:<20} {record.get('mobility') or '-':<14} "
            f"{record['status']:<18} {record['holder']}"
        )

    print(_section("Faults"))
    for fault in data["faults"]:
        print(f"  {fault['id']:<12} {fault['equipmentId']:<8} {fault['severity']:<9} {fault['status']:<12} "
              f"{fault['description']}")

    print(_section("Handovers"))
    for handover in data["handovers"]:
        print(f"  {handover['timestamp']}  {handover['equipmentId']:<8} "
              f"{handover['fromHolder']} -> {handover['toHolder']}  {handover['notes']}")


async def _run(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {}
    if args.memory:
        overrides["db_path"] = None
    elif args.db is not None:
        overrides["db_path"] = args.db
    if args.dataset is not None:
        overrides["dataset_path"] = args.dataset
    if args.schema_version is not None:
        overrides["schema_version"] = args.schema_version
    config = TrackerConfig.from_env(**overrides)

    try:
        app = await start_tracker(config)
    except BootstrapError as exc:
        print(f"Startup failed: {exc}", file=sys.stderr)
        print("Fix the cause and run again to retry the seed.", file=sys.stderr)
        return 2

    async with app:
        try:
            data = _collect(app.state, args.equipment)
        except EquipmentNotFoundError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        data["bootstrap"] = {
            "action": str(app.bootstrap.action),
            "version": app.bootstrap.version,
            "previousVersion": app.bootstrap.previous_version,
        }

    if args.json:
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(f"Bootstrap: {data['bootstrap']['action']} (schema {data['bootstrap']['version']})")
        _print_text(data)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Bootstrap and inspect a gsetrack store")
    parser.add_argument("--db", type=Path, default=None, help="SQLite store file")
    parser.add_argument("--memory", action="store_true", help="Use an in-memory store")
    parser.add_argument("--dataset", type=Path, default=None, help="JSON reference dataset")
    parser.add_argument("--schema-version", default=None, help="Expected schema version")
    parser.add_argument("--equipment", default=None, help="Only show this equipment id")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
