"""Seed workflow definitions from scripts/seed-workflows.json into Postgres.

Each entry names a tenant (the CRM company id) and a workflow definition
in the same shape the management API accepts. Definitions are validated
before insert; invalid entries are reported and skipped.

Usage:
    python -m scripts.seed_workflows [path/to/seed-workflows.json]

Requires: DATABASE_URL (Postgres) and migrations applied (alembic upgrade head).
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from automation.core.config import get_settings
from automation.domain.exceptions import SqlNotConfiguredException, ValidationException
from automation.infrastructure.persistence import database
from automation.infrastructure.persistence.workflow_store import SqlWorkflowStore
from automation.schemas.workflow import parse_workflow_definition


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _load_env() -> None:
    """Load .env from project root so get_settings() sees DATABASE_URL when run as script."""
    load_dotenv(_project_root() / ".env", override=True)
    get_settings.cache_clear()


async def run(path: Path) -> None:
    _load_env()
    if not path.exists():
        print(f"Seed file not found: {path}", file=sys.stderr)
        sys.exit(1)
    with path.open() as f:
        entries = json.load(f).get("workflows", [])

    try:
        session_factory = database.get_session_factory()
    except SqlNotConfiguredException:
        print(
            "Database not configured. Set DATABASE_URL and run: alembic upgrade head",
            file=sys.stderr,
        )
        sys.exit(1)

    store = SqlWorkflowStore(session_factory, max_depth=get_settings().condition_max_depth)
    try:
        for entry in entries:
            tenant_id = entry["tenant_id"]
            try:
                definition = parse_workflow_definition(entry["definition"])
            except ValidationException as e:
                print(f"  Skip workflow for {tenant_id}: {e.message}", file=sys.stderr)
                continue
            created = await store.create_workflow(
                tenant_id, definition, created_by=entry.get("created_by")
            )
            print(f"  Workflow {created.name!r} ({created.trigger_type}) -> {created.id}")
    finally:
        await database.dispose_engine()

    print("Seed completed.")


def main() -> None:
    root = _project_root()
    path_arg = sys.argv[1] if len(sys.argv) > 1 else None
    path = Path(path_arg) if path_arg else root / "scripts" / "seed-workflows.json"
    if not path.is_absolute():
        path = (root / path).resolve()
    asyncio.run(run(path))


if __name__ == "__main__":
    main()
