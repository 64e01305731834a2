#!/usr/bin/env python3
"""
Operator commands for the progress template engine.

Subcommands:
    create-tables   Create every table (idempotent).
    seed            Load system milestone definitions from progress_config.
    clone           Copy the system defaults into a project.
    recalculate     Recompute percent_complete for a (project, component type).
    normalize       Rewrite legacy boolean / 0-1 milestone values as 0/100.
    summary         Print a project's template summary.
    changes         Print a project's template change log, newest first.

Usage:
    python3 scripts/progress_admin.py --database-url sqlite:///progress.db create-tables
    python3 scripts/progress_admin.py seed
    python3 scripts/progress_admin.py clone --project <uuid> --actor <uuid>
    python3 scripts/progress_admin.py recalculate --project <uuid> --type valve
"""

import argparse
import os
import sys
from pathlib import Path
from uuid import UUID

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DEFAULT_DB_URL = "sqlite:///progress.db"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Progress template engine administration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL", DEFAULT_DB_URL),
        help="SQLAlchemy URL (default: $DATABASE_URL or %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level for structured JSON logs on stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("create-tables", help="Create all tables")

    seed = sub.add_parser("seed", help="Seed system milestone definitions")
    seed.add_argument("--config-set", default="default")
    seed.add_argument("--config-dir", type=Path, default=None)

    clone = sub.add_parser("clone", help="Clone system defaults into a project")
    clone.add_argument("--project", type=UUID, required=True)
    clone.add_argument("--actor", type=UUID, required=True)

    recalc = sub.add_parser("recalculate", help="Recompute percent complete")
    recalc.add_argument("--project", type=UUID, required=True)
    recalc.add_argument("--type", dest="component_type", required=True)

    normalize = sub.add_parser("normalize", help="Normalize legacy milestone values")
    normalize.add_argument("--project", type=UUID, required=True)
    normalize.add_argument("--type", dest="component_type", required=True)

    summary = sub.add_parser("summary", help="Show a project's template summary")
    summary.add_argument("--project", type=UUID, required=True)

    changes = sub.add_parser("changes", help="Show a project's template change log")
    changes.add_argument("--project", type=UUID, required=True)
    changes.add_argument("--type", dest="component_type", default=None)
    changes.add_argument("--limit", type=int, default=20)
    changes.add_argument("--offset", type=int, default=0)

    return parser.parse_args(argv)


def _cmd_seed(session, args) -> None:
    from progress_config import get_milestone_definitions
    from progress_kernel.services import TemplateStoreService

    definitions = get_milestone_definitions(args.config_set, args.config_dir)
    written = TemplateStoreService(session).seed_milestone_definitions(definitions)
    print(f"Seeded {written} definition row(s) (checksum {definitions.checksum[:12]})")


def _cmd_clone(session, args) -> None:
    from progress_kernel.services import (
        AllowAllTemplateAuthority,
        TemplateEditingService,
    )

    service = TemplateEditingService(session, AllowAllTemplateAuthority())
    created = service.clone_defaults_for_project(args.actor, args.project)
    print(f"Created {created} template row(s) for project {args.project}")


def _cmd_recalculate(session, args) -> None:
    from progress_kernel.services import RecalculationService

    written = RecalculationService(session).recalculate(
        args.project, args.component_type
    )
    print(f"Updated {written} component(s)")


def _cmd_normalize(session, args) -> None:
    from sqlalchemy import select

    from progress_kernel.models import Component
    from progress_kernel.services import ComponentProgressService

    service = ComponentProgressService(session)
    component_ids = session.scalars(
        select(Component.id).where(
            Component.project_id == args.project,
            Component.component_type == args.component_type,
        )
    ).all()
    for component_id in component_ids:
        service.normalize_component(component_id)
    print(f"Normalized {len(component_ids)} component(s)")


def _cmd_summary(session, args) -> None:
    from progress_kernel.selectors import TemplateSelector

    summary = TemplateSelector(session).get_template_summary(args.project)
    if not summary.has_templates:
        print(f"Project {args.project} uses the system defaults")
        return
    print(f"{'COMPONENT TYPE':<20} {'MILESTONES':>10} {'WEIGHT':>7}  LAST UPDATED")
    for row in summary.rows:
        print(
            f"{row.component_type:<20} {row.milestone_count:>10} "
            f"{row.total_weight:>7}  {row.last_updated.isoformat()}"
        )


def _cmd_changes(session, args) -> None:
    from progress_kernel.selectors import ChangeLogSelector

    changes = ChangeLogSelector(session).list_changes(
        args.project, args.component_type, limit=args.limit, offset=args.offset
    )
    for change in changes:
        old = ", ".join(f"{w.milestone_name}={w.weight}" for w in change.old_weights)
        new = ", ".join(f"{w.milestone_name}={w.weight}" for w in change.new_weights)
        print(
            f"{change.changed_at.isoformat()}  {change.component_type}  "
            f"by {change.changed_by or '(removed user)'}"
        )
        print(f"    old: {old}")
        print(f"    new: {new}")
        if change.applied_to_existing:
            print(f"    recalculated {change.affected_component_count} component(s)")


_COMMANDS = {
    "seed": _cmd_seed,
    "clone": _cmd_clone,
    "recalculate": _cmd_recalculate,
    "normalize": _cmd_normalize,
    "summary": _cmd_summary,
    "changes": _cmd_changes,
}


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from progress_kernel.db.engine import (
        create_tables,
        init_engine_from_url,
        session_scope,
    )
    from progress_kernel.db.immutability import register_immutability_listeners
    from progress_kernel.exceptions import ProgressKernelError
    from progress_kernel.logging_config import configure_logging

    configure_logging(level=args.log_level.upper())
    init_engine_from_url(args.database_url)
    register_immutability_listeners()

    if args.command == "create-tables":
        create_tables()
        print("Tables created")
        return 0

    try:
        with session_scope() as session:
            _COMMANDS[args.command](session, args)
    except ProgressKernelError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
