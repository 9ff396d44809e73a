"""Reconciliation runner - entry points for migration, dedup, KPI totals and audits.

Usage:
    # From CLI
    python -m reconcile.runner migrate schedules --dry-run
    python -m reconcile.runner dedup projectScopes --mode identity_title
    python -m reconcile.runner kpi projects --status Accepted --status "In Progress"
    python -m reconcile.runner audit

    # From code
    store = await SqlDocumentStore.connect(settings.DATABASE_URL)
    runner = ReconcileRunner(store, settings)
    report = await runner.migrate("schedules")
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from reconcile.aggregates.service import (
    DEFAULT_FIELDS,
    AggregationConfig,
    AggregationService,
    pmc_group_hours,
    status_breakdown,
)
from reconcile.audit.service import find_orphans, find_split_identifiers, key_format_report
from reconcile.config import ReconcileSettings, get_settings
from reconcile.dedup.service import (
    MODE_IDENTITY,
    MODE_ALIASES,
    MODE_IDENTITY_TITLE,
    MODES,
    dedup_collection,
    dedup_until_stable,
)
from reconcile.errors import ReconcileError, StoreWriteFailure
from reconcile.identity.migration import migrate_collection
from reconcile.models import ProjectRecord, ScheduleRecord, ScopeRecord
from reconcile.store.base import DocumentStore
from reconcile.store.sql import SqlDocumentStore

logger = logging.getLogger(__name__)


class ReconcileRunner:
    """Runs reconciliation operations against one explicit store client."""

    def __init__(self, store: DocumentStore, settings: Optional[ReconcileSettings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def record_type(self, collection: str) -> type:
        """Record class for a configured collection.

        Raises:
            ValueError: ``collection`` is not one of the configured collections
        """
        s = self.settings
        types = {
            s.PROJECTS_COLLECTION: ProjectRecord,
            s.SCOPES_COLLECTION: ScopeRecord,
            s.SCHEDULES_COLLECTION: ScheduleRecord,
        }
        try:
            return types[collection]
        except KeyError:
            raise ValueError(f"Unknown collection '{collection}', expected one of {sorted(types)}") from None

    def default_fields(self, collection: str) -> tuple[str, ...]:
        record_type = self.record_type(collection)
        if record_type is ProjectRecord:
            return DEFAULT_FIELDS
        if record_type is ScopeRecord:
            return ("sales", "cost", "hours")
        return ("total_hours",)

    def default_mode(self, collection: str) -> str:
        if collection == self.settings.SCOPES_COLLECTION:
            return MODE_IDENTITY_TITLE
        return MODE_IDENTITY

    async def read_collections(self, *collections: str) -> dict[str, list]:
        """Read independent collections concurrently as typed records.

        Raises:
            StoreReadFailure: Any read failed (no partial snapshot is returned)
        """
        snapshots = await asyncio.gather(*(self.store.list_all(name) for name in collections))
        out = {}
        for name, documents in zip(collections, snapshots):
            record_type = self.record_type(name)
            out[name] = [record_type.from_document(doc.id, doc.data) for doc in documents]
        return out

    async def migrate(self, collection: str, dry_run: bool = False, backfill_missing: bool = False) -> dict:
        report = await migrate_collection(
            self.store,
            collection,
            chunk_size=self.settings.BATCH_CHUNK_SIZE,
            dry_run=dry_run,
            backfill_missing=backfill_missing,
        )
        return report.to_dict()

    async def dedup(
        self,
        collection: str,
        mode: Optional[str] = None,
        dry_run: bool = False,
        until_stable: bool = False,
    ) -> dict:
        mode = mode or self.default_mode(collection)
        record_type = self.record_type(collection)
        if until_stable and not dry_run:
            report = await dedup_until_stable(
                self.store,
                collection,
                record_type,
                mode=mode,
                keep=self.settings.DEDUP_KEEP_POLICY,
                chunk_size=self.settings.BATCH_CHUNK_SIZE,
                max_passes=self.settings.DEDUP_MAX_PASSES,
            )
        else:
            report = await dedup_collection(
                self.store,
                collection,
                record_type,
                mode=mode,
                keep=self.settings.DEDUP_KEEP_POLICY,
                chunk_size=self.settings.BATCH_CHUNK_SIZE,
                dry_run=dry_run,
            )
        return report.to_dict()

    async def aggregate(self, collection: str, config: Optional[AggregationConfig] = None) -> dict:
        """Per-key and grand totals as plain numbers.

        Run migrate/dedup first; this reads whatever the store holds now.
        """
        record_type = self.record_type(collection)
        if config is None:
            config = AggregationConfig.from_settings(self.settings, fields=self.default_fields(collection))
            if record_type is ScopeRecord:
                # scope line items carry no status
                config.qualifying_statuses = None
        result = await AggregationService(self.store).aggregate_collection(collection, record_type, config)
        return result.to_dict()

    async def breakdowns(self) -> dict:
        """Status distribution and PMC group hours for the projects collection."""
        name = self.settings.PROJECTS_COLLECTION
        projects = (await self.read_collections(name))[name]
        return {
            "status": status_breakdown(projects, fields=("sales", "hours")),
            "pmc_groups": pmc_group_hours(projects),
        }

    async def audit(self) -> dict:
        """Key formats per collection, orphaned identities and split names."""
        s = self.settings
        names = (s.PROJECTS_COLLECTION, s.SCOPES_COLLECTION, s.SCHEDULES_COLLECTION)
        snapshot = await self.read_collections(*names)
        projects = snapshot[s.PROJECTS_COLLECTION]
        return {
            "key_formats": {name: key_format_report(records) for name, records in snapshot.items()},
            "orphans": {
                s.SCOPES_COLLECTION: find_orphans(projects, snapshot[s.SCOPES_COLLECTION]),
                s.SCHEDULES_COLLECTION: find_orphans(projects, snapshot[s.SCHEDULES_COLLECTION]),
            },
            "split_identifiers": find_split_identifiers(projects),
        }


async def _run(args: argparse.Namespace, settings: ReconcileSettings) -> dict:
    store = await SqlDocumentStore.connect(settings.DATABASE_URL)
    try:
        runner = ReconcileRunner(store, settings)
        if args.command == "migrate":
            return await runner.migrate(args.collection, dry_run=args.dry_run, backfill_missing=args.backfill)
        if args.command == "dedup":
            return await runner.dedup(
                args.collection, mode=args.mode, dry_run=args.dry_run, until_stable=args.until_stable
            )
        if args.command == "kpi":
            config = None
            if args.status or args.all_statuses or args.include_archived:
                config = AggregationConfig(
                    qualifying_statuses=None if args.all_statuses else (
                        frozenset(args.status) if args.status else settings.qualifying_statuses
                    ),
                    include_archived=args.include_archived or settings.INCLUDE_ARCHIVED,
                    fields=runner.default_fields(args.collection),
                    excluded_customers=settings.excluded_customers,
                    excluded_project_names=settings.excluded_project_names,
                )
            return await runner.aggregate(args.collection, config)
        if args.command == "breakdown":
            return await runner.breakdowns()
        return await runner.audit()
    finally:
        await store.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Project records reconciliation")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    migrate = sub.add_parser("migrate", help="Rewrite legacy '|' jobKeys to '~'")
    migrate.add_argument("collection")
    migrate.add_argument("--dry-run", action="store_true", help="Plan only, write nothing")
    migrate.add_argument("--backfill", action="store_true", help="Also write constructed keys where missing")

    dedup = sub.add_parser("dedup", help="Remove duplicate records")
    dedup.add_argument("collection")
    dedup.add_argument("--mode", choices=MODES + tuple(MODE_ALIASES), default=None, help="Default depends on collection")
    dedup.add_argument("--dry-run", action="store_true")
    dedup.add_argument("--until-stable", action="store_true", help="Repeat passes until nothing is removed")

    kpi = sub.add_parser("kpi", help="Per-key and grand totals")
    kpi.add_argument("collection")
    kpi.add_argument("--status", action="append", help="Qualifying status (repeatable)")
    kpi.add_argument("--all-statuses", action="store_true", help="Disable the status filter")
    kpi.add_argument("--include-archived", action="store_true")

    sub.add_parser("breakdown", help="Status and PMC group breakdowns for projects")
    sub.add_parser("audit", help="Key formats, orphans and split identifiers")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entrypoint."""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    log_level = logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        result = asyncio.run(_run(args, settings))
    except StoreWriteFailure as e:
        print(f"\nWRITE FAILED: {e}", file=sys.stderr)
        print(f"  Operation:  {e.operation}", file=sys.stderr)
        print(f"  Collection: {e.collection}", file=sys.stderr)
        print(f"  Completed:  {e.completed}", file=sys.stderr)
        if e.total is not None:
            print(f"  Failed:     {e.total - e.completed}", file=sys.stderr)
        print("  Re-run the command to resume; committed chunks are not rolled back.", file=sys.stderr)
        return 2
    except (ReconcileError, ValueError) as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
