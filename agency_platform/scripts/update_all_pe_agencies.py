#!/usr/bin/env python3
"""
Immersion Facilitée — Pôle emploi agencies sync

Fetches the full PE agency referential and reconciles it with the agency
store: creates missing pole-emploi agencies, refreshes the address,
position, siret and codes of matched ones, and attaches the referential
contact email as validator.

Usage:
    # From the PE partner API (IF_PE_CLIENT_ID / IF_PE_CLIENT_SECRET set):
    update-all-pe-agencies

    # From a saved payload, without writing anything:
    update-all-pe-agencies --source file --source-file referentiel_agences.json --dry-run

    # Keep the report for triage of ambiguous matches:
    update-all-pe-agencies --report-json output/pe_sync_report.json

Exit status: 0 on a completed run, 1 if the run failed or the database
is unreachable.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .. import config, db
from ..helpers import REFERENTIAL_SOURCES, make_referential
from ..identifiers import UuidV4Generator
from ..reconciliation import ReconciliationReport, ReconciliationRunFailed, UpdateAllPeAgencies
from ..repositories import (
    AgencyRepository,
    DryRunAgencyRepository,
    InMemoryAgencyRepository,
    PgAgencyRepository,
)

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile the Pôle emploi agency referential with the agency store",
    )
    parser.add_argument(
        "--source",
        choices=REFERENTIAL_SOURCES,
        default="api",
        help="Where to read the referential from (default: api)",
    )
    parser.add_argument(
        "--source-file",
        help="Saved referential payload (JSON list), required with --source file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Work on an in-memory snapshot of the store; log what would be written",
    )
    parser.add_argument(
        "--in-memory",
        action="store_true",
        help="Use an empty in-memory store instead of PostgreSQL",
    )
    parser.add_argument(
        "--report-json",
        help="Write the run report (counts + ambiguous matches) to this file",
    )
    args = parser.parse_args(argv)
    if args.source == "file" and not args.source_file:
        parser.error("--source-file is required with --source file")
    return args


def write_report(path: str, report: ReconciliationReport, **extra) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        json.dump({**extra, **report.to_dict()}, f, indent=2, ensure_ascii=False)
    logger.info("Report written to %s", out)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    logger.info("=" * 60)
    logger.info("Immersion Facilitée — Pôle emploi agencies sync%s", " (DRY RUN)" if args.dry_run else "")
    logger.info("=" * 60)

    repository: AgencyRepository
    if args.in_memory:
        repository = InMemoryAgencyRepository()
    else:
        if not db.init_pool():
            logger.error("Database unavailable — aborting (use --in-memory to run without it)")
            return 1
        repository = PgAgencyRepository()

    if args.dry_run:
        repository = DryRunAgencyRepository.snapshot_of(repository)

    use_case = UpdateAllPeAgencies(
        repository,
        make_referential(args.source, args.source_file),
        UuidV4Generator(),
        config.DEFAULT_ADMIN_EMAIL,
    )

    try:
        report = use_case.run()
    except ReconciliationRunFailed as e:
        logger.error("%s (cause: %r)", e, e.__cause__)
        if args.report_json:
            write_report(
                args.report_json,
                e.report,
                completed=False,
                processed=e.processed,
                referential_total=e.total,
            )
        return 1
    finally:
        db.close_pool()

    for key, val in report.counts().items():
        logger.info("  %-32s %d", key, val)
    for entry in report.ambiguous:
        logger.info(
            "  ambiguous: %s (%s) → %s",
            entry["display_name"],
            entry["code"],
            ", ".join(entry["candidate_agency_ids"]),
        )

    if args.report_json:
        write_report(args.report_json, report, completed=True, dry_run=args.dry_run)

    return 0


def cli() -> None:
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    sys.exit(main())


if __name__ == "__main__":
    cli()
