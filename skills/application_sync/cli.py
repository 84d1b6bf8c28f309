"""CLI for the application_sync package."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from skills.application_sync.config import DEFAULT_LOOKBACK_HOURS, load_settings
from skills.application_sync.errors import ConfigurationError
from skills.application_sync.pipeline import build_runtime, run_sync
from skills.application_sync.stores.memory import MemoryStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync job application emails into the tracking table")
    parser.add_argument("--hours", type=int, default=DEFAULT_LOOKBACK_HOURS, help="Lookback window in hours")
    parser.add_argument("--source", choices=["gmail", "sample"], default="gmail")
    parser.add_argument("--dry-run", action="store_true", help="Write to an in-memory table instead of Airtable")
    parser.add_argument("--credentials", default="credentials.json", help="OAuth client secrets for --authorize")
    parser.add_argument(
        "--authorize",
        action="store_true",
        help="Allow browser OAuth fallback when no Gmail token or refresh token is configured",
    )
    return parser


def _print_summary(counters) -> None:
    summary = counters.summary()
    print("Summary")
    print(
        f"fetched={summary['emails_fetched']} relevant={summary['emails_relevant']} "
        f"processed={summary['emails_processed']} created={summary['records_created']} "
        f"updated={summary['records_updated']} duplicates={summary['duplicates_skipped']} "
        f"extraction_failures={summary['extraction_failures']} errors={summary['errors']}"
    )
    print(
        f"success_rate_pct={summary['success_rate_pct']} duration_s={summary['duration_s']} "
        f"avg_ms_per_email={summary['avg_ms_per_email']}"
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.hours <= 0:
        parser.error("--hours must be a positive integer")

    if args.source == "gmail":
        print("Gmail sync started. Status: authenticating/fetching messages...")
    else:
        print("Run started.")

    try:
        settings = load_settings()
        source, store, complete = build_runtime(
            settings,
            source=args.source,
            dry_run=args.dry_run,
            credentials_path=Path(args.credentials),
            allow_interactive_auth=args.authorize,
        )
    except (ConfigurationError, RuntimeError) as exc:
        print(f"Error: {exc}")
        return 2

    counters = run_sync(args.hours, source, store, complete, settings)
    _print_summary(counters)
    if counters.error_details:
        print("Errors:")
        for detail in counters.error_details:
            print(f"- {detail['type']} message_id={detail['message_id']} {detail['message']}")
    if args.dry_run and isinstance(store, MemoryStore):
        print("dry_run=true (nothing written to Airtable)")
        for record in store.all():
            print(json.dumps(record.to_fields(), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
