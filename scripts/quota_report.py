from __future__ import annotations

import argparse
import asyncio
import sys

from irguard.persistence.db import SessionLocal
from irguard.services.quota.summary import get_quota_summary


def _build_parser() -> argparse.ArgumentParser:
    # Keep reporting scoped to one organization to avoid cross-tenant operator exposure.
    parser = argparse.ArgumentParser(description="Print quota usage for an organization")
    parser.add_argument("--organization", type=int, required=True, help="Organization id")
    parser.add_argument(
        "--warnings-only",
        action="store_true",
        help="Show only resources at or above the warning threshold",
    )
    return parser


async def _report(args: argparse.Namespace) -> int:
    summary = await get_quota_summary(SessionLocal, args.organization)
    usage = summary.usage.to_dict()
    limits = summary.limits.to_dict()
    warned = {warning.resource for warning in summary.warnings}

    print("resource\tcurrent\tlimit\tpercentage\twarning")
    rows = [
        ("users", usage["users"], limits["max_users"]),
        ("incidents", usage["incidents"], limits["max_incidents"]),
        ("assets", usage["assets"], limits["max_assets"]),
        ("runbooks", usage["runbooks"], limits["max_runbooks"]),
        ("templates", usage["templates"], limits["max_templates"]),
        ("storage", usage["storage_mb"], limits["max_storage_mb"]),
    ]
    for resource, current, limit in rows:
        if args.warnings_only and resource not in warned:
            continue
        print(
            f"{resource}\t{current}\t{'unlimited' if limit is None else limit}\t"
            f"{summary.percentages[resource]}\t{resource in warned}"
        )
    print(f"api_calls_this_hour={usage['api_calls_this_hour']} api_rate_limit={limits['api_rate_limit']}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_report(args))
    except Exception as exc:  # noqa: BLE001 - show full operator-facing error context.
        print(f"quota_report failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
