"""Operator CLI for settling, retrying and refunding gifts."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

ACTIONS = ("settle-pending", "settle", "retry", "refund", "cancel", "stalled")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Resolve gifts that need operator attention.",
    )
    parser.add_argument(
        "action",
        choices=ACTIONS,
        help="What to do.",
    )
    parser.add_argument(
        "gift_id",
        nargs="?",
        help="Gift id (required for settle, retry, refund and cancel).",
    )
    parser.add_argument(
        "--actor",
        type=str,
        default=None,
        help="Admin user id recorded on refund transactions.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Batch size for settle-pending (default: 50).",
    )
    parser.add_argument(
        "--older-than",
        type=int,
        default=None,
        help="Minutes a gift must be stuck before stalled lists it.",
    )
    args = parser.parse_args(argv)
    if args.action in {"settle", "retry", "refund", "cancel"} and not args.gift_id:
        parser.error(f"{args.action} requires a gift id")
    if args.action in {"refund", "cancel"} and not args.actor:
        parser.error(f"{args.action} requires --actor")
    return args


def run(args: argparse.Namespace) -> list[str]:
    """Run one action and return printable result lines."""
    from openhouse.clients.giftbit import get_giftbit_client
    from openhouse.services.gift_issuance_service import GiftIssuanceService
    from openhouse.utils.supabase_client import get_service_client

    service = GiftIssuanceService(get_service_client(), get_giftbit_client())

    if args.action == "settle-pending":
        gifts = service.settle_pending_gifts(limit=args.limit)
    elif args.action == "stalled":
        gifts = service.find_stalled_gifts(args.older_than)
    elif args.action == "settle":
        gifts = [service.process_gift(args.gift_id)]
    elif args.action == "retry":
        gifts = [service.retry_gift_link(args.gift_id)]
    elif args.action == "refund":
        gifts = [service.refund_gift(args.gift_id, actor_id=args.actor)]
    else:
        gifts = [service.cancel_gift(args.gift_id, actor_id=args.actor)]

    return [
        f"{gift.id}\t{gift.status}\t{gift.amount_in_cents}\t{gift.recipient_email}"
        for gift in gifts
    ]


def main() -> None:
    """CLI entry point."""
    from openhouse.utils.errors import AppError

    args = parse_args()
    try:
        lines = run(args)
    except AppError as exc:
        print(f"{exc.code}: {exc.message}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(f"{args.action}: {len(lines)} gift(s)")
    for line in lines:
        print(line)


if __name__ == "__main__":
    main()
