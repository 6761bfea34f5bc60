from __future__ import annotations

import argparse
import logging
import sys
import time
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from lexigate.app import build_review_service, run_pipeline
from lexigate.config import configure_logging
from lexigate.domain.model import PROCESSING_ORDER, Stage

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from lexigate.domain.model import BatchReport

log = logging.getLogger(__name__)

DEFAULT_WATCH_INTERVAL = 60.0


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Promote learning content through lexigate")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Process one pipeline batch")
    run.add_argument(
        "--stage",
        type=Stage,
        choices=PROCESSING_ORDER,
        help="Only process items currently in this stage",
    )
    run.add_argument(
        "--watch",
        action="store_true",
        help="Keep processing batches until interrupted",
    )
    run.add_argument(
        "--interval",
        type=float,
        default=DEFAULT_WATCH_INTERVAL,
        help="Seconds to wait between batches in watch mode (default: %(default)s)",
    )

    review = subparsers.add_parser("review", help="Operator review queue commands")
    review_sub = review.add_subparsers(dest="review_command", required=True)

    review_list = review_sub.add_parser("list", help="List pending review entries")
    review_list.add_argument("--limit", type=int, default=50, help="Maximum entries to show")

    review_approve = review_sub.add_parser("approve", help="Approve validated items")
    review_approve.add_argument("item_ids", nargs="+", help="Validated item ids")
    review_approve.add_argument("--operator", type=str, help="Operator identifier")
    review_approve.add_argument("--notes", type=str, help="Free-form approval notes")

    review_reject = review_sub.add_parser("reject", help="Reject a validated item")
    review_reject.add_argument("item_id", help="Validated item id")
    review_reject.add_argument("--operator", type=str, help="Operator identifier")
    review_reject.add_argument("--notes", type=str, help="Reason for the rejection")

    review_similar = review_sub.add_parser(
        "similar", help="Show approved content similar to a validated item"
    )
    review_similar.add_argument("item_id", help="Validated item id")
    review_similar.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum trigram similarity between 0 and 1",
    )

    failures = subparsers.add_parser("failures", help="List recent pipeline failures")
    failures.add_argument(
        "--stage",
        type=Stage,
        choices=PROCESSING_ORDER,
        help="Only show failures recorded at this stage",
    )
    failures.add_argument("--limit", type=int, default=50, help="Maximum records to show")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _log_report(report: BatchReport) -> None:
    log.info(
        "Processed %d item(s): %d succeeded, %d failed, %d discarded",
        report.processed,
        report.succeeded,
        report.failed,
        report.discarded,
    )


def _watch(
    run_once: Callable[[], BatchReport],
    interval: float,
    *,
    sleep: Callable[[float], None] = time.sleep,
    max_cycles: int | None = None,
) -> None:
    cycles = 0
    while max_cycles is None or cycles < max_cycles:
        _log_report(run_once())
        cycles += 1
        if max_cycles is None or cycles < max_cycles:
            sleep(interval)


def _run(args: argparse.Namespace) -> None:
    def run_once() -> BatchReport:
        return run_pipeline(stage=args.stage)

    if args.watch:
        if args.interval <= 0:
            raise ValueError("Interval must be positive")
        _watch(run_once, args.interval)
    else:
        _log_report(run_once())


def _review(args: argparse.Namespace) -> None:
    service = build_review_service()
    if args.review_command == "list":
        for entry in service.pending(limit=args.limit):
            log.info(
                "%s %-9s priority=%d queued=%s",
                entry.item_id,
                entry.data_type,
                entry.priority,
                entry.queued_at.isoformat(),
            )
    elif args.review_command == "approve":
        item_ids = [_parse_uuid(value) for value in args.item_ids]
        approved = service.bulk_approve(item_ids, operator_id=args.operator, notes=args.notes)
        log.info("Approved %d of %d item(s)", len(approved), len(item_ids))
    elif args.review_command == "reject":
        service.reject(_parse_uuid(args.item_id), operator_id=args.operator, notes=args.notes)
        log.info("Rejected %s", args.item_id)
    elif args.review_command == "similar":
        item_id = _parse_uuid(args.item_id)
        matches = (
            service.near_duplicates(item_id)
            if args.threshold is None
            else service.near_duplicates(item_id, threshold=args.threshold)
        )
        if not matches:
            log.info("No similar approved content for %s", item_id)
        for match in matches:
            log.info("%s %.2f %s", match.id, match.similarity, match.text)
    else:
        raise ValueError(f"Unsupported review command: {args.review_command}")


def _failures(args: argparse.Namespace) -> None:
    service = build_review_service()
    for failure in service.failures(stage=args.stage, limit=args.limit):
        log.info(
            "%s %s %s %s: %s",
            failure.timestamp.isoformat(),
            failure.stage,
            failure.data_type,
            failure.item_id,
            failure.error_message,
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "run":
            _run(parsed_args)
        elif parsed_args.command == "review":
            _review(parsed_args)
        elif parsed_args.command == "failures":
            _failures(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
