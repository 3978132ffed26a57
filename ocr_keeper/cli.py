"""Command-line interface for the OCR keeper session.

Each invocation loads the saved session, runs one command, and saves
the result: queue photos, process them into slots, browse pages, and
edit or copy slot text.
"""

import argparse
import sys
from pathlib import Path

from ocr_keeper.exceptions import PageNotFoundError, StorageError
from ocr_keeper.pipeline.orchestrator import BatchProgress
from ocr_keeper.pipeline.session import Outcome, OutcomeCode, Session
from ocr_keeper.store.models import Page, PendingImage
from ocr_keeper.utils.config import MatchMode, load_config
from ocr_keeper.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.webp", "*.bmp", "*.tiff", "*.tif")
_ERROR_CODES = {
    OutcomeCode.NOT_FOUND,
    OutcomeCode.BUSY,
    OutcomeCode.QUEUE_FULL,
    OutcomeCode.SLOT_EMPTY,
}


def _find_images(paths: list[Path]) -> list[Path]:
    """Expand directories into the image files they contain.

    Args:
        paths: Files and directories given on the command line.

    Returns:
        Image paths, directory contents sorted by name, in argument order.
    """
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            found: set[Path] = set()
            for ext in _SUPPORTED_EXTENSIONS:
                found.update(path.glob(ext))
                found.update(path.glob(ext.upper()))
            files.extend(sorted(found))
        else:
            files.append(path)
    return files


def _print_progress(update: BatchProgress) -> None:
    print(f"[{update.percent:3d}%] {update.completed}/{update.total} {update.label}")


def _format_page(page: Page, page_number: int, page_count: int) -> str:
    """Render a page of slots as plain text."""
    lines = [f"Page {page.id} ({page_number} of {page_count})"]
    for i, slot in enumerate(page.slots, 1):
        flags = ""
        if slot.text and not slot.confirmed:
            flags += " [editing]"
        if slot.ocr_failed:
            flags += " [unreadable]"
        if slot.copy_history:
            flags += " [copied]"
        length = f" ({len(slot.text)} chars)" if slot.text else ""
        lines.append(f"  {i:2d}. {slot.text}{length}{flags}")
    return "\n".join(lines)


def show_page(session: Session, page_id: int | None = None) -> str:
    """Format the current page, or the page with ``page_id``."""
    store = session.store
    page = store.find_page(page_id) if page_id is not None else store.current_page()
    return _format_page(page, store.pages.index(page) + 1, len(store.pages))


def _report(outcome: Outcome) -> int:
    stream = sys.stderr if outcome.code in _ERROR_CODES else sys.stdout
    print(outcome.message, file=stream)
    return 1 if outcome.code in _ERROR_CODES else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Photo OCR Keeper: one line of text per photo, kept in pages of slots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Queue photos for OCR")
    add_parser.add_argument("paths", nargs="+", type=Path, help="Image files or directories")

    process_parser = subparsers.add_parser("process", help="Read queued photos into slots")
    process_parser.add_argument(
        "-m",
        "--mode",
        choices=[m.value for m in MatchMode],
        help="Keep candidates starting (prefix) or ending (suffix) with the term",
    )
    process_parser.add_argument("-t", "--term", help="Match term (empty keeps the first line)")
    process_parser.add_argument("-q", "--quiet", action="store_true", help="Hide progress")

    show_parser = subparsers.add_parser("show", help="Print a page of slots")
    show_parser.add_argument(
        "page", nargs="?", type=int, help="Page id as printed by show (default: current)"
    )

    select_parser = subparsers.add_parser("select", help="Make a page current")
    select_parser.add_argument("page", type=int, help="Page id as printed by show")

    subparsers.add_parser("delete-page", help="Delete the current page")

    for name, help_text in (
        ("edit", "Unlock a slot for editing"),
        ("copy", "Print a slot's text and mark it copied"),
    ):
        slot_parser = subparsers.add_parser(name, help=help_text)
        slot_parser.add_argument("page", type=int, help="Page id as printed by show")
        slot_parser.add_argument("slot", type=int, help="Slot number (1-based)")

    confirm_parser = subparsers.add_parser("confirm", help="Set a slot's text and lock it")
    confirm_parser.add_argument("page", type=int, help="Page id as printed by show")
    confirm_parser.add_argument("slot", type=int, help="Slot number (1-based)")
    confirm_parser.add_argument("text", help="New slot text")

    subparsers.add_parser("status", help="Show the pending queue")
    return parser


def _dispatch(args: argparse.Namespace, session: Session) -> int:
    """Run one parsed command and return the process exit code."""
    if args.command == "add":
        files = _find_images(args.paths)
        missing = [f for f in files if not f.is_file()]
        if missing:
            print(f"Error: {missing[0]} does not exist", file=sys.stderr)
            return 1
        if not files:
            print("Error: no images found", file=sys.stderr)
            return 1
        logger.debug("Found %d image(s) in %d path(s)", len(files), len(args.paths))
        return _report(session.enqueue(PendingImage.from_path(f) for f in files))

    if args.command == "process":
        if args.mode is not None or args.term is not None:
            session.set_match_rule(
                args.mode or session.match_mode,
                session.match_term if args.term is None else args.term,
            )
        listener = None if args.quiet else _print_progress
        return _report(session.process(listener))

    if args.command == "show":
        try:
            print(show_page(session, args.page))
        except PageNotFoundError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        return 0

    if args.command == "select":
        return _report(session.select_page(args.page))
    if args.command == "delete-page":
        return _report(session.delete_current_page())
    if args.command == "edit":
        return _report(session.begin_edit(args.page, args.slot - 1))
    if args.command == "confirm":
        return _report(session.confirm_edit(args.page, args.slot - 1, args.text))
    if args.command == "copy":
        outcome = session.copy_slot(args.page, args.slot - 1)
        if outcome.value is not None:
            print(outcome.value)
        return _report(outcome)
    return _report(session.queue_status())


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the session.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config(args.config)
    setup_logging("DEBUG" if args.verbose else config.log_level)

    try:
        code = _dispatch(args, Session(config))
    except StorageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
