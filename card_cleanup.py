"""Periodic cleanup of the generated ID card directory."""
from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import NamedTuple, Optional, Sequence

from card_config import DEFAULT_CLEANUP_AGE_MINUTES, DEFAULT_OUTPUT_DIR, configure_logging

logger = logging.getLogger(__name__)


class CleanupReport(NamedTuple):
    deleted: int
    errors: int
    total: int


def _iter_files(output_dir: Path):
    return sorted(path for path in output_dir.iterdir() if path.is_file())


def cleanup_old_cards(
    output_dir: Path = DEFAULT_OUTPUT_DIR,
    max_age_minutes: float = DEFAULT_CLEANUP_AGE_MINUTES,
    *,
    now: Optional[float] = None,
) -> CleanupReport:
    """Delete files older than ``max_age_minutes`` by modification time."""

    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        logger.info("Generated ID cards directory %s does not exist, skipping cleanup", output_dir)
        return CleanupReport(0, 0, 0)

    current = time.time() if now is None else now
    max_age = max_age_minutes * 60.0
    files = _iter_files(output_dir)
    deleted = errors = 0

    logger.info("Cleaning up %d file(s) older than %s minutes in %s", len(files), max_age_minutes, output_dir)
    for path in files:
        try:
            age = current - path.stat().st_mtime
            if age > max_age:
                path.unlink()
                deleted += 1
                logger.debug("Deleted %s (age: %d minutes)", path.name, round(age / 60))
        except FileNotFoundError:
            # Removed by someone else since listing.
            continue
        except OSError as exc:
            errors += 1
            logger.warning("Error processing %s: %s", path.name, exc)

    logger.info("Cleanup complete: %d deleted, %d errors", deleted, errors)
    return CleanupReport(deleted, errors, len(files))


def cleanup_all_cards(output_dir: Path = DEFAULT_OUTPUT_DIR) -> CleanupReport:
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        return CleanupReport(0, 0, 0)

    files = _iter_files(output_dir)
    deleted = errors = 0
    for path in files:
        try:
            path.unlink()
            deleted += 1
        except FileNotFoundError:
            continue
        except OSError as exc:
            errors += 1
            logger.warning("Error deleting %s: %s", path.name, exc)

    logger.info("Cleanup complete: %d deleted, %d errors", deleted, errors)
    return CleanupReport(deleted, errors, len(files))


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete old generated ID card files.")
    parser.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR)
    parser.add_argument("--max-age", type=float, default=DEFAULT_CLEANUP_AGE_MINUTES, help="Minutes")
    parser.add_argument("--all", dest="remove_all", action="store_true", help="Delete every file")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level)
    if args.remove_all:
        report = cleanup_all_cards(args.output_dir)
    else:
        report = cleanup_old_cards(args.output_dir, args.max_age)
    print(f"Deleted {report.deleted} of {report.total} file(s), {report.errors} error(s)")
    return 0 if report.errors == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
