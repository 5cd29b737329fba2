import logging
import sys
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from pending_plugins.classes import RunSummary

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Setup logging configuration."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def log_progress(processed: int, total: int, extracted: int, skipped: int) -> None:
    logger.info(f'  Progress: {processed}/{total} PRs (extracted: {extracted}, skipped: {skipped})')


def log_run_summary(summary: 'RunSummary') -> None:
    """Log the end-of-run counters (also rendered as a table by the CLI)."""
    logger.info(
        f'Processed {summary.processed_prs}/{summary.listed_prs} PRs '
        f'(skipped: {summary.skipped_prs}, extracted: {summary.extracted_entries}, '
        f'duplicates: {summary.duplicate_entries})'
    )
    logger.info(
        f'Matched: {summary.matched_entries} | Unmatched: {summary.unmatched_entries} | '
        f'Pending total: {summary.pending_entries} | Current plugins: {summary.baseline_entries}'
    )
