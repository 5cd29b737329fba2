# The MIT License (MIT)
# Copyright © 2025 Entrius
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pending_plugins.classes import ChangeRequest, PluginEntry, UnmatchedEntry, is_well_formed_record
from pending_plugins.reconcile.baseline import BaselineSet
from pending_plugins.reconcile.dedup import KEEP_LAST, deduplicate
from pending_plugins.utils.utils import write_text_atomic

logger = logging.getLogger(__name__)


class WatermarkStore:
    """Single integer cell holding the highest PR number already processed."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read(self) -> int:
        """Return the stored watermark, or 0 when there is none."""
        if not self.path.exists():
            return 0

        raw = self.path.read_text(encoding="utf-8").strip()
        if not raw:
            return 0
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable state file {self.path}: {raw[:40]!r}")
            return 0

    def write(self, watermark: int) -> None:
        write_text_atomic(self.path, f"{watermark}\n")
        logger.info(f"Saved state: last PR #{watermark}")


def filter_new_change_requests(change_requests: Iterable[ChangeRequest], watermark: int) -> List[ChangeRequest]:
    """Keep only PRs opened after the watermark, in listing order."""
    return [cr for cr in change_requests if cr.number > watermark]


def max_pr_number(change_requests: Iterable[ChangeRequest]) -> Optional[int]:
    numbers = [cr.number for cr in change_requests]
    return max(numbers) if numbers else None


def sort_entries(entries: Iterable[PluginEntry]) -> List[PluginEntry]:
    """Canonical output order: ascending PR number, ties broken by id.

    The PR listing is sorted by number, so in a full run this is the order in
    which the PRs were discovered.
    """
    return sorted(entries, key=lambda e: (e.pr_number if e.pr_number is not None else 0, e.id))


def merge_entries(
    previous: Iterable[PluginEntry],
    new: Iterable[PluginEntry],
    baseline: Optional[BaselineSet] = None,
) -> List[PluginEntry]:
    """
    Merge newly resolved entries into the previously emitted output.

    Entries are keyed by id and the newer entry wins. Previously emitted
    entries whose id has since been accepted into the baseline are dropped.

    Args:
        previous: Entries from the last pending-plugins.json
        new: Entries resolved in this run
        baseline: Current accepted ids

    Returns:
        Merged entries in canonical order
    """
    previous = list(previous)
    kept_previous = [e for e in previous if not baseline or e.id not in baseline]
    dropped = len(previous) - len(kept_previous)
    if dropped:
        logger.info(f"Dropped {dropped} previously pending plugins that are now accepted")

    merged = deduplicate([*kept_previous, *new], keep=KEEP_LAST)
    return sort_entries(merged)


def _read_json_array(path: Path) -> list:
    if not path.exists():
        return []

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a JSON array")
    return data


def load_previous_output(path: Union[str, Path]) -> List[PluginEntry]:
    """
    Read a previously written pending-plugins.json.

    Records without an integer ``pr_number`` are dropped; every emitted entry
    must carry one.

    Raises:
        ValueError: if the file exists but is not a JSON array
    """
    data = _read_json_array(Path(path))
    entries = [PluginEntry.from_record(record) for record in data if is_well_formed_record(record)]
    kept = [e for e in entries if e.pr_number is not None]
    if len(kept) < len(entries):
        logger.warning(f"Ignoring {len(entries) - len(kept)} previous entries without a pr_number in {path}")
    return kept


def load_previous_unmatched(path: Union[str, Path]) -> List[UnmatchedEntry]:
    """Read a previously written unmatched report; a missing file means none."""
    data = _read_json_array(Path(path))
    return [UnmatchedEntry.from_record(record) for record in data if is_well_formed_record(record)]


def merge_unmatched(
    previous: Iterable[UnmatchedEntry],
    new: Iterable[UnmatchedEntry],
    resolved: Iterable[PluginEntry],
    baseline: Optional[BaselineSet] = None,
) -> List[UnmatchedEntry]:
    """
    Carry unmatched entries from earlier runs forward.

    An earlier unmatched entry is dropped once its id is resolved or accepted;
    a fresh verdict for the same id replaces the old one.
    """
    resolved_ids = {e.id for e in resolved}
    by_id = {}
    for item in [*previous, *new]:
        if item.entry.id in resolved_ids or (baseline and item.entry.id in baseline):
            by_id.pop(item.entry.id, None)
            continue
        by_id[item.entry.id] = item
    return sorted(by_id.values(), key=lambda u: u.entry.id)
