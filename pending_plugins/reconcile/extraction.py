# The MIT License (MIT)
# Copyright © 2025 Entrius
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from pending_plugins.classes import PluginEntry, is_well_formed_record
from pending_plugins.constants import SKIP_INVALID_JSON, SKIP_NOT_A_LIST, SKIP_UNAVAILABLE
from pending_plugins.reconcile.baseline import BaselineSet

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Candidates found in one PR snapshot."""

    pr_number: int
    candidates: List[PluginEntry] = field(default_factory=list)
    skip_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None


def extract_candidates(
    pr_number: int, snapshot: Optional[Union[str, bytes]], baseline: BaselineSet
) -> ExtractionResult:
    """
    Find the entries a PR snapshot adds on top of the baseline.

    An unavailable or unparseable snapshot is expected (the PR may not touch
    the tracked file, or may not be mergeable) and is reported as skipped.

    Args:
        pr_number: PR the snapshot belongs to, attached to each candidate as a hint
        snapshot: community-plugins.json content at the PR merge ref, or None
        baseline: ids already accepted

    Returns:
        ExtractionResult with the new candidates or a skip reason
    """
    if snapshot is None:
        return ExtractionResult(pr_number=pr_number, skip_reason=SKIP_UNAVAILABLE)

    try:
        records = json.loads(snapshot)
    except ValueError as e:
        logger.debug(f"Skipping PR #{pr_number} - invalid JSON: {e}")
        return ExtractionResult(pr_number=pr_number, skip_reason=SKIP_INVALID_JSON)

    if not isinstance(records, list):
        logger.debug(f"Skipping PR #{pr_number} - expected a JSON array, got {type(records).__name__}")
        return ExtractionResult(pr_number=pr_number, skip_reason=SKIP_NOT_A_LIST)

    candidates = [
        PluginEntry.from_record(record, source_pr_number=pr_number)
        for record in records
        if is_well_formed_record(record) and record["id"] not in baseline
    ]
    return ExtractionResult(pr_number=pr_number, candidates=candidates)
