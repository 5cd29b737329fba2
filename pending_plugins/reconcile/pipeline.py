# The MIT License (MIT)
# Copyright © 2025 Entrius
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Union

from pending_plugins.classes import ChangeRequest, PluginEntry, RunSummary, UnmatchedEntry
from pending_plugins.constants import PROGRESS_LOG_INTERVAL
from pending_plugins.reconcile.attribution import ChangeRequestIndex, build_index, resolve_entries
from pending_plugins.reconcile.baseline import BaselineSet
from pending_plugins.reconcile.dedup import KEEP_FIRST, deduplicate
from pending_plugins.reconcile.extraction import extract_candidates
from pending_plugins.reconcile.state import max_pr_number
from pending_plugins.utils.logging import log_progress

logger = logging.getLogger(__name__)

# PR number -> tracked file content at the PR merge ref, or None when unavailable
SnapshotFetcher = Callable[[int], Optional[Union[str, bytes]]]


@dataclass
class ReconciliationResult:
    entries: List[PluginEntry] = field(default_factory=list)
    unmatched: List[UnmatchedEntry] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)
    max_pr_number: Optional[int] = None
    extracted_prs: int = 0  # PRs whose snapshot was read, whether or not it added entries


def reconcile(
    baseline: BaselineSet,
    change_requests: Sequence[ChangeRequest],
    fetch_snapshot: SnapshotFetcher,
    index: Optional[ChangeRequestIndex] = None,
    summary: Optional[RunSummary] = None,
) -> ReconciliationResult:
    """
    Run extraction, deduplication and attribution over a batch of PRs.

    A PR whose snapshot cannot be fetched or parsed is counted as skipped and
    contributes nothing; it never stops the run.

    Args:
        baseline: Accepted plugin ids
        change_requests: PRs to extract from, in listing order
        fetch_snapshot: Returns the tracked file at a PR's merge ref
        index: Attribution index; defaults to one built from ``change_requests``
        summary: Counters to update in place

    Returns:
        ReconciliationResult with matched entries in discovery order and the unmatched report
    """
    if index is None:
        index = build_index(change_requests)
    if summary is None:
        summary = RunSummary(listed_prs=len(change_requests))

    total = len(change_requests)
    candidates: List[PluginEntry] = []
    extracted_prs = 0

    for position, cr in enumerate(change_requests, start=1):
        summary.processed_prs += 1

        try:
            snapshot = fetch_snapshot(cr.number)
        except Exception as e:
            logger.warning(f"Could not read snapshot for PR #{cr.number}: {e}")
            snapshot = None

        extraction = extract_candidates(cr.number, snapshot, baseline)
        if extraction.skipped:
            summary.skipped_prs += 1
        else:
            extracted_prs += 1
            candidates.extend(extraction.candidates)
            summary.extracted_entries += len(extraction.candidates)

        if position % PROGRESS_LOG_INTERVAL == 0:
            log_progress(position, total, summary.extracted_entries, summary.skipped_prs)

    log_progress(summary.processed_prs, total, summary.extracted_entries, summary.skipped_prs)

    unique = deduplicate(candidates, keep=KEEP_FIRST)
    summary.duplicate_entries += len(candidates) - len(unique)

    attribution = resolve_entries(unique, index)
    summary.matched_entries += len(attribution.matched)
    summary.unmatched_entries += len(attribution.unmatched)

    return ReconciliationResult(
        entries=attribution.matched,
        unmatched=attribution.unmatched,
        summary=summary,
        max_pr_number=max_pr_number(change_requests),
        extracted_prs=extracted_prs,
    )
