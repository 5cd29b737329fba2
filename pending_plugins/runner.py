# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
End-to-end fetch of pending plugin submissions.

Steps:
    1. List open PRs touching community-plugins.json
    2. Narrow them to PRs above the watermark (incremental mode)
    3. Clone the registry and batch fetch every PR merge ref
    4. Load the accepted plugins from the default branch
    5. Reconcile PR snapshots against that baseline
    6. Write pending-plugins.json / unmatched-plugins.json, then the watermark
"""

import logging
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from pending_plugins.classes import ChangeRequest, PluginEntry, RunSummary, UnmatchedEntry
from pending_plugins.constants import (
    CURRENT_PLUGINS_FILE,
    DEFAULT_PR_LIST_LIMIT,
    DEFAULT_PR_SEARCH_QUERY,
    PENDING_PLUGINS_FILE,
    REGISTRY_BRANCH,
    REGISTRY_REPO,
    REGISTRY_REPO_URL,
    TRACKED_FILE,
    UNMATCHED_PLUGINS_FILE,
)
from pending_plugins.reconcile.attribution import build_index
from pending_plugins.reconcile.baseline import BaselineError, load_baseline
from pending_plugins.reconcile.pipeline import reconcile
from pending_plugins.reconcile.state import (
    WatermarkStore,
    filter_new_change_requests,
    load_previous_output,
    load_previous_unmatched,
    merge_entries,
    merge_unmatched,
    sort_entries,
)
from pending_plugins.utils.git_tools import GitWorkspace, git_available
from pending_plugins.utils.github_api_tools import list_open_change_requests
from pending_plugins.utils.logging import log_run_summary
from pending_plugins.utils.utils import write_json_atomic

logger = logging.getLogger(__name__)

ChangeRequestLister = Callable[[str, str, str, int], Optional[List[ChangeRequest]]]


class SetupError(Exception):
    """A failure that prevents the run from starting or producing output."""


@dataclass
class FetchSettings:
    output_dir: Path
    token: Optional[str] = None
    work_dir: Optional[Path] = None
    state_file: Optional[Path] = None
    repo: str = REGISTRY_REPO
    repo_url: str = REGISTRY_REPO_URL
    branch: str = REGISTRY_BRANCH
    tracked_file: str = TRACKED_FILE
    search_query: str = DEFAULT_PR_SEARCH_QUERY
    limit: int = DEFAULT_PR_LIST_LIMIT

    @property
    def incremental(self) -> bool:
        return self.state_file is not None


@dataclass
class FetchOutcome:
    summary: RunSummary
    entries: List[PluginEntry] = field(default_factory=list)
    unmatched: List[UnmatchedEntry] = field(default_factory=list)
    written_files: List[Path] = field(default_factory=list)
    nothing_new: bool = False


def check_dependencies(settings: FetchSettings) -> None:
    """Fail fast when git or a GitHub token is missing."""
    if not git_available():
        raise SetupError("git is required but not installed.")
    if not settings.token:
        raise SetupError("A GitHub token is required (set GITHUB_TOKEN or pass --token).")


@contextmanager
def working_directory(work_dir: Optional[Path]) -> Iterator[Path]:
    """Yield the working directory; a temporary one is removed afterwards, a given one is kept."""
    if work_dir is not None:
        work_dir = Path(work_dir).resolve()
        work_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Using working directory: {work_dir}")
        yield work_dir
        return

    temp_dir = Path(tempfile.mkdtemp(prefix="pending-plugins-"))
    logger.info(f"Using temporary directory: {temp_dir}")
    try:
        yield temp_dir
    finally:
        logger.info("Cleaning up temporary directory...")
        shutil.rmtree(temp_dir, ignore_errors=True)


def run_fetch(
    settings: FetchSettings,
    summary: Optional[RunSummary] = None,
    lister: ChangeRequestLister = list_open_change_requests,
    workspace_factory: Callable[[Path, str, str], GitWorkspace] = GitWorkspace,
) -> FetchOutcome:
    """
    Fetch pending plugins and write the catalog data files.

    Args:
        settings: Resolved run settings
        summary: Counters to fill in; the caller keeps a reference so it can
            report progress even when a SetupError interrupts the run
        lister: Change-request lister
        workspace_factory: Builds the git workspace from (repo_dir, repo_url, branch)

    Returns:
        FetchOutcome with the written entries and unmatched report

    Raises:
        SetupError: on missing tools, an unreachable registry or an unusable baseline
    """
    summary = summary if summary is not None else RunSummary()
    outcome = FetchOutcome(summary=summary)

    check_dependencies(settings)

    output_dir = Path(settings.output_dir).resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    pending_path = output_dir / PENDING_PLUGINS_FILE
    unmatched_path = output_dir / UNMATCHED_PLUGINS_FILE

    logger.info("=== Step 1: Fetching open PRs ===")
    listing = lister(settings.repo, settings.token, settings.search_query, settings.limit)
    if listing is None:
        raise SetupError(f"Could not list open PRs for {settings.repo}")
    summary.listed_prs = len(listing)
    logger.info(f"Found {len(listing)} open PRs modifying {settings.tracked_file}")

    to_process = listing
    store = None
    if settings.incremental:
        store = WatermarkStore(settings.state_file)
        watermark = store.read()
        summary.previous_watermark = watermark
        logger.info(f"Incremental mode: last processed PR was #{watermark}")
        to_process = filter_new_change_requests(listing, watermark)
        logger.info(f"Found {len(to_process)} new PRs since last run")
        if not to_process:
            logger.info("No new PRs to process.")
            summary.new_watermark = watermark
            outcome.nothing_new = True
            return outcome

    with working_directory(settings.work_dir) as work_dir:
        logger.info("=== Step 2: Setting up git repository ===")
        workspace = workspace_factory(work_dir / "repo", settings.repo_url, settings.branch)
        if not workspace.prepare():
            raise SetupError(f"Could not clone {settings.repo_url}")
        if workspace.fetch_merge_refs() is None:
            raise SetupError(f"Could not fetch PR merge refs from {settings.repo_url}")

        logger.info(f"=== Step 3: Extracting current plugins from {settings.branch} ===")
        baseline_content = workspace.read_baseline_file(settings.tracked_file)
        if baseline_content is None:
            raise SetupError(f"{settings.tracked_file} not found on {settings.branch}")
        try:
            baseline, current_records = load_baseline(baseline_content)
        except BaselineError as e:
            raise SetupError(str(e)) from e
        summary.baseline_entries = len(baseline)

        current_path = output_dir / CURRENT_PLUGINS_FILE
        write_json_atomic(current_path, current_records)
        outcome.written_files.append(current_path)

        logger.info("=== Step 4: Processing PRs ===")
        result = reconcile(
            baseline,
            to_process,
            lambda number: workspace.read_merge_file(number, settings.tracked_file),
            index=build_index(listing),
            summary=summary,
        )

    logger.info("=== Step 5: Creating final output ===")
    if settings.incremental:
        try:
            previous_entries = load_previous_output(pending_path)
            previous_unmatched = load_previous_unmatched(unmatched_path)
        except ValueError as e:
            raise SetupError(f"Previous output is unreadable: {e}") from e
        if previous_entries:
            logger.info(f"Merging with existing {PENDING_PLUGINS_FILE}...")
        entries = merge_entries(previous_entries, result.entries, baseline)
        unmatched = merge_unmatched(previous_unmatched, result.unmatched, entries, baseline)
    else:
        entries = sort_entries(result.entries)
        unmatched = result.unmatched

    write_json_atomic(pending_path, [e.to_dict() for e in entries])
    write_json_atomic(unmatched_path, [u.to_dict() for u in unmatched])
    outcome.written_files.extend([pending_path, unmatched_path])
    outcome.entries = entries
    outcome.unmatched = unmatched
    summary.pending_entries = len(entries)

    # Only advanced once the outputs are safely on disk, and never over a batch
    # in which no snapshot could be read
    if store is not None and result.max_pr_number:
        if result.extracted_prs:
            store.write(result.max_pr_number)
            summary.new_watermark = result.max_pr_number
        else:
            logger.warning(f"No PR snapshot could be read; keeping watermark at #{summary.previous_watermark}")
            summary.new_watermark = summary.previous_watermark

    log_run_summary(summary)
    return outcome
