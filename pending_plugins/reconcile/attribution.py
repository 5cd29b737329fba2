# The MIT License (MIT)
# Copyright © 2025 Entrius
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pending_plugins.classes import (
    AttributionVerdict,
    ChangeRequest,
    NameFallbackMatch,
    OwnerMatch,
    OwnerTitleMatch,
    PluginEntry,
    Unmatched,
    UnmatchedEntry,
)
from pending_plugins.constants import ADD_PLUGIN_TITLE_MARKER, UNMATCHED_NO_MATCH, UNMATCHED_OWNER_MULTIPLE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeRequestIndex:
    """Read-only lookup over every open PR of a run.

    Attribution of a single entry needs the whole listing (an owner may have
    several PRs), so the index is built once before any entry is resolved.
    """

    change_requests: Tuple[ChangeRequest, ...]
    by_owner: Dict[str, Tuple[ChangeRequest, ...]] = field(repr=False)
    by_number: Dict[int, ChangeRequest] = field(repr=False)

    def owned_by(self, owner: str) -> Tuple[ChangeRequest, ...]:
        if not owner:
            return ()
        return self.by_owner.get(owner, ())


def build_index(change_requests: Iterable[ChangeRequest]) -> ChangeRequestIndex:
    """Index PRs by owner and number, keeping listing order within each owner."""
    ordered = tuple(sorted(change_requests, key=lambda cr: cr.discovery_order))

    by_owner: Dict[str, List[ChangeRequest]] = {}
    by_number: Dict[int, ChangeRequest] = {}
    for cr in ordered:
        if cr.number in by_number:
            raise ValueError(f"Duplicate PR number in listing: #{cr.number}")
        by_number[cr.number] = cr
        by_owner.setdefault(cr.owner_login, []).append(cr)

    return ChangeRequestIndex(
        change_requests=ordered,
        by_owner={owner: tuple(crs) for owner, crs in by_owner.items()},
        by_number=by_number,
    )


def title_announces(change_request: ChangeRequest, name: str) -> bool:
    """True if the PR title reads like "Add plugin: <name>".

    Plain lower-cased substring containment, no other normalization.
    """
    name_lower = name.lower()
    if not name_lower:
        return False
    title_lower = change_request.title.lower()
    return ADD_PLUGIN_TITLE_MARKER in title_lower and name_lower in title_lower


def _first_announcing(change_requests: Sequence[ChangeRequest], name: str) -> Optional[ChangeRequest]:
    for cr in change_requests:
        if title_announces(cr, name):
            return cr
    return None


# =============================================================================
# Strategies, evaluated in order; the first non-None verdict wins
# =============================================================================

Strategy = Callable[[PluginEntry, ChangeRequestIndex], Optional[AttributionVerdict]]


def match_single_owner(entry: PluginEntry, index: ChangeRequestIndex) -> Optional[AttributionVerdict]:
    owned = index.owned_by(entry.owner)
    if len(owned) == 1:
        return OwnerMatch(owned[0].number)
    return None


def match_owner_title(entry: PluginEntry, index: ChangeRequestIndex) -> Optional[AttributionVerdict]:
    """Pick among an owner's several PRs by title.

    If none of the owner's PRs announces the plugin the entry is unmatched;
    the global name fallback is not consulted in that case.
    """
    owned = index.owned_by(entry.owner)
    if len(owned) <= 1:
        return None

    cr = _first_announcing(owned, entry.name)
    if cr is not None:
        return OwnerTitleMatch(cr.number)
    return Unmatched(UNMATCHED_OWNER_MULTIPLE)


def match_name_fallback(entry: PluginEntry, index: ChangeRequestIndex) -> Optional[AttributionVerdict]:
    # Only for owners without any open PR (fork or renamed account)
    if index.owned_by(entry.owner):
        return None

    cr = _first_announcing(index.change_requests, entry.name)
    if cr is not None:
        return NameFallbackMatch(cr.number)
    return None


def no_match(entry: PluginEntry, index: ChangeRequestIndex) -> AttributionVerdict:
    return Unmatched(UNMATCHED_NO_MATCH)


ATTRIBUTION_STRATEGIES: Tuple[Strategy, ...] = (
    match_single_owner,
    match_owner_title,
    match_name_fallback,
    no_match,
)


def resolve_entry(
    entry: PluginEntry,
    index: ChangeRequestIndex,
    strategies: Sequence[Strategy] = ATTRIBUTION_STRATEGIES,
) -> AttributionVerdict:
    """
    Determine the PR that introduced an entry.

    Args:
        entry: Deduplicated candidate
        index: Index over every open PR
        strategies: Ordered strategy chain

    Returns:
        The verdict of the first strategy that produces one
    """
    for strategy in strategies:
        verdict = strategy(entry, index)
        if verdict is not None:
            return verdict
    return Unmatched(UNMATCHED_NO_MATCH)


@dataclass
class AttributionResult:
    matched: List[PluginEntry] = field(default_factory=list)
    unmatched: List[UnmatchedEntry] = field(default_factory=list)


def resolve_entries(entries: Iterable[PluginEntry], index: ChangeRequestIndex) -> AttributionResult:
    """
    Attribute every entry, splitting them into matched and unmatched.

    Matched entries are returned in the order their PRs were listed (ties by id),
    each carrying its resolved ``pr_number``.
    """
    result = AttributionResult()

    for entry in entries:
        verdict = resolve_entry(entry, index)
        if verdict.is_matched:
            result.matched.append(replace(entry, pr_number=verdict.number))
            logger.debug(f"{entry.id} -> PR #{verdict.number} ({type(verdict).__name__})")
        else:
            result.unmatched.append(UnmatchedEntry(entry=entry, reason=verdict.reason))
            logger.warning(f"Could not match {entry.id} ({entry.repo or 'no repo'}) to a PR: {verdict.reason}")

    result.matched.sort(key=lambda e: (index.by_number[e.pr_number].discovery_order, e.id))
    return result
