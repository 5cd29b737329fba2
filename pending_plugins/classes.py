# The MIT License (MIT)
# Copyright © 2025 Entrius
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pending_plugins.constants import ENTRY_FIELDS
from pending_plugins.utils.utils import parse_repo_owner


def is_well_formed_record(record: Any) -> bool:
    """A record is usable when it is an object carrying a non-empty string id."""
    if not isinstance(record, dict):
        return False
    record_id = record.get("id")
    return isinstance(record_id, str) and record_id != ""


@dataclass(frozen=True)
class PluginEntry:
    """A plugin submission record from community-plugins.json.

    Entries are immutable: attribution returns a new instance carrying the
    resolved ``pr_number`` rather than mutating the extracted one.
    """

    id: str
    name: str = ""
    author: str = ""
    description: str = ""
    repo: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)
    pr_number: Optional[int] = None  # resolved owning PR
    source_pr_number: Optional[int] = None  # PR the entry was extracted from (hint only)

    @property
    def owner(self) -> str:
        """Lower-cased owner segment of ``repo``."""
        return parse_repo_owner(self.repo)

    @classmethod
    def from_record(cls, record: Dict[str, Any], source_pr_number: Optional[int] = None) -> 'PluginEntry':
        """Create a PluginEntry from a raw JSON record.

        Unknown keys are kept in ``extra`` so they are written back out untouched.
        A ``pr_number`` key (present in previously emitted output) is lifted
        into the resolved field.
        """
        known = {}
        for key in ENTRY_FIELDS:
            value = record.get(key)
            known[key] = "" if value is None else str(value)

        pr_number = record.get("pr_number")
        if isinstance(pr_number, bool) or not isinstance(pr_number, int):
            pr_number = None

        extra = {k: v for k, v in record.items() if k not in ENTRY_FIELDS and k != "pr_number"}

        return cls(
            id=known["id"],
            name=known["name"],
            author=known["author"],
            description=known["description"],
            repo=known["repo"],
            extra=extra,
            pr_number=pr_number,
            source_pr_number=source_pr_number,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "author": self.author,
            "description": self.description,
            "repo": self.repo,
        }
        data.update(self.extra)
        if self.pr_number is not None:
            data["pr_number"] = self.pr_number
        return data


@dataclass(frozen=True)
class ChangeRequest:
    """An open pull request against the plugin registry."""

    number: int
    owner_login: str
    title: str
    discovery_order: int  # position in the fetched listing

    def __post_init__(self):
        object.__setattr__(self, "owner_login", (self.owner_login or "").lower())
        object.__setattr__(self, "title", self.title or "")

    def __str__(self) -> str:
        return f"PR #{self.number} by {self.owner_login}: {self.title}"


# =============================================================================
# Attribution verdicts
# =============================================================================


@dataclass(frozen=True)
class AttributionVerdict:
    """Outcome of resolving one entry to a PR."""

    @property
    def is_matched(self) -> bool:
        return False


@dataclass(frozen=True)
class MatchedVerdict(AttributionVerdict):
    number: int

    @property
    def is_matched(self) -> bool:
        return True


@dataclass(frozen=True)
class OwnerMatch(MatchedVerdict):
    """The repo owner has exactly one open PR."""


@dataclass(frozen=True)
class OwnerTitleMatch(MatchedVerdict):
    """One of the owner's several PRs is titled "Add plugin: <name>"."""


@dataclass(frozen=True)
class NameFallbackMatch(MatchedVerdict):
    """No PR from the owner; some other PR is titled "Add plugin: <name>"."""


@dataclass(frozen=True)
class Unmatched(AttributionVerdict):
    reason: str


@dataclass(frozen=True)
class UnmatchedEntry:
    """An entry left for manual resolution, with the reason it could not be attributed."""

    entry: PluginEntry
    reason: str

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'UnmatchedEntry':
        """Rebuild an UnmatchedEntry from a previously written unmatched report."""
        source_pr_number = record.get("source_pr_number")
        if isinstance(source_pr_number, bool) or not isinstance(source_pr_number, int):
            source_pr_number = None
        fields = {k: v for k, v in record.items() if k not in ("status", "source_pr_number")}
        return cls(
            entry=PluginEntry.from_record(fields, source_pr_number=source_pr_number),
            reason=str(record.get("status") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self.entry.to_dict()
        data.pop("pr_number", None)
        if self.entry.source_pr_number is not None:
            data["source_pr_number"] = self.entry.source_pr_number
        data["status"] = self.reason
        return data


@dataclass
class RunSummary:
    """Counters reported at the end of every run."""

    listed_prs: int = 0
    processed_prs: int = 0
    skipped_prs: int = 0
    extracted_entries: int = 0
    duplicate_entries: int = 0
    matched_entries: int = 0
    unmatched_entries: int = 0
    baseline_entries: int = 0
    pending_entries: int = 0
    previous_watermark: Optional[int] = None
    new_watermark: Optional[int] = None
