# The MIT License (MIT)
# Copyright © 2025 Entrius
from typing import Dict, Iterable, List

from pending_plugins.classes import PluginEntry

KEEP_FIRST = "first"
KEEP_LAST = "last"


def deduplicate(entries: Iterable[PluginEntry], keep: str = KEEP_FIRST) -> List[PluginEntry]:
    """
    Collapse entries sharing an id into one representative.

    The same plugin proposed in several PRs shows up once per PR. Which copy is
    kept does not affect attribution, which re-derives the owning PR on its own.

    Args:
        entries: Candidates from every PR, in extraction order
        keep: KEEP_FIRST for a full run, KEEP_LAST when later extractions
            should overwrite earlier ones (incremental merge)

    Returns:
        One entry per id, ordered by first occurrence of the id
    """
    if keep not in (KEEP_FIRST, KEEP_LAST):
        raise ValueError(f"keep must be '{KEEP_FIRST}' or '{KEEP_LAST}', got {keep!r}")

    by_id: Dict[str, PluginEntry] = {}
    for entry in entries:
        if keep == KEEP_FIRST and entry.id in by_id:
            continue
        by_id[entry.id] = entry
    return list(by_id.values())
