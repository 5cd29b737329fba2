# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Pending-submission reconciliation pipeline.

Baseline -> per-PR extraction -> deduplication -> attribution, with an
optional watermark wrapping the whole pass for incremental runs.
"""

from .attribution import ChangeRequestIndex, build_index, resolve_entries, resolve_entry
from .baseline import BaselineError, load_baseline
from .dedup import deduplicate
from .extraction import ExtractionResult, extract_candidates
from .pipeline import ReconciliationResult, reconcile
from .state import WatermarkStore, filter_new_change_requests, merge_entries, sort_entries

__all__ = [
    'BaselineError',
    'ChangeRequestIndex',
    'ExtractionResult',
    'ReconciliationResult',
    'WatermarkStore',
    'build_index',
    'deduplicate',
    'extract_candidates',
    'filter_new_change_requests',
    'load_baseline',
    'merge_entries',
    'reconcile',
    'resolve_entries',
    'resolve_entry',
    'sort_entries',
]
