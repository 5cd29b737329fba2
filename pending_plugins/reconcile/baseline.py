# The MIT License (MIT)
# Copyright © 2025 Entrius
import json
import logging
from typing import Any, Dict, List, Tuple, Union

from pending_plugins.classes import is_well_formed_record

logger = logging.getLogger(__name__)

BaselineSet = Dict[str, bool]


class BaselineError(Exception):
    """The reference document could not be used as a baseline."""


def parse_document(content: Union[str, bytes]) -> List[Any]:
    """
    Parse a community-plugins.json document.

    Args:
        content: Raw file content

    Returns:
        The parsed JSON array

    Raises:
        ValueError: if the content is not valid JSON or not an array
    """
    data = json.loads(content)
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")
    return data


def build_baseline(records: List[Any]) -> BaselineSet:
    """Collect the id of every well-formed record. Malformed records are left out."""
    baseline: BaselineSet = {}
    malformed = 0
    for record in records:
        if is_well_formed_record(record):
            baseline[record["id"]] = True
        else:
            malformed += 1

    if malformed:
        logger.debug(f"Ignored {malformed} malformed records in baseline")
    return baseline


def load_baseline(content: Union[str, bytes]) -> Tuple[BaselineSet, List[Any]]:
    """
    Load the accepted-plugins baseline from the registry's default branch.

    Args:
        content: Raw community-plugins.json content at the branch head

    Returns:
        Tuple of (baseline id set, parsed document) - the parsed document is
        republished as current-plugins.json

    Raises:
        BaselineError: if the document cannot be parsed as a JSON array
    """
    try:
        records = parse_document(content)
    except ValueError as e:
        raise BaselineError(f"Baseline document is unusable: {e}") from e

    baseline = build_baseline(records)
    logger.info(f"Current plugins in baseline: {len(baseline)}")
    return baseline, records
