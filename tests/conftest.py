# The MIT License (MIT)
# Copyright © 2025 Entrius

"""Shared fixtures for reconciliation tests."""

import json

import pytest

from pending_plugins.classes import ChangeRequest, PluginEntry


def make_entry(plugin_id, name='', repo='', pr_number=None, source_pr_number=None, **extra):
    return PluginEntry(
        id=plugin_id,
        name=name,
        author=extra.pop('author', ''),
        description=extra.pop('description', ''),
        repo=repo,
        extra=extra,
        pr_number=pr_number,
        source_pr_number=source_pr_number,
    )


def make_change_requests(*specs):
    """Build ChangeRequests from (number, owner, title) tuples in listing order."""
    return [
        ChangeRequest(number=number, owner_login=owner, title=title, discovery_order=position)
        for position, (number, owner, title) in enumerate(specs)
    ]


def dump(records):
    return json.dumps(records)


@pytest.fixture
def baseline_records():
    return [
        {'id': 'a', 'name': 'Alpha', 'author': 'Ann', 'description': 'First', 'repo': 'ann/alpha'},
        {'id': 'dataview', 'name': 'Dataview', 'author': 'blacksmithgu', 'description': 'Queries', 'repo': 'blacksmithgu/obsidian-dataview'},
    ]


@pytest.fixture
def baseline(baseline_records):
    return {record['id']: True for record in baseline_records}
