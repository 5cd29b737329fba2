# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Unit tests for the baseline loader.

Run tests:
    pytest tests/reconcile/test_baseline.py -v
"""

import json

import pytest

from pending_plugins.reconcile.baseline import BaselineError, build_baseline, load_baseline


class TestBuildBaseline:
    def test_collects_ids_of_well_formed_records(self, baseline_records):
        baseline = build_baseline(baseline_records)
        assert set(baseline) == {'a', 'dataview'}

    def test_malformed_records_are_excluded(self):
        records = [
            {'id': 'ok'},
            {'name': 'no id'},
            {'id': None},
            {'id': ''},
            {'id': 42},
            'not an object',
            ['nested'],
            None,
        ]
        assert build_baseline(records) == {'ok': True}

    def test_empty_document(self):
        assert build_baseline([]) == {}


class TestLoadBaseline:
    def test_returns_set_and_parsed_records(self, baseline_records):
        baseline, records = load_baseline(json.dumps(baseline_records))
        assert set(baseline) == {'a', 'dataview'}
        assert records == baseline_records

    def test_accepts_bytes(self):
        baseline, _ = load_baseline(b'[{"id": "x"}]')
        assert 'x' in baseline

    def test_malformed_records_do_not_abort(self):
        baseline, records = load_baseline('[{"id": "x"}, 7, {"foo": 1}]')
        assert baseline == {'x': True}
        assert len(records) == 3

    def test_invalid_json_raises(self):
        with pytest.raises(BaselineError):
            load_baseline('{not json')

    def test_non_array_raises(self):
        with pytest.raises(BaselineError, match='JSON array'):
            load_baseline('{"id": "a"}')
