"""Tests for flightlog.core.reconciler: merging import batches by id."""

import pytest

from flightlog.core.reconciler import (
    ImportEmpty,
    find_collisions,
    merge_batch,
    normalize_batch,
    reconcile,
)
from flightlog.data.models import FlightRecord


def _existing():
    return [FlightRecord(id="1", aircraft="Cessna")]


class TestReconcile:
    def test_collision_kept_when_not_overwriting(self):
        result = reconcile(_existing(), [{"id": "1", "aircraft": "Piper"}], overwrite=False)
        assert [r.aircraft for r in result.merged] == ["Cessna"]
        assert result.imported_count == 0
        assert result.collisions == ["1"]
        assert result.written == []

    def test_collision_replaced_when_overwriting(self):
        result = reconcile(_existing(), [{"id": "1", "aircraft": "Piper"}], overwrite=True)
        assert [r.aircraft for r in result.merged] == ["Piper"]
        assert result.imported_count == 1

    def test_empty_batch_raises_and_leaves_existing(self):
        existing = _existing()
        with pytest.raises(ImportEmpty):
            reconcile(existing, [])
        assert existing == [FlightRecord(id="1", aircraft="Cessna")]

    def test_non_sequence_raises(self):
        with pytest.raises(ImportEmpty):
            reconcile([], {"id": "1"})
        with pytest.raises(ImportEmpty):
            reconcile([], None)

    def test_new_records_appended(self):
        result = reconcile(_existing(), [{"id": "2", "aircraft": "AW139"}])
        assert [r.id for r in result.merged] == ["1", "2"]
        assert result.imported_count == 1
        assert result.collisions == []

    def test_one_record_per_id(self):
        existing = [FlightRecord(id="1"), FlightRecord(id="2")]
        incoming = [
            {"id": "2", "aircraft": "A"},
            {"id": "3"},
            {"id": "3", "aircraft": "B"},
            {"aircraft": "no id"},
            {"aircraft": "no id either"},
        ]
        for overwrite in (True, False):
            result = reconcile(existing, incoming, overwrite=overwrite)
            ids = [r.id for r in result.merged]
            assert len(ids) == len(set(ids))
            assert {"1", "2", "3"} <= set(ids)
            assert len(ids) == 5

    def test_later_duplicate_in_batch_wins(self):
        result = reconcile([], [{"id": "3", "aircraft": "A"}, {"id": "3", "aircraft": "B"}])
        assert [r.aircraft for r in result.merged] == ["B"]
        assert result.imported_count == 1

    def test_user_id_stamped(self):
        result = reconcile([], [{"id": "1"}], user_id=42)
        assert result.merged[0].user_id == 42

    def test_existing_list_not_mutated(self):
        existing = _existing()
        reconcile(existing, [{"id": "1", "aircraft": "Piper"}], overwrite=True)
        assert existing[0].aircraft == "Cessna"


class TestHelpers:
    def test_normalize_batch_synthesizes_distinct_ids(self):
        batch = normalize_batch([{"aircraft": "A"}, {"aircraft": "B"}])
        assert len({r.id for r in batch}) == 2

    def test_find_collisions(self):
        batch = normalize_batch([{"id": "1"}, {"id": "9"}])
        assert find_collisions(_existing(), batch) == ["1"]

    def test_merge_batch_keeps_normalized_ids(self):
        batch = normalize_batch([{"aircraft": "A"}, {"id": "1", "aircraft": "Piper"}])
        result = merge_batch(_existing(), batch, overwrite=True)
        assert [r.id for r in result.written] == [r.id for r in batch]
        assert result.collisions == ["1"]
