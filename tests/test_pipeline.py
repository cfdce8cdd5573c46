"""End-to-end tests for the matching pipeline."""

from dataclasses import replace

import pytest

from address_match.errors import Condition, IndexUnavailable
from address_match.models import RawRecord, Tier
from address_match.pipeline import AddressMatchPipeline, summarize


def make_records(*texts, start=1):
    return [RawRecord.from_mapping(i, {"address": t}) for i, t in enumerate(texts, start=start)]


SAMPLE = (
    "123 N Main St Apt 4",
    "200 Oak Avenue",
    "999 Nowhere Ln",
    "###@@@",
    "55 Cedar Lane",
    "55 Cedar Ln",
    "77 Mapel Dr",
)


class TestRun:
    def test_scenarios(self, cfg, index):
        results = AddressMatchPipeline(cfg, index).run(make_records(*SAMPLE))
        by_row = {r.row_id: r for r in results}

        assert by_row[1].entity_id == "1"
        assert by_row[1].tier == Tier.NORMALIZED
        assert by_row[1].review is False

        assert by_row[2].entity_id == "2"
        assert by_row[2].review is True
        assert Condition.AMBIGUOUS_MATCH.value in by_row[2].reasons

        for row_id in (3, 4):
            assert by_row[row_id].entity is None
            assert by_row[row_id].review is True
            assert Condition.NO_MATCH.value in by_row[row_id].reasons
        assert Condition.PARSE_INCOMPLETE.value in by_row[4].reasons

        assert by_row[5].entity_id == "4"
        assert by_row[5].tier == Tier.EXACT
        assert by_row[5].duplicate_of is None
        assert by_row[6].entity_id == "4"
        assert by_row[6].duplicate_of == 5
        assert by_row[6].review is True

        assert by_row[7].entity_id == "10"
        assert by_row[7].tier == Tier.FUZZY

    def test_one_result_per_row_in_row_order(self, cfg, index):
        records = make_records(*(SAMPLE * 20))
        results = AddressMatchPipeline(replace(cfg, workers=4, chunk_size=3), index).run(records)
        assert [r.row_id for r in results] == [r.row_id for r in records]
        assert [r.record for r in results] == records

    def test_parallel_matches_sequential(self, cfg, index):
        records = make_records(*(SAMPLE * 10))
        seq = AddressMatchPipeline(replace(cfg, workers=1), index).run(records)
        par = AddressMatchPipeline(replace(cfg, workers=8, chunk_size=1), index).run(records)
        assert seq == par

    def test_empty_input(self, cfg, index):
        assert AddressMatchPipeline(cfg, index).run([]) == []

    def test_duplicate_row_ids_rejected(self, cfg, index):
        records = make_records("55 Cedar Lane") + make_records("77 Maple Dr")
        with pytest.raises(ValueError):
            AddressMatchPipeline(cfg, index).run(records)

    def test_multiple_address_columns_are_joined(self, index, cfg):
        cfg = replace(cfg, address_columns=["street", "city"])
        rec = RawRecord.from_mapping(1, {"street": "123 N Main St Apt 4", "city": "Springfield"})
        pipe = AddressMatchPipeline(cfg, index)
        assert pipe.address_text(rec) == "123 N Main St Apt 4, Springfield"
        assert pipe.run([rec])[0].parsed.city == "Springfield"

    def test_record_failure_degrades_to_review(self, cfg, index, monkeypatch):
        pipe = AddressMatchPipeline(cfg, index)
        original = pipe.matcher.match

        def flaky(address, row_id=None):
            if row_id == 2:
                raise RuntimeError("boom")
            return original(address, row_id)

        monkeypatch.setattr(pipe.matcher, "match", flaky)
        results = pipe.run(make_records("55 Cedar Lane", "77 Maple Dr", "123 N Main St Apt 4"))
        assert len(results) == 3
        assert results[1].entity is None
        assert results[1].review is True
        assert results[1].reasons == (Condition.PROCESSING_ERROR.value,)
        assert results[1].parsed is not None
        assert results[0].entity_id == "4"
        assert results[2].entity_id == "1"

    def test_progress_reports(self, cfg, index):
        calls = []
        pipe = AddressMatchPipeline(replace(cfg, workers=3, chunk_size=2), index,
                                    progress=lambda done, total: calls.append((done, total)))
        pipe.run(make_records(*SAMPLE))
        assert calls[-1] == (7, 7)
        assert [d for d, _ in calls] == sorted(d for d, _ in calls)
        assert len(calls) == 4


class TestIndexUnavailable:
    def test_missing_index(self, cfg):
        with pytest.raises(IndexUnavailable):
            AddressMatchPipeline(cfg, None)

    def test_empty_reference(self, cfg):
        with pytest.raises(IndexUnavailable):
            AddressMatchPipeline.from_entities(cfg, [])


class TestMatchAddress:
    def test_single_lookup(self, cfg, index):
        out = AddressMatchPipeline(cfg, index).match_address("200 Oak Avenue")
        assert out["entity_id"] == "2"
        assert out["tier"] == "fuzzy"
        assert out["review"] is True
        assert [c["entity_id"] for c in out["candidates"]] == ["2", "3"]
        assert out["parsed"]["street_name"] == "Oak"
        assert out["lat"] == 42.45

    def test_no_match(self, cfg, index):
        out = AddressMatchPipeline(cfg, index).match_address("999 Nowhere Ln")
        assert out["entity_id"] is None
        assert out["candidates"] == []
        assert out["reasons"] == [Condition.NO_MATCH.value]


def test_summarize(cfg, index):
    summary = summarize(AddressMatchPipeline(cfg, index).run(make_records(*SAMPLE)))
    assert summary["n_records"] == 7
    assert summary["tiers"] == {"exact": 1, "fuzzy": 2, "none": 2, "normalized": 2}
    assert summary["n_duplicates"] == 1
    assert summary["n_errors"] == 0
    assert summary["n_review"] == 4
