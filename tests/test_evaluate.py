import pytest

from address_match.evaluate import evaluate_current, evaluate_results, grid_search
from address_match.models import ResolvedRecord, Tier
from address_match.reference import ReferenceIndex
from address_match.simulate import generate_raw_records, seed_reference_entities


def result(row_id, entity=None, review=False):
    return ResolvedRecord(row_id=row_id, entity=entity, tier=Tier.EXACT if entity else Tier.NONE,
                          score=1.0 if entity else 0.0, review=review)


@pytest.fixture(scope="module")
def simulated(tables):
    entities = seed_reference_entities(n_entities=12, seed=3)
    records, labels = generate_raw_records(entities, variants_per_entity=2, n_unmatched=2, seed=3)
    return ReferenceIndex.build(entities, tables), records, labels


class TestEvaluateResults:
    def test_confusion_counts(self, index):
        results = [
            result(1, index.get("1")),
            result(2, index.get("2"), review=True),
            result(3),
            result(4),
            result(5, index.get("4")),
        ]
        labels = {1: "1", 2: "3", 3: None, 4: "10"}
        m = evaluate_results(results, labels)
        assert (m["tp"], m["fp"], m["tn"], m["fn"]) == (1, 1, 1, 1)
        assert m["precision"] == 0.5
        assert m["recall"] == 0.5
        assert m["f1"] == 0.5
        assert m["review_rate"] == 0.25

    def test_empty(self):
        m = evaluate_results([], {})
        assert m["f1"] == 0.0
        assert m["review_rate"] == 0.0


class TestSimulate:
    def test_seed_is_reproducible(self):
        a = seed_reference_entities(n_entities=12, seed=3)
        b = seed_reference_entities(n_entities=12, seed=3)
        assert a == b
        assert len({e.entity_id for e in a}) == 12
        assert all(e.has_coordinate for e in a)

    def test_records_and_labels(self, simulated):
        index, records, labels = simulated
        assert [r.row_id for r in records] == list(range(1, len(records) + 1))
        assert set(labels) == {r.row_id for r in records}
        assert len(records) == 12 * 2 + 2
        assert sum(1 for v in labels.values() if v is None) == 2
        assert all(v in index for v in labels.values() if v is not None)

    def test_pipeline_finds_most_simulated_addresses(self, simulated, cfg):
        index, records, labels = simulated
        m = evaluate_current(records, index, labels, cfg)
        assert m["f1"] >= 0.8

    def test_grid_search(self, simulated, cfg):
        index, records, labels = simulated
        best = grid_search(records, index, labels, cfg)
        assert best["f1"] >= evaluate_current(records, index, labels, cfg)["f1"]
        assert set(best["weights"]) == {"street_name", "suffix", "unit"}
        assert 0.5 <= best["thresholds"]["fuzzy"] <= 0.9
