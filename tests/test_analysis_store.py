"""Tests for utils/analysis_store.py."""

from datetime import datetime, timedelta

from utils.analysis_store import AnalysisStore

COMPLETE = {
    "type": "complete",
    "stats": {"bias": {"avgScore": 0.1}},
    "metrics": {"avgRiskScore": 12, "highRiskCount": 1},
    "totalRows": 2,
    "processedRows": 2,
    "errorCount": 0,
}


def test_save_and_get_round_trip():
    store = AnalysisStore()
    rows = [{"index": 1, "riskScore": 5}, {"index": 0, "riskScore": 60}]

    analysis_id = store.save(rows, COMPLETE, {"checkBias": True}, label="survey")
    analysis = store.get(analysis_id)

    assert analysis["id"] == analysis_id
    assert analysis["label"] == "survey"
    assert [r["index"] for r in analysis["results"]] == [0, 1]
    assert analysis["metrics"]["highRiskCount"] == 1
    assert analysis["options"] == {"checkBias": True}
    assert analysis["avgRiskScore"] == 12
    assert analysis["totalRows"] == 2


def test_get_unknown_returns_none():
    assert AnalysisStore().get("missing") is None


def test_list_is_newest_first_without_results():
    store = AnalysisStore()
    first = store.save([], COMPLETE)
    second = store.save([], COMPLETE)
    store.analyses[first]["created_at"] = datetime.now() - timedelta(minutes=5)

    listed = store.list()

    assert [a["id"] for a in listed] == [second, first]
    assert "results" not in listed[0]
    assert len(store.list(limit=1)) == 1


def test_remove():
    store = AnalysisStore()
    analysis_id = store.save([], COMPLETE)

    assert store.remove(analysis_id) is True
    assert store.remove(analysis_id) is False
    assert len(store) == 0


def test_oldest_entries_are_evicted():
    store = AnalysisStore(max_entries=2)
    ids = [store.save([], COMPLETE) for _ in range(3)]

    assert len(store) == 2
    assert store.get(ids[-1]) is not None


def test_prune_removes_old_analyses():
    store = AnalysisStore()
    old = store.save([], COMPLETE)
    fresh = store.save([], COMPLETE)
    store.analyses[old]["created_at"] = datetime.now() - timedelta(hours=48)

    assert store.prune(max_age_hours=24) == 1
    assert store.get(old) is None
    assert store.get(fresh) is not None


def test_save_drops_expired_analyses():
    store = AnalysisStore(max_age_hours=1)
    stale = store.save([], COMPLETE)
    store.analyses[stale]["created_at"] = datetime.now() - timedelta(hours=2)

    fresh = store.save([], COMPLETE)

    assert store.get(stale) is None
    assert [a["id"] for a in store.list()] == [fresh]
