"""Tests for utils/event_stream.py."""

import asyncio
import json

from orchestrator.dataset_analysis_orchestrator import DatasetAnalysisOrchestrator
from orchestrator.row_processor import AnalysisOptions
from tests.fakes import FakeAgent, FakeRouter, make_bias, make_fact_check, make_sentiment
from utils.event_stream import HEARTBEAT, STREAM_TIME_LIMIT_ERROR, format_sse, stream_events


def parse_frames(frames):
    return [json.loads(f[len("data: "):]) for f in frames if f.startswith("data: ")]


def test_format_sse():
    assert format_sse({"type": "start", "total": 2}) == 'data: {"type": "start", "total": 2}\n\n'


def test_stream_events_forwards_every_event_in_order():
    async def events():
        for i in range(3):
            await asyncio.sleep(0)
            yield {"type": "row", "i": i}
        yield {"type": "complete"}

    frames = list(stream_events(events, max_seconds=5))

    assert [e.get("i") for e in parse_frames(frames)] == [0, 1, 2, None]
    assert parse_frames(frames)[-1]["type"] == "complete"


def test_stream_events_applies_hook():
    async def events():
        yield {"type": "complete"}

    def add_id(event):
        return {**event, "analysisId": "abc"}

    frames = list(stream_events(events, max_seconds=5, on_event=add_id))

    assert parse_frames(frames) == [{"type": "complete", "analysisId": "abc"}]


def test_stream_events_sends_heartbeats_while_idle():
    async def events():
        await asyncio.sleep(0.3)
        yield {"type": "complete"}

    frames = list(stream_events(events, max_seconds=5, heartbeat_interval=0.05))

    assert HEARTBEAT in frames
    assert parse_frames(frames) == [{"type": "complete"}]


def test_stream_events_ends_with_error_event_at_max_duration():
    async def events():
        yield {"type": "start", "total": 3}
        yield {"type": "row", "result": {"index": 0}}
        await asyncio.sleep(10)
        yield {"type": "complete"}

    frames = list(stream_events(events, max_seconds=0.2, heartbeat_interval=0.05))

    assert parse_frames(frames) == [
        {"type": "start", "total": 3},
        {"type": "row", "result": {"index": 0}},
        {"type": "error", "error": STREAM_TIME_LIMIT_ERROR, "completed": 1},
    ]


def test_stream_events_has_no_time_limit_by_default():
    async def events():
        yield {"type": "start", "total": 1}
        await asyncio.sleep(0.3)
        yield {"type": "complete"}

    frames = list(stream_events(events, heartbeat_interval=0.05))

    assert [e["type"] for e in parse_frames(frames)] == ["start", "complete"]


def test_slow_pipeline_reaches_complete_without_time_limit(config):
    agents = {
        name: FakeAgent(name, default, delay=0.05)
        for name, default in (
            ("bias", make_bias(0.1)),
            ("sentiment", make_sentiment("neutral")),
            ("factCheck", make_fact_check("verified", 0.9)),
        )
    }
    orchestrator = DatasetAnalysisOrchestrator(config, router=FakeRouter(), agents=agents)
    rows = [f"Row number {i}" for i in range(12)]

    frames = list(stream_events(lambda: orchestrator.stream(rows, None), max_seconds=config.max_stream_seconds))
    events = parse_frames(frames)

    assert config.max_stream_seconds is None
    assert events[-1]["type"] == "complete"
    assert sum(e["type"] == "row" for e in events) == 12


def test_slow_pipeline_cut_by_time_limit_reports_progress(config):
    agents = {"bias": FakeAgent("bias", make_bias(0.1), delay=0.2)}
    orchestrator = DatasetAnalysisOrchestrator(config, router=FakeRouter(), agents=agents)
    options = AnalysisOptions(check_sentiment=False, check_facts=False)
    rows = [f"Row number {i}" for i in range(30)]

    events = parse_frames(list(stream_events(lambda: orchestrator.stream(rows, options), max_seconds=0.7)))

    terminal = events[-1]
    assert "complete" not in [e["type"] for e in events]
    assert terminal["type"] == "error"
    assert terminal["error"] == STREAM_TIME_LIMIT_ERROR
    assert terminal["completed"] == sum(e["type"] == "row" for e in events)


def test_stream_events_reports_source_failure():
    async def events():
        yield {"type": "start", "total": 1}
        raise RuntimeError("pipeline crashed")

    frames = list(stream_events(events, max_seconds=5))

    assert parse_frames(frames) == [
        {"type": "start", "total": 1},
        {"type": "error", "error": "pipeline crashed"},
    ]
