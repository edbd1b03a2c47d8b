"""Shared pytest fixtures."""

import os

# Must run before any project module is imported: the logger reads LOG_DIR and
# the app validates the API key at import time.
os.environ["LOG_DIR"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["OPENROUTER_API_KEY"] = "test-key"
os.environ.pop("OPENROUTER_API_KEYS", None)
os.environ.pop("EXA_API_KEY", None)
os.environ.pop("MAX_STREAM_SECONDS", None)
os.environ["LANGSMITH_TRACING"] = "false"
os.environ["LANGCHAIN_TRACING_V2"] = "false"

from typing import Dict

import pytest

from utils.config import Config
from tests.fakes import FakeAgent, make_bias, make_fact_check, make_sentiment


@pytest.fixture
def config() -> Config:
    cfg = Config(validate=False)
    cfg.exa_api_key = None
    cfg.router_timeout = 1.0
    cfg.agent_timeout = 1.0
    cfg.batch_chunk_size = 3
    cfg.router_concurrency = 2
    cfg.max_rows = 100
    cfg.max_claims = 3
    return cfg


@pytest.fixture
def fake_agents() -> Dict[str, FakeAgent]:
    return {
        "bias": FakeAgent("bias", make_bias(0.1)),
        "sentiment": FakeAgent("sentiment", make_sentiment("neutral")),
        "factCheck": FakeAgent("factCheck", make_fact_check("verified", 0.9)),
    }
