# utils/openai_client.py
"""
LLM factory with round-robin key rotation

Router and agents all call an OpenAI-compatible chat endpoint (OpenRouter
unless LLM_BASE_URL says otherwise) through LangChain's ChatOpenAI. A batch
fans out up to chunk_size x 3 agent calls at once, so each new client takes
the next key from the pool:

    OPENROUTER_API_KEYS=sk-or-abc123,sk-or-def456   # pool
    OPENROUTER_API_KEY=sk-or-abc123                 # single key fallback

Usage:
    llm = get_openai_llm(model=config.analysis_model, json_mode=True)
    parsed = await (prompt | llm | JsonOutputParser()).ainvoke({...})
"""

import itertools
import os
import threading
from typing import Iterator, List, Optional

from langchain_openai import ChatOpenAI

from utils.config import OPENROUTER_BASE_URL
from utils.logger import risk_logger


def parse_api_keys(raw: Optional[str]) -> List[str]:
    """Split a comma-separated key list, dropping blanks"""
    return [key.strip() for key in (raw or "").split(",") if key.strip()]


class APIKeyRotator:
    """Thread-safe round-robin over the configured keys"""

    def __init__(self, keys: Optional[List[str]] = None):
        self._keys = list(keys) if keys else self._keys_from_env()
        self._cycle: Optional[Iterator[str]] = itertools.cycle(self._keys) if self._keys else None
        self._lock = threading.Lock()

        if self._keys:
            risk_logger.logger.info(f"🔑 Key rotator ready with {len(self._keys)} key(s)")
        else:
            risk_logger.logger.error("❌ No LLM API key found (OPENROUTER_API_KEYS / OPENROUTER_API_KEY)")

    @staticmethod
    def _keys_from_env() -> List[str]:
        return (
            parse_api_keys(os.getenv("OPENROUTER_API_KEYS"))
            or parse_api_keys(os.getenv("OPENROUTER_API_KEY"))
        )

    @property
    def key_count(self) -> int:
        return len(self._keys)

    def next_key(self) -> str:
        if self._cycle is None:
            raise ValueError("No LLM API keys configured")
        with self._lock:
            return next(self._cycle)


_rotator: Optional[APIKeyRotator] = None
_rotator_lock = threading.Lock()


def _get_rotator() -> APIKeyRotator:
    global _rotator
    with _rotator_lock:
        if _rotator is None:
            _rotator = APIKeyRotator()
        return _rotator


def get_openai_llm(
    model: str,
    temperature: float = 0,
    json_mode: bool = False,
    base_url: Optional[str] = None,
    **kwargs
):
    """
    Build a ChatOpenAI client on the next key in the pool.

    Args:
        model: Provider model id, e.g. "google/gemini-2.5-flash"
        temperature: Sampling temperature
        json_mode: Bind response_format={"type": "json_object"}
        base_url: Endpoint override; LLM_BASE_URL or OpenRouter otherwise
        **kwargs: Forwarded to ChatOpenAI (max_retries, timeout, ...)
    """
    llm = ChatOpenAI(
        model=model,
        temperature=temperature,
        api_key=_get_rotator().next_key(),
        base_url=base_url or os.getenv("LLM_BASE_URL", OPENROUTER_BASE_URL),
        **kwargs
    )

    if json_mode:
        return llm.bind(response_format={"type": "json_object"})
    return llm


def get_key_count() -> int:
    """How many keys the pool holds"""
    return _get_rotator().key_count
