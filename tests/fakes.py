"""Test doubles and result builders shared by the test modules."""

import asyncio
from typing import Callable, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel

from agents.base import AnalysisAgent
from agents.bias_detector import BiasResult, PoliticalBias
from agents.fact_checker import FactCheckResult, Finding
from agents.router import RouterDecision, fallback_decision
from agents.sentiment_analyzer import SentimentResult, SentimentScores


def make_decision(intent: str = "mixed", agents: Sequence[str] = ("bias", "sentiment", "factCheck")) -> RouterDecision:
    return RouterDecision(
        intent=intent,
        confidence=0.9,
        agents_needed=list(agents),
        reasoning=f"scripted {intent}",
    )


def make_bias(score: float = 0.0, political: float = 0.0, flagged: Optional[bool] = None) -> BiasResult:
    return BiasResult(
        political=PoliticalBias(score=political, leaning="right" if political else "center"),
        overall_bias_score=score,
        flagged=score > 0.5 if flagged is None else flagged,
        summary="scripted bias",
    )


def make_sentiment(label: str = "neutral", confidence: float = 0.9, negative: float = 0.0) -> SentimentResult:
    positive = 0.9 if label == "positive" else 0.05
    return SentimentResult(
        sentiment=label,
        confidence=confidence,
        scores=SentimentScores(positive=positive, negative=negative, neutral=max(0.0, 1 - positive - negative)),
        reasoning="scripted sentiment",
    )


def make_fact_check(status: str = "verified", confidence: float = 0.9, verdicts: Sequence[str] = ()) -> FactCheckResult:
    return FactCheckResult(
        verified=status == "verified",
        status=status,
        confidence=confidence,
        findings=[Finding(claim=f"claim {i}", verdict=v) for i, v in enumerate(verdicts)],
        summary="scripted fact check",
    )


Script = Union[BaseModel, Exception, Callable[[str], BaseModel]]


class FakeAgent(AnalysisAgent):
    """Agent that returns (or raises) a scripted value and records every call"""

    def __init__(self, name: str, default: Script, per_text: Optional[Dict[str, Script]] = None, delay: float = 0.0):
        self.name = name
        self.default = default
        self.per_text = per_text or {}
        self.delay = delay
        self.calls: List[str] = []

    async def analyze(self, text: str) -> BaseModel:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.per_text.get(text, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, BaseModel):
            return outcome
        return outcome(text)


class FakeRouter:
    """Router returning scripted decisions by text; unknown text gets the fallback decision"""

    def __init__(self, decisions: Optional[Dict[str, Union[RouterDecision, Exception]]] = None):
        self.decisions = decisions or {}
        self.calls: List[str] = []

    async def route(self, text: str) -> RouterDecision:
        self.calls.append(text)
        decision = self.decisions.get(text, fallback_decision())
        if isinstance(decision, Exception):
            raise decision
        return decision

    def get_stats(self) -> Dict[str, int]:
        return {"total_routes": len(self.calls), "fallbacks": 0}
