# agents/router.py
"""
Triage Router
Classifies a row with a fast, cheap model and decides which analysis agents
are actually needed.

Routing avoids expensive fact-checks on opinions and greetings and skips
bias checks on neutral content. On ANY classification failure the Router
fails open: it asks for every agent rather than silently under-analyzing.
"""

import threading
from typing import Any, Dict, List, Literal, Optional, Sequence

from langsmith import traceable
from pydantic import Field, field_validator

from agents.base import ALL_AGENTS, AgentName, CamelModel, StructuredOutputChain, UnitScore
from prompts.router_prompts import get_router_prompts
from utils.async_utils import gather_in_chunks
from utils.exceptions import ClassificationError
from utils.logger import risk_logger
from utils.openai_client import get_openai_llm

IntentType = Literal["factual", "sensitive", "subjective", "mixed", "safe"]
INTENTS = ("factual", "sensitive", "subjective", "mixed", "safe")

FALLBACK_CONFIDENCE = 0.5

_AGENT_ALIASES = {
    "bias": "bias",
    "sentiment": "sentiment",
    "factcheck": "factCheck",
    "fact_check": "factCheck",
    "fact-check": "factCheck",
}


class ContentFlags(CamelModel):
    has_factual_claims: bool = False
    has_sensitive_topics: bool = False
    has_emotional_content: bool = False
    is_chit_chat: bool = False


class RouterDecision(CamelModel):
    """Routing decision for a single row"""
    intent: IntentType
    confidence: UnitScore
    agents_needed: List[AgentName] = Field(default_factory=list)
    reasoning: str = ""
    content_flags: ContentFlags = Field(default_factory=ContentFlags)

    @field_validator("intent", mode="before")
    @classmethod
    def _lower_intent(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("agents_needed", mode="before")
    @classmethod
    def _normalize_agents(cls, value: Any) -> Any:
        # Map spelling variants onto agent names, drop unknowns and duplicates
        if not isinstance(value, (list, tuple)):
            return value
        agents: List[str] = []
        for item in value:
            name = _AGENT_ALIASES.get(str(item).strip().lower())
            if name and name not in agents:
                agents.append(name)
        return agents


class RoutingStats(CamelModel):
    intent_counts: Dict[str, int]
    agent_counts: Dict[str, int]
    skip_count: int
    avg_confidence: float


class CostSavings(CamelModel):
    total_possible_agent_calls: int
    actual_agent_calls: int
    saved_calls: int
    savings_percent: float


def fallback_decision(reason: str = "") -> RouterDecision:
    """Fail-open decision: run every agent"""
    reasoning = "Router error - defaulting to full analysis"
    if reason:
        reasoning = f"{reasoning} ({reason})"
    return RouterDecision(
        intent="mixed",
        confidence=FALLBACK_CONFIDENCE,
        agents_needed=list(ALL_AGENTS),
        reasoning=reasoning,
        content_flags=ContentFlags(
            has_factual_claims=True,
            has_sensitive_topics=True,
            has_emotional_content=True,
            is_chit_chat=False,
        ),
    )


def full_analysis_decision() -> RouterDecision:
    """Decision recorded when the caller bypasses routing"""
    return RouterDecision(
        intent="mixed",
        confidence=1.0,
        agents_needed=list(ALL_AGENTS),
        reasoning="Routing skipped by request - running full analysis",
    )


def empty_text_decision() -> RouterDecision:
    return RouterDecision(
        intent="safe",
        confidence=1.0,
        agents_needed=[],
        reasoning="Empty row - nothing to analyze",
    )


def should_skip(decision: RouterDecision) -> bool:
    """True iff the row needs no agent at all"""
    return decision.intent == "safe" and len(decision.agents_needed) == 0


def get_routing_stats(decisions: Sequence[RouterDecision]) -> RoutingStats:
    """Intent / agent counts across a batch of decisions"""
    intent_counts = {intent: 0 for intent in INTENTS}
    agent_counts = {agent: 0 for agent in ALL_AGENTS}
    skip_count = 0
    total_confidence = 0.0

    for decision in decisions:
        intent_counts[decision.intent] += 1
        total_confidence += decision.confidence
        if should_skip(decision):
            skip_count += 1
        for agent in decision.agents_needed:
            agent_counts[agent] += 1

    return RoutingStats(
        intent_counts=intent_counts,
        agent_counts=agent_counts,
        skip_count=skip_count,
        avg_confidence=total_confidence / len(decisions) if decisions else 0.0,
    )


def calculate_cost_savings(row_count: int, actual_agent_calls: int) -> CostSavings:
    """Compare agent calls made against running all three agents on every row"""
    total_possible = row_count * len(ALL_AGENTS)
    saved = total_possible - actual_agent_calls
    percent = (saved / total_possible) * 100 if total_possible > 0 else 0.0
    return CostSavings(
        total_possible_agent_calls=total_possible,
        actual_agent_calls=actual_agent_calls,
        saved_calls=saved,
        savings_percent=round(percent, 1),
    )


def estimate_cost_savings(decisions: Sequence[RouterDecision]) -> CostSavings:
    """Estimate savings from routing decisions alone (before any agent runs)"""
    actual = sum(len(d.agents_needed) for d in decisions)
    return calculate_cost_savings(len(decisions), actual)


class TriageRouter:
    """
    Lightweight classifier in front of the analysis agents.

    route() never raises: provider errors, timeouts and malformed output all
    produce the fail-open decision.
    """

    def __init__(self, config, llm=None):
        self.config = config
        self.chain = StructuredOutputChain(
            prompts=get_router_prompts(),
            output_model=RouterDecision,
            timeout=config.router_timeout,
            llm=llm,
            llm_factory=lambda: get_openai_llm(
                model=config.router_model,
                json_mode=True,
                base_url=config.llm_base_url
            )
        )
        self.stats = {"total_routes": 0, "fallbacks": 0}
        # route() runs on many request threads, each with its own loop
        self._stats_lock = threading.Lock()

        risk_logger.log_component_start(
            "TriageRouter",
            model=config.router_model,
            timeout=config.router_timeout
        )

    @traceable(
        name="route_text",
        run_type="chain",
        tags=["router", "triage"]
    )
    async def route(self, text: str) -> RouterDecision:
        """Classify one text, falling back to full analysis on any error"""
        self._count("total_routes")

        try:
            response = await self.chain.ainvoke({"text": text}, run_name="triage_router")
            decision = RouterDecision.model_validate(response)
        except Exception as e:
            self._count("fallbacks")
            error = ClassificationError(str(e) or type(e).__name__)
            risk_logger.log_component_error(
                "TriageRouter",
                error,
                cause=type(e).__name__,
                text_preview=text[:80]
            )
            return fallback_decision(type(e).__name__)

        risk_logger.logger.debug(
            f"🧭 Routed as {decision.intent} → {decision.agents_needed or 'skip'}",
            extra={
                "intent": decision.intent,
                "agents_needed": decision.agents_needed,
                "confidence": decision.confidence
            }
        )
        return decision

    def _count(self, key: str):
        with self._stats_lock:
            self.stats[key] += 1

    def get_stats(self) -> Dict[str, int]:
        """Routes and fail-open fallbacks since startup"""
        with self._stats_lock:
            return dict(self.stats)

    async def route_batch(
        self,
        texts: Sequence[str],
        concurrency_limit: Optional[int] = None
    ) -> List[RouterDecision]:
        """
        Route many texts in fixed-size concurrent chunks.

        Output order matches input order regardless of completion order.
        """
        limit = concurrency_limit if concurrency_limit is not None else self.config.router_concurrency
        return await gather_in_chunks(list(texts), self.route, limit)

    async def get_required_agents(self, text: str) -> List[AgentName]:
        """Just the agents needed for one text"""
        decision = await self.route(text)
        return decision.agents_needed
