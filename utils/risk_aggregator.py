# utils/risk_aggregator.py
"""
Risk Aggregator
Combines the outputs of the analysis agents into one comparable result
with a composite Risk Score (0-100).

Risk Score weights:
- Bias severity: 40%
- Fact-check failures: 40%
- Negative sentiment: 20%

Everything in this module is synchronous and pure.
"""

import math
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence

from pydantic import ConfigDict, Field

from agents.base import ALL_AGENTS, AgentName, CamelModel
from agents.bias_detector import BiasResult
from agents.fact_checker import FactCheckResult
from agents.router import RouterDecision
from agents.sentiment_analyzer import SentimentResult

RiskLevel = Literal["low", "medium", "high", "critical"]
RISK_LEVELS = ("low", "medium", "high", "critical")

RISK_WEIGHTS = {
    "bias": 0.4,
    "factCheck": 0.4,
    "sentiment": 0.2,
}

# Bias has no native confidence field; these proxies stand in for it
BIAS_CONFIDENCE_FLAGGED = 0.9
BIAS_CONFIDENCE_UNFLAGGED = 0.95

# Confidence when agents ran but none of them produced a result
NO_RESULT_CONFIDENCE = 0.5

CATEGORY_FLAG_THRESHOLD = 0.5


class AggregatedResult(CamelModel):
    """Final, immutable analysis of one row"""
    model_config = ConfigDict(frozen=True)

    text: str
    bias: Optional[BiasResult] = None
    sentiment: Optional[SentimentResult] = None
    fact_check: Optional[FactCheckResult] = None
    risk_score: int = 0
    risk_level: RiskLevel = "low"
    confidence: float = 0.0
    routing_decision: RouterDecision
    agents_run: List[AgentName] = Field(default_factory=list)
    from_cache: bool = False
    error: Optional[str] = None
    agent_errors: Dict[str, str] = Field(default_factory=dict)


class AggregateStats(CamelModel):
    avg_risk_score: int
    risk_distribution: Dict[str, int]
    high_risk_count: int
    avg_confidence: float
    agent_usage: Dict[str, int]
    cache_hit_rate: float


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_bias_risk(bias: Optional[BiasResult]) -> float:
    if bias is None:
        return 0.0
    return bias.overall_bias_score * 100


def calculate_fact_check_risk(fact_check: Optional[FactCheckResult]) -> float:
    if fact_check is None or fact_check.skipped or fact_check.status == "no_claims":
        return 0.0

    status = fact_check.status
    if status == "verified":
        # Low risk, scaled by how unsure the "verified" call itself was
        return (1 - fact_check.confidence) * 20
    if status == "disputed":
        return 80 + fact_check.confidence * 20
    if status == "unverified":
        return 50.0
    if status == "mixed":
        total = len(fact_check.findings)
        if total == 0:
            return 30.0
        false_count = sum(1 for f in fact_check.findings if f.verdict == "false")
        return 30 + (false_count / total) * 70
    return 30.0


def calculate_sentiment_risk(sentiment: Optional[SentimentResult]) -> float:
    if sentiment is None:
        return 0.0
    if sentiment.sentiment == "negative":
        return sentiment.scores.negative * 100 * sentiment.confidence
    if sentiment.sentiment == "mixed":
        return sentiment.scores.negative * 50 * sentiment.confidence
    return 0.0


def calculate_risk_score(
    bias: Optional[BiasResult] = None,
    sentiment: Optional[SentimentResult] = None,
    fact_check: Optional[FactCheckResult] = None
) -> int:
    """Weighted composite risk, rounded and clamped to 0-100"""
    weighted = (
        calculate_bias_risk(bias) * RISK_WEIGHTS["bias"]
        + calculate_fact_check_risk(fact_check) * RISK_WEIGHTS["factCheck"]
        + calculate_sentiment_risk(sentiment) * RISK_WEIGHTS["sentiment"]
    )
    return min(100, max(0, _round_half_up(weighted)))


def get_risk_level(score: float) -> RiskLevel:
    if score < 30:
        return "low"
    if score < 50:
        return "medium"
    if score < 70:
        return "high"
    return "critical"


def calculate_confidence(
    bias: Optional[BiasResult] = None,
    sentiment: Optional[SentimentResult] = None,
    fact_check: Optional[FactCheckResult] = None,
    agents_run: Sequence[str] = ()
) -> float:
    """Average confidence of the agents that ran and returned a result"""
    if not agents_run:
        return 1.0

    signals: List[float] = []

    if bias is not None and "bias" in agents_run:
        signals.append(BIAS_CONFIDENCE_FLAGGED if bias.flagged else BIAS_CONFIDENCE_UNFLAGGED)

    if sentiment is not None and "sentiment" in agents_run:
        signals.append(sentiment.confidence)

    if fact_check is not None and "factCheck" in agents_run:
        signals.append(1.0 if fact_check.status == "no_claims" else fact_check.confidence)

    if not signals:
        return NO_RESULT_CONFIDENCE
    return sum(signals) / len(signals)


def aggregate_results(
    text: str,
    bias: Optional[BiasResult],
    sentiment: Optional[SentimentResult],
    fact_check: Optional[FactCheckResult],
    routing_decision: RouterDecision,
    agents_run: Sequence[str],
    from_cache: bool = False,
    error: Optional[str] = None,
    agent_errors: Optional[Dict[str, str]] = None
) -> AggregatedResult:
    """Combine agent outputs into one AggregatedResult"""
    risk_score = calculate_risk_score(bias, sentiment, fact_check)
    return AggregatedResult(
        text=text,
        bias=bias,
        sentiment=sentiment,
        fact_check=fact_check,
        risk_score=risk_score,
        risk_level=get_risk_level(risk_score),
        confidence=calculate_confidence(bias, sentiment, fact_check, agents_run),
        routing_decision=routing_decision,
        agents_run=list(agents_run),
        from_cache=from_cache,
        error=error,
        agent_errors=dict(agent_errors or {}),
    )


def error_result(
    text: str,
    routing_decision: RouterDecision,
    error: str,
    agents_run: Sequence[str] = (),
    agent_errors: Optional[Dict[str, str]] = None
) -> AggregatedResult:
    """Row that failed as a whole: valid shape, zeroed risk"""
    return AggregatedResult(
        text=text,
        risk_score=0,
        risk_level="low",
        confidence=0.0,
        routing_decision=routing_decision,
        agents_run=list(agents_run),
        error=error,
        agent_errors=dict(agent_errors or {}),
    )


def calculate_aggregate_stats(results: Sequence[AggregatedResult]) -> AggregateStats:
    """Distribution, averages and usage across a result set; zeroed when empty"""
    risk_distribution = {level: 0 for level in RISK_LEVELS}
    agent_usage = {agent: 0 for agent in ALL_AGENTS}

    if not results:
        return AggregateStats(
            avg_risk_score=0,
            risk_distribution=risk_distribution,
            high_risk_count=0,
            avg_confidence=0.0,
            agent_usage=agent_usage,
            cache_hit_rate=0.0,
        )

    total_risk = 0
    total_confidence = 0.0
    cache_hits = 0

    for result in results:
        total_risk += result.risk_score
        total_confidence += result.confidence
        risk_distribution[result.risk_level] += 1
        if result.from_cache:
            cache_hits += 1
        for agent in result.agents_run:
            agent_usage[agent] += 1

    count = len(results)
    return AggregateStats(
        avg_risk_score=_round_half_up(total_risk / count),
        risk_distribution=risk_distribution,
        high_risk_count=risk_distribution["high"] + risk_distribution["critical"],
        avg_confidence=total_confidence / count,
        agent_usage=agent_usage,
        cache_hit_rate=cache_hits / count,
    )


def _mean(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def calculate_category_stats(results: Sequence[AggregatedResult]) -> Dict[str, Any]:
    """
    Per-category breakdown in the payload shape existing dashboards read.
    Rows with a row-level error are left out.
    """
    valid = [r for r in results if not r.error]

    biased = [r.bias for r in valid if r.bias is not None]
    breakdown = {}
    for category in ("gender", "religion", "political"):
        scores = [getattr(b, category).score for b in biased]
        breakdown[category] = {
            "avg": _mean(scores),
            "flagged": sum(1 for s in scores if s > CATEGORY_FLAG_THRESHOLD),
        }

    sentiments = [r.sentiment for r in valid if r.sentiment is not None]
    sentiment_distribution = {label: 0 for label in ("positive", "negative", "neutral", "mixed")}
    for s in sentiments:
        sentiment_distribution[s.sentiment] += 1

    fact_checks = [r.fact_check for r in valid if r.fact_check is not None]
    fact_check_distribution = {
        "verified": 0,
        "disputed": 0,
        "unverified": 0,
        "mixed": 0,
        "noClaims": 0,
    }
    for f in fact_checks:
        key = "noClaims" if f.status == "no_claims" else f.status
        fact_check_distribution[key] += 1

    return {
        "bias": {
            "avgScore": _mean(b.overall_bias_score for b in biased),
            "flaggedCount": sum(1 for b in biased if b.flagged),
            "breakdown": breakdown,
        },
        "sentiment": {
            "distribution": sentiment_distribution,
            "avgConfidence": _mean(s.confidence for s in sentiments),
        },
        "factCheck": {
            "distribution": fact_check_distribution,
            "avgConfidence": _mean(f.confidence for f in fact_checks if f.status != "no_claims"),
        },
    }


def sort_by_risk(results: Sequence[AggregatedResult]) -> List[AggregatedResult]:
    """Highest risk first"""
    return sorted(results, key=lambda r: r.risk_score, reverse=True)


def filter_by_risk_level(results: Sequence[AggregatedResult], min_level: RiskLevel) -> List[AggregatedResult]:
    min_order = RISK_LEVELS.index(min_level)
    return [r for r in results if RISK_LEVELS.index(r.risk_level) >= min_order]


def get_flagged_results(results: Sequence[AggregatedResult]) -> List[AggregatedResult]:
    """High/critical rows plus anything an agent flagged on its own"""
    return [
        r for r in results
        if r.risk_level in ("high", "critical")
        or (r.bias is not None and r.bias.flagged)
        or (r.fact_check is not None and r.fact_check.status == "disputed")
    ]
