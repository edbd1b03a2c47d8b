# agents/fact_checker.py
"""
Smart Fact Checker Agent
Lightweight fact-checking for dataset rows

Stage 1: Ask the model whether the row has verifiable claims at all
Stage 2: If it does, search the web for the first MAX_CLAIMS claims
Stage 3: Verify the claims against the search results

Rows without claims short-circuit to status "no_claims" without any search.
Without an Exa key the claims are reported as unverifiable instead of failing.
"""

import time
from typing import Any, List, Literal, Optional

from langsmith import traceable
from pydantic import Field, field_validator

from agents.base import AnalysisAgent, CamelModel, StructuredOutputChain, UnitScore
from prompts.fact_check_prompts import get_eligibility_prompts, get_verification_prompts
from utils.exa_searcher import ExaSearcher, ExaSearchResults
from utils.logger import risk_logger
from utils.openai_client import get_openai_llm

SNIPPET_RESULTS = 2
SNIPPET_CHARS = 300


def _snake_label(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value.strip().lower().replace(" ", "_").replace("-", "_")
    return value


class CheckableClaim(CamelModel):
    claim: str
    type: Literal["statistic", "date", "event", "quote", "scientific", "other"] = "other"
    search_query: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, value):
        value = _snake_label(value)
        if value not in ("statistic", "date", "event", "quote", "scientific"):
            return "other"
        return value


class FactCheckEligibility(CamelModel):
    """Stage 1 output: does this text need fact-checking?"""
    needs_fact_check: bool = False
    reason: str = ""
    claims: List[CheckableClaim] = Field(default_factory=list)


class Finding(CamelModel):
    claim: str
    verdict: Literal["true", "false", "partially_true", "unverifiable"]
    source: Optional[str] = None
    explanation: str = ""

    @field_validator("verdict", mode="before")
    @classmethod
    def _normalize_verdict(cls, value):
        return _snake_label(value)


class FactCheckResult(CamelModel):
    """Result of fact checking one row"""
    verified: bool = False
    status: Literal["verified", "disputed", "unverified", "mixed", "no_claims"]
    confidence: UnitScore
    findings: List[Finding] = Field(default_factory=list)
    summary: str = ""
    skipped: Optional[bool] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return _snake_label(value)


class FactChecker(AnalysisAgent):
    """
    Checks row text for verifiable claims and verifies them with web search

    Search failures for one claim only blank that claim's evidence; the
    verification step still runs with whatever evidence was found.
    """

    name = "factCheck"

    def __init__(self, config, llm=None, searcher: Optional[ExaSearcher] = None):
        self.config = config
        self.max_claims = config.max_claims

        def llm_factory():
            return get_openai_llm(
                model=config.analysis_model,
                json_mode=True,
                base_url=config.llm_base_url
            )

        self.eligibility_chain = StructuredOutputChain(
            prompts=get_eligibility_prompts(),
            output_model=FactCheckEligibility,
            timeout=config.agent_timeout,
            llm=llm,
            llm_factory=llm_factory
        )
        self.verification_chain = StructuredOutputChain(
            prompts=get_verification_prompts(),
            output_model=FactCheckResult,
            timeout=config.agent_timeout,
            llm=llm,
            llm_factory=llm_factory
        )

        if searcher is None and config.exa_api_key:
            searcher = ExaSearcher(config.exa_api_key, timeout=config.search_timeout)
        self.searcher = searcher

        risk_logger.log_component_start(
            "FactChecker",
            model=config.analysis_model,
            search_enabled=self.searcher is not None,
            max_claims=self.max_claims
        )

    @traceable(
        name="smart_fact_check",
        run_type="chain",
        tags=["fact-checking", "dataset-analysis"]
    )
    async def analyze(self, text: str) -> FactCheckResult:
        start_time = time.time()

        eligibility = await self.check_eligibility(text)

        if not eligibility.needs_fact_check or not eligibility.claims:
            risk_logger.logger.debug(
                "⏭️ No verifiable claims, skipping search",
                extra={"reason": eligibility.reason}
            )
            return FactCheckResult(
                verified=True,
                status="no_claims",
                confidence=1.0,
                findings=[],
                summary=eligibility.reason or "No verifiable claims found",
                skipped=True
            )

        claims = eligibility.claims[:self.max_claims]

        if self.searcher is None:
            return FactCheckResult(
                verified=False,
                status="unverified",
                confidence=0.0,
                findings=[
                    Finding(
                        claim=c.claim,
                        verdict="unverifiable",
                        explanation="Web search API not configured"
                    )
                    for c in claims
                ],
                summary="Could not verify claims - EXA_API_KEY not configured"
            )

        searches = await self.searcher.search_many([c.search_query or c.claim for c in claims])
        result = await self.verify_claims(text, claims, searches)

        risk_logger.log_component_complete(
            "FactChecker",
            time.time() - start_time,
            num_claims=len(claims),
            status=result.status,
            confidence=result.confidence
        )
        return result

    async def check_eligibility(self, text: str) -> FactCheckEligibility:
        response = await self.eligibility_chain.ainvoke(
            {"text": text},
            run_name="fact_check_eligibility"
        )
        return FactCheckEligibility.model_validate(response)

    async def verify_claims(
        self,
        text: str,
        claims: List[CheckableClaim],
        searches: List[ExaSearchResults]
    ) -> FactCheckResult:
        response = await self.verification_chain.ainvoke(
            {
                "text": text,
                "claims_with_results": format_claims_with_results(claims, searches)
            },
            run_name="fact_check_verification"
        )
        return FactCheckResult.model_validate(response)


def format_claims_with_results(
    claims: List[CheckableClaim],
    searches: List[ExaSearchResults]
) -> str:
    """Render each claim with its top search snippets for the verification prompt"""
    blocks = []
    for i, (claim, search) in enumerate(zip(claims, searches), 1):
        lines = [f'Claim {i}: "{claim.claim}"', "Search Results:"]
        for r in search.results[:SNIPPET_RESULTS]:
            lines.append(f"- {r.title} ({r.url}): {r.text[:SNIPPET_CHARS]}...")
        if not search.results:
            lines.append("- (no results)")
        if search.error:
            lines.append(f"Error: {search.error}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
