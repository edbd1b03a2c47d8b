# orchestrator/row_processor.py
"""
Row Processor
Runs one row through routing, the needed analysis agents and the aggregator

Pipeline:
1. Ask the Router which agents the row needs (or run all of them when routing is skipped)
2. Intersect with the agents the caller enabled
3. Empty set -> return a zero-risk result without calling any agent
4. Run the remaining agents concurrently, each bounded by AGENT_TIMEOUT
5. A failing agent only blanks its own field (recorded in agent_errors)
6. Aggregate whatever succeeded

process_row() never raises: anything unexpected becomes a row-level error result.
"""

import asyncio
import time
from typing import Dict, List, Mapping, Optional

from langsmith import traceable
from pydantic import BaseModel

from agents.base import ALL_AGENTS, AgentName, AnalysisAgent, CamelModel
from agents.router import (
    TriageRouter,
    empty_text_decision,
    fallback_decision,
    full_analysis_decision,
    should_skip,
)
from utils.exceptions import AgentError, RowError
from utils.logger import risk_logger
from utils.risk_aggregator import AggregatedResult, aggregate_results, error_result


class AnalysisOptions(CamelModel):
    """Which agent categories the caller allows, and whether to bypass routing"""
    check_bias: bool = True
    check_sentiment: bool = True
    check_facts: bool = True
    skip_routing: bool = False

    def enabled_agents(self) -> List[AgentName]:
        enabled = {
            "bias": self.check_bias,
            "sentiment": self.check_sentiment,
            "factCheck": self.check_facts,
        }
        return [agent for agent in ALL_AGENTS if enabled[agent]]


class AgentOutcome(BaseModel):
    """Ok(result) or Err(error) for one agent call on one row"""
    agent: AgentName
    result: Optional[BaseModel] = None
    error: Optional[str] = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


class RowProcessor:
    """Routes a row and fans out to the agents it needs"""

    def __init__(self, router: TriageRouter, agents: Mapping[str, AnalysisAgent], config):
        self.router = router
        self.agents: Dict[str, AnalysisAgent] = dict(agents)
        self.agent_timeout = config.agent_timeout

        risk_logger.log_component_start(
            "RowProcessor",
            agents=sorted(self.agents),
            agent_timeout=self.agent_timeout
        )

    async def run_agent(self, agent_name: AgentName, text: str) -> AgentOutcome:
        """Invoke one agent; every failure is captured in the outcome"""
        start_time = time.time()
        agent = self.agents.get(agent_name)

        try:
            if agent is None:
                raise AgentError(agent_name, "agent not configured")
            result = await asyncio.wait_for(agent.analyze(text), timeout=self.agent_timeout)
        except asyncio.TimeoutError:
            error = AgentError(agent_name, f"timed out after {self.agent_timeout:g}s")
        except AgentError as e:
            error = e
        except Exception as e:
            error = AgentError(agent_name, str(e) or type(e).__name__)
        else:
            return AgentOutcome(agent=agent_name, result=result, duration=time.time() - start_time)

        risk_logger.log_component_error(f"Agent {agent_name}", error, text_preview=text[:80])
        return AgentOutcome(agent=agent_name, error=error.message, duration=time.time() - start_time)

    @traceable(
        name="process_row",
        run_type="chain",
        tags=["row-processor", "dataset-analysis"]
    )
    async def process_row(
        self,
        text: str,
        options: Optional[AnalysisOptions] = None,
        skip_routing: Optional[bool] = None
    ) -> AggregatedResult:
        """
        Analyze one row of (already normalized) text.

        Args:
            text: Row text
            options: Enabled agent categories (default: all)
            skip_routing: Overrides options.skip_routing when given

        Returns:
            AggregatedResult, with error set if the row failed as a whole
        """
        options = options or AnalysisOptions()
        bypass_router = options.skip_routing if skip_routing is None else skip_routing
        decision = fallback_decision()

        try:
            if not text.strip():
                return aggregate_results(text, None, None, None, empty_text_decision(), [])

            if bypass_router:
                decision = full_analysis_decision()
            else:
                decision = await self.router.route(text)

            enabled = options.enabled_agents()
            agents_run = [a for a in ALL_AGENTS if a in decision.agents_needed and a in enabled]

            if not agents_run:
                risk_logger.logger.debug(
                    "⏭️ No agents needed for row",
                    extra={"intent": decision.intent, "router_skip": should_skip(decision)}
                )
                return aggregate_results(text, None, None, None, decision, [])

            outcomes = await asyncio.gather(*(self.run_agent(a, text) for a in agents_run))

            results = {o.agent: o.result for o in outcomes if o.ok}
            agent_errors = {o.agent: o.error for o in outcomes if not o.ok}

            if not results:
                return error_result(
                    text,
                    decision,
                    "All agents failed: " + "; ".join(f"{a}: {m}" for a, m in agent_errors.items()),
                    agents_run=agents_run,
                    agent_errors=agent_errors
                )

            return aggregate_results(
                text,
                results.get("bias"),
                results.get("sentiment"),
                results.get("factCheck"),
                decision,
                agents_run,
                agent_errors=agent_errors
            )

        except Exception as e:
            row_error = RowError(str(e) or type(e).__name__)
            risk_logger.log_component_error("RowProcessor", row_error, cause=type(e).__name__)
            return error_result(text, decision, str(row_error))
