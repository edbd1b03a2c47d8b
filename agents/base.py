# agents/base.py
"""
Shared building blocks for the triage Router and the analysis agents.

Every agent is a black box with the same contract: text in, one validated
pydantic result out, or an exception. The LLM call itself goes through a
StructuredOutputChain (prompt | llm | JsonOutputParser) bounded by a timeout.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Annotated, Any, Callable, Dict, Literal, Optional, Tuple, Type

from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

from utils.async_utils import safe_float
from utils.langsmith_config import langsmith_config
from utils.logger import risk_logger

AgentName = Literal["bias", "sentiment", "factCheck"]
ALL_AGENTS: Tuple[AgentName, ...] = ("bias", "sentiment", "factCheck")


def clamp_unit(value: Any) -> float:
    """LLMs return scores as strings or slightly out of range; clamp to [0, 1]"""
    return min(1.0, max(0.0, safe_float(value)))


UnitScore = Annotated[float, BeforeValidator(clamp_unit)]


class CamelModel(BaseModel):
    """Snake_case attributes in Python, camelCase keys on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AnalysisAgent(ABC):
    """Uniform contract for a pluggable analysis capability"""

    name: AgentName

    @abstractmethod
    async def analyze(self, text: str) -> BaseModel:
        """Analyze one row of text and return this agent's result model"""


class StructuredOutputChain:
    """
    prompt | llm | JsonOutputParser, with a hard timeout per call.

    The LLM is created per invocation from llm_factory so parallel rows
    rotate across API keys and never share a client between event loops.
    Pass llm to pin a single model instance (tests, custom providers).
    """

    def __init__(
        self,
        prompts: Dict[str, str],
        output_model: Type[BaseModel],
        timeout: float,
        llm: Any = None,
        llm_factory: Optional[Callable[[], Any]] = None,
    ):
        if llm is None and llm_factory is None:
            raise ValueError("StructuredOutputChain needs an llm or an llm_factory")

        self.output_model = output_model
        self.timeout = timeout
        self._llm = llm
        self._llm_factory = llm_factory
        self.parser = JsonOutputParser(pydantic_object=output_model)

        prompt = ChatPromptTemplate.from_messages([
            ("system", prompts["system"] + "\n\nIMPORTANT: You MUST return valid JSON only. No other text."),
            ("user", prompts["user"] + "\n\n{format_instructions}\n\nReturn your response as valid JSON.")
        ])
        self.prompt = prompt.partial(
            format_instructions=self.parser.get_format_instructions()
        )

    def _get_llm(self):
        return self._llm if self._llm is not None else self._llm_factory()

    async def ainvoke(self, inputs: Dict[str, Any], run_name: str) -> Dict[str, Any]:
        """
        Run the chain and return the parsed JSON object.

        Raises:
            asyncio.TimeoutError: the call exceeded self.timeout
            ValueError: the model returned something other than a JSON object
        """
        chain = self.prompt | self._get_llm() | self.parser
        callbacks = langsmith_config.get_callbacks(run_name)

        start_time = time.time()
        response = await asyncio.wait_for(
            chain.ainvoke(inputs, config={"callbacks": callbacks}),
            timeout=self.timeout
        )

        if not isinstance(response, dict):
            raise ValueError(f"{run_name}: expected a JSON object, got {type(response).__name__}")

        risk_logger.log_langchain_trace(
            self.output_model.__name__, run_name, time.time() - start_time, sorted(response)
        )
        return response
