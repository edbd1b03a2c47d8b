# agents/bias_detector.py
"""
Bias Detector Agent
Scores a single row for gender, religious and political bias
"""

import time
from typing import List, Literal, Optional

from langsmith import traceable
from pydantic import Field, field_validator, model_validator

from agents.base import AnalysisAgent, CamelModel, StructuredOutputChain, UnitScore, clamp_unit
from prompts.bias_prompts import get_bias_prompts
from utils.logger import risk_logger
from utils.openai_client import get_openai_llm

FLAG_THRESHOLD = 0.5


class GenderBias(CamelModel):
    score: UnitScore = 0.0
    direction: Literal["male", "female", "neutral"] = "neutral"
    examples: List[str] = Field(default_factory=list)


class ReligionBias(CamelModel):
    score: UnitScore = 0.0
    target_religion: Optional[str] = None
    examples: List[str] = Field(default_factory=list)


class PoliticalBias(CamelModel):
    score: UnitScore = 0.0
    leaning: Literal["left", "right", "center"] = "center"
    examples: List[str] = Field(default_factory=list)

    @field_validator("leaning", mode="before")
    @classmethod
    def _normalize_leaning(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            if value in ("neutral", "none", ""):
                return "center"
            if value.endswith("left"):
                return "left"
            if value.endswith("right"):
                return "right"
        return value


class BiasResult(CamelModel):
    """Result of bias detection"""
    gender: GenderBias = Field(default_factory=GenderBias)
    religion: ReligionBias = Field(default_factory=ReligionBias)
    political: PoliticalBias = Field(default_factory=PoliticalBias)
    overall_bias_score: UnitScore
    flagged: bool = False
    summary: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_flagged(cls, data):
        # Models sometimes omit the flag; derive it from the overall score
        if isinstance(data, dict) and "flagged" not in data:
            score = data.get("overallBiasScore", data.get("overall_bias_score"))
            data = {**data, "flagged": clamp_unit(score) > FLAG_THRESHOLD}
        return data


class BiasDetector(AnalysisAgent):
    """Checks row text for gender, religious and political bias"""

    name = "bias"

    def __init__(self, config, llm=None):
        self.config = config
        self.chain = StructuredOutputChain(
            prompts=get_bias_prompts(),
            output_model=BiasResult,
            timeout=config.agent_timeout,
            llm=llm,
            llm_factory=lambda: get_openai_llm(
                model=config.analysis_model,
                json_mode=True,
                base_url=config.llm_base_url
            )
        )

        risk_logger.log_component_start("BiasDetector", model=config.analysis_model)

    @traceable(
        name="detect_bias",
        run_type="chain",
        tags=["bias-detection", "dataset-analysis"]
    )
    async def analyze(self, text: str) -> BiasResult:
        start_time = time.time()

        response = await self.chain.ainvoke({"text": text}, run_name="bias_detector")
        result = BiasResult.model_validate(response)

        risk_logger.log_component_complete(
            "BiasDetector",
            time.time() - start_time,
            overall_bias_score=result.overall_bias_score,
            flagged=result.flagged
        )
        return result
