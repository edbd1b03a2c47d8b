# agents/sentiment_analyzer.py
"""
Sentiment Analyzer Agent
Classifies a row as positive, negative, neutral or mixed
"""

import time
from typing import Literal

from langsmith import traceable
from pydantic import Field, field_validator

from agents.base import AnalysisAgent, CamelModel, StructuredOutputChain, UnitScore
from prompts.sentiment_prompts import get_sentiment_prompts
from utils.logger import risk_logger
from utils.openai_client import get_openai_llm


class SentimentScores(CamelModel):
    positive: UnitScore = 0.0
    negative: UnitScore = 0.0
    neutral: UnitScore = 0.0


class SentimentResult(CamelModel):
    """Result of sentiment analysis"""
    sentiment: Literal["positive", "negative", "neutral", "mixed"]
    confidence: UnitScore
    scores: SentimentScores = Field(default_factory=SentimentScores)
    reasoning: str = ""

    @field_validator("sentiment", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class SentimentAnalyzer(AnalysisAgent):
    """Bulk-friendly sentiment classification"""

    name = "sentiment"

    def __init__(self, config, llm=None):
        self.config = config
        self.chain = StructuredOutputChain(
            prompts=get_sentiment_prompts(),
            output_model=SentimentResult,
            timeout=config.agent_timeout,
            llm=llm,
            llm_factory=lambda: get_openai_llm(
                model=config.analysis_model,
                json_mode=True,
                base_url=config.llm_base_url
            )
        )

        risk_logger.log_component_start("SentimentAnalyzer", model=config.analysis_model)

    @traceable(
        name="analyze_sentiment",
        run_type="chain",
        tags=["sentiment", "dataset-analysis"]
    )
    async def analyze(self, text: str) -> SentimentResult:
        start_time = time.time()

        response = await self.chain.ainvoke({"text": text}, run_name="sentiment_analyzer")
        result = SentimentResult.model_validate(response)

        risk_logger.log_component_complete(
            "SentimentAnalyzer",
            time.time() - start_time,
            sentiment=result.sentiment,
            confidence=result.confidence
        )
        return result
