# orchestrator/dataset_analysis_orchestrator.py
"""
Dataset Analysis Orchestrator
Streams the analysis of a batch of rows as start / row / progress / complete events

Pipeline:
1. Validate the batch (non-empty, strings only, at most MAX_ROWS)
2. Normalize every row up front (cleaned text + content hash), emit "start"
3. Split rows into chunks of BATCH_CHUNK_SIZE; chunks run one after another
4. Inside a chunk every row runs concurrently:
   request cache lookup by hash -> RowProcessor on miss
5. Emit each "row" as soon as it finishes, then "progress" once the chunk is done
6. Emit "complete" with category stats and pipeline metrics

One RequestCache is created per stream and cleared when the stream ends.
A failing row becomes a row event with its error set; it never stops the batch.
"""

import asyncio
import time
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Tuple

from pydantic import Field, ValidationError as PydanticValidationError

from agents.base import ALL_AGENTS, AnalysisAgent, CamelModel
from agents.bias_detector import BiasDetector
from agents.fact_checker import FactChecker
from agents.router import CostSavings, TriageRouter, calculate_cost_savings, fallback_decision
from agents.sentiment_analyzer import SentimentAnalyzer
from orchestrator.row_processor import AnalysisOptions, RowProcessor
from utils.exceptions import ValidationError
from utils.logger import risk_logger
from utils.preprocessor import PreprocessedText, preprocess_batch
from utils.request_cache import RequestCache
from utils.risk_aggregator import (
    AggregatedResult,
    calculate_aggregate_stats,
    calculate_category_stats,
    error_result,
)

# Keys of PipelineMetrics.router_decisions, in display order
ROUTER_DECISION_KEYS = ("factCheck", "biasCheck", "sentiment", "safe")


class RowResult(CamelModel):
    """AggregatedResult tagged with its position in the batch"""
    index: int
    hash: str
    result: AggregatedResult

    def to_payload(self) -> Dict[str, Any]:
        payload = self.result.to_payload()
        payload["index"] = self.index
        payload["hash"] = self.hash
        return payload


class PipelineMetrics(CamelModel):
    router_decisions: Dict[str, int]
    agent_calls: Dict[str, int]
    cache_hits: int
    cache_misses: int
    cache_hit_rate: float
    avg_risk_score: int
    high_risk_count: int
    risk_distribution: Dict[str, int]
    avg_confidence: float
    processing_time_ms: int
    cost_savings: CostSavings


class AnalysisRun(CamelModel):
    """Everything a finished (non-streaming) analysis produced"""
    results: List[RowResult] = Field(default_factory=list)
    stats: Dict[str, Any] = Field(default_factory=dict)
    metrics: Optional[PipelineMetrics] = None
    total_rows: int = 0
    processed_rows: int = 0
    error_count: int = 0


def build_metrics(results: List[AggregatedResult], processing_time_ms: int) -> PipelineMetrics:
    """
    Pipeline metrics for one batch.

    Agent calls count only rows that were actually computed; cached rows
    reuse an earlier computation and cost nothing.
    """
    router_decisions = {key: 0 for key in ROUTER_DECISION_KEYS}
    agent_calls = {agent: 0 for agent in ALL_AGENTS}
    cache_hits = 0

    for result in results:
        if result.from_cache:
            cache_hits += 1
        else:
            for agent in result.agents_run:
                agent_calls[agent] += 1

        if result.error:
            continue
        if not result.agents_run:
            router_decisions["safe"] += 1
            continue
        if "factCheck" in result.agents_run:
            router_decisions["factCheck"] += 1
        if "bias" in result.agents_run:
            router_decisions["biasCheck"] += 1
        if "sentiment" in result.agents_run:
            router_decisions["sentiment"] += 1

    stats = calculate_aggregate_stats(results)
    total = len(results)

    return PipelineMetrics(
        router_decisions=router_decisions,
        agent_calls=agent_calls,
        cache_hits=cache_hits,
        cache_misses=total - cache_hits,
        cache_hit_rate=stats.cache_hit_rate,
        avg_risk_score=stats.avg_risk_score,
        high_risk_count=stats.high_risk_count,
        risk_distribution=stats.risk_distribution,
        avg_confidence=stats.avg_confidence,
        processing_time_ms=processing_time_ms,
        cost_savings=calculate_cost_savings(total, sum(agent_calls.values())),
    )


class DatasetAnalysisOrchestrator:
    """
    Orchestrates streaming analysis of a dataset

    The router and agents are built from config unless injected.
    """

    def __init__(
        self,
        config,
        router: Optional[TriageRouter] = None,
        agents: Optional[Mapping[str, AnalysisAgent]] = None,
        row_processor: Optional[RowProcessor] = None
    ):
        self.config = config
        self.chunk_size = config.batch_chunk_size
        self.max_rows = config.max_rows

        if row_processor is None:
            self.router = router or TriageRouter(config)
            if agents is None:
                agents = {
                    "bias": BiasDetector(config),
                    "sentiment": SentimentAnalyzer(config),
                    "factCheck": FactChecker(config),
                }
            row_processor = RowProcessor(self.router, agents, config)
        else:
            self.router = row_processor.router
        self.row_processor = row_processor

        risk_logger.log_component_start(
            "DatasetAnalysisOrchestrator",
            chunk_size=self.chunk_size,
            max_rows=self.max_rows
        )

    def validate_rows(self, rows: Any) -> List[str]:
        if not isinstance(rows, list) or not rows:
            raise ValidationError("rows array is required and must not be empty")

        if len(rows) > self.max_rows:
            raise ValidationError(
                f"Maximum {self.max_rows} rows allowed per analysis (got {len(rows)})"
            )

        for i, row in enumerate(rows):
            if not isinstance(row, str):
                raise ValidationError(f"Row {i} must be a string, got {type(row).__name__}")

        return rows

    def validate_request(self, payload: Any) -> Tuple[List[str], AnalysisOptions]:
        """
        Check an incoming request body and pull out rows and options.

        Raises:
            ValidationError: With a message fit for a 400 response
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        rows = self.validate_rows(payload.get("rows"))

        raw_options = payload.get("options")
        if raw_options is None:
            raw_options = {}
        if not isinstance(raw_options, dict):
            raise ValidationError("options must be an object")

        try:
            options = AnalysisOptions.model_validate(raw_options)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid options: {e.errors()[0]['msg']}") from e

        return rows, options

    async def _analyze_row(
        self,
        index: int,
        prepared: PreprocessedText,
        options: AnalysisOptions,
        cache: RequestCache
    ) -> RowResult:
        """Dedupe through the cache and analyze one normalized row; never raises"""
        try:
            result, from_cache = await cache.get_or_compute(
                prepared.hash,
                lambda: self.row_processor.process_row(prepared.cleaned_text, options)
            )
            if from_cache:
                result = result.model_copy(update={"from_cache": True})

        except asyncio.CancelledError:
            raise
        except Exception as e:
            risk_logger.log_component_error("DatasetAnalysisOrchestrator", e, row_index=index)
            result = error_result(prepared.cleaned_text, fallback_decision(), str(e) or type(e).__name__)

        return RowResult(index=index, hash=prepared.hash, result=result)

    async def stream(
        self,
        rows: List[str],
        options: Optional[AnalysisOptions] = None
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Analyze rows and yield events as they happen.

        Events:
            {"type": "start", "total": n}
            {"type": "row", "result": {...aggregated result, index, hash}}
            {"type": "progress", "completed": k, "total": n}
            {"type": "complete", "stats": {...}, "metrics": {...},
             "totalRows": n, "processedRows": n, "errorCount": e}

        Rows of a chunk are yielded in completion order; progress only after the
        whole chunk is done.
        """
        rows = self.validate_rows(rows)
        options = options or AnalysisOptions()
        total = len(rows)
        start_time = time.time()
        prepared_rows, unique_hashes, _ = preprocess_batch(rows)

        cache: RequestCache[AggregatedResult] = RequestCache(store_if=lambda r: r.error is None)
        results: List[RowResult] = []
        pending: List[asyncio.Task] = []

        risk_logger.logger.info(
            f"🚀 STARTING DATASET ANALYSIS: {total} rows ({len(unique_hashes)} unique)",
            extra={
                "total": total,
                "unique_rows": len(unique_hashes),
                "chunk_size": self.chunk_size,
                "options": options.to_payload()
            }
        )

        yield {"type": "start", "total": total}

        try:
            for chunk_start in range(0, total, self.chunk_size):
                chunk_end = min(chunk_start + self.chunk_size, total)
                pending = [
                    asyncio.ensure_future(self._analyze_row(i, prepared_rows[i], options, cache))
                    for i in range(chunk_start, chunk_end)
                ]

                for next_done in asyncio.as_completed(pending):
                    row_result = await next_done
                    results.append(row_result)
                    yield {"type": "row", "result": row_result.to_payload()}

                risk_logger.logger.debug(f"📊 Progress: {chunk_end}/{total} rows")
                yield {"type": "progress", "completed": chunk_end, "total": total}

            aggregated = [r.result for r in results]
            processing_time_ms = int((time.time() - start_time) * 1000)
            metrics = build_metrics(aggregated, processing_time_ms)
            error_count = sum(1 for r in aggregated if r.error)

            risk_logger.log_component_complete(
                "DatasetAnalysisOrchestrator",
                time.time() - start_time,
                total_rows=total,
                error_count=error_count,
                cache_hits=metrics.cache_hits,
                savings_percent=metrics.cost_savings.savings_percent
            )

            yield {
                "type": "complete",
                "stats": calculate_category_stats(aggregated),
                "metrics": metrics.to_payload(),
                "totalRows": total,
                "processedRows": len(results),
                "errorCount": error_count,
            }

        finally:
            # Consumer went away mid-chunk: stop the rows still running
            for task in pending:
                if not task.done():
                    task.cancel()
            cache.clear()

    async def analyze(
        self,
        rows: List[str],
        options: Optional[AnalysisOptions] = None
    ) -> AnalysisRun:
        """Run the whole stream and collect it; results come back in row order"""
        run = AnalysisRun(total_rows=len(rows) if isinstance(rows, list) else 0)
        results: List[RowResult] = []

        async for event in self.stream(rows, options):
            if event["type"] == "row":
                payload = event["result"]
                results.append(RowResult(
                    index=payload["index"],
                    hash=payload["hash"],
                    result=AggregatedResult.model_validate(payload)
                ))
            elif event["type"] == "complete":
                run.stats = event["stats"]
                run.metrics = PipelineMetrics.model_validate(event["metrics"])
                run.processed_rows = event["processedRows"]
                run.error_count = event["errorCount"]

        run.results = sorted(results, key=lambda r: r.index)
        return run
