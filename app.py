# app.py
from flask import Flask, request, jsonify, Response
import os
from typing import List, Optional

from orchestrator.dataset_analysis_orchestrator import DatasetAnalysisOrchestrator
from agents.router import get_routing_stats, estimate_cost_savings
from utils.config import Config
from utils.exceptions import ValidationError, StreamFatalError
from utils.logger import risk_logger
from utils.langsmith_config import langsmith_config
from utils.analysis_store import analysis_store
from utils.async_utils import run_async_in_thread, cleanup_thread_loop
from utils.event_stream import stream_events
from utils.openai_client import get_key_count

# Initialize Flask app
app = Flask(__name__)

config = Config()

# Initialize orchestrator (singleton)
dataset_orchestrator: Optional[DatasetAnalysisOrchestrator] = None
try:
    dataset_orchestrator = DatasetAnalysisOrchestrator(config)
    risk_logger.logger.info("✅ Dataset Analysis Orchestrator initialized successfully")
except Exception as e:
    risk_logger.logger.error(f"❌ Failed to initialize Dataset Analysis Orchestrator: {e}")
    dataset_orchestrator = None

SSE_HEADERS = {
    'Cache-Control': 'no-cache',
    'Connection': 'keep-alive',
    'X-Accel-Buffering': 'no'
}


@app.errorhandler(ValidationError)
def handle_validation_error(error: ValidationError):
    return jsonify({"error": str(error)}), 400


@app.errorhandler(StreamFatalError)
def handle_stream_error(error: StreamFatalError):
    return jsonify({"error": str(error)}), 503


def _require_orchestrator() -> DatasetAnalysisOrchestrator:
    if dataset_orchestrator is None:
        raise StreamFatalError("Dataset analysis pipeline not available - check server configuration")
    return dataset_orchestrator


@app.route('/api/analyze', methods=['POST'])
def analyze_dataset():
    """
    Analyze a batch of rows and stream the results as Server-Sent Events

    Body:
        rows: list of strings (1..MAX_ROWS)
        options: {checkBias, checkSentiment, checkFacts, skipRouting} (all optional)
        label: optional name for the saved analysis

    Events: start, row (one per row), progress (after each chunk), complete.
    The complete event carries the id the analysis was saved under.
    """
    orchestrator = _require_orchestrator()

    request_json = request.get_json(silent=True)
    rows, options = orchestrator.validate_request(request_json)

    label = request_json.get('label')
    if not isinstance(label, str):
        label = None

    risk_logger.logger.info(
        "📥 Received dataset analysis request",
        extra={"rows": len(rows), "options": options.to_payload()}
    )

    collected: List[dict] = []

    def record(event: dict) -> dict:
        if event.get('type') == 'row':
            collected.append(event['result'])
        elif event.get('type') == 'complete':
            try:
                analysis_id = analysis_store.save(collected, event, options.to_payload(), label)
                event = {**event, 'analysisId': analysis_id}
            except Exception as e:
                risk_logger.log_component_error("AnalysisStore", e)
        return event

    return Response(
        stream_events(
            lambda: orchestrator.stream(rows, options),
            max_seconds=config.max_stream_seconds,
            on_event=record
        ),
        mimetype='text/event-stream',
        headers=SSE_HEADERS
    )


@app.route('/api/route', methods=['POST'])
def route_texts():
    """Routing decisions only (no analysis), with intent stats and projected savings"""
    orchestrator = _require_orchestrator()

    request_json = request.get_json(silent=True)
    if not isinstance(request_json, dict):
        raise ValidationError("Request body must be a JSON object")

    texts = orchestrator.validate_rows(request_json.get('texts'))

    concurrency_limit = request_json.get('concurrencyLimit')
    if concurrency_limit is not None and (
        isinstance(concurrency_limit, bool) or not isinstance(concurrency_limit, int) or concurrency_limit < 1
    ):
        raise ValidationError("concurrencyLimit must be a positive integer")

    try:
        decisions = run_async_in_thread(
            orchestrator.router.route_batch(texts, concurrency_limit=concurrency_limit)
        )
    finally:
        cleanup_thread_loop()

    return jsonify({
        "decisions": [d.to_payload() for d in decisions],
        "stats": get_routing_stats(decisions).to_payload(),
        "costSavings": estimate_cost_savings(decisions).to_payload()
    })


@app.route('/api/analyses', methods=['GET'])
def list_analyses():
    """Saved analyses, newest first"""
    try:
        limit = int(request.args.get('limit', 50))
    except ValueError:
        raise ValidationError("limit must be an integer")

    return jsonify({"analyses": analysis_store.list(limit=max(1, limit))})


@app.route('/api/analyses/<analysis_id>', methods=['GET'])
def get_analysis(analysis_id: str):
    analysis = analysis_store.get(analysis_id)
    if not analysis:
        return jsonify({"error": "Analysis not found"}), 404
    return jsonify(analysis)


@app.route('/api/analyses/<analysis_id>', methods=['DELETE'])
def delete_analysis(analysis_id: str):
    if not analysis_store.remove(analysis_id):
        return jsonify({"error": "Analysis not found"}), 404
    return jsonify({"id": analysis_id, "deleted": True})


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        "status": "healthy",
        "dataset_orchestrator": dataset_orchestrator is not None,
        "router": dataset_orchestrator.router.get_stats() if dataset_orchestrator else None,
        "api_keys": get_key_count(),
        "web_search": bool(config.exa_api_key),
        "langsmith": langsmith_config.enabled,
        "stored_analyses": len(analysis_store)
    })


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_ENV') == 'development'

    risk_logger.logger.info(f"🚀 Starting Flask app on port {port}")
    app.run(host='0.0.0.0', port=port, debug=debug, threaded=True)
