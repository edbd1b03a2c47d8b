# utils/exceptions.py
"""
Exceptions for the dataset risk analysis pipeline.

Failures are pushed down to the smallest scope that can absorb them:
agent > row > batch > request. Only ValidationError and StreamFatalError
ever reach an HTTP caller as an error response.
"""


class RiskAnalysisError(Exception):
    """Base exception for risk analysis errors."""
    pass


class ValidationError(RiskAnalysisError):
    """Malformed or oversized analysis request, rejected before processing."""
    pass


class ClassificationError(RiskAnalysisError):
    """Router classification call failed. Recovered with the fail-open decision."""
    pass


class AgentError(RiskAnalysisError):
    """A single analysis agent failed for a single row."""

    def __init__(self, agent: str, message: str):
        self.agent = agent
        self.message = message
        super().__init__(f"{agent}: {message}")


class RowError(RiskAnalysisError):
    """Unexpected failure anywhere in one row's pipeline."""
    pass


class StreamFatalError(RiskAnalysisError):
    """The response stream could not be set up before the start event."""
    pass


class APIKeyMissingError(RiskAnalysisError):
    """Required API key is not configured."""
    pass
