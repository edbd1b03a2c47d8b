# utils/logger.py
from loguru import logger
import os
import sys
from pathlib import Path


class PipelineLogger:
    """Centralized logging with structured output for the analysis pipeline"""

    def __init__(self, log_level: str = "DEBUG", log_dir: str = "logs"):
        # Remove default handler
        logger.remove()

        # Console handler with color coding
        logger.add(
            sys.stdout,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
            level=log_level,
            colorize=True
        )

        self.log_dir = Path(log_dir) if log_dir else None

        if self.log_dir:
            # File handler for all logs
            logger.add(
                str(self.log_dir / "risk_pipeline_{time:YYYY-MM-DD}.log"),
                rotation="500 MB",
                retention="10 days",
                level="DEBUG",
                format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
            )

            # Separate file for errors only
            logger.add(
                str(self.log_dir / "errors_{time:YYYY-MM-DD}.log"),
                rotation="100 MB",
                retention="30 days",
                level="ERROR",
                format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
            )

            # JSON structured logs for offline analysis of runs
            logger.add(
                str(self.log_dir / "structured_{time:YYYY-MM-DD}.jsonl"),
                rotation="500 MB",
                retention="10 days",
                level="INFO",
                serialize=True
            )

        self.logger = logger

    def log_component_start(self, component: str, **kwargs):
        """Log component execution start with context"""
        self.logger.bind(component=component, action="start", **kwargs).info(
            f"🚀 STARTING: {component}"
        )

    def log_component_complete(self, component: str, duration: float, **kwargs):
        """Log component completion with metrics"""
        self.logger.bind(component=component, action="complete", duration=duration, **kwargs).info(
            f"✅ COMPLETED: {component} in {duration:.2f}s"
        )

    def log_component_error(self, component: str, error: Exception, **kwargs):
        """Log component errors with full context"""
        # bind() keeps braces in error text away from str.format
        self.logger.bind(
            component=component,
            action="error",
            error_type=type(error).__name__,
            error_message=str(error),
            **kwargs
        ).error(f"❌ ERROR in {component}: {str(error)}")

    def log_langchain_trace(self, component: str, run_name: str, duration: float, output_keys: list):
        """Log one structured LLM call (the full trace lives in LangSmith)"""
        self.logger.bind(
            component=component,
            run_name=run_name,
            duration=round(duration, 3),
            output_keys=output_keys,
            action="langchain_trace"
        ).debug(f"🔗 LANGCHAIN TRACE: {run_name} ({duration:.2f}s)")


# Global logger instance
risk_logger = PipelineLogger(
    log_level=os.getenv("LOG_LEVEL", "DEBUG"),
    log_dir=os.getenv("LOG_DIR", "logs")
)
