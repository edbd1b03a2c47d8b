# utils/langsmith_config.py
import os
from typing import List, Optional

from langchain_core.tracers import LangChainTracer
from langsmith import Client

from utils.logger import risk_logger

_TRUTHY = {"1", "true", "yes", "on"}


class LangSmithConfig:
    """Configure LangSmith tracing for all LangChain operations"""

    def __init__(self):
        self.project_name = os.getenv("LANGCHAIN_PROJECT", "dataset-risk-analysis")
        self._client: Optional[Client] = None
        self._project_checked = False

    @property
    def enabled(self) -> bool:
        flag = os.getenv("LANGSMITH_TRACING") or os.getenv("LANGCHAIN_TRACING_V2") or ""
        api_key = os.getenv("LANGSMITH_API_KEY") or os.getenv("LANGCHAIN_API_KEY")
        return flag.strip().lower() in _TRUTHY and bool(api_key)

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client()
        return self._client

    def _ensure_project(self):
        if self._project_checked:
            return
        self._project_checked = True
        try:
            self.client.read_project(project_name=self.project_name)
            risk_logger.logger.info(f"✅ Connected to LangSmith project: {self.project_name}")
        except Exception as e:
            risk_logger.logger.warning(f"⚠️ LangSmith project not found ({e}), creating: {self.project_name}")
            try:
                self.client.create_project(project_name=self.project_name)
            except Exception as create_error:
                risk_logger.logger.warning(f"⚠️ Could not create LangSmith project: {create_error}")

    def get_callbacks(self, run_name: Optional[str] = None) -> List[LangChainTracer]:
        """Tracer handlers for a chain invocation, empty when tracing is off"""
        if not self.enabled:
            return []

        self._ensure_project()
        tracer = LangChainTracer(
            project_name=self.project_name,
            client=self.client
        )

        if run_name:
            tracer.name = run_name

        return [tracer]


langsmith_config = LangSmithConfig()
