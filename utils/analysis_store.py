# utils/analysis_store.py
"""
Analysis Store
Keeps finished dataset analyses so clients can list, reopen and delete them

In-memory and process-local. Every save first drops analyses older than
max_age_hours, and once max_entries is reached the oldest are evicted.
"""

import threading
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from utils.logger import risk_logger


class AnalysisStore:
    """Thread-safe history of completed analyses"""

    def __init__(self, max_entries: int = 200, max_age_hours: float = 24):
        self.analyses: Dict[str, dict] = {}
        self.max_entries = max_entries
        self.max_age_hours = max_age_hours
        self._lock = threading.Lock()

    def save(
        self,
        rows: List[Dict[str, Any]],
        complete_event: Dict[str, Any],
        options: Optional[Dict[str, Any]] = None,
        label: Optional[str] = None
    ) -> str:
        """
        Store one finished analysis

        Args:
            rows: Row result payloads as streamed
            complete_event: The "complete" event (stats, metrics, counts)
            options: Options the analysis ran with
            label: Optional display name

        Returns:
            analysis_id: Unique identifier
        """
        self.prune(self.max_age_hours)

        analysis_id = str(uuid.uuid4())
        record = {
            'id': analysis_id,
            'label': label,
            'created_at': datetime.now(),
            'options': dict(options or {}),
            'results': sorted(rows, key=lambda r: r.get('index', 0)),
            'stats': complete_event.get('stats', {}),
            'metrics': complete_event.get('metrics', {}),
            'total_rows': complete_event.get('totalRows', len(rows)),
            'error_count': complete_event.get('errorCount', 0),
        }

        with self._lock:
            self.analyses[analysis_id] = record
            overflow = len(self.analyses) - self.max_entries
            if overflow > 0:
                oldest = sorted(self.analyses.values(), key=lambda a: a['created_at'])[:overflow]
                for old in oldest:
                    del self.analyses[old['id']]

        risk_logger.logger.info(
            f"💾 Saved analysis {analysis_id}",
            extra={"analysis_id": analysis_id, "rows": record['total_rows']}
        )
        return analysis_id

    def get(self, analysis_id: str) -> Optional[dict]:
        with self._lock:
            record = self.analyses.get(analysis_id)
        return self._serialize(record, full=True) if record else None

    def list(self, limit: int = 50) -> List[dict]:
        """Summaries, newest first"""
        with self._lock:
            records = sorted(self.analyses.values(), key=lambda a: a['created_at'], reverse=True)
        return [self._serialize(r, full=False) for r in records[:limit]]

    def remove(self, analysis_id: str) -> bool:
        with self._lock:
            return self.analyses.pop(analysis_id, None) is not None

    def prune(self, max_age_hours: float = 24) -> int:
        """Remove analyses older than max_age_hours; returns how many were removed"""
        cutoff = datetime.now() - timedelta(hours=max_age_hours)
        with self._lock:
            expired = [a_id for a_id, a in self.analyses.items() if a['created_at'] < cutoff]
            for a_id in expired:
                del self.analyses[a_id]

        if expired:
            risk_logger.logger.info(f"🗑️ Cleaned up {len(expired)} old analyses")
        return len(expired)

    def __len__(self) -> int:
        return len(self.analyses)

    @staticmethod
    def _serialize(record: dict, full: bool) -> dict:
        metrics = record['metrics'] or {}
        summary = {
            'id': record['id'],
            'label': record['label'],
            'createdAt': record['created_at'].isoformat(),
            'totalRows': record['total_rows'],
            'errorCount': record['error_count'],
            'avgRiskScore': metrics.get('avgRiskScore', 0),
            'highRiskCount': metrics.get('highRiskCount', 0),
        }
        if full:
            summary.update({
                'options': record['options'],
                'results': record['results'],
                'stats': record['stats'],
                'metrics': record['metrics'],
            })
        return summary


# Global analysis store instance
analysis_store = AnalysisStore()
