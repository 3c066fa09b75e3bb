"""
Storage interface for per-topic trend records and content records.

The pipeline is the only writer. Stores hand out deep copies so readers
can never mutate persisted state in place.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from trend_engine.schemas.content import ContentRecord
from trend_engine.schemas.trends import TrendRecord

logger = logging.getLogger(__name__)


class TrendStore(ABC):
    """Persistence contract used by the pipeline and the engine façade."""

    @abstractmethod
    def get_record(self, topic: str) -> Optional[TrendRecord]:
        ...

    @abstractmethod
    def save_record(self, record: TrendRecord) -> None:
        ...

    @abstractmethod
    def list_records(self) -> List[TrendRecord]:
        ...

    @abstractmethod
    def get_content(self, item_id: str) -> Optional[ContentRecord]:
        ...

    @abstractmethod
    def save_content(self, record: ContentRecord) -> None:
        ...

    def topics(self) -> List[str]:
        return [r.topic for r in self.list_records()]


class InMemoryTrendStore(TrendStore):
    """Default lock-guarded store. Lives as long as the engine."""

    def __init__(self):
        self._records: Dict[str, TrendRecord] = {}
        self._content: Dict[str, ContentRecord] = {}
        self._lock = threading.Lock()

    def get_record(self, topic: str) -> Optional[TrendRecord]:
        with self._lock:
            record = self._records.get(topic)
            return record.model_copy(deep=True) if record else None

    def save_record(self, record: TrendRecord) -> None:
        with self._lock:
            if record.topic not in self._records:
                logger.info(f"Tracking new topic '{record.topic}'")
            self._records[record.topic] = record.model_copy(deep=True)

    def list_records(self) -> List[TrendRecord]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._records.values()]

    def get_content(self, item_id: str) -> Optional[ContentRecord]:
        with self._lock:
            record = self._content.get(item_id)
            return record.model_copy(deep=True) if record else None

    def save_content(self, record: ContentRecord) -> None:
        with self._lock:
            self._content[record.item_id] = record.model_copy(deep=True)
