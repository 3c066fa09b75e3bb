"""
SQL persistence for trend and content records (SQLite by default).

Tables:
  - trend_records: one row per topic — latest metrics, capped value/date
    windows, pattern, weight and sentiment
  - content_records: one row per content item — raw counters and weights

Structured fields are stored as JSON text so the layout stays independent
of any particular engine's JSON support.
"""

import json
import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from sqlalchemy import create_engine, Column, String, Float, Text, DateTime
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from .config import get_settings
from .schemas.base import TrendPattern
from .schemas.content import ContentRecord
from .schemas.trends import TrendMetrics, TrendRecord
from .tools.store import TrendStore

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; everything is written as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Models ───────────────────────────────────────────────────────────────────

class TrendRecordModel(Base):
    """Per-topic aggregate."""
    __tablename__ = "trend_records"

    topic = Column(String(300), primary_key=True)
    category = Column(String(200))
    region = Column(String(100))

    metrics = Column(Text)  # JSON object (TrendMetrics)
    signals = Column(Text)  # JSON object
    pattern = Column(String(30), default=TrendPattern.INSUFFICIENT_DATA.value)
    confidence_score = Column(Float, default=0.5)
    trend_score = Column(Float, default=0.5)

    historical_values = Column(Text)  # JSON array of floats
    historical_dates = Column(Text)  # JSON array of ISO strings

    sentiment_score = Column(Float, nullable=True)
    dynamic_weight = Column(Float, default=0.5)

    analysis_timestamp = Column(DateTime)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class ContentRecordModel(Base):
    """Per-item counters and last computed weights."""
    __tablename__ = "content_records"

    item_id = Column(String(300), primary_key=True)
    metrics = Column(Text)  # JSON object
    weights = Column(Text)  # JSON object
    previous_engagement = Column(Float, nullable=True)
    dynamic_weight = Column(Float, default=0.5)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


# ── Store ────────────────────────────────────────────────────────────────────

class SqlTrendStore(TrendStore):
    """TrendStore backed by SQLAlchemy."""

    def __init__(self, database_url: Optional[str] = None):
        url = database_url or get_settings().database_url
        connect_args = {}
        if url.startswith("sqlite"):
            # Records are read from scoring worker threads
            connect_args["check_same_thread"] = False
            path = make_url(url).database
            if path and path != ":memory:":
                os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)

        self.engine = create_engine(url, echo=False, connect_args=connect_args)
        self.SessionLocal = sessionmaker(bind=self.engine)
        self.create_tables()

    def create_tables(self):
        """Create all tables (safe to call multiple times)."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ── Trend records ─────────────────────────────────────────────────

    def get_record(self, topic: str) -> Optional[TrendRecord]:
        with self.get_session() as session:
            row = session.get(TrendRecordModel, topic)
            return self._to_record(row) if row else None

    def save_record(self, record: TrendRecord) -> None:
        with self.get_session() as session:
            row = TrendRecordModel(
                topic=record.topic,
                category=record.category,
                region=record.region,
                metrics=record.metrics.model_dump_json(),
                signals=json.dumps(record.signals, default=str),
                pattern=record.pattern.value,
                confidence_score=record.confidence_score,
                trend_score=record.trend_score,
                historical_values=json.dumps(record.historical_values),
                historical_dates=json.dumps(record.historical_dates),
                sentiment_score=record.sentiment_score,
                dynamic_weight=record.dynamic_weight,
                analysis_timestamp=record.analysis_timestamp,
                created_at=record.created_at,
            )
            session.merge(row)  # merge = upsert

    def list_records(self) -> List[TrendRecord]:
        with self.get_session() as session:
            rows = session.query(TrendRecordModel).order_by(TrendRecordModel.topic).all()
            return [self._to_record(r) for r in rows]

    @staticmethod
    def _to_record(row: TrendRecordModel) -> TrendRecord:
        return TrendRecord(
            topic=row.topic,
            category=row.category,
            region=row.region,
            metrics=TrendMetrics.model_validate_json(row.metrics) if row.metrics else TrendMetrics(),
            signals=json.loads(row.signals) if row.signals else {},
            pattern=TrendPattern(row.pattern),
            confidence_score=row.confidence_score,
            trend_score=row.trend_score,
            historical_values=json.loads(row.historical_values) if row.historical_values else [],
            historical_dates=json.loads(row.historical_dates) if row.historical_dates else [],
            sentiment_score=row.sentiment_score,
            dynamic_weight=row.dynamic_weight,
            analysis_timestamp=_aware(row.analysis_timestamp),
            created_at=_aware(row.created_at),
        )

    # ── Content records ───────────────────────────────────────────────

    def get_content(self, item_id: str) -> Optional[ContentRecord]:
        with self.get_session() as session:
            row = session.get(ContentRecordModel, item_id)
            if row is None:
                return None
            return ContentRecord(
                item_id=row.item_id,
                metrics=json.loads(row.metrics) if row.metrics else {},
                weights=json.loads(row.weights) if row.weights else {},
                previous_engagement=row.previous_engagement,
                dynamic_weight=row.dynamic_weight,
                created_at=_aware(row.created_at),
                updated_at=_aware(row.updated_at),
            )

    def save_content(self, record: ContentRecord) -> None:
        with self.get_session() as session:
            session.merge(ContentRecordModel(
                item_id=record.item_id,
                metrics=json.dumps(record.metrics, default=str),
                weights=json.dumps(record.weights),
                previous_engagement=record.previous_engagement,
                dynamic_weight=record.dynamic_weight,
                created_at=record.created_at,
                updated_at=record.updated_at,
            ))
