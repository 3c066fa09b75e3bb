"""
Trend Signal Engine - Main Entry Point.
Command-line interface over the classifier and the aggregation pipeline.

  python -m trend_engine.main analyze series.json [--bands]
  python -m trend_engine.main ingest batch.json [--db sqlite:///./data/trends.db]
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import get_settings
from .trends.classifier import PatternClassifier
from .trends.engine import TrendEngine

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def analyze_series(payload: Dict[str, Any], bands: bool = False) -> Dict[str, Any]:
    """Classify {"values": [...], "timestamps": [...]} into a JSON-ready dict."""
    classifier = PatternClassifier(get_settings())
    values = payload.get("values", [])
    if bands:
        return {"pattern": classifier.classify_bands(values).value}

    result = classifier.classify(values, payload.get("timestamps"))
    output = result.model_dump(mode="json", exclude={"historical_values", "timestamps"})
    output["recommended_action"] = result.recommended_action.value
    output["recommended_strategy"] = result.pattern.recommended_strategy
    output["update_frequency"] = result.pattern.recommended_update_frequency.value
    return output


def ingest_batch(payload: Dict[str, Any], database_url: Optional[str] = None) -> List[Dict[str, Any]]:
    """Feed series/content submissions through one pipeline cycle and summarize each topic."""
    store = None
    if database_url:
        from .database import SqlTrendStore
        store = SqlTrendStore(database_url)

    with TrendEngine(store=store) as engine:
        for series in payload.get("series", []):
            engine.submit_series(
                series["topic"], series.get("points", []),
                category=series.get("category"), region=series.get("region"),
            )
        for item in payload.get("content", []):
            engine.submit_content_metrics(item["item_id"], item.get("metrics", {}), item["created_at"])

        report = engine.process_pending()
        if report is not None and report.failed:
            logger.warning(f"{report.failed} submissions failed: {report.errors[:5]}")

        summary = []
        for topic in engine.store.topics():
            pattern = engine.get_pattern(topic)
            summary.append({
                "topic": topic,
                "pattern": pattern.pattern.value,
                "confidence": round(pattern.confidence_score, 4),
                "dynamic_weight": round(engine.get_dynamic_weight(topic), 4),
                "samples": len(engine.get_historical_values(topic)),
            })
        return summary


def cli_main(argv: Optional[List[str]] = None) -> int:
    """Command-line interface for the trend engine."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Trend Signal Analysis & Pattern Classification Engine"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Classify one series from a JSON file")
    analyze.add_argument("path", type=Path, help='JSON file: {"values": [...], "timestamps": [...]}')
    analyze.add_argument(
        "--bands",
        action="store_true",
        help="Use momentum/volatility band classification"
    )

    ingest = sub.add_parser("ingest", help="Run a batch of submissions through the pipeline")
    ingest.add_argument("path", type=Path, help='JSON file: {"series": [...], "content": [...]}')
    ingest.add_argument(
        "--db",
        default=None,
        help="Database URL for persistence (default: in-memory)"
    )

    args = parser.parse_args(argv)
    configure_logging(get_settings().log_level)

    try:
        payload = json.loads(args.path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read {args.path}: {e}")
        return 2

    if args.command == "analyze":
        print(json.dumps(analyze_series(payload, bands=args.bands), indent=2))
    else:
        print(json.dumps(ingest_batch(payload, args.db), indent=2))
    return 0


def main():
    """Entry point for CLI."""
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
