"""Analyze a JSON file of Garmin workout records from the command line."""
import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from app.config import get_settings
from app.database import SessionLocal, run_migrations
from app.exceptions import AIAnalysisError
from app.logging_config import configure_logging
from app.models.schemas import RunAnalysisRequest
from app.services.analysis_repository import AnalysisDocumentRepository
from app.services.embedding_index import OpenAIEmbedder, SqlEmbeddingIndex
from app.services.llm_client import ClaudeCompletionProvider
from app.services.run_analyzer import RunAnalyzer
from app.services.semantic_cache import SemanticCache


logger = logging.getLogger("analyze_runs")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Analyze Garmin run data with Claude (semantic cache aware)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze a batch, reusing a cached analysis when one matches
  python scripts/analyze_runs.py runs.json

  # Skip the cache lookup and force a fresh analysis
  python scripts/analyze_runs.py runs.json --force-refresh
        """
    )
    parser.add_argument("path", type=Path, help="JSON file: a list of run records or {\"runs\": [...]}")
    parser.add_argument("--force-refresh", action="store_true", help="Bypass the cache lookup")
    parser.add_argument("--skip-migrations", action="store_true", help="Do not apply migrations first")
    return parser.parse_args()


def load_request(path: Path, force_refresh: bool) -> RunAnalysisRequest:
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if isinstance(payload, list):
        payload = {"runs": payload}
    if force_refresh:
        payload["force_refresh"] = True
    return RunAnalysisRequest.model_validate(payload)


def main() -> int:
    args = parse_args()
    configure_logging()
    settings = get_settings()

    try:
        request = load_request(args.path, args.force_refresh)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"Invalid input file {args.path}: {e}", file=sys.stderr)
        return 2

    if not args.skip_migrations:
        run_migrations()

    db = SessionLocal()
    try:
        cache = SemanticCache(
            repository=AnalysisDocumentRepository(db),
            index=SqlEmbeddingIndex(db, OpenAIEmbedder()),
            config=settings.rag_cache_config(),
        )
        analyzer = RunAnalyzer(cache=cache, llm=ClaudeCompletionProvider())
        result = analyzer.analyze_runs(request.runs, force_refresh=request.force_refresh)
        db.commit()
    except AIAnalysisError as e:
        db.rollback()
        logger.error("AI analysis failed: %s", e.message)
        return 1
    finally:
        db.close()

    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
