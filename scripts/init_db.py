#!/usr/bin/env python3
"""
Initialize the document database and seed sample documents.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --db-path data/search.db
    python scripts/init_db.py --skip-embedding

The script:
1. Creates the documents table if absent
2. Embeds each sample document (title + content) with the configured model,
   or with deterministic fake vectors when --skip-embedding is given
3. Inserts or replaces the documents by id

Embedding with the live model keeps stored vectors the same dimension as
query vectors; fake vectors are only useful for smoke-testing the API.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Final

PROJECT_ROOT: Final[Path] = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.core.config import get_settings  # noqa: E402
from src.core.exceptions import SemanticSearchError  # noqa: E402
from src.core.logging import configure_logging, get_logger  # noqa: E402
from src.models.embedding.fakes import FakeEmbeddingModel  # noqa: E402
from src.models.embedding.lifecycle import ModelLifecycleManager  # noqa: E402
from src.search.models import Document  # noqa: E402
from src.storage.document_store import SQLiteDocumentStore  # noqa: E402

logger = get_logger(__name__)

# =============================================================================
# Sample Data
# =============================================================================

SAMPLE_DOCUMENTS: Final[list[dict[str, str]]] = [
    {
        "id": "1",
        "title": "User login",
        "content": "Implement user login with username and password "
        "verification and a remember-me option",
    },
    {
        "id": "2",
        "title": "Data export",
        "content": "Support exporting data to Excel and CSV formats",
    },
]


def embedding_text(doc: dict[str, str]) -> str:
    """Text that is embedded for a document."""
    return f"{doc['title']}\n{doc['content']}"


async def seed(db_path: Path, skip_embedding: bool) -> int:
    """Create the schema and upsert the sample documents.

    Returns:
        Number of documents stored after seeding
    """
    settings = get_settings()
    store = SQLiteDocumentStore(db_path)
    store.initialize_schema()

    if skip_embedding:
        lifecycle = ModelLifecycleManager(
            settings.model_copy(update={"required_model_files": []}),
            model_factory=lambda path: FakeEmbeddingModel(path).load(),
        )
    else:
        lifecycle = ModelLifecycleManager(settings)

    for doc in SAMPLE_DOCUMENTS:
        vector = await lifecycle.embed(embedding_text(doc))
        store.upsert_document(
            Document.create(doc["id"], doc["title"], doc["content"], vector)
        )
        logger.info("sample_document_seeded", document_id=doc["id"], dim=len(vector))

    return store.count()


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Initialize and seed the document database")
    parser.add_argument(
        "--db-path",
        type=Path,
        default=settings.db_path,
        help=f"SQLite database path (default: {settings.db_path})",
    )
    parser.add_argument(
        "--skip-embedding",
        action="store_true",
        help="Use deterministic fake vectors instead of loading the model",
    )
    args = parser.parse_args()

    configure_logging(log_level=settings.log_level, json_output=False)

    try:
        total = asyncio.run(seed(args.db_path, args.skip_embedding))
    except SemanticSearchError as e:
        logger.error("init_db_failed", error=str(e))
        return 1

    print(f"Database initialized at {args.db_path} ({total} documents)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
