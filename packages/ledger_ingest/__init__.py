"""Bank and broker export ingestion into a categorized, deduplicated ledger."""

from .api import ingest_batch
from .categorization import CategorizationEngine
from .errors import EmptyInputError, IngestError, UnknownSourceError
from .models import (
    CategoryDecision,
    ClassificationRequest,
    FileTypeHint,
    ImportMetadata,
    ImportResult,
    ParsedTransaction,
    RawImportBatch,
    SourceTag,
    TransactionType,
)

__all__ = [
    "CategorizationEngine",
    "CategoryDecision",
    "ClassificationRequest",
    "EmptyInputError",
    "FileTypeHint",
    "ImportMetadata",
    "ImportResult",
    "IngestError",
    "ParsedTransaction",
    "RawImportBatch",
    "SourceTag",
    "TransactionType",
    "UnknownSourceError",
    "ingest_batch",
]
