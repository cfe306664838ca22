"""Pipeline services: retrieval, categorization, matching and report assembly."""

from .categorizer import CATEGORY_RULES, categorize
from .firestore_sink import FirestoreRetrievalSink, NullRetrievalSink, RetrievalSink, StorageError
from .photo_matching import PhotoMatcher, summarize_matches
from .report import ReportAssembler
from .reputation import ReputationService, build_reputation_service
from .retrieval import AdapterFailure, RetrievalBatch, RetrievalError, RetrievalService, best_effort
from .summarizer import CategoryAnalysis, SummarizerError, TextSummarizer

__all__ = [
    "AdapterFailure",
    "CATEGORY_RULES",
    "CategoryAnalysis",
    "FirestoreRetrievalSink",
    "NullRetrievalSink",
    "PhotoMatcher",
    "ReportAssembler",
    "ReputationService",
    "RetrievalBatch",
    "RetrievalError",
    "RetrievalService",
    "RetrievalSink",
    "StorageError",
    "SummarizerError",
    "TextSummarizer",
    "best_effort",
    "build_reputation_service",
    "categorize",
    "summarize_matches",
]
