"""Extraction and workflow state for the essay skeleton."""
from .heuristics import HeuristicContentExtractor, HeuristicMatch
from .progression import ProgressionStateMachine
from .sanitizer import ResponseSanitizer, sanitize
from .sections import SectionStore, Skeleton
from .structured_fragment import StructuredDataExtractor

__all__ = [
    "HeuristicContentExtractor",
    "HeuristicMatch",
    "ProgressionStateMachine",
    "ResponseSanitizer",
    "SectionStore",
    "Skeleton",
    "StructuredDataExtractor",
    "sanitize",
]
