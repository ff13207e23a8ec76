"""
Navigation link inference: finds "next" and "previous" page links in raw HTML.
"""

from .engine import Direction, NavCandidate, NavInferenceEngine, NavLinks, ScoringWeights, infer_navigation
from .urls import is_same_site_different_page, relativize_url, resolve_url, validate_document_url

__all__ = [
    "Direction",
    "NavCandidate",
    "NavInferenceEngine",
    "NavLinks",
    "ScoringWeights",
    "infer_navigation",
    "is_same_site_different_page",
    "relativize_url",
    "resolve_url",
    "validate_document_url",
]
