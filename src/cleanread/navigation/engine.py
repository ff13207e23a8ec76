"""
Heuristic inference of "next" / "previous" navigation links.

Candidates are discovered with a broad selector, filtered to same-site links
that leave the current page, classified per direction by ``rel`` or phrase
matches, and ranked with an additive score. Highest score wins; ties go to
the candidate found first in document order. The result is deterministic for
identical input, not guaranteed correct for every site.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

import structlog
from bs4 import BeautifulSoup, Tag

from .patterns import (
    CANDIDATE_SELECTOR,
    LANDMARK_SELECTOR,
    LIST_SELECTOR,
    MATCH_ATTRIBUTES,
    NAV_CLASS_VOCABULARY,
    NEXT_PHRASES,
    PREVIOUS_PHRASES,
    SIDEBAR_SELECTOR,
    URL_ATTRIBUTES,
)
from .urls import is_same_site_different_page, resolve_url

logger = structlog.get_logger(__name__)

_ONCLICK_URL = re.compile(
    r"""(?:location(?:\.href)?\s*=|location\.(?:assign|replace)\s*\()\s*(['"])(?P<url>[^'"]*)\1""",
    re.IGNORECASE,
)


def _normalize(phrases: Iterable[str]) -> Tuple[str, ...]:
    return tuple(p.strip().lower() for p in phrases if p.strip())


class Direction(str, Enum):
    NEXT = "next"
    PREVIOUS = "previous"

    @property
    def rel(self) -> str:
        return "next" if self is Direction.NEXT else "prev"

    @property
    def phrases(self) -> Tuple[str, ...]:
        return _NEXT if self is Direction.NEXT else _PREVIOUS


_NEXT = _normalize(NEXT_PHRASES)
_PREVIOUS = _normalize(PREVIOUS_PHRASES)


@dataclass(frozen=True)
class ScoringWeights:
    """Additive score components, from dominant tier down to penalties."""

    rel_bonus: int = 1000
    landmark_bonus: int = 500
    class_bonus: int = 300
    text_scale: int = 100
    attribute_scale: int = 50
    sidebar_penalty: int = 200
    large_list_penalty: int = 100
    large_list_threshold: int = 10


@dataclass(slots=True, frozen=True)
class NavCandidate:
    resolved_url: str
    direction: Direction
    score: int
    discovery_order: int


class NavLinks(NamedTuple):
    next: str = ""
    previous: str = ""


# --- Element helpers ---


def _attr(element: Tag, name: str) -> str:
    value = element.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _element_text(element: Tag) -> str:
    return " ".join(element.get_text(" ").split()).lower()


def _search_fields(element: Tag) -> List[str]:
    return [_attr(element, name).lower() for name in MATCH_ATTRIBUTES]


def extract_onclick_url(onclick: str) -> str:
    """Best-effort scan of an onclick handler for a location assignment.

    Anything that does not look like ``location = '...'`` or
    ``location.assign('...')`` yields no URL.
    """
    match = _ONCLICK_URL.search(onclick or "")
    if not match:
        return ""
    return match.group("url").strip()


def extract_target_url(element: Tag) -> str:
    for name in URL_ATTRIBUTES:
        value = _attr(element, name).strip()
        if value:
            return value
    onclick = _attr(element, "onclick")
    if onclick:
        return extract_onclick_url(onclick)
    return ""


def has_rel(element: Tag, direction: Direction) -> bool:
    return direction.rel in _attr(element, "rel").lower().split()


def matches_phrases(element: Tag, phrases: Iterable[str]) -> bool:
    fields = [_element_text(element)] + _search_fields(element)
    return any(phrase in field for phrase in phrases for field in fields if field)


def _best_ratio(field: str, phrases: Iterable[str]) -> float:
    if not field:
        return 0.0
    best = 0.0
    for phrase in phrases:
        if phrase in field:
            best = max(best, len(phrase) / len(field))
    return best


class NavInferenceEngine:
    """Finds the best next/previous links in a document.

    Stateless; one instance can be shared freely.
    """

    def __init__(self, weights: Optional[ScoringWeights] = None, *, parser: str = "html.parser") -> None:
        self.weights = weights or ScoringWeights()
        self.parser = parser

    def infer(self, html: str | bytes, base_url: str) -> NavLinks:
        best: Dict[Direction, NavCandidate] = {}
        for candidate in self.candidates(html, base_url):
            current = best.get(candidate.direction)
            if current is None or candidate.score > current.score:
                best[candidate.direction] = candidate

        links = NavLinks(
            next=best[Direction.NEXT].resolved_url if Direction.NEXT in best else "",
            previous=best[Direction.PREVIOUS].resolved_url if Direction.PREVIOUS in best else "",
        )
        logger.debug(
            "Navigation inferred",
            base_url=base_url,
            next=links.next,
            previous=links.previous,
            next_score=best[Direction.NEXT].score if Direction.NEXT in best else None,
            previous_score=best[Direction.PREVIOUS].score if Direction.PREVIOUS in best else None,
        )
        return links

    def candidates(self, html: str | bytes, base_url: str) -> List[NavCandidate]:
        """All qualifying candidates, in discovery order."""
        soup = self._parse(html)
        if soup is None:
            return []

        found: List[NavCandidate] = []
        for order, element in enumerate(soup.select(CANDIDATE_SELECTOR)):
            target = extract_target_url(element)
            if not target or not is_same_site_different_page(base_url, target):
                continue
            resolved = resolve_url(base_url, target)

            # Directions are judged independently; one element may qualify for both.
            for direction in Direction:
                if has_rel(element, direction) or matches_phrases(element, direction.phrases):
                    found.append(
                        NavCandidate(
                            resolved_url=resolved,
                            direction=direction,
                            score=self.score(element, direction),
                            discovery_order=order,
                        )
                    )
        return found

    def score(self, element: Tag, direction: Direction) -> int:
        w = self.weights
        phrases = direction.phrases
        score = 0

        if has_rel(element, direction):
            score += w.rel_bonus

        if element.css.closest(LANDMARK_SELECTOR) is not None:
            score += w.landmark_bonus

        css_class = _attr(element, "class").lower()
        if any(name in css_class for name in NAV_CLASS_VOCABULARY):
            score += w.class_bonus

        text_ratio = _best_ratio(_element_text(element), phrases)
        if text_ratio > 0:
            score += int(w.text_scale * text_ratio)

        attribute_ratio = max((_best_ratio(field, phrases) for field in _search_fields(element)), default=0.0)
        if attribute_ratio > 0:
            score += int(w.attribute_scale * attribute_ratio)

        if element.css.closest(SIDEBAR_SELECTOR) is not None:
            score -= w.sidebar_penalty

        parent_list = element.css.closest(LIST_SELECTOR)
        if parent_list is not None and len(parent_list.find_all("a")) > w.large_list_threshold:
            score -= w.large_list_penalty

        return score

    def _parse(self, html: str | bytes) -> Optional[BeautifulSoup]:
        if not html:
            return None
        try:
            return BeautifulSoup(html, self.parser)
        except Exception as e:  # noqa: BLE001
            logger.debug("Unparseable document, no navigation candidates", error=str(e))
            return None


_default_engine = NavInferenceEngine()


def infer_navigation(html: str | bytes, base_url: str) -> NavLinks:
    """Infer next/previous links with default weights."""
    return _default_engine.infer(html, base_url)
