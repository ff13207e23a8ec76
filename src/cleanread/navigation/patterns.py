"""
Phrase dictionaries and selector vocabulary for navigation link discovery.
"""

from __future__ import annotations

from typing import Tuple

NEXT_PHRASES: Tuple[str, ...] = (
    "next",
    "→",
    ">",
    ">>",
    "»",
    "next chapter",
    "continue reading",
    "continue",
    "read more",
    "next page",
    "forward",
    "next post",
    "next article",
    "next entry",
    "next story",
    "next part",
    "next section",
    "proceed",
    "advance",
    "onward",
    # es
    "siguiente",
    "capítulo siguiente",
    # de
    "weiter",
    "nächste",
    "nächstes kapitel",
    # fr
    "suivant",
    "chapitre suivant",
)

PREVIOUS_PHRASES: Tuple[str, ...] = (
    "previous",
    "prev",
    "←",
    "<",
    "<<",
    "«",
    "back",
    "previous chapter",
    "prev chapter",
    "previous page",
    "back to",
    "previous post",
    "prev post",
    "previous article",
    "prev article",
    "previous entry",
    "prev entry",
    "previous story",
    "prev story",
    "previous part",
    "prev part",
    "previous section",
    "prev section",
    "return",
    "go back",
    # es
    "anterior",
    "capítulo anterior",
    # de
    "zurück",
    "vorherige",
    # fr
    "précédent",
    "chapitre précédent",
)

# Elements that may act as navigation controls. Matches are visited once each,
# in document order.
CANDIDATE_SELECTOR = ", ".join(
    [
        "a[href]",
        "button[onclick]",
        "button[data-href]",
        "button[data-url]",
        "button[data-link]",
        "nav a",
        "nav button",
        "nav span",
        "nav div",
        "div[onclick]",
        "div[data-href]",
        "div[data-url]",
        "div[data-link]",
        "span[onclick]",
        "span[data-href]",
        "span[data-url]",
        "span[data-link]",
        "[role='button']",
        "[role='link']",
        ".btn",
        ".button",
        ".nav-link",
        ".navigation",
        ".pager",
        ".pagination",
        ".next",
        ".prev",
        ".previous",
        ".continue",
        ".forward",
        ".back",
        "li a",
        "li button",
        "li span",
        "li div",
        ".page-numbers",
        ".page-link",
        ".wp-pagenavi",
        "input[type='button']",
        "input[type='submit']",
    ]
)

# Attributes carrying a target URL, highest priority first. onclick is scanned last.
URL_ATTRIBUTES: Tuple[str, ...] = ("href", "data-href", "data-url", "data-link")

# Attributes (besides visible text) searched for direction phrases.
MATCH_ATTRIBUTES: Tuple[str, ...] = ("id", "class", "title", "aria-label", "alt")

NAV_CLASS_VOCABULARY: Tuple[str, ...] = ("nav-next", "nav-previous", "navigation", "pager", "pagination")

LANDMARK_SELECTOR = "nav, [role='navigation']"

SIDEBAR_SELECTOR = "#sidebar, #secondary, .widget-area, .sidebar, aside, [role='complementary']"

LIST_SELECTOR = "ul, ol"
