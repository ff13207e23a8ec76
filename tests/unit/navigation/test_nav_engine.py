"""
Unit tests for NavInferenceEngine.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from cleanread.navigation import Direction, NavInferenceEngine, NavLinks, ScoringWeights, infer_navigation
from cleanread.navigation.engine import extract_onclick_url

BASE = "https://site.example/ch1"


def big_list_with(link_html, count=20):
    items = "".join(f'<li><a href="/p{i}">Page {i}</a></li>' for i in range(count))
    return f"<ul>{items}<li>{link_html}</li></ul>"


@pytest.mark.unit
class TestNavInference:
    """Selection behaviour of the navigation engine."""

    def test_rel_next_inside_nav(self):
        html = '<html><body><nav><a rel="next" href="/ch2">Next</a></nav></body></html>'
        links = infer_navigation(html, BASE)

        assert links.next == "https://site.example/ch2"
        assert links.previous == ""

    def test_nav_landmark_beats_large_list(self):
        html = big_list_with('<a href="/list-next">Next</a>') + '<nav><a href="/nav-next">Next</a></nav>'
        links = NavInferenceEngine().infer(html, BASE)

        assert links.next == "https://site.example/nav-next"

    def test_external_host_excluded(self):
        html = '<a href="https://other.example/ch2">Next</a>'
        assert infer_navigation(html, BASE) == NavLinks("", "")

    def test_no_matching_candidates(self):
        html = '<p>Nothing here</p><a href="/about">About us</a>'
        assert infer_navigation(html, BASE) == NavLinks()

    def test_same_page_link_excluded(self):
        html = '<a href="/ch1#comments">Next</a>'
        assert infer_navigation(html, BASE).next == ""

    def test_previous_link(self):
        html = '<div class="pager"><a href="/ch0">Previous</a> <a href="/ch2">Next</a></div>'
        links = infer_navigation(html, BASE)

        assert links.previous == "https://site.example/ch0"
        assert links.next == "https://site.example/ch2"

    def test_tie_goes_to_first_in_document_order(self):
        html = '<a href="/first">Next</a><a href="/second">Next</a>'
        assert infer_navigation(html, BASE).next == "https://site.example/first"

    def test_sidebar_candidate_loses(self):
        html = '<aside><a href="/side">Next</a></aside><main><a href="/main">Next</a></main>'
        assert infer_navigation(html, BASE).next == "https://site.example/main"

    def test_onclick_button(self):
        html = "<button onclick=\"window.location.href='/ch3'\">Next</button>"
        assert infer_navigation(html, BASE).next == "https://site.example/ch3"

    def test_data_href_span(self):
        html = '<span data-href="/ch4">Next chapter</span>'
        assert infer_navigation(html, BASE).next == "https://site.example/ch4"

    def test_phrase_in_attribute_only(self):
        html = '<a href="/ch2" aria-label="Next page"><img src="arrow.png"></a>'
        assert infer_navigation(html, BASE).next == "https://site.example/ch2"

    def test_relative_url_resolution(self):
        html = '<a href="ch2.html">Next</a>'
        links = infer_navigation(html, "https://site.example/book/ch1.html")
        assert links.next == "https://site.example/book/ch2.html"

    def test_empty_and_unparseable_input(self):
        engine = NavInferenceEngine()
        assert engine.infer("", BASE) == NavLinks()
        assert engine.infer(b"", BASE) == NavLinks()
        assert engine.infer("<a href='/x'>Next</a>", "") == NavLinks()

    def test_bytes_input(self):
        html = '<nav><a rel="next" href="/ch2">Next</a></nav>'.encode("utf-8")
        assert infer_navigation(html, BASE).next == "https://site.example/ch2"

    @settings(max_examples=50, deadline=None)
    @given(st.text())
    def test_never_raises(self, markup):
        links = NavInferenceEngine().infer(markup, BASE)
        assert isinstance(links, NavLinks)


@pytest.mark.unit
class TestNavScoring:
    """Individual score components."""

    def test_rel_landmark_and_text_scores(self):
        html = '<nav><a rel="next" href="/ch2">Next</a></nav>'
        [candidate] = NavInferenceEngine().candidates(html, BASE)

        assert candidate.direction is Direction.NEXT
        assert candidate.score == 1000 + 500 + 100

    def test_class_and_attribute_scores(self):
        html = '<a class="nav-next" href="/z">Onward</a>'
        [candidate] = NavInferenceEngine().candidates(html, BASE)

        # class bonus 300, text "onward" fully matched 100, "next" in "nav-next" int(50 * 4/8)
        assert candidate.score == 300 + 100 + 25

    def test_large_list_penalty(self):
        html = big_list_with('<a href="/list-next">Next</a>')
        [candidate] = NavInferenceEngine().candidates(html, BASE)

        assert candidate.score == 100 - 100

    def test_small_list_not_penalized(self):
        html = big_list_with('<a href="/list-next">Next</a>', count=3)
        [candidate] = NavInferenceEngine().candidates(html, BASE)

        assert candidate.score == 100

    def test_candidates_report_discovery_order(self):
        html = '<a href="/a">Next</a><a href="/about">About</a><a href="/b">Next</a>'
        orders = [c.discovery_order for c in NavInferenceEngine().candidates(html, BASE)]

        assert orders == sorted(orders)
        assert len(orders) == 2

    def test_custom_weights_change_winner(self):
        html = big_list_with('<a href="/list-next">Next</a>') + '<nav><a href="/nav-next">Next</a></nav>'
        engine = NavInferenceEngine(ScoringWeights(landmark_bonus=0, large_list_penalty=0))

        # Both score 100 now; the earlier list link wins the tie.
        assert engine.infer(html, BASE).next == "https://site.example/list-next"


@pytest.mark.unit
class TestOnclickScan:
    @pytest.mark.parametrize(
        "onclick, expected",
        [
            ("window.location.href='/a'", "/a"),
            ('location = "/b"', "/b"),
            ("document.location.assign('/c')", "/c"),
            ("window.location.replace(\"/d\")", "/d"),
            ("doSomething()", ""),
            ("if (location.href == '/e') {}", ""),
            ("", ""),
        ],
    )
    def test_extract_onclick_url(self, onclick, expected):
        assert extract_onclick_url(onclick) == expected
