"""
Tests for text helpers, the parameter resolver and the Jinja2 evaluator.
"""

import pytest

from conftest import EchoEvaluator
from riski.errors import EvaluationError
from riski.evaluator import JinjaEvaluator, one_in, to_number
from riski.resolver import ParameterResolver, error_html, new_marker, with_pagestate
from riski.text import (
    escape_for_template,
    format_scalar,
    pagestate_string,
    strip_markers,
    strip_tags,
    substitute,
)


class TestText:

    def test_format_scalar_like_a_browser(self):
        assert format_scalar(True) == "true"
        assert format_scalar(False) == "false"
        assert format_scalar(2.0) == "2"
        assert format_scalar(2.5) == "2.5"
        assert format_scalar(7) == "7"
        assert format_scalar("x") == "x"

    def test_substitute_all_occurrences(self):
        assert substitute("{a}+{a}={b}", {"a": 1, "b": 2.0}) == "1+1=2"

    def test_substitute_leaves_unknown_placeholders(self):
        assert substitute("{a} {c}", {"a": "x"}) == "x {c}"

    def test_escape_for_template(self):
        assert escape_for_template("a b,c") == "a b,c"
        assert escape_for_template("a/b") == "a&#47;b"
        assert escape_for_template("a=b|c") == "a&#61;b&#124;c"
        assert escape_for_template("é") == "&#233;"

    def test_pagestate_string(self):
        state = {"x": 1, "name": "a b/c"}
        assert pagestate_string(state) == "x=1|name=a b&#47;c"

    def test_strip_markers(self):
        assert strip_markers("<p>MhelloM</p>", "M") == "hello"
        assert strip_markers("<p>MM</p>", "M") == ""
        assert strip_markers("no markers", "M") == "no markers"
        assert strip_markers("only M once", "M") == "only M once"

    def test_strip_markers_first_and_last(self):
        assert strip_markers("xMaMbMy", "M") == "aMb"

    def test_strip_tags(self):
        assert strip_tags("<b>0.5</b>\n") == "0.5"


class TestParameterResolver:

    def test_end_to_end(self, resolver):
        html = resolver.render("{a}+{b}", {"a": "2", "b": "3"}, {})
        assert html == "2+3"

    def test_sequential_substitution(self, resolver):
        resolved = resolver.resolve_parameters(
            {"a": "2", "b": "{a}+3", "c": "{b}*{x}"}, {"x": 4})
        assert resolved == {"a": "2", "b": "2+3", "c": "2+3*4"}

    def test_peer_beats_external(self, resolver):
        resolved = resolver.resolve_parameters(
            {"a": "1", "b": "{a}"}, {"a": "9"})
        assert resolved["b"] == "1"

    def test_scalar_formatting(self, resolver):
        resolved = resolver.resolve_parameters(
            {"f": "{flag}", "n": "{num}"}, {"flag": True, "num": 2.0})
        assert resolved == {"f": "true", "n": "2"}

    def test_pagestate_pseudo_parameter(self, resolver):
        html = resolver.render(
            "[{pagestate}]", {}, {"x": 1, "name": "a b/c"})
        assert html == "[x=1|name=a b&#47;c]"

    def test_with_pagestate_ignores_incoming_key(self):
        assert with_pagestate({"a": 1, "pagestate": "forged"}) == {
            "a": 1, "pagestate": "a=1"}

    def test_wrapper_markup_is_dropped(self):
        resolver = ParameterResolver(EchoEvaluator(wrap=True))
        assert resolver.render("{a} apples", {"a": "3"}, {}) == "3 apples"

    def test_each_call_is_marked(self, echo, resolver):
        resolver.render("{a}", {"a": "1"}, {}, marker="MARK")
        assert [text for text, _ in echo.calls] == ["MARK1MARK", "MARK1MARK"]

    def test_title_is_passed(self, echo, resolver):
        resolver.render("x", {}, {}, title="Risks")
        assert echo.calls[0][1] == "Risks"

    def test_markers_are_unique(self):
        markers = {new_marker() for _ in range(50)}
        assert len(markers) == 50
        assert all(len(m) == 32 for m in markers)

    def test_evaluation_error_propagates(self, resolver):
        with pytest.raises(EvaluationError):
            resolver.resolve_parameters({"a": "boom"}, {})


class TestResolveBatch:

    def test_results_per_id(self, resolver):
        results = resolver.resolve_batch({
            "d1": {"text": "{a}", "params": {"a": "1"}, "pagestate": {}},
            "d2": {"text": "{a}{x}", "params": {"a": "2"}, "pagestate": {"x": "y"}},
        })
        assert results == {"d1": "1", "d2": "2y"}

    def test_malformed_entry_only_affects_itself(self, resolver):
        results = resolver.resolve_batch({
            "bad": {"text": "{a}", "params": "not a map", "pagestate": {}},
            "good": {"text": "ok", "params": {}, "pagestate": {}},
        })
        assert results["bad"] == error_html(
            "Error: Invalid request data from client.")
        assert results["good"] == "ok"

    def test_evaluation_failure_only_affects_itself(self, resolver):
        results = resolver.resolve_batch({
            "bad": {"text": "{a}", "params": {"a": "boom"}, "pagestate": {}},
            "good": {"text": "fine", "params": {}, "pagestate": {}},
        })
        assert results["bad"] == error_html("Error: cannot evaluate boom")
        assert results["good"] == "fine"

    def test_params_are_sorted_before_resolving(self, resolver):
        results = resolver.resolve_batch({
            "d1": {"text": "{alpha}", "params": {"alpha": "{zeta}+1", "zeta": "2"},
                   "pagestate": {}},
        })
        assert results == {"d1": "2+1"}

    def test_numeric_params_are_accepted(self, resolver):
        results = resolver.resolve_batch({
            "d1": {"text": "{a}", "params": {"a": 2.0}, "pagestate": {}},
        })
        assert results == {"d1": "2"}

    def test_cycle_only_affects_itself(self, resolver):
        results = resolver.resolve_batch({
            "loop": {"text": "{a}", "params": {"a": "{b}", "b": "{a}"},
                     "pagestate": {}},
            "good": {"text": "fine", "params": {}, "pagestate": {}},
        })
        assert results["loop"] == error_html(
            "Error: circular dependency among parameters: a, b")
        assert results["good"] == "fine"

    def test_error_html_escapes(self):
        assert error_html("<x>") == '<span class="error">&lt;x&gt;</span>'


class TestJinjaEvaluator:

    def test_expression(self):
        assert JinjaEvaluator().evaluate("{{ 2 + 3 }}") == "5"

    def test_plain_text_and_markup_pass_through(self):
        assert JinjaEvaluator().evaluate("<b>hi</b>") == "<b>hi</b>"

    def test_undefined_name(self):
        with pytest.raises(EvaluationError):
            JinjaEvaluator().evaluate("{{ nope + 1 }}")

    def test_division_by_zero(self):
        with pytest.raises(EvaluationError):
            JinjaEvaluator().evaluate("{{ 1 / 0 }}")

    def test_page_title_available(self):
        assert JinjaEvaluator().evaluate("{{ page }}", "Risks") == "Risks"

    def test_chained_parameters(self):
        resolver = ParameterResolver(JinjaEvaluator())
        resolved = resolver.resolve_parameters(
            {"a": "{{ 2 + 3 }}", "b": "{{ {a} * {k} }}"}, {"k": 2})
        assert resolved == {"a": "5", "b": "10"}

    def test_one_in_filter(self):
        html = JinjaEvaluator().evaluate("{{ 0.01|one_in }}")
        assert html == "1 in 100"


class TestFilters:

    def test_one_in(self):
        assert one_in(0.01) == "1 in 100"
        assert one_in(0.0001) == "1 in 10,000"
        assert one_in(0) == "never"

    def test_one_in_over_months(self):
        assert one_in(0.5, months=2) == "1 in 4"

    def test_to_number(self):
        assert to_number("2.5") == 2.5
        assert to_number("abc") == 0.0
        assert to_number("inf", default=-1) == -1
