"""
Parameter resolution: sequential substitution and evaluation.

Given parameters already in evaluation order and a snapshot of page
state, each parameter is resolved in turn:

    1. substitute every previously resolved parameter ({peer} -> value)
    2. substitute every page-state value, including the synthesised
       {pagestate} pseudo-parameter
    3. hand the text to the template evaluator and keep its output

The body template is then substituted with the resolved parameters and
the page state and evaluated once more to produce the final HTML.

Every text sent to the evaluator is wrapped in a random marker that is
fresh for each request; the result is cut out from between the first and
last marker, which drops any wrapper markup the evaluator adds. Requests
share no mutable state, so concurrent requests against one evaluator
cannot see each other's markers.

Batch requests arrive as JSON objects, whose key order is not preserved
by every encoder, so resolve_batch sorts each parameter set again before
resolving it.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging
import secrets

from markupsafe import escape

from riski.config import PAGESTATE_KEY
from riski.errors import RiskiError
from riski.graph import sort_parameters
from riski.text import format_scalar, pagestate_string, strip_markers, substitute

log = logging.getLogger(__name__)


def new_marker():
    """A single-use unwrap marker."""
    return secrets.token_hex(16)


def with_pagestate(state):
    """Copy of state with the reserved {pagestate} value appended."""
    external = dict(state)
    external.pop(PAGESTATE_KEY, None)
    external[PAGESTATE_KEY] = pagestate_string(external)
    return external


def error_html(message):
    return '<span class="error">{}</span>'.format(escape(message))


class ParameterResolver:
    """
    Resolves sorted parameter maps against page state.

    Parameters
    ----------
    evaluator : TemplateEvaluator
        Collaborator that renders substituted text.
    """

    def __init__(self, evaluator):
        self.evaluator = evaluator

    def _evaluate(self, text, marker, title):
        html = self.evaluator.evaluate(marker + text + marker, title)
        return strip_markers(html, marker)

    def resolve_parameters(self, sorted_params, pagestate, title=None,
                           marker=None):
        """
        Resolve every parameter in order.

        Parameters
        ----------
        sorted_params : dict
            name -> expression, already in evaluation order.
        pagestate : dict
            External state snapshot (name -> scalar).
        title : str, optional
            Page context passed to the evaluator.
        marker : str, optional
            Unwrap marker; a fresh one is drawn when omitted.

        Returns
        -------
        dict
            name -> resolved text, in evaluation order.

        Raises
        ------
        EvaluationError
            If the evaluator rejects an expression.
        """
        marker = marker or new_marker()
        external = with_pagestate(pagestate)
        resolved = {}
        for name, expression in sorted_params.items():
            text = substitute(format_scalar(expression), resolved)
            text = substitute(text, external)
            resolved[name] = self._evaluate(text, marker, title)
        return resolved

    def render(self, text, sorted_params, pagestate, title=None, marker=None):
        """
        Resolve parameters, then render the body template to HTML.

        Returns
        -------
        str
            Final HTML, unwrapped.
        """
        marker = marker or new_marker()
        resolved = self.resolve_parameters(
            sorted_params, pagestate, title=title, marker=marker)
        body = substitute(text, resolved)
        body = substitute(body, with_pagestate(pagestate))
        return self._evaluate(body, marker, title)

    def resolve_batch(self, requests, title=None):
        """
        Render a batch of display requests, best effort per id.

        Parameters
        ----------
        requests : dict
            element id -> {"text", "params", "pagestate"}.

        Returns
        -------
        dict
            element id -> HTML. A malformed entry, a parameter cycle or a
            failed evaluation yields an error span for that id only.
        """
        marker = new_marker()
        results = {}
        for element_id, request in requests.items():
            if not _well_formed(request):
                results[element_id] = error_html(
                    "Error: Invalid request data from client.")
                continue
            try:
                params = sort_parameters({
                    name: format_scalar(expression)
                    for name, expression in request["params"].items()
                })
                results[element_id] = self.render(
                    request["text"], params, request["pagestate"],
                    title=title, marker=marker)
            except RiskiError as e:
                log.warning("resolve failed for %s: %s", element_id, e)
                results[element_id] = error_html("Error: {}".format(e))
        return results


def _well_formed(request):
    return (
        isinstance(request, dict)
        and isinstance(request.get("text"), str)
        and isinstance(request.get("params"), dict)
        and isinstance(request.get("pagestate"), dict)
    )
