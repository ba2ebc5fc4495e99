"""
Template evaluator collaborator.

After placeholder substitution, every parameter expression and every
display body is handed to a TemplateEvaluator, which turns it into HTML.
The engine never looks inside the text itself.

JinjaEvaluator is the evaluator used by the application: a sandboxed
Jinja2 environment, so an expression such as "{{ 2 + 3 }}" renders as
"5" while plain text and inline markup pass through unchanged. Double
braces are exactly the syntax the placeholder matcher leaves alone.
"""

import math
from abc import ABC, abstractmethod

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from riski.errors import EvaluationError


class TemplateEvaluator(ABC):
    """
    Renders substituted text to HTML.

    Implementations must be idempotent for identical input and must
    preserve inline markup. They may wrap the result in extra markup; the
    resolver unwraps it with a marker.
    """

    @abstractmethod
    def evaluate(self, text, title=None):
        """
        Render text in the context of page title.

        Raises
        ------
        EvaluationError
            If the text cannot be rendered.
        """


def one_in(chance, months=1):
    """Format a per-period probability as '1 in N' over `months` months."""
    chance = float(chance) / float(months)
    if chance <= 0:
        return "never"
    odds = 1.0 / chance
    if odds > 1000:
        digits = len(str(int(round(odds))))
        scale = 10 ** (digits - 2)
        return "1 in {:,}".format(int(round(odds / scale) * scale))
    return "1 in {}".format(int(round(odds)))


def to_number(value, default=0.0):
    """Best-effort float conversion for substituted text."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


class JinjaEvaluator(TemplateEvaluator):
    """
    Sandboxed Jinja2 evaluator.

    Parameters
    ----------
    globals : dict, optional
        Extra names made available to every template.
    """

    def __init__(self, globals=None):
        self.env = SandboxedEnvironment(
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.env.filters["one_in"] = one_in
        self.env.filters["number"] = to_number
        self.env.globals.update(globals or {})

    def evaluate(self, text, title=None):
        try:
            template = self.env.from_string(text)
            return template.render(page=title)
        except (TemplateError, ArithmeticError, TypeError, ValueError) as e:
            raise EvaluationError(
                "{}: {}".format(type(e).__name__, e)) from e
