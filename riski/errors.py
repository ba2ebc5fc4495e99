"""
Error types for RISKI.

Every failure is scoped: a ConfigurationError or CycleError affects one
tag or one model, a ValidationError rejects one HTTP request, an
EvaluationError or TransportError affects one widget. Nothing here is
allowed to abort a whole page render.
"""


class RiskiError(Exception):
    """Base class for all RISKI errors."""


class ConfigurationError(RiskiError):
    """A tag is missing a required attribute or references something that does not exist."""


class CycleError(RiskiError):
    """
    A model's own parameters form a dependency cycle.

    Parameters
    ----------
    names : list of str
        The parameters whose in-degree never reached zero, in declaration
        order.
    model : str, optional
        Name of the offending model, when known.
    """

    def __init__(self, names, model=None):
        self.names = list(names)
        self.model = model
        label = "Model '{}': ".format(model) if model else ""
        super().__init__(
            "{}circular dependency among parameters: {}".format(
                label, ", ".join(self.names)))


class ValidationError(RiskiError, ValueError):
    """
    A request was rejected as a whole.

    Carries a machine-readable ``code`` next to the human message so HTTP
    handlers can return both.
    """

    def __init__(self, code, message):
        self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self):
        return {"error": self.message, "code": self.code}


class SweepError(ValidationError):
    """A sweep aborted mid-way (missing variable or timeout)."""


class MissingDependencyError(RiskiError):
    """A widget is waiting on page-state keys that are not set yet."""

    def __init__(self, names):
        self.names = list(names)
        super().__init__("waiting on: " + ", ".join(self.names))


class NotSetError(RiskiError, KeyError):
    """PageState.get() on a key that is not set."""

    def __init__(self, name):
        self.name = name
        super().__init__('pagestate "{}" is not set'.format(name))

    def __str__(self):
        return self.args[0]


class EvaluationError(RiskiError):
    """The template evaluator rejected a text."""


class TransportError(RiskiError):
    """A client-side call to the resolution API failed."""
