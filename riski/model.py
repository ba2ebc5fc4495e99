"""
Parameter and Model types.

A Model is a named, ordered parameter set plus a body template, owned by
one page. Models are replaced wholesale whenever their page is saved, so
they are treated as immutable values: merging local overrides returns a
new parameter map rather than mutating the model.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import re

from riski.config import PAGESTATE_KEY
from riski.errors import ConfigurationError
from riski.graph import (
    external_references,
    refers_to_pagestate,
    sort_parameters,
    topological_sort,
)

PARAMETER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


class Parameter:
    """
    One named expression of a model.

    Parameters
    ----------
    name : str
        Identifier, unique within its model. Must match [A-Za-z0-9_]+ so
        that it can be referenced as a {placeholder}.
    expression : str
        Template text handed to the evaluator after substitution.
    """

    def __init__(self, name, expression):
        self.name = name
        self.expression = "" if expression is None else str(expression)

    def to_dict(self):
        return {"name": self.name, "expression": self.expression}

    def __repr__(self):
        return "Parameter({!r}, {!r})".format(self.name, self.expression)


def validate_parameters(params, owner):
    """
    Check a list of Parameters and return them as an ordered dict.

    Raises
    ------
    ConfigurationError
        On a reserved, malformed or duplicate parameter name.
    """
    result = {}
    for param in params:
        if param.name == PAGESTATE_KEY:
            raise ConfigurationError(
                "{}: '{}' is a reserved name and cannot be used as a "
                "parameter".format(owner, PAGESTATE_KEY))
        if not PARAMETER_NAME_PATTERN.match(param.name or ""):
            raise ConfigurationError(
                "{}: invalid parameter name '{}'".format(owner, param.name))
        if param.name in result:
            raise ConfigurationError(
                "{}: duplicate parameter '{}'".format(owner, param.name))
        result[param.name] = param.expression
    return result


class Model:
    """
    A named parameter set scoped to a page.

    Parameters
    ----------
    page_id : str
        Owning page.
    name : str
        Model name, unique per page. May not contain ':' because models
        are addressed as "<page_id>:<name>".
    body : str
        Default body template for displays that bring none of their own.
    params : list of Parameter
        Parameters in declaration order.

    Raises
    ------
    ConfigurationError
        On a bad model name or an invalid parameter list. Cycles are not
        checked here; see sorted_names().
    """

    def __init__(self, page_id, name, body="", params=None):
        if not name or ":" in name:
            raise ConfigurationError(
                "RiskModel: invalid model name '{}'".format(name))
        self.page_id = page_id
        self.name = name
        self.body = body or ""
        self.parameters = list(params or [])
        self.params = validate_parameters(
            self.parameters, "RiskModel '{}'".format(name))

    @property
    def key(self):
        """Qualified key: '<page_id>:<name>'."""
        return qualified_key(self.page_id, self.name)

    def sorted_names(self):
        """Evaluation order; raises CycleError for cyclic models."""
        return topological_sort(self.params, model=self.name)

    def sorted_params(self):
        """Parameters as an ordered dict in evaluation order."""
        return sort_parameters(self.params, model=self.name)

    def merged(self, overrides):
        """
        Merge local overrides over the model's parameters and re-sort.

        Model parameters first, then overrides (last write wins per key).
        The merged set is sorted again because overrides may introduce new
        dependencies.
        """
        merged = dict(self.params)
        merged.update(overrides)
        return sort_parameters(merged, model=self.name)

    def external_references(self):
        """Page-state names the body and parameters need."""
        return external_references(self.params, self.body)

    def uses_pagestate(self):
        """True when the body or a parameter reads the whole page state."""
        return refers_to_pagestate(self.params, self.body)

    def to_dict(self):
        return {
            "page_id": self.page_id,
            "name": self.name,
            "body": self.body,
            "params": dict(self.params),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            data["page_id"], data["name"], data.get("body", ""),
            [Parameter(k, v) for k, v in (data.get("params") or {}).items()],
        )

    def __repr__(self):
        return "Model({!r}, {!r}, params={})".format(
            self.page_id, self.name, list(self.params))


def qualified_key(page_id, name):
    return "{}:{}".format(page_id, name)


def split_key(key):
    """Split '<page_id>:<name>' at the last ':'; None if unqualified."""
    page_id, sep, name = key.rpartition(":")
    if not sep or not page_id or not name:
        return None
    return page_id, name
