"""
Parameter dependency graph and topological sort.

A parameter's expression refers to other values through {name}
placeholders. Only references to parameters of the same map become graph
edges; everything else is external page state, which is always an
already-resolved scalar and never takes part in the cycle check.

Placeholders are single-brace only. A name preceded by "{" or followed
by "}" belongs to a double or triple brace sequence (the evaluator's own
call syntax) and is ignored.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import re
from collections import deque

from riski.config import PAGESTATE_KEY
from riski.errors import CycleError

PLACEHOLDER_PATTERN = re.compile(r"(?<!\{)\{([A-Za-z0-9_]+)\}(?!\})")


def extract_placeholders(text):
    """
    Return the placeholder names used in text.

    Parameters
    ----------
    text : str
        Template or expression text.

    Returns
    -------
    list of str
        Unique names in order of first occurrence.
    """
    if not text:
        return []
    names = {}
    for match in PLACEHOLDER_PATTERN.finditer(text):
        names.setdefault(match.group(1), None)
    return list(names)


def build_dependency_graph(params):
    """
    Build the dependency edges of a parameter map.

    Parameters
    ----------
    params : dict
        Ordered mapping of parameter name to expression.

    Returns
    -------
    tuple of (dict, dict)
        adjacency: dep -> list of dependents, in declaration order.
        in_degree: name -> number of intra-map parameters it references.
    """
    adjacency = {name: [] for name in params}
    in_degree = {name: 0 for name in params}

    for name, expression in params.items():
        for dep in extract_placeholders(expression):
            # A self reference is an edge too; it can never reach zero
            if dep in params:
                adjacency[dep].append(name)
                in_degree[name] += 1

    return adjacency, in_degree


def topological_sort(params, model=None):
    """
    Order parameters so every dependency precedes its dependents.

    Kahn's algorithm with a FIFO queue seeded in declaration order, so
    independent parameters keep the order they were declared in.

    Parameters
    ----------
    params : dict
        Ordered mapping of parameter name to expression.
    model : str, optional
        Model name, used only in the error message.

    Returns
    -------
    list of str
        Evaluation order.

    Raises
    ------
    CycleError
        If the parameters reference each other in a cycle. The error
        names every parameter that could not be ordered.
    """
    adjacency, in_degree = build_dependency_graph(params)
    remaining = dict(in_degree)

    queue = deque(name for name in params if remaining[name] == 0)
    order = []

    while queue:
        name = queue.popleft()
        order.append(name)
        for dependent in adjacency[name]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                queue.append(dependent)

    if len(order) < len(params):
        stuck = [name for name in params if remaining[name] > 0]
        raise CycleError(stuck, model=model)

    return order


def sort_parameters(params, model=None):
    """Return a new dict holding params in evaluation order."""
    return {name: params[name] for name in topological_sort(params, model)}


def external_references(params, body=""):
    """
    Names a body/parameter set needs from page state.

    Placeholders of the body and every expression, minus the parameter
    names themselves and the reserved pagestate pseudo-parameter.
    """
    seen = {}
    for text in [body] + list(params.values()):
        for name in extract_placeholders(text):
            seen.setdefault(name, None)
    return [
        name for name in seen
        if name not in params and name != PAGESTATE_KEY
    ]


def refers_to_pagestate(params, body=""):
    """True when the body or any expression uses the {pagestate} placeholder."""
    return any(
        PAGESTATE_KEY in extract_placeholders(text)
        for text in [body] + list(params.values())
    )
