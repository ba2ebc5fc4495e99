"""
Parameter sweeps for charts.

One model parameter (or page-state input) is swept over an inclusive
numeric range and the model is resolved at every point, once per series.
The y value of a series is one resolved parameter, with markup stripped
and parsed as a float.

The whole request either succeeds or fails: bad bounds, malformed
series, a missing or non-numeric y value, or running out of time all
raise and no partial series is returned.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import json
import logging
import math
import time

from riski.config import MAX_DATA_POINTS, MAX_SERIES, SWEEP_TIMEOUT_SECONDS
from riski.errors import SweepError, ValidationError
from riski.text import format_scalar, strip_tags

log = logging.getLogger(__name__)


def generate_parameter_sweep(min_value, max_value, step):
    """
    Values from min_value to max_value inclusive, step apart.

    Both endpoints appear exactly: if float drift leaves the final value
    within step/1000 of max_value, it is replaced by max_value.

    Raises
    ------
    ValidationError
        If min_value >= max_value, step <= 0, step > max_value - min_value,
        or more than MAX_DATA_POINTS values would be produced.
    """
    if min_value >= max_value:
        raise ValidationError(
            "invalid-range", "Minimum value must be less than maximum value")
    if step <= 0:
        raise ValidationError("invalid-step", "Step size must be positive")

    value_range = max_value - min_value
    if step > value_range:
        raise ValidationError(
            "invalid-step", "Step size cannot be larger than range")

    projected = math.floor(value_range / step) + 1
    if projected > MAX_DATA_POINTS:
        raise ValidationError(
            "too-many-points",
            "Too many data points would be generated ({}). Maximum is {}. "
            "Increase step size.".format(projected, MAX_DATA_POINTS))

    epsilon = step / 1000.0
    values = []
    current = min_value
    while current <= max_value + epsilon:
        values.append(current)
        current += step

    if abs(values[-1] - max_value) < epsilon and values[-1] != max_value:
        values[-1] = max_value

    return values


def parse_series(raw):
    """
    Decode a series definition list (JSON text or an already decoded list).

    Raises
    ------
    ValidationError
        If the value is not valid JSON, not a list, or empty.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ValidationError("invalid-series", "Series must be valid JSON")
    if not isinstance(raw, list):
        raise ValidationError("invalid-series", "Series must be an array")
    if not raw:
        raise ValidationError("invalid-series", "Series array cannot be empty")
    return raw


def validate_series_definitions(series):
    """
    Check each series has a label and a y-axis, and that there are not
    too many. Returns True.
    """
    if len(series) > MAX_SERIES:
        raise ValidationError(
            "too-many-series", "Maximum {} series allowed".format(MAX_SERIES))
    for i, definition in enumerate(series):
        if not isinstance(definition, dict):
            raise ValidationError(
                "invalid-series", "Series {}: must be an object".format(i))
        for field in ("label", "yaxis"):
            if not definition.get(field):
                raise ValidationError(
                    "invalid-series",
                    'Series {}: missing required field "{}"'.format(i, field))
        params = definition.get("params")
        if params is not None and not isinstance(params, dict):
            raise ValidationError(
                "invalid-series",
                'Series {}: "params" must be an object'.format(i))
    return True


def format_graph_data(labels, data, series_label):
    """Chart.js data for a single series."""
    if len(labels) != len(data):
        raise ValidationError(
            "invalid-data", "Labels and data must have the same length")
    return {
        "labels": list(labels),
        "datasets": [{"label": series_label, "data": list(data)}],
    }


def format_multi_series_data(labels, series_data):
    """
    Chart.js data for several series.

    Each entry of series_data is {"label", "data", "color"}. A series with
    a color gets color, borderColor and backgroundColor; one without gets
    none of them.
    """
    datasets = []
    for entry in series_data:
        if len(entry["data"]) != len(labels):
            raise ValidationError(
                "invalid-data",
                'Series "{}": data length ({}) must match labels length '
                '({})'.format(entry["label"], len(entry["data"]), len(labels)))
        dataset = {"label": entry["label"], "data": list(entry["data"])}
        color = entry.get("color")
        if color:
            dataset["color"] = color
            dataset["borderColor"] = color
            dataset["backgroundColor"] = color
        datasets.append(dataset)
    return {"labels": list(labels), "datasets": datasets}


def y_axis_name(yaxis):
    """'{risk}' -> 'risk'."""
    return str(yaxis).strip().strip("{}").strip()


def parse_y_value(raw):
    """Strip markup and parse a float; None when absent or non-numeric."""
    if raw is None:
        return None
    try:
        value = float(strip_tags(raw).strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


class GraphSweepEvaluator:
    """
    Evaluates a model across a range of one input.

    Parameters
    ----------
    resolver : ParameterResolver
        Resolves the model at each point.
    timeout : float, optional
        Wall-clock budget in seconds for one sweep.
    clock : callable, optional
        Monotonic clock, injectable for tests.
    """

    def __init__(self, resolver, timeout=SWEEP_TIMEOUT_SECONDS,
                 clock=time.monotonic):
        self.resolver = resolver
        self.timeout = float(timeout)
        self.clock = clock

    def evaluate(self, model, swept_param, min_value, max_value, step,
                 pagestate=None, series=None, title=None):
        """
        Run the sweep.

        Parameters
        ----------
        model : Model
            The model to evaluate.
        swept_param : str
            Name set to each x value.
        min_value, max_value, step : float
            Inclusive range and step.
        pagestate : dict, optional
            Shared page state for every point.
        series : list of dict
            Validated series definitions {label, yaxis, params?, color?}.
        title : str, optional
            Page context for the evaluator.

        Returns
        -------
        dict
            {"labels": [...], "datasets": [...]}.

        Raises
        ------
        CycleError
            If the model's parameters are cyclic.
        SweepError
            On a missing or non-numeric y value, or on timeout.
        """
        xs = generate_parameter_sweep(min_value, max_value, step)
        sorted_params = model.sorted_params()
        pagestate = dict(pagestate or {})
        deadline = self.clock() + self.timeout

        ys = [[] for _ in series]
        for x in xs:
            for i, definition in enumerate(series):
                if self.clock() > deadline:
                    raise SweepError(
                        "timeout",
                        "Graph calculation exceeded {:g} seconds".format(
                            self.timeout))
                snapshot = dict(pagestate)
                snapshot.update(definition.get("params") or {})
                snapshot[swept_param] = x

                resolved = self.resolver.resolve_parameters(
                    sorted_params, snapshot, title=title)
                name = y_axis_name(definition["yaxis"])
                value = parse_y_value(resolved.get(name))
                if value is None:
                    raise SweepError(
                        "missing-variable",
                        'Series "{}": variable {} not found or not numeric '
                        "at {}={}".format(definition["label"], name,
                                          swept_param, format_scalar(x)))
                ys[i].append(value)

        log.debug("swept %s over %d points for %d series",
                  swept_param, len(xs), len(series))
        return format_multi_series_data(xs, [
            {"label": d["label"], "data": ys[i], "color": d.get("color")}
            for i, d in enumerate(series)
        ])
