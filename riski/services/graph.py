"""
Graph Sweep Service for RISKI.

Implements the RiskiService interface for <riskgraph> charts: one model
is evaluated across a range of one input and returned in Chart.js
format.

Endpoints:
    POST /api/graph - sweep a model

Request JSON:
{
    "model": "Driving",          // reference, resolved against title
    "title": "Risks",            // page context
    "sweptParam": "miles",
    "min": 0, "max": 50000, "step": 5000,
    "pagestate": {...},          // optional
    "series": [...]              // or "yAxis": "{risk}"
}

Response JSON:
{
    "labels": [...],
    "datasets": [{"label", "data", "color"?, ...}]
}

Errors are {"error": message, "code": code} with status 400, or 404 for
model-not-found.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging
import math

from flask import jsonify, request

from riski.errors import CycleError, EvaluationError, ValidationError
from riski.registry import find_stored_model
from riski.services import RiskiService, error_response
from riski.sweep import parse_series, validate_series_definitions
from riski.text import is_scalar

log = logging.getLogger(__name__)


def _number(config, key):
    value = config.get(key)
    if isinstance(value, bool):
        value = None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            "invalid-number", "{} must be a number".format(key))
    if not math.isfinite(number):
        raise ValidationError(
            "invalid-number", "{} must be a finite number".format(key))
    return number


class GraphService(RiskiService):
    """
    Model sweeps for charts.

    Parameters
    ----------
    store : RiskiStore
        Where models are looked up.
    sweeper : GraphSweepEvaluator
        Runs the sweep.
    """

    id = "graph"
    name = "Graph Sweeps"
    description = "Evaluate a model across a range of one input"
    category = "engine"
    route = "/api/graph"

    def __init__(self, store, sweeper):
        self.store = store
        self.sweeper = sweeper

    def validate(self, config):
        """Validate a sweep request payload."""
        if not isinstance(config, dict):
            raise ValidationError("invalid-request", "Request body must be JSON")

        reference = config.get("model")
        if not isinstance(reference, str) or not reference.strip():
            raise ValidationError("missing-model", "model is required")
        swept = config.get("sweptParam")
        if not isinstance(swept, str) or not swept.strip():
            raise ValidationError("missing-param", "sweptParam is required")
        title = config.get("title")
        if title is not None and not isinstance(title, str):
            raise ValidationError("invalidtitle", "title must be a string")

        pagestate = config.get("pagestate") or {}
        if not isinstance(pagestate, dict) or not all(
                is_scalar(v) for v in pagestate.values()):
            raise ValidationError(
                "invalid-pagestate",
                "pagestate must be an object of scalar values")

        if config.get("series") is not None:
            series = parse_series(config["series"])
        elif config.get("yAxis"):
            series = [{"label": config.get("label") or str(config["yAxis"]),
                       "yaxis": config["yAxis"]}]
        else:
            raise ValidationError(
                "missing-yaxis", "Either series or yAxis is required")
        validate_series_definitions(series)

        return {
            "model": reference.strip(),
            "title": title,
            "swept_param": swept.strip(),
            "min": _number(config, "min"),
            "max": _number(config, "max"),
            "step": _number(config, "step"),
            "pagestate": pagestate,
            "series": series,
        }

    def find_model(self, config):
        """
        The model the request refers to.

        Raises
        ------
        ValidationError
            model-not-found.
        """
        if config["title"]:
            model = find_stored_model(
                self.store, config["model"], config["title"])
        else:
            model = self.store.find_model(config["model"])
        if model is None:
            raise ValidationError(
                "model-not-found",
                "RiskModel '{}' not found".format(config["model"]))
        return model

    def compute(self, config):
        model = self.find_model(config)
        return self.sweeper.evaluate(
            model,
            config["swept_param"],
            config["min"],
            config["max"],
            config["step"],
            pagestate=config["pagestate"],
            series=config["series"],
            title=config["title"],
        )

    def register_routes(self, bp):
        """Register the graph endpoint on the given blueprint."""
        service = self

        @bp.route("/graph", methods=["POST"])
        def graph():
            data = request.get_json(silent=True)
            try:
                config = service.validate(data)
                result = service.compute(config)
            except ValidationError as e:
                status = 404 if e.code == "model-not-found" else 400
                log.warning("graph request rejected: %s (%s)", e, e.code)
                return error_response(e, status)
            except CycleError as e:
                return jsonify({"error": str(e), "code": "cycle"}), 400
            except EvaluationError as e:
                log.warning("graph evaluation failed: %s", e)
                return jsonify({"error": str(e), "code": "evaluation-error"}), 400
            return jsonify(result)
