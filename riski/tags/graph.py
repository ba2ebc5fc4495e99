"""
<riskgraph>: a chart of one model swept over one input.

    <riskgraph model="Driving" type="line" data-age="30">
    x-axis: miles_per_year
    x-min: 0
    x-max: 50000
    x-step: 5000
    y-axis: {risk}
    title: Risk by annual mileage
    x-label: Miles per year
    y-label: Risk
    </riskgraph>

Several series may be given instead of y-axis, one per line:

    series: Car | {car_risk} | #ff0000 | occupancy=1, speed=60

label, y-axis, optional color and optional fixed parameters, separated
by '|'. data-* attributes on the tag are fixed parameters shared by
every series.

The element carries its configuration as data-* attributes; the client
requests the sweep from /api/graph once every input the model needs is
set. The model itself is looked up when the sweep runs, so an unknown
model is reported by the chart, not the page.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import hashlib

from riski.errors import ConfigurationError
from riski.tags import DEFERRED, TagHandler, html_attrs, require
from riski.tags.model import parse_parameter_lines

REQUIRED_KEYS = ("x-axis", "x-min", "x-max", "x-step")
NUMERIC_KEYS = ("x-min", "x-max", "x-step")

# Attributes written by the tag itself; custom data-* may not shadow them
RESERVED_DATA = {
    "model", "type", "swept-param", "x-min", "x-max", "x-step", "y-axis",
    "title", "x-label", "y-label", "series",
}


def parse_graph_body(body):
    """
    Parse 'key: value' lines into (config, series_lines).

    Keys are lower-cased. 'series' may repeat; every other key keeps its
    last value.
    """
    config = {}
    series = []
    for line in body.splitlines():
        key, sep, value = line.partition(":")
        key = key.strip().lower()
        if not sep or not key:
            continue
        if key == "series":
            series.append(value.strip())
        else:
            config[key] = value.strip()
    return config, series


def parse_series_line(line):
    """
    'Label | {yaxis} | color | k=v, k2=v2' -> series definition dict.

    Raises
    ------
    ConfigurationError
        If the label or y-axis is missing.
    """
    parts = [p.strip() for p in line.split("|")]
    while len(parts) < 4:
        parts.append("")
    label, yaxis, color, params = parts[:4]
    if not label or not yaxis:
        raise ConfigurationError(
            "RiskGraph: series needs a label and a y-axis: '{}'".format(line))
    definition = {"label": label, "yaxis": yaxis}
    if color:
        definition["color"] = color
    fixed = parse_parameter_lines(params.replace(",", "\n"))
    if fixed:
        definition["params"] = {k: v.strip() for k, v in fixed.items()}
    return definition


def graph_id(page_id, index, body):
    digest = hashlib.sha1(
        "{}\n{}\n{}".format(page_id, index, body).encode("utf-8")).hexdigest()
    return "riskgraph-" + digest[:12]


class RiskGraphTag(TagHandler):
    """Reserves a chart element and records its sweep configuration."""

    name = "riskgraph"
    phase = DEFERRED

    def render(self, node, ctx):
        reference = require(node, "model", "RiskGraph")
        chart_type = (node.get("type") or "line").strip() or "line"
        config, series_lines = parse_graph_body(node.body)

        missing = [k for k in REQUIRED_KEYS if not config.get(k)]
        if missing:
            raise ConfigurationError(
                "RiskGraph: missing x-axis configuration: {}".format(
                    ", ".join(missing)))
        numbers = {}
        for key in NUMERIC_KEYS:
            try:
                numbers[key] = float(config[key])
            except ValueError:
                raise ConfigurationError(
                    "RiskGraph: {} must be a number, got '{}'".format(
                        key, config[key]))

        fixed = node.data_attrs()
        if series_lines:
            series = [parse_series_line(line) for line in series_lines]
        elif config.get("y-axis"):
            series = [{
                "label": config.get("title") or config.get("y-label")
                or config["y-axis"],
                "yaxis": config["y-axis"],
            }]
        else:
            raise ConfigurationError(
                "RiskGraph: missing y-axis or series configuration")
        for definition in series:
            params = dict(fixed)
            params.update(definition.get("params", {}))
            definition["params"] = params

        model = ctx.registry.find(reference)
        externals = model.external_references() if model is not None else []
        uses_pagestate = model is not None and model.uses_pagestate()

        element_id = graph_id(ctx.page_id, ctx.next_index("riskgraph"),
                              node.body)
        ctx.add_widget({
            "kind": "graph",
            "id": element_id,
            "model": reference,
            "type": chart_type,
            "swept_param": config["x-axis"],
            "min": numbers["x-min"],
            "max": numbers["x-max"],
            "step": numbers["x-step"],
            "series": series,
            "fixed": fixed,
            "externals": externals,
            "uses_pagestate": uses_pagestate,
            "title": config.get("title", ""),
            "x_label": config.get("x-label", ""),
            "y_label": config.get("y-label", ""),
        })

        attrs = {
            "class": "RiskiUI RiskGraph",
            "id": element_id,
            "data-model": reference,
            "data-type": chart_type,
            "data-swept-param": config["x-axis"],
            "data-x-min": config["x-min"],
            "data-x-max": config["x-max"],
            "data-x-step": config["x-step"],
            "data-y-axis": config.get("y-axis"),
            "data-title": config.get("title"),
            "data-x-label": config.get("x-label"),
            "data-y-label": config.get("y-label"),
        }
        for key, value in fixed.items():
            if key not in RESERVED_DATA:
                attrs["data-" + key] = value
        return "<div {}></div>".format(html_attrs(attrs))
