"""
<riskmodel> and <riskparameter>: the declaration tags.

    <riskmodel name="Driving" data-miles="{miles_per_year}"
               data-risk="{{ {miles} * 1.5e-8 }}">
      Chance of dying: {risk}
    </riskmodel>

Each data-* attribute is one parameter, in source order. The tag body
is the model's default display body. Both tags render during pass 1;
the model tag renders nothing visible.

    <riskparameter>
    miles_per_year=12000
    </riskparameter>

Each key=value line becomes initial page state for the client.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

from riski.model import Model, Parameter
from riski.tags import INLINE, TagHandler, html_attrs, require


class RiskModelTag(TagHandler):
    """Declares a model and registers it with the page registry."""

    name = "riskmodel"
    phase = INLINE

    def render(self, node, ctx):
        model_name = require(node, "name", "RiskModel")
        params = [Parameter(k, v) for k, v in node.data_attrs().items()]
        model = Model(ctx.page_id, model_name, node.body.strip(), params)
        ctx.registry.register(model)
        # Registered before the cycle check; consumers report the cycle too
        model.sorted_names()
        return ""


def parse_parameter_lines(text):
    """
    Parse key=value lines.

    Blank lines and lines without '=' are skipped. Keys are trimmed;
    values are kept as written after the first '='.
    """
    values = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        values[key] = value
    return values


class RiskParameterTag(TagHandler):
    """Initial page-state values for the client."""

    name = "riskparameter"
    phase = INLINE

    def render(self, node, ctx):
        values = parse_parameter_lines(node.body)
        element_id = ctx.next_id("riskparameter")
        ctx.add_widget({"kind": "parameter", "id": element_id,
                        "values": values})
        return "<span {} hidden></span>".format(html_attrs({
            "class": "RiskiUI RiskParameter",
            "id": element_id,
        }))
