"""
<riskdisplay>: a reactive display of one model.

    <riskdisplay model="Driving" data-miles="20000">
      {risk}
      <pending>Choose a vehicle first.</pending>
    </riskdisplay>

The display's data-* attributes are local overrides merged over the
model's parameters (last write wins) and re-sorted. The body, minus the
<pending> block, is the template sent for resolution; when it is blank
the model's own body is used. The <pending> block is the fallback HTML
shown while required page state is missing.

The model attribute is optional: a display without one resolves only
its local parameters.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import re

from riski.graph import sort_parameters
from riski.model import Parameter, validate_parameters
from riski.tags import DEFERRED, TagHandler, html_attrs

PENDING_PATTERN = re.compile(r"<pending\s*>(.*?)</pending\s*>",
                             re.IGNORECASE | re.DOTALL)


def split_pending(body):
    """Return (template, fallback_html) from a display body."""
    match = PENDING_PATTERN.search(body)
    if match is None:
        return body.strip(), ""
    template = body[:match.start()] + body[match.end():]
    return template.strip(), match.group(1).strip()


class RiskDisplayTag(TagHandler):
    """Reserves a display element and records what it must resolve."""

    name = "riskdisplay"
    phase = DEFERRED

    def render(self, node, ctx):
        local = validate_parameters(
            [Parameter(k, v) for k, v in node.data_attrs().items()],
            "RiskDisplay")
        template, fallback = split_pending(node.body)

        reference = (node.get("model") or "").strip()
        if reference:
            model = ctx.registry.lookup(reference)
            params = model.merged(local)
            if not template:
                template = model.body
            model_key = model.key
        else:
            params = sort_parameters(local, model="RiskDisplay")
            model_key = None

        element_id = ctx.next_id("riskdisplay")
        ctx.add_widget({
            "kind": "display",
            "id": element_id,
            "model": model_key,
            "text": template,
            "params": params,
            "fallback": fallback,
        })
        return "<div {}>{}</div>".format(html_attrs({
            "class": "RiskiUI RiskDisplay",
            "id": element_id,
            "data-model": model_key,
        }), fallback)
