"""
Batch Resolution Service for RISKI.

Implements the RiskiService interface for the client's display updates.
One request carries every display that needs recomputing; each entry is
resolved independently and a failure affects that entry only.

Endpoints:
    POST /api/resolve - {title, requests: {id: {text, params, pagestate}}}
                        -> {results: {id: html}}

The params of each request are sorted again on arrival; the order of a
JSON object is not kept by every encoder on the way.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging

from flask import jsonify, request

from riski.errors import ValidationError
from riski.services import RiskiService, error_response

log = logging.getLogger(__name__)


class ResolveService(RiskiService):
    """
    Resolves display requests against the template evaluator.

    Parameters
    ----------
    resolver : ParameterResolver
        Shared, stateless resolver.
    """

    id = "resolve"
    name = "Batch Resolution"
    description = "Resolve display templates against page state"
    category = "engine"
    route = "/api/resolve"

    def __init__(self, resolver):
        self.resolver = resolver

    def validate(self, config):
        """Check the envelope; individual entries are checked per id."""
        if not isinstance(config, dict):
            raise ValidationError("invalidrequests", "Request body must be JSON")
        requests = config.get("requests")
        if not isinstance(requests, dict):
            raise ValidationError(
                "invalidrequests", "requests must be an object keyed by id")
        title = config.get("title")
        if title is not None and not isinstance(title, str):
            raise ValidationError("invalidtitle", "title must be a string")
        return {"title": title, "requests": requests}

    def compute(self, config):
        results = self.resolver.resolve_batch(
            config["requests"], title=config["title"])
        log.debug("resolved %d displays for %s", len(results), config["title"])
        return {"results": results}

    def register_routes(self, bp):
        """Register the resolve endpoint on the given blueprint."""
        service = self

        @bp.route("/resolve", methods=["POST"])
        def resolve():
            data = request.get_json(silent=True)
            try:
                config = service.validate(data)
            except ValidationError as e:
                return error_response(e)
            return jsonify(service.compute(config))
