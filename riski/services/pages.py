"""
Page and Table Service for RISKI.

Implements the RiskiService interface for page authoring. Saving a page
compiles it and replaces the page's models wholesale; deleting a page
deletes its models with it. Tables back <dropdown> and
<riskdatalookup> tags.

Endpoints:
    PUT    /api/pages/<page>          - save page source {"source": "..."}
    GET    /api/pages/<page>          - page source and model names
    DELETE /api/pages/<page>          - delete page and its models
    GET    /api/pages/<page>/render   - compile: {html, widgets, ...}
                                        (?debug=1 for debug output)
    GET    /api/models/<page>/<name>  - one model with its evaluation order
    PUT    /api/tables/<title>        - store rows {"rows": [{...}, ...]}
    GET    /api/tables/<title>        - table rows

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging

from flask import jsonify, request

from riski.errors import CycleError, ValidationError
from riski.services import RiskiService, error_response
from riski.text import is_scalar

log = logging.getLogger(__name__)


def _truthy(value):
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


class PageService(RiskiService):
    """
    Page storage and compilation.

    Parameters
    ----------
    store : RiskiStore
        Page, model and table storage.
    compiler : PageCompiler
        Two-pass compiler bound to the same store.
    debug : bool, optional
        Render with debug output unless a request says otherwise.
    """

    id = "pages"
    name = "Pages"
    description = "Store, compile and render pages with RISKI tags"
    category = "authoring"
    route = "/api/pages"

    def __init__(self, store, compiler, debug=False):
        self.store = store
        self.compiler = compiler
        self.debug = debug

    def validate(self, config):
        """Validate a page save payload."""
        if not isinstance(config, dict):
            raise ValidationError("invalid-request", "Request body must be JSON")
        page_id = config.get("page")
        if not isinstance(page_id, str) or not page_id.strip():
            raise ValidationError("invalid-page", "page is required")
        source = config.get("source")
        if not isinstance(source, str):
            raise ValidationError("invalid-source", "source must be a string")
        return {"page": page_id.strip(), "source": source}

    def compute(self, config):
        """Save a page: compile it, store the source and its models."""
        return self.save_page(config["page"], config["source"])

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def save_page(self, page_id, source):
        compiled = self.compiler.compile(page_id, source)
        self.store.save_page(page_id, source)
        self.store.replace_models(page_id, compiled.models)
        log.info("saved page %s with %d models", page_id, len(compiled.models))
        return {"page": page_id, "models": [m.name for m in compiled.models]}

    def render_page(self, page_id, debug=None):
        """CompiledPage for a stored page, or None if there is no such page."""
        source = self.store.get_page(page_id)
        if source is None:
            return None
        if debug is None:
            debug = self.debug
        return self.compiler.compile(page_id, source, debug=debug)

    def describe_model(self, page_id, name):
        """Model dict plus its evaluation order (or the cycle), or None."""
        model = self.store.get_model(page_id, name)
        if model is None:
            return None
        result = model.to_dict()
        result["externals"] = model.external_references()
        try:
            result["order"] = model.sorted_names()
        except CycleError as e:
            result["order"] = None
            result["error"] = str(e)
            result["cycle"] = e.names
        return result

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def validate_table(self, config):
        """Rows must be a list of objects with scalar values and at least one column."""
        rows = config.get("rows") if isinstance(config, dict) else None
        if not isinstance(rows, list):
            raise ValidationError("invalid-table", "rows must be an array")
        for i, row in enumerate(rows):
            if not isinstance(row, dict) or not row:
                raise ValidationError(
                    "invalid-table", "Row {}: must be a non-empty object".format(i))
            if not all(is_scalar(v) for v in row.values()):
                raise ValidationError(
                    "invalid-table", "Row {}: values must be scalars".format(i))
        return rows

    def register_routes(self, bp):
        """Register page, model and table endpoints on the given blueprint."""
        service = self

        @bp.route("/pages/<path:page_id>", methods=["PUT"])
        def save_page(page_id):
            data = request.get_json(silent=True)
            if isinstance(data, dict):
                data = dict(data, page=page_id)
            try:
                config = service.validate(data)
            except ValidationError as e:
                return error_response(e)
            return jsonify(service.compute(config))

        @bp.route("/pages/<path:page_id>", methods=["GET"])
        def get_page(page_id):
            source = service.store.get_page(page_id)
            if source is None:
                return jsonify({"error": "Page not found"}), 404
            return jsonify({
                "page": page_id,
                "source": source,
                "models": [m.name for m in service.store.models_for(page_id)],
            })

        @bp.route("/pages/<path:page_id>", methods=["DELETE"])
        def delete_page(page_id):
            if not service.store.delete_page(page_id):
                return jsonify({"error": "Page not found"}), 404
            log.info("deleted page %s", page_id)
            return jsonify({"page": page_id, "deleted": True})

        @bp.route("/pages/<path:page_id>/render", methods=["GET"])
        def render_page(page_id):
            debug = None
            if "debug" in request.args:
                debug = _truthy(request.args.get("debug"))
            compiled = service.render_page(page_id, debug=debug)
            if compiled is None:
                return jsonify({"error": "Page not found"}), 404
            return jsonify(compiled.to_dict())

        @bp.route("/models/<path:page_id>/<name>", methods=["GET"])
        def get_model(page_id, name):
            result = service.describe_model(page_id, name)
            if result is None:
                return jsonify({"error": "Model not found"}), 404
            return jsonify(result)

        @bp.route("/tables/<path:title>", methods=["PUT"])
        def put_table(title):
            try:
                rows = service.validate_table(request.get_json(silent=True))
            except ValidationError as e:
                return error_response(e)
            service.store.put_table(title, rows)
            return jsonify({"title": title, "rows": len(rows)})

        @bp.route("/tables/<path:title>", methods=["GET"])
        def get_table(title):
            rows = service.store.get_table(title)
            if rows is None:
                return jsonify({"error": "Table not found"}), 404
            return jsonify({"title": title, "rows": rows})
