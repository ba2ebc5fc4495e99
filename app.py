"""
RISKI - Reactive risk models for authored pages
Flask application factory.

Serves rendered pages (Jinja2 templates) and the REST API used by the
client runtime: batch resolution, graph sweeps, and page/table storage,
via registered RiskiService instances.

Usage:
    python app.py              # Development server on http://localhost:5000
    flask run                  # Same, via Flask CLI
"""

import logging

from flask import Flask, abort, render_template, request

from data.demo_pages import seed_demo
from data.store import RiskiStore
from riski import __version__
from riski.config import DEFAULT_CONFIG
from riski.evaluator import JinjaEvaluator
from riski.pipeline import PageCompiler, create_tag_registry
from riski.resolver import ParameterResolver
from riski.services import RiskiRegistry
from riski.services.graph import GraphService
from riski.services.pages import PageService
from riski.services.resolve import ResolveService
from riski.sweep import GraphSweepEvaluator

log = logging.getLogger(__name__)


def create_registry(store, evaluator, config):
    """Build and populate the service registry."""
    resolver = ParameterResolver(evaluator)
    sweeper = GraphSweepEvaluator(
        resolver, timeout=config["RISKI_SWEEP_TIMEOUT"])
    compiler = PageCompiler(create_tag_registry(), store)

    registry = RiskiRegistry()
    registry.register(ResolveService(resolver))
    registry.register(GraphService(store, sweeper))
    registry.register(PageService(store, compiler, debug=config["RISKI_DEBUG"]))
    return registry


def create_app(config=None, evaluator=None, store=None):
    """
    Application factory for the RISKI Flask app.

    Parameters
    ----------
    config : dict, optional
        Overrides applied on top of DEFAULT_CONFIG.
    evaluator : TemplateEvaluator, optional
        Defaults to the sandboxed Jinja2 evaluator.
    store : RiskiStore, optional
        Defaults to a fresh in-memory store.
    """
    app = Flask(
        __name__,
        static_folder="static",
        template_folder="templates",
    )
    app.config.update(DEFAULT_CONFIG)
    app.config.update(config or {})

    # Make app version available to all templates
    @app.context_processor
    def inject_version():
        return {"version": __version__}

    store = store if store is not None else RiskiStore()
    evaluator = evaluator if evaluator is not None else JinjaEvaluator()
    registry = create_registry(store, evaluator, app.config)
    pages = registry.get("pages")

    if app.config["RISKI_SEED_DEMO"]:
        seed_demo(pages)

    app.extensions["riski"] = {"store": store, "registry": registry}

    # Create and register API blueprint (shared + service-owned routes)
    from api.routes import create_api_blueprint
    api = create_api_blueprint(registry)
    app.register_blueprint(api)

    # Page index
    @app.route("/")
    def home():
        return render_template(
            "home.html",
            pages=sorted(store.list_pages()),
            services=registry.list_all(),
        )

    # Rendered page with its widget manifest for the client runtime
    @app.route("/page/<path:page_id>")
    def page(page_id):
        debug = None
        if "debug" in request.args:
            debug = request.args.get("debug", "").strip().lower() in (
                "1", "true", "yes", "on")
        compiled = pages.render_page(page_id, debug=debug)
        if compiled is None:
            abort(404)
        return render_template("page.html", page=compiled)

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    app.run(debug=True, host="127.0.0.1", port=5000)
