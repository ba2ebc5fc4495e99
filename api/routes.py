"""
Flask API blueprint for RISKI.

Shared endpoints:
  GET  /api/services             - list registered services

Every service mounts its own endpoints on the same blueprint (see
riski/services/*): /api/resolve, /api/graph, /api/pages/..., /api/models/...,
/api/tables/...
"""

from flask import Blueprint, jsonify


def create_api_blueprint(registry):
    """
    Build the /api blueprint with shared and service-owned routes.

    Parameters
    ----------
    registry : RiskiRegistry
        Populated service registry.

    Returns
    -------
    flask.Blueprint
    """
    api = Blueprint("api", __name__, url_prefix="/api")

    @api.route("/services", methods=["GET"])
    def list_services():
        """Return metadata for every registered service."""
        return jsonify(registry.list_all())

    for service in registry.services():
        service.register_routes(api)

    return api
