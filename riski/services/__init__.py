"""
RISKI Service Layer: RiskiService ABC and RiskiRegistry.

Each HTTP-facing part of the engine (batch resolution, graph sweeps,
page and table storage) is a RiskiService registered with the
RiskiRegistry. The registry provides lightweight dependency injection:
services are constructed with their collaborators at app start-up, and
each service owns its own API endpoints, request validation and result
format.

Classes:
    RiskiService  - Abstract base class for all services
    RiskiRegistry - Central lookup container for registered services

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

from abc import ABC, abstractmethod

from flask import jsonify


class RiskiService(ABC):
    """
    Abstract base class for a RISKI service.

    Class Attributes
    ----------------
    id : str
        Unique service identifier (e.g. "resolve", "graph").
    name : str
        Human-readable display name.
    description : str
        One-liner for the service listing.
    category : str
        Grouping: "engine" or "authoring".
    route : str
        Primary API route of the service.
    """

    id = ""
    name = ""
    description = ""
    category = ""
    route = ""

    @abstractmethod
    def validate(self, config):
        """
        Validate a raw request payload and return a normalized config.

        Parameters
        ----------
        config : dict
            Raw request payload.

        Returns
        -------
        dict
            Normalized, validated configuration.

        Raises
        ------
        ValidationError
            If the payload is invalid. ValidationError is a ValueError.
        """

    @abstractmethod
    def compute(self, config):
        """
        Run the service operation and return results.

        Parameters
        ----------
        config : dict
            Validated configuration from validate().

        Returns
        -------
        dict
            JSON-serializable result.
        """

    def register_routes(self, blueprint):
        """
        Mount service-specific API endpoints onto a Flask blueprint.

        Services without endpoints of their own inherit this no-op.

        Parameters
        ----------
        blueprint : flask.Blueprint
            The API blueprint to mount routes on.
        """
        pass

    def metadata(self):
        """
        Return service metadata for the registry listing.

        Returns
        -------
        dict
            Service info: id, name, description, category, route.
        """
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "route": self.route,
        }


class RiskiRegistry:
    """
    Central lookup container for registered RiskiService instances.

    Services register at app start-up. The registry provides lookup by
    id, listing for GET /api/services, and iteration over every service
    for API route mounting.
    """

    def __init__(self):
        self._services = {}

    def register(self, service):
        """
        Register a service instance.

        Raises
        ------
        ValueError
            If a service with the same id is already registered.
        """
        if service.id in self._services:
            raise ValueError(
                "Service '{}' is already registered".format(service.id)
            )
        self._services[service.id] = service

    def get(self, service_id):
        """The service for service_id, or None."""
        return self._services.get(service_id)

    def list_all(self):
        """Metadata for all registered services, in registration order."""
        return [s.metadata() for s in self._services.values()]

    def services(self):
        """All registered services, in registration order."""
        return list(self._services.values())


def error_response(error, status=400):
    """JSON body and status for a ValidationError."""
    return jsonify(error.to_dict()), status
