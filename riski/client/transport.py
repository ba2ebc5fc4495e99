"""
Client transports for the resolution and graph APIs.

HttpTransport talks to a running server with urllib.request.
AppTransport calls a Flask app in-process through its test client, so
a PageSession can drive a real application without a network.

Both raise TransportError for anything other than a successful JSON
response; the caller scopes the failure to the widgets of that call.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import json
import urllib.error
import urllib.request
from abc import ABC, abstractmethod

from riski.errors import TransportError


class Transport(ABC):
    """POSTs JSON to the RISKI API."""

    @abstractmethod
    def post(self, path, payload):
        """
        POST payload to path (e.g. "/api/resolve").

        Returns
        -------
        dict
            Decoded JSON response.

        Raises
        ------
        TransportError
            On connection failure, an error status or a non-JSON body.
        """

    def resolve(self, title, requests):
        """Batch resolution: element id -> html."""
        data = self.post("/api/resolve", {"title": title, "requests": requests})
        if not isinstance(data, dict):
            raise TransportError("resolve response is not an object")
        results = data.get("results")
        if not isinstance(results, dict):
            raise TransportError("resolve response has no results")
        return results

    def graph(self, payload):
        """Sweep request: {labels, datasets}."""
        data = self.post("/api/graph", payload)
        if not isinstance(data, dict) or not isinstance(data.get("labels"), list):
            raise TransportError("graph response has no labels")
        return data


def _error_message(status, body):
    try:
        return json.loads(body).get("error") or "HTTP {}".format(status)
    except (ValueError, AttributeError):
        return "HTTP {}".format(status)


class HttpTransport(Transport):
    """
    Transport over HTTP.

    Parameters
    ----------
    base_url : str
        Server root, e.g. "http://localhost:5000".
    timeout : float
        Socket timeout in seconds.
    """

    def __init__(self, base_url, timeout=15):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def post(self, path, payload):
        req = urllib.request.Request(
            self.base_url + path,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise TransportError(_error_message(e.code, body)) from e
        except (urllib.error.URLError, OSError) as e:
            raise TransportError("request to {} failed: {}".format(path, e)) from e
        try:
            return json.loads(body)
        except ValueError as e:
            raise TransportError("invalid JSON from {}".format(path)) from e


class AppTransport(Transport):
    """
    Transport through a Flask test client.

    Parameters
    ----------
    client : flask.testing.FlaskClient
    """

    def __init__(self, client):
        self.client = client

    def post(self, path, payload):
        resp = self.client.post(path, json=payload)
        if resp.status_code != 200:
            raise TransportError(
                _error_message(resp.status_code, resp.get_data(as_text=True)))
        data = resp.get_json(silent=True)
        if data is None:
            raise TransportError("invalid JSON from {}".format(path))
        return data
