"""
Pytest fixtures for the RISKI test suite.
"""

from concurrent.futures import Future

import pytest

from app import create_app
from data.store import RiskiStore
from riski.evaluator import TemplateEvaluator
from riski.errors import EvaluationError
from riski.pipeline import PageCompiler, create_tag_registry
from riski.resolver import ParameterResolver


class EchoEvaluator(TemplateEvaluator):
    """Returns the substituted text unchanged; 'boom' fails."""

    def __init__(self, wrap=False):
        self.wrap = wrap
        self.calls = []

    def evaluate(self, text, title=None):
        self.calls.append((text, title))
        if "boom" in text:
            raise EvaluationError("cannot evaluate boom")
        if self.wrap:
            return '<div class="mw-parser-output"><p>' + text + "</p></div>"
        return text


class InlineExecutor:
    """Runs submitted work immediately; returns completed futures."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


class DeferredExecutor(InlineExecutor):
    """Holds submitted work until run_all()."""

    def __init__(self):
        super().__init__()
        self.queue = []

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        self.queue.append((fn, args, kwargs))
        return Future()

    def run_all(self):
        queue, self.queue = self.queue, []
        return [fn(*args, **kwargs) for fn, args, kwargs in queue]


@pytest.fixture
def app():
    """Application with the Jinja2 evaluator and the demo pages."""
    app = create_app({"TESTING": True})
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def echo_app():
    """Application with an echoing evaluator and an empty store."""
    return create_app(
        {"TESTING": True, "RISKI_SEED_DEMO": False},
        evaluator=EchoEvaluator(),
    )


@pytest.fixture
def echo_client(echo_app):
    return echo_app.test_client()


@pytest.fixture
def echo():
    return EchoEvaluator()


@pytest.fixture
def resolver(echo):
    return ParameterResolver(echo)


@pytest.fixture
def store():
    return RiskiStore()


@pytest.fixture
def compiler(store):
    return PageCompiler(create_tag_registry(), store)


@pytest.fixture
def inline_executor():
    return InlineExecutor()
