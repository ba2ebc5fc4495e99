"""
Graph widgets: sweep charts that follow page state.

A chart needs every page-state name its model refers to, except the
swept parameter (the chart supplies it) and names fixed by every series.
Until those are set the chart shows what it is waiting for. Once they
are, the relevant subset of page state is compared with the last one
requested; only a change triggers a new /api/graph request. A chart
whose model uses {pagestate} treats every name but the swept one as
relevant. A change of the swept parameter alone therefore never reloads
a chart.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from markupsafe import escape

from riski.config import LOADING_GRAPH_HTML
from riski.errors import TransportError

log = logging.getLogger(__name__)


def waiting_for_html(names):
    return "<p><i>Waiting for: {}</i></p>".format(escape(", ".join(names)))


def graph_error_html(message):
    return '<p class="error">Error: {}</p>'.format(escape(message))


def chart_html(data, chart_type):
    return '<canvas class="RiskGraphCanvas" data-type="{}" data-chart="{}"></canvas>'.format(
        escape(chart_type), escape(json.dumps(data)))


class GraphWidget:
    """
    One chart element and its sweep configuration.

    Parameters
    ----------
    element : Element
        Where the chart goes.
    config : dict
        Manifest entry written by the <riskgraph> tag.
    title : str, optional
        Page context; models are resolved against it.
    """

    def __init__(self, element, config, title=None):
        self.element = element
        self.config = config
        self.title = title
        series = config.get("series") or []
        fixed_everywhere = None
        for definition in series:
            names = set(definition.get("params") or {})
            fixed_everywhere = names if fixed_everywhere is None else (
                fixed_everywhere & names)
        fixed_everywhere = fixed_everywhere or set()
        fixed_everywhere |= set(config.get("fixed") or {})

        self.required = [
            name for name in config.get("externals") or []
            if name != config["swept_param"] and name not in fixed_everywhere
        ]
        self.uses_pagestate = bool(config.get("uses_pagestate"))
        self.snapshot = None
        self.data = None

    @property
    def id(self):
        return self.element.id

    def missing(self, state):
        return [name for name in self.required if name not in state]

    def relevant_state(self, state):
        """Required names, or every name but the swept one for {pagestate} models."""
        if self.uses_pagestate:
            swept = self.config["swept_param"]
            return {k: v for k, v in state.items() if k != swept}
        return {name: state[name] for name in self.required}

    def payload(self, state):
        return {
            "model": self.config["model"],
            "title": self.title,
            "sweptParam": self.config["swept_param"],
            "min": self.config["min"],
            "max": self.config["max"],
            "step": self.config["step"],
            "pagestate": self.relevant_state(state),
            "series": self.config["series"],
        }


class GraphUpdater:
    """
    Keeps the charts of one page in step with page state.

    Parameters
    ----------
    state : PageState
    transport : Transport
        Sends sweeps to /api/graph.
    executor : concurrent.futures.Executor, optional
        Runs transport calls; a private pool is created when omitted.
    """

    def __init__(self, state, transport, executor=None):
        self.state = state
        self.transport = transport
        self._own_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="riski-graph")
        self._widgets = {}
        self._lock = threading.Lock()

    def add(self, widget):
        self._widgets[widget.id] = widget

    def remove(self, element_id):
        self._widgets.pop(element_id, None)

    def widgets(self):
        return list(self._widgets.values())

    def update(self):
        """Check every chart; returns the futures of the requests sent."""
        current = self.state.get_all()
        pending = []
        with self._lock:
            for widget in self._widgets.values():
                missing = widget.missing(current)
                if missing:
                    widget.snapshot = None
                    widget.element.html = waiting_for_html(missing)
                    continue
                payload = widget.payload(current)
                snapshot = json.dumps(payload["pagestate"], sort_keys=True)
                if snapshot == widget.snapshot:
                    continue
                widget.snapshot = snapshot
                widget.element.html = LOADING_GRAPH_HTML
                pending.append((widget, payload))
        return [self.executor.submit(self._fetch, w, p) for w, p in pending]

    def _fetch(self, widget, payload):
        try:
            data = self.transport.graph(payload)
        except TransportError as e:
            log.warning("graph %s failed: %s", widget.id, e)
            with self._lock:
                widget.element.html = graph_error_html(str(e))
                widget.snapshot = None
            return None
        with self._lock:
            widget.data = data
            widget.element.html = chart_html(data, widget.config.get("type", "line"))
        return data

    def shutdown(self):
        if self._own_executor:
            self.executor.shutdown(wait=True)
