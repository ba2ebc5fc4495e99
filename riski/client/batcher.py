"""
Resolution batcher: turns page-state changes into display updates.

On every firing the batcher reads page state once and, for each display:

    required   placeholders of the body and every parameter expression,
               minus the display's own parameter names and {pagestate}
    blocked    some required name is not set: show the fallback HTML
               (or, in debug mode, the list of missing names) and forget
               the last snapshot
    snapshot   {text, params, pagestate: required subset} as JSON; if it
               equals the last one sent nothing happens, otherwise the
               display joins the batch

All displays of one firing that need work go out in one transport call.
They show an interim "Calculating..." until the response arrives; the
response is distributed by element id, and whichever response arrives
last for an id wins. A failed call, or a response with no entry for a
display, marks the display with an error and forgets its snapshot, so the
next state change retries.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from riski.config import CALCULATING_HTML, DISPLAY_ERROR_HTML, PAGESTATE_KEY
from riski.errors import MissingDependencyError, TransportError
from riski.graph import extract_placeholders, refers_to_pagestate
from riski.resolver import error_html

log = logging.getLogger(__name__)


def waiting_html(names):
    """Debug listing of the names a display is waiting on."""
    return "<pre>RiskDisplay waiting on:\n{}</pre>".format("\n".join(names))


def required_names(text, params):
    """Placeholders of text and params that params do not define."""
    defined = set(params) | {PAGESTATE_KEY}
    seen = {}
    for source in [text] + list(params.values()):
        for name in extract_placeholders(source):
            if name not in defined:
                seen.setdefault(name, None)
    return list(seen)


class DisplayWidget:
    """
    One display element and what it resolves.

    Parameters
    ----------
    element : Element
        Where the HTML goes.
    text : str
        Body template.
    params : dict
        Merged parameters in evaluation order.
    fallback : str
        HTML shown while required names are missing.
    """

    def __init__(self, element, text, params, fallback=""):
        self.element = element
        self.text = text
        self.params = dict(params)
        self.fallback = fallback
        self.required = required_names(text, self.params)
        self.uses_pagestate = refers_to_pagestate(self.params, text)
        self.snapshot = None

    @property
    def id(self):
        return self.element.id

    def missing(self, state):
        return [name for name in self.required if name not in state]

    def check(self, state):
        """Raise MissingDependencyError while a required name is unset."""
        missing = self.missing(state)
        if missing:
            raise MissingDependencyError(missing)

    def request(self, state):
        """Resolution request for state; the whole state when {pagestate} is used."""
        if self.uses_pagestate:
            relevant = dict(state)
        else:
            relevant = {name: state[name] for name in self.required}
        return {"text": self.text, "params": self.params, "pagestate": relevant}


class ResolutionBatcher:
    """
    Batches display resolution for one page.

    Parameters
    ----------
    state : PageState
        Source of page state.
    transport : Transport
        Sends the batch to /api/resolve.
    title : str, optional
        Page context sent with every batch.
    executor : concurrent.futures.Executor, optional
        Runs transport calls. A private thread pool is created when
        omitted and shut down by shutdown().
    debug : bool
        List missing names instead of showing fallback HTML.
    """

    def __init__(self, state, transport, title=None, executor=None,
                 debug=False):
        self.state = state
        self.transport = transport
        self.title = title
        self.debug = debug
        self._own_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="riski-resolve")
        self._widgets = {}
        self._lock = threading.Lock()

    def add(self, widget):
        self._widgets[widget.id] = widget

    def remove(self, element_id):
        self._widgets.pop(element_id, None)

    def widgets(self):
        return list(self._widgets.values())

    def update(self):
        """
        One firing: scan every display and send what changed.

        Returns
        -------
        concurrent.futures.Future or None
            The transport call, or None when nothing needed sending.
        """
        current = self.state.get_all()
        batch = {}
        targets = []
        with self._lock:
            for widget in self._widgets.values():
                try:
                    widget.check(current)
                except MissingDependencyError as e:
                    widget.snapshot = None
                    widget.element.html = (
                        waiting_html(e.names) if self.debug else widget.fallback)
                    continue
                request = widget.request(current)
                snapshot = json.dumps(request, sort_keys=True)
                if snapshot == widget.snapshot:
                    continue
                widget.snapshot = snapshot
                batch[widget.id] = request
                targets.append(widget)

            if not batch:
                return None
            for widget in targets:
                widget.element.html = CALCULATING_HTML

        log.debug("resolving %d displays", len(batch))
        return self.executor.submit(self._send, batch, targets)

    def _send(self, batch, targets):
        try:
            results = self.transport.resolve(self.title, batch)
        except TransportError as e:
            log.warning("display update failed for %s: %s",
                        ", ".join(batch), e)
            with self._lock:
                for widget in targets:
                    widget.element.html = error_html(DISPLAY_ERROR_HTML)
                    widget.snapshot = None
            return {}

        with self._lock:
            for element_id, html in results.items():
                widget = self._widgets.get(element_id)
                if widget is not None:
                    widget.element.html = html
            unanswered = [w for w in targets if w.id not in results]
            for widget in unanswered:
                widget.element.html = error_html(DISPLAY_ERROR_HTML)
                widget.snapshot = None
        if unanswered:
            log.warning("no result for %s",
                        ", ".join(w.id for w in unanswered))
        return results

    def shutdown(self):
        if self._own_executor:
            self.executor.shutdown(wait=True)
