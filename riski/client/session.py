"""
PageSession: the client runtime for one open page.

A session is the per-document context everything else hangs off: the
page state, the document tree, the removal observer, the display
batcher and the chart updater. Nothing is global, so several pages can
be open at once.

Opening a session:

    1. build the document from the compiled page's widget manifest
    2. copy the URL fragment into page state as user choices
    3. apply initial parameters, lookups and dropdown defaults (values
       already chosen in the fragment are kept)
    4. connect the removal observer and subscribe the widgets
    5. run the first update

Closing it unsubscribes, disconnects and shuts down its executors.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging
from urllib.parse import quote

from riski.client.batcher import DisplayWidget, ResolutionBatcher
from riski.client.document import Document, Element, RemovalObserver
from riski.client.graph import GraphUpdater, GraphWidget
from riski.client.pagestate import Location, PageState
from riski.config import MANAGED_KEYS_ATTR
from riski.errors import ConfigurationError
from riski.tags import managed_keys_value

log = logging.getLogger(__name__)

ELEMENT_TAGS = {
    "parameter": "span",
    "lookup": "span",
    "dropdown": "select",
    "display": "div",
    "graph": "div",
}


class PageSession:
    """
    Client runtime for one compiled page.

    Parameters
    ----------
    compiled : CompiledPage
        Page HTML and widget manifest.
    transport : Transport
        Reaches /api/resolve and /api/graph.
    url : str, optional
        Page URL, fragment included.
    executor : concurrent.futures.Executor, optional
        Shared by the batcher and the chart updater.
    debug : bool, optional
        Defaults to the compiled page's debug flag.
    """

    def __init__(self, compiled, transport, url=None, executor=None,
                 debug=None):
        self.page = compiled
        self.title = compiled.page_id
        if url is None:
            url = "http://localhost/page/" + quote(compiled.page_id)
        self.state = PageState(Location(url))
        self.document = Document()
        self.observer = RemovalObserver(self.state)
        if debug is None:
            debug = compiled.debug
        self.batcher = ResolutionBatcher(
            self.state, transport, title=self.title, executor=executor,
            debug=debug)
        self.graphs = GraphUpdater(self.state, transport, executor=executor)
        self.dropdowns = {}
        self._unsubscribe = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self):
        """Build the page, apply initial state and run the first update."""
        initial, lookups, defaults = self._build()
        self.state.load_from_hash()
        self._apply(initial)
        self._apply(lookups)
        self._apply(defaults)

        self.observer.connect(self.document)
        self._unsubscribe = self.state.subscribe(self._on_change)
        self.update()
        return self

    def close(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.observer.disconnect()
        self.batcher.shutdown()
        self.graphs.shutdown()

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _build(self):
        initial, lookups, defaults = {}, {}, {}
        for widget in self.page.widgets:
            kind = widget.get("kind")
            element = Element(ELEMENT_TAGS.get(kind, "div"), id=widget.get("id"))
            self.document.append(element)

            if kind == "parameter":
                initial.update(widget["values"])
            elif kind == "lookup":
                element.attrs[MANAGED_KEYS_ATTR] = managed_keys_value(
                    widget["values"])
                lookups.update(widget["values"])
            elif kind == "dropdown":
                self.dropdowns[element.id] = widget
                index = widget.get("default_index")
                if index is not None:
                    defaults.update(widget["options"][index]["values"])
            elif kind == "display":
                element.html = widget.get("fallback", "")
                self.batcher.add(DisplayWidget(
                    element, widget["text"], widget["params"],
                    widget.get("fallback", "")))
            elif kind == "graph":
                self.graphs.add(GraphWidget(element, widget, title=self.title))
            else:
                log.error("unknown widget kind %r on %s", kind, self.title)
        return initial, lookups, defaults

    def _apply(self, values):
        self.state.set({
            name: value for name, value in values.items()
            if not self.state.is_user_choice(name)
        })

    def _on_change(self, kind, payload):
        self.update()

    # ------------------------------------------------------------------
    # Updates and interaction
    # ------------------------------------------------------------------

    def update(self):
        """
        Run the display batcher and the chart updater once.

        Returns
        -------
        tuple
            (display future or None, list of chart futures).
        """
        return self.batcher.update(), self.graphs.update()

    def element(self, element_id):
        return self.document.get_element_by_id(element_id)

    def html(self, element_id):
        """Current HTML of an element, or None."""
        element = self.element(element_id)
        return element.html if element is not None else None

    def select(self, dropdown_id, index):
        """
        Choose an option of a dropdown: its row becomes user choices.

        Raises
        ------
        ConfigurationError
            If there is no such dropdown.
        IndexError
            If index is out of range.
        """
        widget = self.dropdowns.get(dropdown_id)
        if widget is None:
            raise ConfigurationError(
                "no dropdown with id '{}'".format(dropdown_id))
        options = widget["options"]
        if not 0 <= index < len(options):
            raise IndexError("dropdown option {} out of range".format(index))
        return self.state.set_user_choices(dict(options[index]["values"]))

    def set_input(self, name, value):
        """A slider or number input changed: value becomes a user choice."""
        return self.state.set_user_choice(name, value)

    def remove(self, *element_ids):
        """
        Remove elements in one mutation burst.

        Managed keys of the removed elements are deleted from page state
        with a single notification.
        """
        with self.document.batch():
            for element_id in element_ids:
                element = self.element(element_id)
                if element is None:
                    continue
                self.batcher.remove(element_id)
                self.graphs.remove(element_id)
                self.dropdowns.pop(element_id, None)
                self.document.remove(element)
