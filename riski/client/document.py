"""
A minimal document tree with removal observation.

Elements that own page-state keys list them in the
data-managed-pagestate-keys attribute (a JSON array). When such an
element, or an ancestor of it, is removed from the document, its keys
are deleted from page state.

Mutations are delivered to observers in bursts: every removal made
inside one Document.batch() block reaches the observer as one list of
records, and the RemovalObserver turns the whole burst into a single
PageState.delete() call, so a burst fires at most one notification.
A removal outside any batch is a burst of its own.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import json
import logging
from contextlib import contextmanager

from riski.config import MANAGED_KEYS_ATTR

log = logging.getLogger(__name__)


class Element:
    """
    One node of the document.

    Parameters
    ----------
    tag : str
        Element name.
    id : str, optional
        Element id.
    attrs : dict, optional
        Attributes (data-managed-pagestate-keys among them).
    html : str
        Rendered content of the element.
    """

    def __init__(self, tag="div", id=None, attrs=None, html=""):
        self.tag = tag
        self.id = id
        self.attrs = dict(attrs or {})
        self.html = html
        self.children = []
        self.parent = None

    def append(self, child):
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def iter(self):
        """This element and all of its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.iter()

    def managed_keys(self):
        """
        Keys listed in the managed-keys attribute.

        Returns
        -------
        list of str
            Empty when the attribute is absent.

        Raises
        ------
        ValueError
            If the attribute is not a JSON array.
        """
        raw = self.attrs.get(MANAGED_KEYS_ATTR)
        if not raw:
            return []
        keys = json.loads(raw)
        if not isinstance(keys, list):
            raise ValueError("{} is not a JSON array".format(MANAGED_KEYS_ATTR))
        return keys

    def __repr__(self):
        return "Element({!r}, id={!r})".format(self.tag, self.id)


class MutationRecord:
    """Removal of removed_nodes from target."""

    def __init__(self, target, removed_nodes):
        self.target = target
        self.removed_nodes = list(removed_nodes)


class Document:
    """Element tree whose removals are reported to observers in bursts."""

    def __init__(self):
        self.body = Element("body")
        self._observers = []
        self._pending = []
        self._depth = 0

    def get_element_by_id(self, element_id):
        for element in self.body.iter():
            if element.id == element_id:
                return element
        return None

    def contains(self, element):
        node = element
        while node is not None:
            if node is self.body:
                return True
            node = node.parent
        return False

    def append(self, element, parent=None):
        return (parent or self.body).append(element)

    def remove(self, element):
        """Detach element (and its subtree) from its parent."""
        parent = element.parent
        if parent is None:
            return
        parent.children.remove(element)
        element.parent = None
        self._queue(MutationRecord(parent, [element]))

    def clear(self, parent=None):
        """Remove every child of parent in one record."""
        parent = parent or self.body
        removed = list(parent.children)
        if not removed:
            return
        for child in removed:
            child.parent = None
        parent.children = []
        self._queue(MutationRecord(parent, removed))

    @contextmanager
    def batch(self):
        """Group the mutations made inside the block into one burst."""
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._flush()

    def observe(self, callback):
        """Call callback(records) once per burst; returns a disconnect function."""
        self._observers.append(callback)

        def disconnect():
            if callback in self._observers:
                self._observers.remove(callback)

        return disconnect

    def _queue(self, record):
        self._pending.append(record)
        if self._depth == 0:
            self._flush()

    def _flush(self):
        records, self._pending = self._pending, []
        if not records:
            return
        for callback in list(self._observers):
            callback(records)


class RemovalObserver:
    """
    Deletes the managed keys of removed elements from page state.

    Parameters
    ----------
    state : PageState
        The page state to clean up.
    """

    def __init__(self, state):
        self.state = state
        self._disconnect = None

    def connect(self, document):
        self.disconnect()
        self._disconnect = document.observe(self.handle)

    def disconnect(self):
        if self._disconnect is not None:
            self._disconnect()
            self._disconnect = None

    def handle(self, records):
        """Collect managed keys of every removed subtree; delete them at once."""
        keys = {}
        for record in records:
            for node in record.removed_nodes:
                for element in node.iter():
                    try:
                        managed = element.managed_keys()
                    except ValueError as e:
                        log.error("removal observer: bad %s on %s: %s",
                                  MANAGED_KEYS_ATTR, element, e)
                        continue
                    for key in managed:
                        keys.setdefault(key, None)
        if keys:
            self.state.delete(list(keys))
