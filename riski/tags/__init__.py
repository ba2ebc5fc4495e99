"""
RISKI tag layer: TagHandler ABC, TagNode and TagRegistry.

Each page-authoring tag (<riskmodel>, <riskdisplay>, <riskgraph>, ...)
is handled by one TagHandler registered with a TagRegistry at start-up.
The page compiler looks handlers up by tag name; nothing is dispatched
through string-built function names.

Handlers run in one of two phases:

    inline    rendered during pass 1, in page order (declarations)
    deferred  rendered during pass 2, after every declaration on the
              page has been registered (consumers)

Classes:
    TagNode     - One parsed tag: kind, attributes, body
    TagHandler  - Abstract base class for tag handlers
    TagRegistry - Lookup container for registered handlers

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import json
from abc import ABC, abstractmethod

from markupsafe import escape

from riski.errors import ConfigurationError

INLINE = "inline"
DEFERRED = "deferred"


class TagNode:
    """
    One parsed tag.

    Parameters
    ----------
    kind : str
        Lower-cased tag name.
    attrs : dict
        Attributes in source order.
    body : str
        Text between the opening and closing tag ("" when self-closing).
    """

    def __init__(self, kind, attrs=None, body=""):
        self.kind = kind
        self.attrs = dict(attrs or {})
        self.body = body or ""

    def get(self, name, default=None):
        return self.attrs.get(name, default)

    def data_attrs(self):
        """data-* attributes with the prefix stripped, in source order."""
        return {
            key[len("data-"):]: value
            for key, value in self.attrs.items()
            if key.startswith("data-") and len(key) > len("data-")
        }

    def __repr__(self):
        return "TagNode({!r}, {!r})".format(self.kind, self.attrs)


class TagHandler(ABC):
    """
    Abstract base class for a page tag.

    Class Attributes
    ----------------
    name : str
        Tag name matched in page source (e.g. "riskdisplay").
    phase : str
        INLINE or DEFERRED.
    """

    name = ""
    phase = INLINE

    @abstractmethod
    def render(self, node, ctx):
        """
        Render one tag to HTML.

        Parameters
        ----------
        node : TagNode
            The parsed tag.
        ctx : RenderContext
            Per-page compile state (registry, store, widget manifest).

        Returns
        -------
        str
            HTML that replaces the tag.

        Raises
        ------
        ConfigurationError, CycleError
            Rendered by the compiler as an error span for this tag only.
        """


class TagRegistry:
    """
    Central lookup container for registered TagHandler instances.
    """

    def __init__(self):
        self._handlers = {}

    def register(self, handler):
        """
        Register a handler instance.

        Raises
        ------
        ValueError
            If a handler for the same tag name is already registered.
        """
        key = handler.name.lower()
        if key in self._handlers:
            raise ValueError(
                "Tag '{}' is already registered".format(handler.name)
            )
        self._handlers[key] = handler

    def get(self, name):
        """The handler for name, or None."""
        return self._handlers.get(name.lower())

    def names(self):
        """Registered tag names, in registration order."""
        return list(self._handlers)


# ---------------------------------------------------------------------------
# Helpers shared by handlers
# ---------------------------------------------------------------------------

def html_attrs(attrs):
    """Render an ordered attribute dict; None values are omitted."""
    parts = []
    for key, value in attrs.items():
        if value is None:
            continue
        parts.append('{}="{}"'.format(key, escape(value)))
    return " ".join(parts)


def managed_keys_value(keys):
    """JSON list stored in the managed-keys attribute."""
    return json.dumps(list(keys))


def require(node, attr, tag_label):
    """
    Return a required, non-blank attribute.

    Raises
    ------
    ConfigurationError
    """
    value = (node.get(attr) or "").strip()
    if not value:
        raise ConfigurationError(
            "{}: missing {}= attribute".format(tag_label, attr))
    return value
