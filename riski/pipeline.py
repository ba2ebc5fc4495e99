"""
Two-pass page compiler.

Page source is plain HTML with RISKI tags embedded in it. Compiling a
page:

    Pass 1  walk the parsed nodes once, in page order. Text is copied to
            the output buffer. Inline tags (<riskmodel>, <riskparameter>)
            render immediately; a model tag registers its model in the
            page's ModelRegistry. Deferred tags (<riskdisplay>,
            <riskgraph>, <riskdatalookup>, <dropdown>) reserve an empty
            slot in the buffer and are queued in encounter order.

    Pass 2  render every queued tag against the now complete registry and
            store its HTML in its slot. A display may therefore use a
            model declared further down the page.

A tag that fails renders as an error span in its own place; the rest of
the page is unaffected.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import html
import logging
import re

from riski.errors import RiskiError
from riski.registry import ModelRegistry
from riski.resolver import error_html
from riski.tags import DEFERRED, TagNode, TagRegistry
from riski.tags.display import RiskDisplayTag
from riski.tags.graph import RiskGraphTag
from riski.tags.model import RiskModelTag, RiskParameterTag
from riski.tags.table import DropdownTag, RiskDataLookupTag

log = logging.getLogger(__name__)

ATTR_PATTERN = re.compile(
    r"""([A-Za-z_:][-A-Za-z0-9_:.]*)"""
    r"""(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?"""
)


def create_tag_registry():
    """Build and populate the tag registry."""
    tags = TagRegistry()
    tags.register(RiskModelTag())
    tags.register(RiskParameterTag())
    tags.register(RiskDisplayTag())
    tags.register(RiskDataLookupTag())
    tags.register(DropdownTag())
    tags.register(RiskGraphTag())
    return tags


def parse_attrs(text):
    """Parse an attribute string into an ordered dict; bare names map to ''."""
    attrs = {}
    for match in ATTR_PATTERN.finditer(text or ""):
        name = match.group(1)
        value = next(
            (g for g in match.group(2, 3, 4) if g is not None), "")
        attrs[name] = html.unescape(value)
    return attrs


def tag_pattern(tag_names):
    """Regex matching <name ...>body</name> or <name .../> for tag_names."""
    names = "|".join(
        re.escape(n) for n in sorted(tag_names, key=len, reverse=True))
    return re.compile(
        r"<(?P<kind>{})(?=[\s/>])"
        r"(?P<attrs>(?:[^<>\"']|\"[^\"]*\"|'[^']*')*?)"
        r"(?:/>|>(?P<body>.*?)</(?P=kind)\s*>)".format(names),
        re.IGNORECASE | re.DOTALL,
    )


def parse_page(source, tag_names):
    """
    Split page source into text segments and TagNodes.

    Parameters
    ----------
    source : str
        Page source.
    tag_names : iterable of str
        Tag names to recognise. Anything else is text.

    Returns
    -------
    list
        str and TagNode items in page order.
    """
    tag_names = list(tag_names)
    if not tag_names:
        return [source] if source else []

    nodes = []
    position = 0
    for match in tag_pattern(tag_names).finditer(source):
        if match.start() > position:
            nodes.append(source[position:match.start()])
        nodes.append(TagNode(
            match.group("kind").lower(),
            parse_attrs(match.group("attrs")),
            match.group("body") or "",
        ))
        position = match.end()
    if position < len(source):
        nodes.append(source[position:])
    return nodes


class RenderContext:
    """
    Per-compile state handed to every tag handler.

    Parameters
    ----------
    page_id : str
        The page being compiled.
    registry : ModelRegistry
        Models declared on the page, with store fallback.
    store : RiskiStore, optional
        Storage collaborator.
    debug : bool
        Debug rendering requested for this compile only.
    """

    def __init__(self, page_id, registry, store=None, debug=False):
        self.page_id = page_id
        self.registry = registry
        self.store = store
        self.debug = debug
        self.widgets = []
        self._counters = {}

    def next_index(self, prefix):
        """1-based counter per prefix, unique within this compile."""
        self._counters[prefix] = self._counters.get(prefix, 0) + 1
        return self._counters[prefix]

    def next_id(self, prefix):
        return "{}-{}".format(prefix, self.next_index(prefix))

    def add_widget(self, widget):
        self.widgets.append(widget)


class CompiledPage:
    """
    Result of compiling one page.

    Attributes
    ----------
    html : str
        Rendered HTML.
    widgets : list of dict
        Client widget manifest: parameters first, then deferred tags in
        page order.
    models : list of Model
        Models declared on the page, in declaration order.
    """

    def __init__(self, page_id, html, widgets, models, debug=False):
        self.page_id = page_id
        self.html = html
        self.widgets = list(widgets)
        self.models = list(models)
        self.debug = debug

    def to_dict(self):
        return {
            "page": self.page_id,
            "html": self.html,
            "widgets": self.widgets,
            "models": [m.name for m in self.models],
            "debug": self.debug,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(data.get("page", ""), data.get("html", ""),
                   data.get("widgets", []), [], data.get("debug", False))


class PageCompiler:
    """
    Compiles page source with the registered tag handlers.

    Parameters
    ----------
    tags : TagRegistry
        Handlers by tag name.
    store : RiskiStore, optional
        Fallback for models and tables not declared on the page.
    """

    def __init__(self, tags, store=None):
        self.tags = tags
        self.store = store

    def compile(self, page_id, source, debug=False):
        """
        Compile page source.

        Returns
        -------
        CompiledPage
        """
        registry = ModelRegistry(page_id, self.store)
        ctx = RenderContext(page_id, registry, self.store, debug=debug)

        output = []
        pending = []
        for node in parse_page(source or "", self.tags.names()):
            if isinstance(node, str):
                output.append(node)
                continue
            handler = self.tags.get(node.kind)
            if handler.phase == DEFERRED:
                pending.append((len(output), handler, node))
                output.append("")
            else:
                output.append(self._render(handler, node, ctx))

        for slot, handler, node in pending:
            output[slot] = self._render(handler, node, ctx)

        log.debug("compiled %s: %d models, %d widgets",
                  page_id, len(registry.models()), len(ctx.widgets))
        return CompiledPage(page_id, "".join(output), ctx.widgets,
                            registry.models(), debug=debug)

    def _render(self, handler, node, ctx):
        try:
            return handler.render(node, ctx)
        except RiskiError as e:
            log.warning("<%s> on %s failed: %s", node.kind, ctx.page_id, e)
            return error_html(str(e))
