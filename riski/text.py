"""
Text helpers shared by the resolver, the sweep and the client runtime.

Values reach the evaluator as text. Scalars are written the way a
browser would write them (True -> "true", 2.0 -> "2") so the same page
state produces the same substituted text on either side of the wire.
"""

import math
import re

from markupsafe import Markup

from riski.config import PAGESTATE_DELIMITER

# Anything outside this whitelist is replaced by a numeric character reference
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_+,.!@#$%^*:;\- ]")


def is_scalar(value):
    """True for str, int, float and bool values."""
    return isinstance(value, (str, int, float, bool))


def format_scalar(value):
    """Render a scalar as text, matching JavaScript's String(value)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value == int(value):
            return str(int(value))
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return repr(value)
    return str(value)


def substitute(text, values):
    """Replace every literal {key} in text with the formatted value."""
    for key, value in values.items():
        text = text.replace("{" + key + "}", format_scalar(value))
    return text


def escape_for_template(value):
    """
    Make a key or value safe inside the evaluator's argument syntax.

    Characters in [A-Za-z0-9_+,.!@#$%^*:;- ] pass through; every other
    character, multi-byte ones included, becomes &#<codepoint>;.
    """
    return _UNSAFE_CHARS.sub(
        lambda m: "&#{};".format(ord(m.group(0))), format_scalar(value))


def pagestate_string(state):
    """Render page state as escaped key=value pairs joined by the delimiter."""
    return PAGESTATE_DELIMITER.join(
        "{}={}".format(escape_for_template(k), escape_for_template(v))
        for k, v in state.items()
    )


def strip_markers(html, marker):
    """
    Return the text between the first and last occurrence of marker.

    If the marker is missing, or only appears once, html is returned
    unchanged.
    """
    start = html.find(marker)
    if start == -1:
        return html
    start += len(marker)
    end = html.rfind(marker)
    if end == -1 or end < start:
        return html
    return html[start:end]


def strip_tags(html):
    """Drop markup and collapse whitespace."""
    return Markup(html).striptags()
