"""
Table-backed tags: <riskdatalookup> and <dropdown>.

    <riskdatalookup table="Vehicles" column="name" value="Car"/>

puts every column of the matching row into page state. The keys are
managed by the lookup element: when the element leaves the document the
keys are deleted again.

    <dropdown table="Vehicles" title="Vehicle" default="Car"/>

offers one option per row, labelled by label_column (the first column
by default). Selecting an option sets every column of its row as user
choices. default-index (0-based) takes precedence over default (a
label) when both are given and valid.

Table titles are resolved with the same precedence as model names.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

from markupsafe import escape

from riski.config import MANAGED_KEYS_ATTR
from riski.errors import ConfigurationError
from riski.tags import DEFERRED, TagHandler, html_attrs, managed_keys_value, require
from riski.text import format_scalar


def _check_column(rows, column, tag_label):
    columns = list(rows[0])
    if column not in columns:
        raise ConfigurationError(
            "{}: no column named {} (valid columns are: {})".format(
                tag_label, column, " ".join(columns)))


class RiskDataLookupTag(TagHandler):
    """Puts one table row into page state as managed keys."""

    name = "riskdatalookup"
    phase = DEFERRED

    def render(self, node, ctx):
        table = require(node, "table", "RiskDataLookup")
        column = require(node, "column", "RiskDataLookup")
        value = node.get("value")
        if value is None:
            raise ConfigurationError("RiskDataLookup: missing value= attribute")

        rows = ctx.registry.lookup_table(table)
        if not rows:
            raise ConfigurationError("RiskDataLookup: empty table")
        _check_column(rows, column, "RiskDataLookup")

        row = next(
            (r for r in rows if format_scalar(r.get(column)) == value), None)
        if row is None:
            raise ConfigurationError(
                "RiskDataLookup: no row with {}={} in table '{}'".format(
                    column, value, table))

        element_id = ctx.next_id("riskdatalookup")
        ctx.add_widget({"kind": "lookup", "id": element_id, "values": row})
        return "<span {} hidden></span>".format(html_attrs({
            "class": "RiskiUI RiskDataLookup",
            "id": element_id,
            MANAGED_KEYS_ATTR: managed_keys_value(row),
        }))


def default_option(labels, default=None, default_index=None):
    """
    Index of the option to preselect, or None.

    A valid integer default_index wins; otherwise the first label equal
    to default.
    """
    if default_index is not None:
        try:
            index = int(str(default_index).strip())
        except ValueError:
            index = None
        if index is not None and 0 <= index < len(labels):
            return index
    if default:
        for i, label in enumerate(labels):
            if label == default:
                return i
    return None


class DropdownTag(TagHandler):
    """A select box whose options are the rows of a table."""

    name = "dropdown"
    phase = DEFERRED

    def render(self, node, ctx):
        table = require(node, "table", "DropDown")
        rows = ctx.registry.lookup_table(table)
        if not rows:
            raise ConfigurationError("DropDown: empty table")

        label_column = (node.get("label_column") or "").strip() or list(rows[0])[0]
        _check_column(rows, label_column, "DropDown")
        title = node.get("title") or "Select"

        labels = [format_scalar(row.get(label_column, "")) for row in rows]
        selected = default_option(
            labels, node.get("default"), node.get("default-index"))

        element_id = ctx.next_id("dropdown")
        ctx.add_widget({
            "kind": "dropdown",
            "id": element_id,
            "title": title,
            "options": [
                {"label": label, "values": row}
                for label, row in zip(labels, rows)
            ],
            "default_index": selected,
        })

        options = "".join(
            '<option value="{}"{}>{}</option>'.format(
                i, " selected" if i == selected else "", escape(label))
            for i, label in enumerate(labels)
        )
        return "<select {}>{}</select>".format(html_attrs({
            "class": "RiskiUI DropDown",
            "id": element_id,
            "data-title": title,
        }), options)
