"""
Tests for the document tree and the removal observer.
"""

import json
import logging

import pytest

from riski.client.document import Document, Element, RemovalObserver
from riski.client.pagestate import PageState
from riski.config import MANAGED_KEYS_ATTR


def managed(element_id, *keys):
    return Element("span", element_id, {MANAGED_KEYS_ATTR: json.dumps(list(keys))})


@pytest.fixture
def state():
    return PageState()


@pytest.fixture
def deletes(state):
    received = []
    state.subscribe(
        lambda kind, payload: kind == "delete" and received.append(payload))
    return received


@pytest.fixture
def document(state):
    doc = Document()
    RemovalObserver(state).connect(doc)
    return doc


class TestDocument:

    def test_lookup_and_contains(self):
        doc = Document()
        outer = doc.append(Element("div", "outer"))
        inner = doc.append(Element("span", "inner"), parent=outer)
        assert doc.get_element_by_id("inner") is inner
        assert doc.contains(inner)
        doc.remove(outer)
        assert doc.get_element_by_id("inner") is None
        assert not doc.contains(inner)

    def test_bursts(self):
        doc = Document()
        bursts = []
        doc.observe(bursts.append)
        a = doc.append(Element("p", "a"))
        b = doc.append(Element("p", "b"))
        with doc.batch():
            doc.remove(a)
            with doc.batch():
                doc.remove(b)
            assert bursts == []
        assert len(bursts) == 1
        assert [r.removed_nodes for r in bursts[0]] == [[a], [b]]

    def test_remove_detached_is_ignored(self):
        doc = Document()
        bursts = []
        doc.observe(bursts.append)
        doc.remove(Element("p"))
        assert bursts == []

    def test_managed_keys(self):
        assert managed("x", "a", "b").managed_keys() == ["a", "b"]
        assert Element().managed_keys() == []
        with pytest.raises(ValueError):
            Element(attrs={MANAGED_KEYS_ATTR: '{"a": 1}'}).managed_keys()


class TestRemovalObserver:

    def test_removed_element_keys_deleted(self, state, deletes, document):
        element = document.append(managed("lookup", "vehicle", "rate"))
        state.set({"vehicle": "Car", "rate": 1, "other": 2})
        document.remove(element)
        assert deletes == [["vehicle", "rate"]]
        assert state.get_all() == {"other": 2}

    def test_burst_aggregated_into_one_delete(self, state, deletes, document):
        a = document.append(managed("a", "x", "shared"))
        b = document.append(managed("b", "y", "shared"))
        state.set({"x": 1, "y": 2, "shared": 3})
        with document.batch():
            document.remove(a)
            document.remove(b)
        assert deletes == [["x", "shared", "y"]]

    def test_descendants_are_cleaned_up(self, state, deletes, document):
        container = document.append(Element("div", "container"))
        document.append(managed("inner", "k"), parent=container)
        state.set({"k": 1})
        document.remove(container)
        assert deletes == [["k"]]

    def test_clear(self, state, deletes, document):
        document.append(managed("a", "x"))
        document.append(managed("b", "y"))
        state.set({"x": 1, "y": 2})
        document.clear()
        assert deletes == [["x", "y"]]

    def test_keys_not_set_fire_nothing(self, state, deletes, document):
        element = document.append(managed("a", "x"))
        document.remove(element)
        assert deletes == []

    def test_malformed_attribute_is_logged(self, state, deletes, document, caplog):
        bad = document.append(Element("span", "bad", {MANAGED_KEYS_ATTR: "not json"}))
        good = document.append(managed("good", "x"))
        state.set({"x": 1})
        with caplog.at_level(logging.ERROR, logger="riski.client.document"):
            with document.batch():
                document.remove(bad)
                document.remove(good)
        assert deletes == [["x"]]
        assert "bad" in caplog.text

    def test_disconnect(self, state, deletes):
        doc = Document()
        observer = RemovalObserver(state)
        observer.connect(doc)
        observer.disconnect()
        element = doc.append(managed("a", "x"))
        state.set({"x": 1})
        doc.remove(element)
        assert deletes == []
        assert state.has("x")
