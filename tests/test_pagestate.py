"""
Tests for PageState: change notification, user choices and the URL fragment.
"""

import logging

import pytest

from riski.client.pagestate import (
    Location,
    PageState,
    encode_component,
    parse_hash_state,
    same_value,
)
from riski.errors import NotSetError


@pytest.fixture
def state():
    return PageState(Location("http://localhost/page/Risks"))


@pytest.fixture
def events(state):
    received = []
    state.subscribe(lambda kind, payload: received.append((kind, payload)))
    return received


class TestSet:

    def test_one_notification_per_effective_change(self, state, events):
        assert state.set({"a": 1, "b": 2}) is True
        assert events == [("set", {"a": 1, "b": 2})]

    def test_unchanged_set_is_silent(self, state, events):
        state.set({"a": 1})
        assert state.set({"a": 1}) is False
        assert len(events) == 1

    def test_partial_change_fires_once(self, state, events):
        state.set({"a": 1})
        state.set({"a": 1, "b": 2})
        assert events[-1] == ("set", {"a": 1, "b": 2})
        assert len(events) == 2

    def test_one_changed_key_of_three(self, state, events):
        state.set({"a": 1, "b": 2, "c": 3})
        state.set({"a": 1, "b": 5, "c": 3})
        assert len(events) == 2
        assert state.get("b") == 5

    def test_strict_equality(self, state, events):
        state.set({"a": 1})
        state.set({"a": "1"})
        state.set({"a": True})
        assert len(events) == 3
        assert state.get("a") is True

    def test_int_and_float_are_the_same_number(self, state, events):
        state.set({"a": 1})
        state.set({"a": 1.0})
        assert len(events) == 1

    def test_same_value(self):
        assert same_value(1, 1.0)
        assert not same_value(1, "1")
        assert not same_value(1, True)
        assert not same_value(0, False)
        assert same_value("x", "x")

    def test_invalid_values_are_logged_and_skipped(self, state, events, caplog):
        with caplog.at_level(logging.ERROR, logger="riski.client.pagestate"):
            assert state.set({"a": None, "": 1, "b": [1]}) is False
        assert events == []
        assert len(caplog.records) == 3

    def test_valid_pairs_still_applied(self, state, events, caplog):
        with caplog.at_level(logging.ERROR):
            state.set({"a": None, "b": 2})
        assert events == [("set", {"b": 2})]

    def test_non_dict_rejected(self, state, events, caplog):
        with caplog.at_level(logging.ERROR):
            assert state.set(["a"]) is False
        assert events == []
        assert "invalid pairs" in caplog.text


class TestGet:

    def test_get_missing(self, state):
        with pytest.raises(NotSetError) as exc:
            state.get("x")
        assert str(exc.value) == 'pagestate "x" is not set'
        assert isinstance(exc.value, KeyError)

    def test_get_all_is_a_copy(self, state):
        state.set({"a": 1})
        snapshot = state.get_all()
        snapshot["a"] = 2
        assert state.get("a") == 1
        assert state.has("a") and not state.has("b")


class TestDelete:

    def test_delete_fires_once(self, state, events):
        state.set({"a": 1, "b": 2})
        assert state.delete(["a", "b", "missing"]) is True
        assert events[-1] == ("delete", ["a", "b", "missing"])
        assert state.get_all() == {}

    def test_delete_nothing_is_silent(self, state, events):
        assert state.delete(["missing"]) is False
        assert state.delete([]) is False
        assert events == []

    def test_delete_single_name(self, state, events):
        state.set({"a": 1})
        assert state.delete("a") is True
        assert events[-1] == ("delete", ["a"])

    def test_deleting_a_user_choice_rewrites_fragment(self, state):
        state.set_user_choices({"a": 1, "b": 2})
        state.delete("a")
        assert state.location.hash == "#b=2"
        assert not state.is_user_choice("a")


class TestUserChoices:

    def test_fragment_is_encoded(self, state):
        state.set_user_choices({"a b": "c&d"})
        assert state.location.hash == "#a%20b=c%26d"
        assert state.location.history_length == 1
        assert state.location.replacements == 1

    def test_fragment_order_and_values(self, state):
        state.set_user_choice("vehicle", "Bus")
        state.set_user_choice("miles", 20000)
        state.set({"internal": 1})
        assert state.hash_string() == "#vehicle=Bus&miles=20000"
        assert state.is_user_choice("vehicle")
        assert not state.is_user_choice("internal")

    def test_unchanged_choice_fires_nothing(self, state, events):
        state.set_user_choice("a", 1)
        assert state.set_user_choice("a", 1) is False
        assert len(events) == 1

    def test_rejected_value_is_not_a_choice(self, state, caplog):
        state.set({"internal": 1})
        with caplog.at_level(logging.ERROR):
            assert state.set_user_choices({"internal": None, "vehicle": "Bus"})
        assert not state.is_user_choice("internal")
        assert state.get("internal") == 1
        assert state.hash_string() == "#vehicle=Bus"

    def test_shareable_url(self, state):
        state.set_user_choice("vehicle", "Motorcycle")
        assert state.get_shareable_url() == (
            "http://localhost/page/Risks#vehicle=Motorcycle")

    def test_no_choices_no_fragment(self, state):
        state.set({"a": 1})
        assert state.hash_string() == ""
        assert state.get_shareable_url() == "http://localhost/page/Risks"

    def test_encode_component(self):
        assert encode_component("it's (ok)!") == "it's%20(ok)!"
        assert encode_component(True) == "true"
        assert encode_component(2.0) == "2"
        assert encode_component("a/b") == "a%2Fb"


class TestHash:

    def test_parse_hash_state(self):
        assert parse_hash_state("#a=1&b=x%3Dy&noeq&=v&c=d=e") == {
            "a": "1", "b": "x=y", "c": "d=e"}

    def test_parse_empty(self):
        assert parse_hash_state("") == {}
        assert parse_hash_state("#") == {}

    def test_load_from_hash_is_silent(self):
        state = PageState(Location("http://h/page/Risks#vehicle=Bus&a%20b=2"))
        events = []
        state.subscribe(lambda kind, payload: events.append(kind))
        assert state.load_from_hash() == {"vehicle": "Bus", "a b": "2"}
        assert events == []
        assert state.get("a b") == "2"
        assert state.is_user_choice("vehicle")

    def test_location_parts(self):
        location = Location("http://h/p?x=1#a=b")
        assert location.base == "http://h/p?x=1"
        assert location.hash == "#a=b"
        assert location.href == "http://h/p?x=1#a=b"

    def test_round_trip_through_fragment(self, state):
        state.set_user_choices({"vehicle": "Bus & Coach"})
        copy = PageState(Location(state.get_shareable_url()))
        copy.load_from_hash()
        assert copy.get("vehicle") == "Bus & Coach"


class TestSubscribe:

    def test_unsubscribe(self, state):
        events = []
        unsubscribe = state.subscribe(lambda kind, payload: events.append(kind))
        unsubscribe()
        unsubscribe()
        state.set({"a": 1})
        assert events == []

    def test_failing_listener_is_logged(self, state, events, caplog):
        def broken(kind, payload):
            raise RuntimeError("listener bug")

        state.subscribe(broken)
        with caplog.at_level(logging.ERROR):
            state.set({"a": 1})
        assert events == [("set", {"a": 1})]
        assert "listener failed" in caplog.text
