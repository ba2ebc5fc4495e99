"""
Tests for Model, the per-page registry, lookup precedence and the store.
"""

import pytest

from riski.errors import ConfigurationError, CycleError
from riski.model import Model, Parameter, split_key
from riski.registry import ModelRegistry, find_stored_model, reference_candidates


def make_model(page, name, **params):
    return Model(page, name, "", [Parameter(k, v) for k, v in params.items()])


class TestModel:

    def test_declaration_order_and_key(self):
        m = make_model("Risks", "Driving", b="{a}+3", a="2")
        assert list(m.params) == ["b", "a"]
        assert m.sorted_names() == ["a", "b"]
        assert m.key == "Risks:Driving"

    def test_pagestate_is_reserved(self):
        with pytest.raises(ConfigurationError, match="reserved"):
            make_model("P", "M", pagestate="1")

    def test_duplicate_parameter(self):
        with pytest.raises(ConfigurationError, match="duplicate"):
            Model("P", "M", "", [Parameter("a", "1"), Parameter("a", "2")])

    def test_invalid_parameter_name(self):
        with pytest.raises(ConfigurationError, match="invalid parameter name"):
            Model("P", "M", "", [Parameter("a-b", "1")])

    def test_model_name_may_not_contain_colon(self):
        with pytest.raises(ConfigurationError):
            make_model("P", "A:B", a="1")
        with pytest.raises(ConfigurationError):
            make_model("P", "", a="1")

    def test_cyclic_model_constructs_but_does_not_sort(self):
        m = make_model("P", "M", a="{b}", b="{a}")
        with pytest.raises(CycleError):
            m.sorted_names()

    def test_merge_last_write_wins_and_resorts(self):
        m = make_model("P", "M", a="2", b="{a}+3")
        merged = m.merged({"a": "5", "c": "{b}!"})
        assert list(merged) == ["a", "b", "c"]
        assert merged["a"] == "5"

    def test_merge_override_adds_dependency(self):
        m = make_model("P", "M", x="1", y="2")
        merged = m.merged({"x": "{y}"})
        assert list(merged) == ["y", "x"]

    def test_merge_does_not_mutate_model(self):
        m = make_model("P", "M", a="2")
        m.merged({"a": "9"})
        assert m.params == {"a": "2"}

    def test_external_references(self):
        m = Model("P", "M", "{b} for {who}",
                  [Parameter("a", "{rate}"), Parameter("b", "{a}*{rate}")])
        assert m.external_references() == ["who", "rate"]

    def test_dict_round_trip(self):
        m = Model("P", "M", "body", [Parameter("a", "1"), Parameter("b", "{a}")])
        copy = Model.from_dict(m.to_dict())
        assert copy.key == m.key
        assert copy.params == m.params
        assert copy.body == "body"


class TestKeys:

    def test_split_at_last_colon(self):
        assert split_key("Risks/Data:Driving") == ("Risks/Data", "Driving")
        assert split_key("Help:Risks:Driving") == ("Help:Risks", "Driving")

    def test_unqualified(self):
        assert split_key("Driving") is None
        assert split_key(":Driving") is None

    def test_reference_candidates(self):
        assert reference_candidates("Driving", "Risks") == [
            "Driving", "Risks:Driving", "Risks/Data:Driving"]


class TestModelRegistry:

    def test_page_model_found_by_bare_name(self):
        registry = ModelRegistry("Risks")
        m = make_model("Risks", "Driving", a="1")
        registry.register(m)
        assert registry.lookup("Driving") is m

    def test_duplicate_registration(self):
        registry = ModelRegistry("P")
        registry.register(make_model("P", "M", a="1"))
        with pytest.raises(ConfigurationError, match="declared twice"):
            registry.register(make_model("P", "M", a="2"))

    def test_data_subpage_fallback(self, store):
        data_model = make_model("Risks/Data", "Commute", a="1")
        store.replace_models("Risks/Data", [data_model])
        registry = ModelRegistry("Risks", store)
        assert registry.lookup("Commute") is data_model

    def test_page_registry_before_store(self, store):
        store.replace_models("Risks/Data", [make_model("Risks/Data", "M", a="1")])
        local = make_model("Risks", "M", a="2")
        registry = ModelRegistry("Risks", store)
        registry.register(local)
        assert registry.lookup("M") is local

    def test_page_before_data_subpage(self, store):
        page_model = make_model("Risks", "M", a="1")
        store.replace_models("Risks", [page_model])
        store.replace_models("Risks/Data", [make_model("Risks/Data", "M", a="2")])
        assert ModelRegistry("Risks", store).lookup("M") is page_model

    def test_fully_qualified_reference(self, store):
        other = make_model("Other", "M", a="1")
        store.replace_models("Other", [other])
        assert ModelRegistry("Risks", store).lookup("Other:M") is other

    def test_not_found(self, store):
        registry = ModelRegistry("Risks", store)
        assert registry.find("Nope") is None
        with pytest.raises(ConfigurationError, match="RiskModel 'Nope' not found"):
            registry.lookup("Nope")

    def test_find_stored_model(self, store):
        m = make_model("Risks", "Driving", a="1")
        store.replace_models("Risks", [m])
        assert find_stored_model(store, "Driving", "Risks") is m
        assert find_stored_model(store, "Driving", "Elsewhere") is None

    def test_table_precedence(self, store):
        store.put_table("Risks/Data:Vehicles", [{"vehicle": "Car"}])
        registry = ModelRegistry("Risks", store)
        assert registry.lookup_table("Vehicles") == [{"vehicle": "Car"}]
        with pytest.raises(ConfigurationError, match="table 'Nope' not found"):
            registry.lookup_table("Nope")


class TestStore:

    def test_models_replaced_wholesale(self, store):
        a = make_model("P", "A", x="1")
        b = make_model("P", "B", x="1")
        store.replace_models("P", [a, b])
        store.replace_models("P", [b])
        assert store.get_model("P", "A") is None
        assert store.get_model("P", "B") is b

    def test_delete_page_cascades_models(self, store):
        store.save_page("P", "source")
        store.replace_models("P", [make_model("P", "A", x="1")])
        assert store.delete_page("P") is True
        assert store.get_page("P") is None
        assert store.models_for("P") == []
        assert store.delete_page("P") is False

    def test_find_model_by_key(self, store):
        m = make_model("Risks/Data", "A", x="1")
        store.replace_models("Risks/Data", [m])
        assert store.find_model("Risks/Data:A") is m
        assert store.find_model("A") is None

    def test_tables_are_copies(self, store):
        store.put_table("T", [{"a": 1}])
        rows = store.get_table("T")
        rows[0]["a"] = 2
        assert store.get_table("T") == [{"a": 1}]
        assert store.has_table("T")
        assert store.get_table("missing") is None
