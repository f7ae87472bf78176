"""
Tests for filter compilation: direct listing parameters, the AI search
fallback ladder, legacy schema shapes and response shaping.

Filters are executed against an in-memory document store so the tests check
what actually matches, not only the filter structure.
"""

import pytest

from toolinv.inventory.query_compiler import (
    NOT_FULFILLED_STATUS,
    build_list_filter,
    compile_search,
    infer_tool_name,
    narrow_tool,
    shape_search_results,
)
from toolinv.parsing.ai_client import SearchParameters


def _names(store, filters):
    return sorted(t["name"] for t in store.find_tools(filters))


@pytest.fixture
def inventory(store):
    """A mix of current records and older schema variants."""
    store.db["tools"].insert_many([
        {"name": "Drill", "category": "Power Tools", "location": "A1", "status": "available",
         "tags": ["drill", "cordless"], "brand": "Makita", "model": "DDF482",
         "specifications": [{"name": "weight", "value": 1.7, "unit": "kg"},
                            {"name": "voltage", "value": 18, "unit": "V"}]},
        {"name": " drill ", "category": "Power Tools", "location": "A2", "status": "in use",
         "tags": ["drill"]},
        {"name": "DRILL", "category": {"_id": "c1", "name": "Power Tools"}, "rack": "B1",
         "status": "available", "tags": [{"_id": "t1", "name": "Drill"}]},
        {"name": "Drill Press", "category": "Workshop", "location": "C1", "status": "available",
         "tags": ["drill bit", "bench"]},
        {"name": "Claw Hammer", "category": "Hand Tools", "location": "A1", "status": "in repair",
         "tags": ["hammer"]},
        {"name": "Tape Measure", "category": "Measuring", "location": "D4", "status": "available",
         "tags": []},
    ])
    return store


#  Direct listing parameters

class TestListFilter:
    def test_no_parameters_is_empty_filter(self):
        assert build_list_filter() == {}
        assert build_list_filter(name="  ", category="", tags=None) == {}

    def test_category_or_membership(self, inventory):
        names = _names(inventory, build_list_filter(category="Hand Tools, Measuring"))
        assert names == ["Claw Hammer", "Tape Measure"]

    def test_category_matches_legacy_document_shape(self, inventory):
        names = _names(inventory, build_list_filter(category="Power Tools"))
        assert names == [" drill ", "DRILL", "Drill"]

    def test_location_matches_legacy_rack_field(self, inventory):
        assert _names(inventory, build_list_filter(location="B1,C1")) == ["DRILL", "Drill Press"]

    def test_status_list(self, inventory):
        names = _names(inventory, build_list_filter(status="in use,in repair"))
        assert names == [" drill ", "Claw Hammer"]

    def test_name_is_case_insensitive_substring(self, inventory):
        assert _names(inventory, build_list_filter(name="HAMM")) == ["Claw Hammer"]
        assert len(inventory.find_tools(build_list_filter(name="drill"))) == 4

    def test_name_metacharacters_match_literally(self, inventory):
        inventory.db["tools"].insert_many([{"name": "Drill (18V) Kit"}, {"name": "Drill 18V"}])
        assert _names(inventory, build_list_filter(name="drill (18v")) == ["Drill (18V) Kit"]
        assert _names(inventory, build_list_filter(name="Dr.ll")) == []

    def test_tags_exact_across_both_shapes(self, inventory):
        names = _names(inventory, build_list_filter(tags="DRILL"))
        assert names == [" drill ", "DRILL", "Drill"]   # not "Drill Press" ("drill bit")

    def test_tags_or_membership(self, inventory):
        assert _names(inventory, build_list_filter(tags="hammer, bench")) == ["Claw Hammer", "Drill Press"]

    def test_parameters_are_anded(self, inventory):
        filters = build_list_filter(category="Power Tools", status="available", location="A1")
        assert _names(inventory, filters) == ["Drill"]

    def test_tag_filter_shape(self):
        clause = build_list_filter(tags="a")
        assert set(clause) == {"$or"}
        assert [list(alt) for alt in clause["$or"]] == [["tags"], ["tags.name"]]


#  AI search: fallback ladder

class TestCompileSearch:
    def test_tool_names_exact_match(self, inventory):
        plan = compile_search(SearchParameters(toolNames=["Drill"]), "how many drills?", [])
        assert plan.strategy == "tool_names"
        assert _names(inventory, plan.filter) == [" drill ", "DRILL", "Drill"]

    def test_tool_names_win_over_facets(self, inventory):
        params = SearchParameters(toolNames=["Claw Hammer"], categories=["Power Tools"], statuses=["available"])
        plan = compile_search(params, "hammer", [])
        assert _names(inventory, plan.filter) == ["Claw Hammer"]

    def test_tool_name_with_metacharacters(self, inventory):
        inventory.db["tools"].insert_one({"name": '3.5" Drill'})
        inventory.db["tools"].insert_one({"name": '3x5" Drill'})
        plan = compile_search({"toolNames": ['3.5" Drill']}, "", [])
        assert _names(inventory, plan.filter) == ['3.5" Drill']

    def test_requested_parameters_infer_tool_from_query(self, inventory):
        params = SearchParameters(requestedParameters=["weight"])
        plan = compile_search(params, "What is the weight of the claw hammer?", ["Claw Hammer", "Tape Measure"])
        assert plan.strategy == "inferred_tool"
        assert plan.fulfillable
        assert _names(inventory, plan.filter) == ["Claw Hammer"]

    def test_requested_parameters_without_known_tool_soft_fails(self):
        params = SearchParameters(requestedParameters=["weight"], categories=["Power Tools"])
        plan = compile_search(params, "how heavy is it?", ["Claw Hammer"])
        assert not plan.fulfillable
        assert plan.strategy == "unresolved"

    def test_facets_are_anded(self, inventory):
        params = SearchParameters(categories=["Power Tools", "Workshop"], statuses=["available"])
        plan = compile_search(params, "available power tools", [])
        assert plan.strategy == "facets"
        assert _names(inventory, plan.filter) == ["DRILL", "Drill", "Drill Press"]

    def test_facet_locations_include_rack(self, inventory):
        plan = compile_search(SearchParameters(locations=["B1"]), "what is on B1", [])
        assert _names(inventory, plan.filter) == ["DRILL"]

    def test_nothing_usable_matches_everything(self, inventory):
        plan = compile_search(SearchParameters(), "stuff", ["Drill"])
        assert plan.filter == {}
        assert plan.strategy == "all"
        assert len(inventory.find_tools(plan.filter)) == 6

    def test_malformed_params_are_tolerated(self):
        params = {"toolNames": "Drill", "categories": None, "statuses": {"x": 1}, "requestedParameters": 7}
        plan = compile_search(params, "drill", ["Drill"])
        assert plan.filter == {}
        assert plan.fulfillable

    def test_none_params(self):
        assert compile_search(None, "anything").filter == {}


class TestInferToolName:
    def test_case_insensitive_substring(self):
        assert infer_tool_name("Weight of the TAPE MEASURE?", ["Drill", "Tape Measure"]) == "Tape Measure"

    def test_first_known_name_wins(self):
        assert infer_tool_name("drill press weight", ["Drill", "Drill Press"]) == "Drill"

    def test_skips_blank_and_non_string_names(self):
        assert infer_tool_name("anything", ["", "  ", None, 5]) is None


#  Response shaping

class TestShapeResults:
    def test_empty_is_soft_fail(self):
        body = shape_search_results([], ["weight"])
        assert body["status"] == NOT_FULFILLED_STATUS
        assert body["tools"] == []
        assert body["message"]

    def test_full_records_without_requested_parameters(self):
        tool = {"_id": 1, "name": "Drill", "brand": "Makita", "specifications": []}
        assert shape_search_results([tool]) == {"status": "ok", "tools": [tool]}

    def test_specifications_narrowed_to_requested(self, inventory):
        plan = compile_search(
            SearchParameters(requestedParameters=["Weight "]),
            "what's the weight of the drill",
            ["Drill"],
        )
        body = shape_search_results(inventory.find_tools(plan.filter), plan.requested_parameters)
        assert body["status"] == "ok"
        drill = next(t for t in body["tools"] if t["name"] == "Drill")
        assert drill["specifications"] == [{"name": "weight", "value": 1.7, "unit": "kg"}]
        assert "brand" not in drill and "model" not in drill

    def test_brand_and_model_only_when_requested(self):
        tool = {"_id": 1, "name": "Drill", "brand": "Makita", "model": "DDF482", "quantity": 3,
                "specifications": [{"name": "weight", "value": 1.7}]}
        lean = narrow_tool(tool, ["brand"])
        assert lean == {"_id": 1, "name": "Drill", "brand": "Makita", "specifications": []}

    def test_missing_or_malformed_specifications(self):
        assert narrow_tool({"name": "x", "specifications": "n/a"}, ["weight"])["specifications"] == []
        assert narrow_tool({"name": "x"}, ["weight"])["specifications"] == []
