"""
Filter compilation for tool listing and AI-assisted search.

Two input shapes are supported:

1. Direct query parameters from the listing endpoint (``name`` substring plus
   comma-separated ``category``/``location``/``status``/``tags`` lists).
2. Structured search parameters produced by the AI collaborator from a
   free-text query, resolved with a layered fallback:

   toolNames -> requestedParameters + known tool name in query -> broad
   category/location/status filter -> whole collection

Stored records come from more than one schema era, so every facet with a
legacy shape is matched with a disjunction over both shapes
(``tags`` vs ``tags.name``, ``category`` vs ``category.name``,
``location`` vs ``rack``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from toolinv.inventory.matching import anchored_patterns, clean_strings, split_multi_value
from toolinv.utils.logger import get_logger

logger = get_logger("inventory.query_compiler")

NOT_FULFILLED_STATUS = "could_not_fulfill"
NOT_FULFILLED_MESSAGE = "Your request could not be fulfilled. Try naming the tool you are asking about."

# Summary fields that are only returned when explicitly asked for
SUMMARY_FIELDS = ("brand", "model")


@dataclass
class SearchPlan:
    """Outcome of compiling AI search parameters."""
    filter: Dict[str, Any] = field(default_factory=dict)
    requested_parameters: List[str] = field(default_factory=list)
    fulfillable: bool = True
    strategy: str = "all"   # tool_names | inferred_tool | facets | all | unresolved


#  Clause builders

def _combine(clauses: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _any_of(paths: Iterable[str], values: List[Any]) -> Dict[str, Any]:
    """OR-membership of values over one or more stored shapes of the same facet."""
    alternatives = [{path: {"$in": values}} for path in paths]
    if len(alternatives) == 1:
        return alternatives[0]
    return {"$or": alternatives}


def category_clause(categories: List[str]) -> Optional[Dict[str, Any]]:
    if not categories:
        return None
    return _any_of(("category", "category.name"), categories)


def location_clause(locations: List[str]) -> Optional[Dict[str, Any]]:
    if not locations:
        return None
    return _any_of(("location", "rack"), locations)


def status_clause(statuses: List[str]) -> Optional[Dict[str, Any]]:
    if not statuses:
        return None
    return {"status": {"$in": statuses}}


def tags_clause(tags: List[str]) -> Optional[Dict[str, Any]]:
    patterns = anchored_patterns(tags)
    if not patterns:
        return None
    return _any_of(("tags", "tags.name"), patterns)


def exact_name_clause(names: List[str]) -> Optional[Dict[str, Any]]:
    patterns = anchored_patterns(names)
    if not patterns:
        return None
    return {"name": {"$in": patterns}}


#  Direct listing parameters

def build_list_filter(
    name: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    status: Optional[str] = None,
    tags: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the filter for ``GET /tools``.

    ``name`` is a case-insensitive substring match on the escaped literal, so
    partial names work and metacharacters match themselves. ``tags`` terms are exact
    (trim/case-insensitive) matches. Every other list is plain membership.
    """
    clauses: List[Dict[str, Any]] = []

    if name and name.strip():
        clauses.append({"name": {"$regex": re.escape(name.strip()), "$options": "i"}})

    for clause in (
        category_clause(split_multi_value(category)),
        location_clause(split_multi_value(location)),
        status_clause(split_multi_value(status)),
        tags_clause(split_multi_value(tags)),
    ):
        if clause:
            clauses.append(clause)

    return _combine(clauses)


#  AI search parameters

def infer_tool_name(query: str, known_tool_names: Iterable[str]) -> Optional[str]:
    """First known tool name that appears (case-insensitively) inside the query."""
    haystack = (query or "").lower()
    for tool_name in known_tool_names:
        if not isinstance(tool_name, str) or not tool_name.strip():
            continue
        if tool_name.strip().lower() in haystack:
            return tool_name
    return None


def compile_search(
    params: Any,
    query: str,
    known_tool_names: Iterable[str] = (),
) -> SearchPlan:
    """
    Compile AI-derived search parameters into a SearchPlan.

    Args:
        params: mapping (or object with the same attributes) holding toolNames,
            categories, locations, statuses, requestedParameters. Non-list
            values are treated as empty.
        query: the user's original free-text query
        known_tool_names: distinct tool names in the store, in store order

    Returns:
        SearchPlan; ``fulfillable`` is False when a parameter question could not
        be tied to a specific tool.
    """
    tool_names = clean_strings(_param(params, "toolNames"))
    requested = clean_strings(_param(params, "requestedParameters"))

    if tool_names:
        plan = SearchPlan(exact_name_clause(tool_names), requested, True, "tool_names")
    elif requested:
        inferred = infer_tool_name(query, known_tool_names)
        if inferred is None:
            logger.info(f"No known tool named in query {query!r}; cannot answer {requested}")
            plan = SearchPlan({}, requested, False, "unresolved")
        else:
            plan = SearchPlan(exact_name_clause([inferred]), requested, True, "inferred_tool")
    else:
        clauses = [
            clause for clause in (
                category_clause(clean_strings(_param(params, "categories"))),
                location_clause(clean_strings(_param(params, "locations"))),
                status_clause(clean_strings(_param(params, "statuses"))),
            ) if clause
        ]
        plan = SearchPlan(_combine(clauses), requested, True, "facets" if clauses else "all")

    logger.debug(f"Compiled search ({plan.strategy}): {plan.filter!r}")
    return plan


def _param(params: Any, key: str) -> Any:
    if params is None:
        return None
    if isinstance(params, dict):
        return params.get(key)
    return getattr(params, key, None)


#  Response shaping

def not_fulfilled_response() -> Dict[str, Any]:
    return {"status": NOT_FULFILLED_STATUS, "message": NOT_FULFILLED_MESSAGE, "tools": []}


def _wanted(requested: List[str]) -> set:
    return {p.strip().lower() for p in requested if p and p.strip()}


def narrow_tool(tool: Dict[str, Any], requested_parameters: List[str]) -> Dict[str, Any]:
    """Lean view of a tool holding only what a parameter question asked for."""
    wanted = _wanted(requested_parameters)
    lean: Dict[str, Any] = {"_id": tool.get("_id"), "name": tool.get("name")}

    for summary_field in SUMMARY_FIELDS:
        if summary_field in wanted and summary_field in tool:
            lean[summary_field] = tool[summary_field]

    specifications = tool.get("specifications")
    if not isinstance(specifications, list):
        specifications = []
    lean["specifications"] = [
        spec for spec in specifications
        if isinstance(spec, dict)
        and isinstance(spec.get("name"), str)
        and spec["name"].strip().lower() in wanted
    ]
    return lean


def shape_search_results(
    tools: List[Dict[str, Any]],
    requested_parameters: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Response body for an AI search.

    An empty result set is always the soft-fail shape, whatever the reason the
    filter matched nothing.
    """
    if not tools:
        return not_fulfilled_response()

    requested = clean_strings(requested_parameters)
    if requested:
        tools = [narrow_tool(tool, requested) for tool in tools]

    return {"status": "ok", "tools": tools}
