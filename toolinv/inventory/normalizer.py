"""
Tool record validation and normalization.

Accepts a loosely-structured tool description (client form input or an AI
draft) and produces the single canonical record shape written to the store:

- ``specifications`` may arrive as ``specs`` or ``specification``; the first
  present in that priority order wins and the others are discarded.
- ``location`` may arrive as ``rack`` (older records used that name).
- ``category`` may be a name or a ``{"name": ...}`` document; it is always
  written as the plain name, and created if it does not exist yet.
- ``tags`` may be names, ``{"name": ...}`` documents or a comma-separated
  string; unknown tags are bulk-created.

Category/tag creation happens before the caller persists the tool and is not
rolled back if the caller later aborts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Mapping, Optional

from pymongo.errors import PyMongoError

from toolinv.inventory.matching import split_multi_value
from toolinv.utils.logger import get_logger

logger = get_logger("inventory.normalizer")

REQUIRED_FIELDS = [
    "name",
    "category",
    "brand",
    "model",
    "purchaseDate",
    "quantity",
    "location",
    "specifications",
    "tags",
]

SPECIFICATION_ALIASES = ("specifications", "specs", "specification")
LOCATION_ALIASES = ("location", "rack")

DEFAULT_STATUS = "available"


class ToolValidationError(ValueError):
    """Base class for tool records that cannot be normalized."""

    kind = "ValidationError"

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or []


class MissingFieldsError(ToolValidationError):
    kind = "MissingFields"

    def __init__(self, fields: List[str]):
        super().__init__(f"Missing required fields: {', '.join(fields)}", fields)


class InvalidFieldsError(ToolValidationError):
    kind = "InvalidFields"

    def __init__(self, problems: Dict[str, str]):
        detail = "; ".join(f"{name}: {reason}" for name, reason in problems.items())
        super().__init__(f"Invalid fields: {detail}", list(problems))
        self.problems = problems


class InvalidCategoryError(ToolValidationError):
    kind = "InvalidCategory"

    def __init__(self):
        super().__init__("Category must not be blank", ["category"])


class TagCreationError(ToolValidationError):
    kind = "TagCreationFailed"

    def __init__(self, names: List[str], cause: Exception):
        super().__init__(f"Could not create tags {names}: {cause}", ["tags"])
        self.names = names


@dataclass
class NormalizedTool:
    """Canonical record plus the category/tag documents created on the way."""
    record: Dict[str, Any]
    created_category: Optional[str] = None
    created_tags: List[str] = field(default_factory=list)


def _is_absent(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple)) and not value)


def resolve_aliases(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of payload with alias fields folded into their canonical names."""
    resolved = dict(payload)

    for canonical, aliases in (
        ("specifications", SPECIFICATION_ALIASES),
        ("location", LOCATION_ALIASES),
    ):
        chosen = None
        for alias in aliases:
            if not _is_absent(resolved.get(alias)):
                chosen = resolved[alias]
                break
        for alias in aliases:
            resolved.pop(alias, None)
        if chosen is not None:
            resolved[canonical] = chosen

    return resolved


def normalize_tag_names(tags: Any) -> List[str]:
    """Trimmed, non-blank tag names. Duplicates are kept."""
    if isinstance(tags, str):
        return split_multi_value(tags)
    if not isinstance(tags, (list, tuple)):
        return []
    names = []
    for tag in tags:
        if isinstance(tag, Mapping):
            tag = tag.get("name")
        if isinstance(tag, str) and tag.strip():
            names.append(tag.strip())
    return names


def _category_name(category: Any) -> str:
    if isinstance(category, Mapping):
        category = category.get("name")
    if not isinstance(category, str):
        return ""
    return category.strip()


def missing_fields(payload: Mapping[str, Any]) -> List[str]:
    """Every required field that is absent, in declaration order."""
    missing = []
    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if name == "tags":
            if not normalize_tag_names(value):
                missing.append(name)
        elif name == "name" and isinstance(value, str) and not value.strip():
            missing.append(name)
        elif _is_absent(value):
            missing.append(name)
    return missing


def parse_purchase_date(value: Any) -> datetime:
    """Parse a purchase date into a timezone-aware UTC datetime.

    Raises ValueError for anything that is not a date, datetime or ISO string.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"unsupported type {type(value).__name__}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_quantity(value: Any):
    """Non-negative int/float; numeric strings are coerced."""
    if isinstance(value, bool):
        raise ValueError("must be a number")
    if isinstance(value, str):
        text = value.strip()
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise ValueError("must be a number")
    if not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    if value != value or value < 0:
        raise ValueError("must be a non-negative number")
    return value


def _validate_values(payload: Mapping[str, Any]) -> Dict[str, Any]:
    problems: Dict[str, str] = {}
    parsed: Dict[str, Any] = {}

    try:
        parsed["quantity"] = parse_quantity(payload["quantity"])
    except ValueError as e:
        problems["quantity"] = str(e)

    try:
        parsed["purchaseDate"] = parse_purchase_date(payload["purchaseDate"])
    except ValueError:
        problems["purchaseDate"] = "must be an ISO date (YYYY-MM-DD)"

    if problems:
        raise InvalidFieldsError(problems)
    return parsed


def _ensure_category(store, name: str) -> Optional[str]:
    if store.find_category(name) is not None:
        return None
    if store.create_category(name):
        logger.info(f"Created category '{name}'")
        return name
    return None


def _ensure_tags(store, names: List[str]) -> List[str]:
    unique = list(dict.fromkeys(names))
    existing = {doc["name"] for doc in store.find_tags(unique)}
    to_create = [name for name in unique if name not in existing]
    if not to_create:
        return []

    try:
        created = store.create_tags(to_create)
    except PyMongoError as e:
        logger.error(f"Tag creation failed for {to_create}: {e}")
        raise TagCreationError(to_create, e)

    if created:
        logger.info(f"Created tags {created}")
    return created


def _tag_documents(store, names: List[str]) -> List[Dict[str, Any]]:
    by_name = {doc["name"]: doc["_id"] for doc in store.find_tags(list(dict.fromkeys(names)))}
    return [{"_id": by_name[name], "name": name} for name in names if name in by_name]


def normalize_tool(
    store,
    payload: Mapping[str, Any],
    tag_storage: str = "names",
    default_status: str = DEFAULT_STATUS,
) -> NormalizedTool:
    """
    Validate a tool description and build its canonical record.

    Args:
        store: ToolStore used to look up and lazily create categories/tags
        payload: client input or AI draft
        tag_storage: "names" writes tags as strings, "documents" as {_id, name}
        default_status: status used when the payload has none

    Returns:
        NormalizedTool with the record ready to insert or replace

    Raises:
        MissingFieldsError: required fields absent (no side effects)
        InvalidFieldsError: quantity/purchaseDate unusable (no side effects)
        InvalidCategoryError: category blank after trimming
        TagCreationError: tag bulk insert failed for a reason other than duplicates
    """
    data = resolve_aliases(payload)

    missing = missing_fields(data)
    if missing:
        raise MissingFieldsError(missing)

    parsed = _validate_values(data)

    category = _category_name(data["category"])
    if not category:
        raise InvalidCategoryError()

    created_category = _ensure_category(store, category)

    tag_names = normalize_tag_names(data["tags"])
    created_tags = _ensure_tags(store, tag_names)

    if tag_storage == "documents":
        tags: List[Any] = _tag_documents(store, tag_names)
    else:
        tags = tag_names

    status = data.get("status")
    record: Dict[str, Any] = {
        "name": str(data["name"]).strip(),
        "category": category,
        "brand": data["brand"],
        "model": data["model"],
        "quantity": parsed["quantity"],
        "location": data["location"],
        "status": status.strip() if isinstance(status, str) and status.strip() else default_status,
        "purchaseDate": parsed["purchaseDate"],
        "specifications": data["specifications"],
        "tags": tags,
        "maintenance": data.get("maintenance") or [],
    }
    if not _is_absent(data.get("description")):
        record["description"] = data["description"]

    return NormalizedTool(record=record, created_category=created_category, created_tags=created_tags)
