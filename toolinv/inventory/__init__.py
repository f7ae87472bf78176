"""
Inventory core: record normalization and filter compilation.
"""
from toolinv.inventory.matching import literal_to_anchored_pattern, split_multi_value
from toolinv.inventory.normalizer import (
    NormalizedTool,
    ToolValidationError,
    MissingFieldsError,
    InvalidFieldsError,
    InvalidCategoryError,
    TagCreationError,
    normalize_tool,
)
from toolinv.inventory.query_compiler import (
    SearchPlan,
    build_list_filter,
    compile_search,
    shape_search_results,
)

__all__ = [
    "literal_to_anchored_pattern",
    "split_multi_value",
    "NormalizedTool",
    "ToolValidationError",
    "MissingFieldsError",
    "InvalidFieldsError",
    "InvalidCategoryError",
    "TagCreationError",
    "normalize_tool",
    "SearchPlan",
    "build_list_filter",
    "compile_search",
    "shape_search_results",
]
