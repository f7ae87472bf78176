from toolinv.parsing.ai_client import (
    InventoryAI,
    SearchParameters,
    ToolDraft,
    AIUnavailableError,
    MalformedAIResponseError,
    create_inventory_ai,
)

__all__ = [
    "InventoryAI",
    "SearchParameters",
    "ToolDraft",
    "AIUnavailableError",
    "MalformedAIResponseError",
    "create_inventory_ai",
]
