"""
AI collaborator for free-text search and free-text tool creation.

Uses an OpenAI-compatible chat model with structured output to:
1. Convert a natural-language inventory query into SearchParameters
2. Convert a natural-language tool description into a draft tool record

One InventoryAI instance is built at process start (``create_inventory_ai``)
and injected wherever it is needed; tests substitute a fake with the same two
methods.
"""
import json
from typing import Any, Dict, List, Optional, Union

from openai import (
    APIConnectionError,
    APIStatusError,
    ContentFilterFinishReasonError,
    LengthFinishReasonError,
    OpenAI,
)
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from toolinv.core.config import InventoryConfig
from toolinv.utils.logger import get_logger

logger = get_logger("parsing.ai_client")


class AIUnavailableError(RuntimeError):
    """The AI service could not be reached or refused the request."""


class MalformedAIResponseError(ValueError):
    """The AI service answered, but not with the expected structure."""


class SearchParameters(BaseModel):
    """Structured search derived from a free-text query. Never persisted."""
    toolNames: List[str] = Field(
        default_factory=list,
        description="Exact tool names from the inventory if the user mentions a specific tool",
    )
    categories: List[str] = Field(default_factory=list, description="Categories to filter by")
    locations: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("locations", "racks"),
        description="Locations (racks) to filter by",
    )
    statuses: List[str] = Field(default_factory=list, description="Statuses to filter by")
    requestedParameters: List[str] = Field(
        default_factory=list,
        description="Tool parameters the user asks about (e.g. weight, size, model, brand)",
    )

    @field_validator("toolNames", "categories", "locations", "statuses", "requestedParameters", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple)):
            return []
        return [v for v in value if isinstance(v, str)]


class SpecificationEntry(BaseModel):
    name: str
    value: Union[float, str]
    unit: Optional[str] = None


class ToolDraft(BaseModel):
    """Draft tool record extracted from a free-text description."""
    name: str
    category: str = Field(description="Must be one of the available categories when possible")
    brand: Optional[str] = None
    model: Optional[str] = None
    quantity: Union[int, float]
    location: Optional[str] = Field(None, description="Rack or shelf where the tool is kept")
    status: Optional[str] = Field(None, description="Must be one of the available statuses")
    purchaseDate: Optional[str] = Field(None, description="ISO format YYYY-MM-DD")
    specifications: List[SpecificationEntry] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    maintenance: List[str] = Field(default_factory=list)
    description: Optional[str] = None


SEARCH_SYSTEM_PROMPT = """You are a search query converter for a tool inventory system.

Convert the user's natural language query into structured search parameters.

Rules:
- Use values only from the available lists when possible.
- If the user mentions a specific tool (e.g. "angle grinder", "cordless drill"), put it in toolNames.
- requestedParameters lists what the user explicitly asks about (e.g. "weight", "size", "model",
  "brand", "batteryCapacity"), or the parameter names you can reliably infer from the query.
- Leave a list empty when nothing applies. Do not guess."""

TOOL_SYSTEM_PROMPT = """You are a tool parser for a tool inventory system.

Convert the user's description of a tool into a structured tool record.

Rules:
- Choose the most appropriate category and status from the available lists.
- quantity is a number.
- purchaseDate is ISO format (YYYY-MM-DD); use today's date if none is given.
- specifications are {name, value, unit} entries for measurable properties (weight, voltage, size...).
- tags are short lowercase keywords."""


class InventoryAI:
    """Thin wrapper over an OpenAI client with the two inventory prompts."""

    def __init__(self, client: OpenAI, model: str, temperature: float = 0):
        self.client = client
        self.model = model
        self.temperature = temperature

    def _parse(self, messages: List[Dict[str, str]], response_format):
        try:
            response = self.client.chat.completions.parse(
                model=self.model,
                messages=messages,
                response_format=response_format,
                temperature=self.temperature,
            )
        except (APIConnectionError, APIStatusError) as e:
            logger.error(f"AI request failed: {e}")
            raise AIUnavailableError(str(e)) from e
        except (ValidationError, ValueError, LengthFinishReasonError, ContentFilterFinishReasonError) as e:
            logger.error(f"AI response could not be parsed: {e}")
            raise MalformedAIResponseError(str(e)) from e

        message = response.choices[0].message
        if message.parsed is None:
            raise MalformedAIResponseError(message.refusal or "AI response had no content")
        return message.parsed

    def generate_search_params(
        self,
        query: str,
        categories: List[str],
        locations: List[str],
        statuses: List[str],
    ) -> SearchParameters:
        """Convert a natural-language query into SearchParameters."""
        context = (
            f"Available categories: {json.dumps(categories)}\n"
            f"Available locations: {json.dumps(locations)}\n"
            f"Available statuses: {json.dumps(statuses)}"
        )
        params = self._parse(
            [
                {"role": "system", "content": SEARCH_SYSTEM_PROMPT},
                {"role": "system", "content": context},
                {"role": "user", "content": query},
            ],
            SearchParameters,
        )
        logger.info(f"Search params for {query!r}: {params.model_dump()}")
        return params

    def generate_tool(self, text: str, categories: List[str], statuses: List[str]) -> Dict[str, Any]:
        """Convert a tool description into a draft record (not yet normalized)."""
        context = (
            f"Available categories: {', '.join(categories)}\n"
            f"Available statuses: {', '.join(statuses)}"
        )
        draft = self._parse(
            [
                {"role": "system", "content": TOOL_SYSTEM_PROMPT},
                {"role": "system", "content": context},
                {"role": "user", "content": text},
            ],
            ToolDraft,
        )
        logger.info(f"Tool draft: {draft.name!r} ({draft.category})")
        return draft.model_dump(exclude_none=True)


def create_inventory_ai(config: InventoryConfig) -> Optional[InventoryAI]:
    """Build the process-wide AI collaborator, or None when no API key is configured."""
    if not config.openai_api_key:
        logger.warning("OPENAI_API_KEY not set; AI search and AI tool creation are disabled")
        return None
    client = OpenAI(
        api_key=config.openai_api_key,
        base_url=config.openai_base_url,
        timeout=config.ai_timeout_seconds,
    )
    return InventoryAI(client, config.ai_model, config.ai_temperature)
