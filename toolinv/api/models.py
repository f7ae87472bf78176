"""
Pydantic models for tool inventory API requests and responses.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any, List

# bcrypt only hashes the first 72 bytes; newer releases reject longer input
MAX_PASSWORD_BYTES = 72


class ToolPayload(BaseModel):
    """
    Tool create/update body.

    Deliberately loose: field presence and value checks belong to the record
    normalizer, which reports every problem at once. Alias fields (specs,
    specification, rack) and unknown keys are passed through.
    """
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    category: Optional[Any] = Field(default=None, description="Category name")
    brand: Optional[str] = None
    model: Optional[str] = None
    quantity: Optional[Any] = None
    location: Optional[str] = Field(default=None, description="Rack or shelf (alias: rack)")
    status: Optional[str] = None
    purchaseDate: Optional[Any] = Field(default=None, description="ISO date, YYYY-MM-DD")
    specifications: Optional[Any] = Field(default=None, description="[{name, value, unit}] (aliases: specs, specification)")
    tags: Optional[Any] = Field(default=None, description="Tag names")
    maintenance: Optional[List[str]] = None
    description: Optional[str] = None


class ToolWriteResponse(BaseModel):
    """Response model for tool create/update."""
    message: str
    toolId: str
    createdCategory: Optional[str] = Field(default=None, description="Category created as a side effect")
    createdTags: List[str] = Field(default_factory=list, description="Tags created as a side effect")
    tool: Optional[Dict[str, Any]] = Field(default=None, description="Stored record (AI-created tools only)")


class ToolListResponse(BaseModel):
    tools: List[Dict[str, Any]]


class SearchRequest(BaseModel):
    """Request model for AI-assisted search."""
    query: str = Field(min_length=1, description="Free-text question about the inventory")


class SearchResponse(BaseModel):
    """
    Response model for AI-assisted search.

    status is "ok", or "could_not_fulfill" with an empty tools list when the
    query could not be resolved. Both are successful responses.
    """
    status: str
    message: Optional[str] = None
    tools: List[Dict[str, Any]] = Field(default_factory=list)
    searchParams: Optional[Dict[str, Any]] = Field(default=None, description="Structured parameters used for the search")


class FromTextRequest(BaseModel):
    """Request model for creating a tool from a free-text description."""
    text: str = Field(min_length=1, description="Natural-language tool description")


class CredentialsRequest(BaseModel):
    """Request model for register/login."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1, description="At most 72 bytes once UTF-8 encoded")

    @field_validator("password")
    @classmethod
    def _bcrypt_length(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Body of 400 responses for rejected tool records."""
    error: str = Field(description="MissingFields | InvalidFields | InvalidCategory | TagCreationFailed")
    message: str
    fields: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    service: str
    version: str
    ai_enabled: bool
