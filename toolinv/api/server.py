"""
FastAPI server for the tool inventory.

Provides CRUD endpoints over tools, auxiliary category/tag/status listings,
bearer-token auth for writes, and two AI-assisted endpoints (search and
create-from-text).

Usage:
    python -m toolinv.api.server
    # or
    uvicorn toolinv.api.server:app --reload --port 4000
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from toolinv import __version__
from toolinv.api.auth import (
    AuthNotConfiguredError,
    create_access_token,
    hash_password,
    require_token,
    verify_password,
)
from toolinv.api.models import (
    CredentialsRequest,
    ErrorResponse,
    FromTextRequest,
    HealthResponse,
    MessageResponse,
    SearchRequest,
    SearchResponse,
    TokenResponse,
    ToolListResponse,
    ToolPayload,
    ToolWriteResponse,
)
from toolinv.core.config import get_config
from toolinv.data import tool_store
from toolinv.data.tool_store import ToolNotFoundError, ToolStore
from toolinv.inventory.normalizer import TagCreationError, ToolValidationError, normalize_tool
from toolinv.inventory.query_compiler import (
    build_list_filter,
    compile_search,
    not_fulfilled_response,
    shape_search_results,
)
from toolinv.parsing.ai_client import (
    AIUnavailableError,
    InventoryAI,
    MalformedAIResponseError,
    SearchParameters,
    create_inventory_ai,
)
from toolinv.utils.logger import get_logger

logger = get_logger("api.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the store and build the AI collaborator once per process."""
    config = get_config()
    store = ToolStore(tool_store.connect(config.mongo_uri, config.db_name))
    store.ensure_indexes()
    app.state.store = store
    app.state.ai = create_inventory_ai(config)
    if not config.jwt_secret:
        logger.warning("JWT_SECRET not set; login and tool writes are disabled")
    logger.info("Tool inventory API ready")
    yield
    tool_store.close()


# Initialize FastAPI app
app = FastAPI(
    title="Tool Inventory API",
    description="Tool inventory with AI-assisted search and entry",
    version=__version__,
    lifespan=lifespan,
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


#  Dependencies

def get_store(request: Request) -> ToolStore:
    return request.app.state.store


def get_ai(request: Request) -> Optional[InventoryAI]:
    return getattr(request.app.state, "ai", None)


#  Error mapping

@app.exception_handler(ToolValidationError)
async def tool_validation_handler(request: Request, exc: ToolValidationError):
    status_code = 500 if isinstance(exc, TagCreationError) else 400
    body = ErrorResponse(error=exc.kind, message=exc.message, fields=exc.fields)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(ToolNotFoundError)
async def tool_not_found_handler(request: Request, exc: ToolNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Tool not found"})


@app.exception_handler(AuthNotConfiguredError)
async def auth_not_configured_handler(request: Request, exc: AuthNotConfiguredError):
    logger.error(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Authentication is not configured"})


def to_json(value: Any) -> Any:
    """Replace ObjectIds (top level and nested) with their string form."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_json(v) for v in value]
    return value


def _strings(values: List[Any]) -> List[str]:
    return [v for v in values if isinstance(v, str)]


def _facet_values(store: ToolStore) -> Dict[str, List[str]]:
    """Current categories, locations and statuses, offered to the AI as context."""
    locations = _strings(store.distinct_values("location"))
    locations += [r for r in _strings(store.distinct_values("rack")) if r not in locations]
    return {
        "categories": [c["name"] for c in store.list_categories()],
        "locations": locations,
        "statuses": _strings(store.distinct_values("status")),
    }


#  Health & auth

@app.get("/", response_model=HealthResponse)
def health(ai: Optional[InventoryAI] = Depends(get_ai)):
    return HealthResponse(status="ok", service="tool-inventory", version=__version__, ai_enabled=ai is not None)


@app.post("/auth/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(body: CredentialsRequest, store: ToolStore = Depends(get_store)):
    if not store.create_user(body.username, hash_password(body.password)):
        raise HTTPException(status_code=409, detail="Username already exists")
    logger.info(f"Registered user '{body.username}'")
    return MessageResponse(message="User created")


@app.post("/auth/login", response_model=TokenResponse)
def login(body: CredentialsRequest, store: ToolStore = Depends(get_store)):
    user = store.find_user(body.username)
    if user is None or not verify_password(body.password, user.get("passwordHash", "")):
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return TokenResponse(access_token=create_access_token(body.username))


#  Tools

@app.get("/tools", response_model=ToolListResponse)
def list_tools(
    name: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    status: Optional[str] = None,
    tags: Optional[str] = None,
    store: ToolStore = Depends(get_store),
):
    """List tools. category/location/status/tags take comma-separated values."""
    filters = build_list_filter(name=name, category=category, location=location, status=status, tags=tags)
    return ToolListResponse(tools=to_json(store.find_tools(filters)))


@app.get("/tools/{tool_id}")
def get_tool(tool_id: str, store: ToolStore = Depends(get_store)):
    return to_json(store.get_tool(tool_id))


@app.post("/tools", response_model=ToolWriteResponse, status_code=status.HTTP_201_CREATED)
def create_tool(
    payload: ToolPayload,
    store: ToolStore = Depends(get_store),
    claims: Dict[str, Any] = Depends(require_token),
):
    config = get_config()
    normalized = normalize_tool(
        store,
        payload.model_dump(exclude_unset=True),
        tag_storage=config.tag_storage,
        default_status=config.default_status,
    )
    tool_id = store.insert_tool(normalized.record)
    logger.info(f"{claims.get('sub')} created tool {tool_id} ({normalized.record['name']!r})")
    return ToolWriteResponse(
        message="Tool created",
        toolId=tool_id,
        createdCategory=normalized.created_category,
        createdTags=normalized.created_tags,
    )


@app.put("/tools/{tool_id}", response_model=ToolWriteResponse)
def update_tool(
    tool_id: str,
    payload: ToolPayload,
    store: ToolStore = Depends(get_store),
    claims: Dict[str, Any] = Depends(require_token),
):
    # Reject unknown ids before normalizing, so no categories/tags get created for them
    store.get_tool(tool_id)
    config = get_config()
    normalized = normalize_tool(
        store,
        payload.model_dump(exclude_unset=True),
        tag_storage=config.tag_storage,
        default_status=config.default_status,
    )
    store.update_tool(tool_id, normalized.record)
    logger.info(f"{claims.get('sub')} updated tool {tool_id}")
    return ToolWriteResponse(
        message="Tool updated successfully",
        toolId=tool_id,
        createdCategory=normalized.created_category,
        createdTags=normalized.created_tags,
    )


@app.delete("/tools/{tool_id}", response_model=MessageResponse)
def delete_tool(
    tool_id: str,
    store: ToolStore = Depends(get_store),
    claims: Dict[str, Any] = Depends(require_token),
):
    store.delete_tool(tool_id)
    logger.info(f"{claims.get('sub')} deleted tool {tool_id}")
    return MessageResponse(message="Deleted successfully")


#  Auxiliary listings

@app.get("/categories")
def list_categories(store: ToolStore = Depends(get_store)):
    return {"categories": store.list_categories()}


@app.get("/tags")
def list_tags(store: ToolStore = Depends(get_store)):
    return {"tags": store.list_tags()}


@app.get("/statuses")
def list_statuses(store: ToolStore = Depends(get_store)):
    return {"statuses": _strings(store.distinct_values("status"))}


#  AI-assisted endpoints

@app.post("/tools/search", response_model=SearchResponse)
def search_tools(
    request: SearchRequest,
    store: ToolStore = Depends(get_store),
    ai: Optional[InventoryAI] = Depends(get_ai),
):
    """
    Free-text search.

    AI failures degrade to empty search parameters (whole collection) rather
    than erroring; only a missing AI collaborator is reported as 503.
    """
    if ai is None:
        raise HTTPException(status_code=503, detail="AI search is not configured")

    facets = _facet_values(store)
    try:
        params = ai.generate_search_params(
            request.query, facets["categories"], facets["locations"], facets["statuses"]
        )
    except (AIUnavailableError, MalformedAIResponseError) as e:
        logger.warning(f"AI search params unavailable, searching without filters: {e}")
        params = SearchParameters()

    plan = compile_search(params, request.query, _strings(store.distinct_values("name")))
    if plan.fulfillable:
        body = shape_search_results(store.find_tools(plan.filter), plan.requested_parameters)
    else:
        body = not_fulfilled_response()

    logger.info(f"Search {request.query!r}: strategy={plan.strategy}, results={len(body['tools'])}")
    return SearchResponse(**to_json(body), searchParams=params.model_dump())


@app.post("/tools/from-text", response_model=ToolWriteResponse, status_code=status.HTTP_201_CREATED)
def create_tool_from_text(
    request: FromTextRequest,
    store: ToolStore = Depends(get_store),
    ai: Optional[InventoryAI] = Depends(get_ai),
    claims: Dict[str, Any] = Depends(require_token),
):
    """Create a tool from a natural-language description."""
    if ai is None:
        raise HTTPException(status_code=503, detail="AI tool creation is not configured")

    facets = _facet_values(store)
    try:
        draft = ai.generate_tool(request.text, facets["categories"], facets["statuses"])
    except AIUnavailableError:
        raise HTTPException(status_code=503, detail="AI service unavailable")
    except MalformedAIResponseError:
        raise HTTPException(status_code=502, detail="AI response could not be parsed")

    config = get_config()
    normalized = normalize_tool(
        store, draft, tag_storage=config.tag_storage, default_status=config.default_status
    )
    tool_id = store.insert_tool(normalized.record)
    logger.info(f"{claims.get('sub')} created tool {tool_id} from text")
    return ToolWriteResponse(
        message="Tool created",
        toolId=tool_id,
        createdCategory=normalized.created_category,
        createdTags=normalized.created_tags,
        tool=to_json(normalized.record),
    )


if __name__ == "__main__":
    import uvicorn

    print("=" * 60)
    print("Tool Inventory API Server")
    print("=" * 60)
    print("API Documentation: http://localhost:4000/docs")
    print("")
    print("Environment variables:")
    print("  MONGO_URI        - MongoDB connection string")
    print("  OPENAI_API_KEY   - enables /tools/search and /tools/from-text")
    print("  JWT_SECRET       - signing secret for bearer tokens (required for writes)")
    print("=" * 60)

    uvicorn.run(app, host="0.0.0.0", port=4000)
