"""
FastAPI backend: connection lifecycle and discovery REST API.
Run with uvicorn: uvicorn api.main:app --reload
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from neo4j import GraphDatabase
from pydantic import BaseModel

from api.settings import settings
from cofound.application import (
    ConflictError,
    ConnectionService,
    ConnectionSummary,
    DiscoveryService,
    NotFoundError,
    NotParty,
    NotReceiver,
    NotRequester,
    StoreUnavailable,
    ValidationError,
)
from cofound.domain import Connection, Profile
from cofound.infrastructure import (
    CompositeNotificationEmitter,
    InMemoryConnectionStore,
    InMemoryProfileDirectory,
    LoggingNotificationEmitter,
    Neo4jConnectionStore,
    Neo4jProfileDirectory,
    RecordingNotificationEmitter,
    ensure_connection_constraints,
    ensure_profile_constraints,
)

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=settings.LOG_LEVEL,
)
logger = logging.getLogger(__name__)

# Stand-in for the external auth layer: the acting profile id.
PROFILE_ID_HEADER = "X-Profile-Id"

FORBIDDEN_FAILURES = (NotReceiver, NotRequester, NotParty)


def _get_driver():
    return GraphDatabase.driver(
        settings.NEO4J_URI, auth=(settings.NEO4J_USER, settings.NEO4J_PASSWORD)
    )


def _load_seed_profiles(path: Path) -> list[Profile]:
    """Profiles from a JSON list of objects with Profile field names.
    created_at, when given, is an ISO-8601 string."""
    profiles = []
    for raw in json.loads(path.read_text(encoding="utf-8")):
        if raw.get("created_at"):
            raw["created_at"] = datetime.fromisoformat(raw["created_at"])
        profiles.append(Profile(**raw))
    return profiles


def _wire_services(app: FastAPI) -> None:
    """Build store, directory, emitter and services for the configured backend."""
    if settings.STORE_BACKEND == "memory":
        store = InMemoryConnectionStore()
        profiles = InMemoryProfileDirectory()
        if settings.MEMORY_SEED_FILE:
            seed = _load_seed_profiles(Path(settings.MEMORY_SEED_FILE))
            for profile in seed:
                profiles.add(profile)
            logger.info("Seeded %d profiles from %s", len(seed), settings.MEMORY_SEED_FILE)
        app.state.events = RecordingNotificationEmitter()
        emitter = CompositeNotificationEmitter(
            [LoggingNotificationEmitter(), app.state.events]
        )
    else:
        app.state.driver = _get_driver()
        ensure_connection_constraints(app.state.driver)
        ensure_profile_constraints(app.state.driver)
        store = Neo4jConnectionStore(app.state.driver)
        profiles = Neo4jProfileDirectory(app.state.driver)
        emitter = LoggingNotificationEmitter()

    app.state.profiles = profiles
    app.state.connections = ConnectionService(store, profiles, emitter)
    app.state.discovery = DiscoveryService(
        store,
        profiles,
        default_limit=settings.DISCOVERY_DEFAULT_LIMIT,
        max_limit=settings.DISCOVERY_MAX_LIMIT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.driver = None
    logger.info("Starting %s with %s store", settings.PROJECT_NAME, settings.STORE_BACKEND)
    try:
        _wire_services(app)
        yield
    finally:
        if getattr(app.state, "driver", None) is not None:
            app.state.driver.close()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)


# --- Schemas ---


class CreateConnectionBody(BaseModel):
    receiver_id: str


class ConnectionOut(BaseModel):
    id: str
    requester_id: str
    receiver_id: str
    status: str
    created_at: str
    updated_at: str


class ProfileSummaryOut(BaseModel):
    id: str
    name: str
    photo_url: str | None = None
    startup_name: str | None = None
    looking_for: str | None = None


class ConnectionListItem(BaseModel):
    connection: ConnectionOut
    other_profile_id: str
    direction: str
    other_profile: ProfileSummaryOut | None = None


class ProfileOut(BaseModel):
    id: str
    name: str
    age: int | None = None
    city: str | None = None
    country: str | None = None
    looking_for: str | None = None
    interests: list[str] = []
    about_me: str | None = None
    photo_url: str | None = None
    startup_name: str | None = None


def _connection_out(conn: Connection) -> ConnectionOut:
    return ConnectionOut(
        id=conn.id,
        requester_id=conn.requester_id,
        receiver_id=conn.receiver_id,
        status=conn.status.value,
        created_at=conn.created_at.isoformat(),
        updated_at=conn.updated_at.isoformat(),
    )


def _list_item(summary: ConnectionSummary) -> ConnectionListItem:
    card = summary.other_profile
    return ConnectionListItem(
        connection=_connection_out(summary.connection),
        other_profile_id=summary.other_profile_id,
        direction=summary.direction,
        other_profile=ProfileSummaryOut(
            id=card.id,
            name=card.name,
            photo_url=card.photo_url,
            startup_name=card.startup_name,
            looking_for=card.looking_for,
        )
        if card is not None
        else None,
    )


def _profile_out(profile: Profile) -> ProfileOut:
    return ProfileOut(
        id=profile.id,
        name=profile.name,
        age=profile.age,
        city=profile.city,
        country=profile.country,
        looking_for=profile.looking_for,
        interests=sorted(profile.interests),
        about_me=profile.about_me,
        photo_url=profile.photo_url,
        startup_name=profile.startup_name,
    )


# --- Helpers ---


def _acting_profile(x_profile_id: str | None) -> str:
    profile_id = (x_profile_id or "").strip()
    if not profile_id:
        raise HTTPException(status_code=401, detail="Missing profile id")
    return profile_id


def _raise_for_failure(result) -> None:
    """Map a failure result to an HTTP error. Successes pass through."""
    if isinstance(result, FORBIDDEN_FAILURES):
        status_code = 403
    elif isinstance(result, ValidationError):
        status_code = 400
    elif isinstance(result, ConflictError):
        status_code = 409
    elif isinstance(result, NotFoundError):
        status_code = 404
    elif isinstance(result, StoreUnavailable):
        status_code = 503
    else:
        return
    detail = {"reason": result.reason, "message": result.message}
    current = getattr(result, "existing", None) or getattr(result, "current", None)
    if current is not None:
        detail["current"] = _connection_out(current).model_dump()
    raise HTTPException(status_code=status_code, detail=detail)


def _connections(request: Request) -> ConnectionService:
    return request.app.state.connections


def _discovery(request: Request) -> DiscoveryService:
    return request.app.state.discovery


# --- REST: health ---


@app.get("/health")
def health():
    return {"status": "ok"}


# --- REST: connections ---


@app.post("/connections")
def create_connection(
    body: CreateConnectionBody,
    request: Request,
    x_profile_id: str | None = Header(None, alias=PROFILE_ID_HEADER),
):
    profile_id = _acting_profile(x_profile_id)
    result = _connections(request).create_request(profile_id, body.receiver_id)
    _raise_for_failure(result)
    return JSONResponse(
        content={"connection": _connection_out(result.connection).model_dump()},
        status_code=201,
    )


@app.get("/connections")
def list_connections(
    request: Request,
    x_profile_id: str | None = Header(None, alias=PROFILE_ID_HEADER),
):
    profile_id = _acting_profile(x_profile_id)
    result = _connections(request).get_connections_for_profile(profile_id)
    _raise_for_failure(result)
    return {
        "pending_received": [_list_item(s) for s in result.pending_received],
        "pending_sent": [_list_item(s) for s in result.pending_sent],
        "accepted": [_list_item(s) for s in result.accepted],
    }


@app.get("/connections/pending/count")
def pending_count(
    request: Request,
    x_profile_id: str | None = Header(None, alias=PROFILE_ID_HEADER),
):
    profile_id = _acting_profile(x_profile_id)
    result = _connections(request).count_pending_received(profile_id)
    _raise_for_failure(result)
    return {"count": result.count}


@app.get("/connections/status/{other_profile_id}")
def connection_status(
    other_profile_id: str,
    request: Request,
    x_profile_id: str | None = Header(None, alias=PROFILE_ID_HEADER),
):
    profile_id = _acting_profile(x_profile_id)
    result = _connections(request).get_connection_status(profile_id, other_profile_id)
    _raise_for_failure(result)
    return {"status": result.status, "connection_id": result.connection_id}


@app.post("/connections/{connection_id}/accept")
def accept_connection(
    connection_id: str,
    request: Request,
    x_profile_id: str | None = Header(None, alias=PROFILE_ID_HEADER),
):
    profile_id = _acting_profile(x_profile_id)
    result = _connections(request).accept(connection_id, profile_id)
    _raise_for_failure(result)
    return {"connection": _connection_out(result.connection)}


@app.post("/connections/{connection_id}/reject")
def reject_connection(
    connection_id: str,
    request: Request,
    x_profile_id: str | None = Header(None, alias=PROFILE_ID_HEADER),
):
    profile_id = _acting_profile(x_profile_id)
    result = _connections(request).reject(connection_id, profile_id)
    _raise_for_failure(result)
    return {"connection": _connection_out(result.connection)}


@app.delete("/connections/{connection_id}/request")
def withdraw_connection(
    connection_id: str,
    request: Request,
    x_profile_id: str | None = Header(None, alias=PROFILE_ID_HEADER),
):
    """Withdraw a pending request (also undo-last-swipe). A missing row is a no-op."""
    profile_id = _acting_profile(x_profile_id)
    result = _connections(request).withdraw(connection_id, profile_id)
    if isinstance(result, NotFoundError):
        return {"deleted": False}
    _raise_for_failure(result)
    return {"deleted": True}


@app.delete("/connections/{connection_id}")
def remove_connection(
    connection_id: str,
    request: Request,
    x_profile_id: str | None = Header(None, alias=PROFILE_ID_HEADER),
):
    """Remove an accepted connection. A missing row is a no-op."""
    profile_id = _acting_profile(x_profile_id)
    result = _connections(request).remove(connection_id, profile_id)
    if isinstance(result, NotFoundError):
        return {"deleted": False}
    _raise_for_failure(result)
    return {"deleted": True}


# --- REST: discovery ---


@app.get("/discover")
def discover(
    request: Request,
    limit: int | None = None,
    x_profile_id: str | None = Header(None, alias=PROFILE_ID_HEADER),
):
    profile_id = _acting_profile(x_profile_id)
    result = _discovery(request).get_candidates(profile_id, limit)
    _raise_for_failure(result)
    return {"profiles": [_profile_out(p) for p in result.profiles]}
