from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.sessions import SessionMiddleware

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events
from .chat.models import (
    ChatRequest,
    ChatResponse,
    ConversationState,
    SelectRequest,
    SessionInfo,
)
from .chat.orchestrator import Orchestrator, select_entity
from .chat.store import ConversationStore
from .chat.summary import WELCOME_ACTIONS, WELCOME_TEXT, export_transcript, get_suggestions, welcome_message
from .llm.groq_client import GroqClient
from .llm.grounded import GroundedGenerator
from .places.cache import TTLCache
from .places.geocoding import LocationResolver
from .places.google_places import GooglePlacesClient
from .search.serper import WebSearchClient
from .settings import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

settings = DEFAULT_SETTINGS
conversations = ConversationStore(
    max_conversations=settings.chat.max_conversations,
    idle_ttl=settings.chat.conversation_ttl,
)

_SESSION_KEY = "conversation_id"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.require_credentials()
    logger.info("Starting restaurant chat API with model %s", settings.llm.model)
    yield


app = FastAPI(title="Restaurant Chat Assistant API", version="1.0.0", lifespan=lifespan)
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)


# ── Dependencies ─────────────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_llm() -> GroqClient:
    return GroqClient(settings.llm)


@lru_cache(maxsize=1)
def get_location_resolver() -> LocationResolver:
    return LocationResolver(config=settings.places, llm=get_llm())


@lru_cache(maxsize=1)
def get_places_client() -> GooglePlacesClient:
    return GooglePlacesClient(get_location_resolver(), config=settings.places)


@lru_cache(maxsize=1)
def get_orchestrator() -> Orchestrator:
    llm = get_llm()
    web_search = WebSearchClient(settings.search) if settings.search.api_key else None
    return Orchestrator(
        classifier=llm,
        generator=GroundedGenerator(llm, web_search),
        place_search=get_places_client(),
        chat_config=settings.chat,
        ranking_config=settings.ranking,
    )


def get_store() -> ConversationStore:
    return conversations


def get_caches() -> dict[str, TTLCache]:
    return {
        "places": get_places_client().cache,
        "geocoding": get_location_resolver().cache,
    }


def _current_state(request: Request, store: ConversationStore) -> ConversationState:
    state = store.get_or_create(request.session.get(_SESSION_KEY))
    request.session[_SESSION_KEY] = state.conversation_id
    return state


def _peek_state(request: Request, store: ConversationStore) -> ConversationState:
    # Read-only views never store a conversation; the first turn creates it.
    return store.get(request.session.get(_SESSION_KEY)) or ConversationState(messages=[welcome_message()])


def _session_info(state: ConversationState) -> SessionInfo:
    return SessionInfo(
        conversation_id=state.conversation_id,
        message_count=len(state.messages),
        selected_entity=state.selected_entity.name if state.selected_entity else None,
        last_result_set=[r.place.name for r in state.last_result_set],
        suggestions=get_suggestions(state, settings.chat),
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# ── Chat endpoints ───────────────────────────────────────────────────────


@app.get("/chat/welcome", response_model=ChatResponse)
def chat_welcome(request: Request, store: ConversationStore = Depends(get_store)) -> ChatResponse:
    state = _peek_state(request, store)
    return ChatResponse(
        conversation_id=state.conversation_id,
        message=WELCOME_TEXT,
        follow_ups=list(WELCOME_ACTIONS),
    )


@app.post("/chat", response_model=ChatResponse)
def chat(
    body: ChatRequest,
    request: Request,
    store: ConversationStore = Depends(get_store),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ChatResponse:
    state = _current_state(request, store)

    with store.lock(state.conversation_id):
        result = orchestrator.handle_turn(body.message, state)

    context = result.context
    return ChatResponse(
        conversation_id=state.conversation_id,
        message=result.reply,
        follow_ups=result.follow_ups,
        results=result.results,
        intent=result.intent.intent if result.intent else None,
        intent_confidence=result.intent.confidence if result.intent else 0.0,
        resolved_message=context.resolved_utterance if context and context.has_context else None,
    )


@app.post("/chat/select", response_model=SessionInfo)
def chat_select(
    body: SelectRequest,
    request: Request,
    store: ConversationStore = Depends(get_store),
) -> SessionInfo:
    state = _peek_state(request, store)
    with store.lock(state.conversation_id):
        if not select_entity(state, body.place_id):
            raise HTTPException(status_code=404, detail="Restaurant not found in the latest results")
    return _session_info(state)


@app.post("/chat/reset", response_model=SessionInfo)
def chat_reset(request: Request, store: ConversationStore = Depends(get_store)) -> SessionInfo:
    state = store.reset(request.session.get(_SESSION_KEY))
    request.session[_SESSION_KEY] = state.conversation_id
    return _session_info(state)


@app.get("/chat/session", response_model=SessionInfo)
def chat_session(request: Request, store: ConversationStore = Depends(get_store)) -> SessionInfo:
    return _session_info(_peek_state(request, store))


@app.get("/chat/export", response_class=PlainTextResponse)
def chat_export(request: Request, store: ConversationStore = Depends(get_store)) -> PlainTextResponse:
    state = _peek_state(request, store)
    return PlainTextResponse(
        export_transcript(state),
        headers={"Content-Disposition": f'attachment; filename="chat-{state.conversation_id}.txt"'},
    )


# ── Operator endpoints ───────────────────────────────────────────────────


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())


@app.get("/cache/stats")
def cache_stats(caches: dict[str, TTLCache] = Depends(get_caches)) -> dict:
    return {name: cache.stats() for name, cache in caches.items()}


@app.post("/cache/clear")
def cache_clear(caches: dict[str, TTLCache] = Depends(get_caches)) -> dict:
    for cache in caches.values():
        cache.clear()
    logger.info("Cleared caches: %s", ", ".join(caches))
    return {"status": "cleared", "caches": list(caches)}


def main() -> None:
    import uvicorn

    uvicorn.run("foodie.app:app", host="0.0.0.0", port=8000)
