"""FastAPI server for brushwork application."""

import asyncio
import logging
import os
import random
import uuid

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from typing import Optional

logger = logging.getLogger(__name__)

from core.models import PracticeMode, PracticeRecord, Outcome
from core.session import PracticeSession
from core.interfaces import ContentProvider, Scheduler, Storage
from core.config import DEFAULT_MODE, MAX_LIVE_SESSIONS, PASS_SCORE, RECENT_RECORDS_LIMIT

from server.gemini_provider import GeminiProvider
from server.file_storage import FileStorage
from server.postgres_storage import PostgresStorage


# Pydantic models for API
class StartSessionRequest(BaseModel):
    entries: list[str]
    user_id: str = "default"
    mode: str = DEFAULT_MODE
    targets: dict[str, str] = {}
    seed: Optional[int] = None


class SubmitRequest(BaseModel):
    text: str
    target: Optional[str] = None


class TranscribeRequest(BaseModel):
    text: str


class TileRequest(BaseModel):
    index: int


class ChoiceRequest(BaseModel):
    option: str


class ActionResponse(BaseModel):
    outcome: dict
    session: dict


# Global state (in production, use proper DI)
storage: Storage = None
content_provider: ContentProvider = None
scheduler: Scheduler = None  # None = asyncio timers on the server loop

# Session tracking
sessions: dict[str, PracticeSession] = {}
session_users: dict[str, str] = {}  # session_id -> user_id
session_content: dict[str, dict] = {}  # session_id -> {item key: enrichment}


def result_details(mode: str, score: int) -> str:
    if mode not in (PracticeMode.PINYIN.value, PracticeMode.FILL_IN_BLANKS.value):
        return 'Completed'
    return 'Correct' if score >= PASS_SCORE else 'Incorrect'


def make_recorder(user_id: str):
    """Result sink for a session: persist every graded outcome for the user."""
    def record(key: str, score: int, mode: str) -> None:
        record = PracticeRecord(key, score, mode, result_details(mode, score))
        storage.save_practice_record(user_id, record.to_dict())
        logger.info(f"Recorded {mode} result for {user_id}: {key!r} = {score}")
    return record


def get_session(session_id: str) -> PracticeSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def close_session(session_id: str) -> str | None:
    """Forget a session and its cached content. Returns its user."""
    session = sessions.pop(session_id, None)
    if session is not None and not session.finished:
        session.exit()
    session_content.pop(session_id, None)
    return session_users.pop(session_id, None)


async def call_provider(fn, *args):
    """Run a blocking provider call without stalling the event loop.
    Returns None when the provider is missing or the call fails."""
    if content_provider is None:
        return None
    try:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: fn(*args))
    except Exception as e:
        logger.error(f"Content lookup {fn.__name__} failed: {e}")
        return None


async def lookup_character_details(word: str) -> dict | None:
    details = storage.get_character_details(word) if storage else None
    if details:
        return details
    details = await call_provider(content_provider.get_character_details, word) if content_provider else None
    if details and storage:
        try:
            storage.save_character_details(word, details)
        except Exception as e:
            logger.warning(f"Could not cache character details for {word}: {e}")
    return details


async def lookup_flashcard(character: str) -> dict | None:
    card = storage.get_flashcard(character) if storage else None
    if card:
        return card
    card = await call_provider(content_provider.get_flashcard, character) if content_provider else None
    if card and card.get('pinyin') and card['pinyin'] != '?' and storage:
        try:
            storage.save_flashcard(character, card)
        except Exception as e:
            logger.warning(f"Could not cache flashcard for {character}: {e}")
    return card


async def enrich(session_id: str, session: PracticeSession, include_image: bool = False) -> dict:
    """Optional display data for the current item. Missing data is omitted."""
    item = session.current_item
    if item is None:
        return {}

    cache = session_content.setdefault(session_id, {})
    content = cache.setdefault(item.key, {})

    if session.mode == PracticeMode.PINYIN:
        if 'flashcard' not in content:
            card = await lookup_flashcard(item.display_phrase)
            if card:
                content['flashcard'] = card
        card = content.get('flashcard')
        if card and card.get('pinyin') not in (None, '', '?') and not session.target_for(item):
            session.set_target(item.key, card['pinyin'])
        return content

    if session.mode == PracticeMode.FILL_IN_BLANKS:
        if 'distractors' not in content and content_provider:
            distractors = await call_provider(content_provider.get_distractors,
                                              item.answer, item.display_phrase)
            content['distractors'] = distractors or []
            if distractors:
                session.set_distractors(item.key, distractors)
        return content

    if 'character_details' not in content:
        details = await lookup_character_details(item.target_word)
        if details:
            content['character_details'] = details

    if session.mode == PracticeMode.STORY_BUILDER:
        if 'sentence_pinyin' not in content and content_provider:
            pinyin = await call_provider(content_provider.get_sentence_pinyin, item.sentence)
            if pinyin:
                content['sentence_pinyin'] = pinyin
        if include_image and 'image' not in content and content_provider:
            image = await call_provider(content_provider.get_story_image, item.sentence)
            if image:
                content['image'] = image
    return content


def respond(session: PracticeSession, outcome: Outcome) -> ActionResponse:
    return ActionResponse(outcome=outcome.to_dict(), session=session.snapshot())


def run_action(session_id: str, action, *args) -> ActionResponse:
    session = get_session(session_id)
    try:
        outcome = action(session, *args)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error in session {session_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal error: {type(e).__name__}: {str(e)}")
    if outcome.accepted:
        logger.info(f"Session {session_id}: {outcome.event} -> {outcome.phase.value}")
    response = respond(session, outcome)
    if session.finished:
        user_id = close_session(session_id)
        logger.info(f"Session {session_id} complete for {user_id}")
    return response


app = FastAPI(title="Brushwork API", description="Chinese character practice API")


@app.on_event("startup")
async def startup():
    """Initialize storage and content provider on startup."""
    global storage, content_provider

    # Use file storage by default, set BRUSHWORK_STORAGE=postgres to use PostgreSQL
    storage_type = os.environ.get('BRUSHWORK_STORAGE', 'file')
    if storage_type == 'postgres':
        storage = PostgresStorage()
        print("Using PostgreSQL storage")
    else:
        storage = FileStorage()
        print("Using file storage")

    # Get API key from environment variable first, then fall back to config file
    api_key = os.environ.get('GEMINI_API_KEY')
    if not api_key:
        try:
            config = storage.load_config()
            api_key = config.get('gemini_api_key')
        except FileNotFoundError:
            pass

    if not api_key:
        # Sessions still work; enrichment data is simply left out
        logger.warning(
            "GEMINI_API_KEY environment variable not set and config file not found. "
            "Content lookups are disabled. Set GEMINI_API_KEY or create "
            "~/.config/brushwork/config.json"
        )
        return

    content_provider = GeminiProvider(api_key, model_name='gemini-2.0-flash')
    print("Content provider initialized: gemini-2.0-flash")


@app.get("/")
async def root():
    """Health check."""
    return {"status": "ok", "service": "brushwork"}


@app.post("/api/sessions", response_model=ActionResponse)
async def start_session(request: StartSessionRequest):
    """Start a practice session over the given queue entries."""
    try:
        mode = PracticeMode(request.mode)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown mode: {request.mode}")

    rng = random.Random(request.seed) if request.seed is not None else None
    session = PracticeSession.start(
        request.entries, mode,
        record=make_recorder(request.user_id),
        scheduler=scheduler,
        rng=rng,
        targets=request.targets
    )
    session_id = str(uuid.uuid4())[:8]
    outcome = Outcome('started', session.state.phase, session.state.status)
    response = respond(session, outcome)
    response.session['id'] = session_id
    if session.finished:
        logger.info(f"Session {session_id} for {request.user_id} has nothing to practice")
        return response

    while len(sessions) >= MAX_LIVE_SESSIONS:
        oldest = next(iter(sessions))
        logger.warning(f"Too many live sessions, dropping {oldest}")
        close_session(oldest)
    sessions[session_id] = session
    session_users[session_id] = request.user_id
    logger.info(f"Session {session_id} started for {request.user_id}: "
                f"{mode.value}, {session.queue.total} items")
    return response


@app.get("/api/sessions/{session_id}")
async def get_session_state(session_id: str, image: bool = False):
    """Current session state plus optional content for the current item."""
    session = get_session(session_id)
    content = await enrich(session_id, session, include_image=image)
    snapshot = session.snapshot()
    snapshot['id'] = session_id
    snapshot['content'] = content
    return snapshot


@app.post("/api/sessions/{session_id}/submit", response_model=ActionResponse)
async def submit(session_id: str, request: SubmitRequest):
    """Grade a pinyin answer."""
    session = get_session(session_id)
    if not request.target and not session.target_for(session.current_item):
        await enrich(session_id, session)
    return run_action(session_id, PracticeSession.submit, request.text, request.target)


@app.post("/api/sessions/{session_id}/continue", response_model=ActionResponse)
async def proceed(session_id: str):
    return run_action(session_id, PracticeSession.proceed)


@app.post("/api/sessions/{session_id}/skip", response_model=ActionResponse)
async def skip(session_id: str):
    return run_action(session_id, PracticeSession.skip)


@app.post("/api/sessions/{session_id}/draw", response_model=ActionResponse)
async def draw(session_id: str):
    """The drawing widget finished one repetition of the target word."""
    return run_action(session_id, PracticeSession.complete_drawing)


@app.post("/api/sessions/{session_id}/transcribe", response_model=ActionResponse)
async def transcribe(session_id: str, request: TranscribeRequest):
    return run_action(session_id, PracticeSession.check_transcription, request.text)


@app.post("/api/sessions/{session_id}/record", response_model=ActionResponse)
async def record(session_id: str):
    return run_action(session_id, PracticeSession.start_recording)


@app.post("/api/sessions/{session_id}/select", response_model=ActionResponse)
async def select(session_id: str, request: TileRequest):
    return run_action(session_id, PracticeSession.select, request.index)


@app.post("/api/sessions/{session_id}/undo", response_model=ActionResponse)
async def undo(session_id: str, request: TileRequest):
    return run_action(session_id, PracticeSession.undo, request.index)


@app.post("/api/sessions/{session_id}/check", response_model=ActionResponse)
async def check(session_id: str):
    return run_action(session_id, PracticeSession.check_assembly)


@app.post("/api/sessions/{session_id}/choose", response_model=ActionResponse)
async def choose(session_id: str, request: ChoiceRequest):
    """Pick an answer for the blank."""
    return run_action(session_id, PracticeSession.choose, request.option)


@app.delete("/api/sessions/{session_id}")
async def exit_session(session_id: str):
    """Leave a session. Nothing is recorded for the item in progress."""
    get_session(session_id)
    user_id = close_session(session_id)
    logger.info(f"Session {session_id} closed for {user_id}")
    return {"success": True}


@app.get("/api/records")
async def get_records(user_id: str = "default", limit: int = RECENT_RECORDS_LIMIT):
    """Most recent graded results for a user."""
    return {"records": storage.get_practice_records(user_id, limit)}


@app.get("/api/users")
async def list_users():
    """List users with recorded results."""
    return {"users": storage.list_users()}


@app.get("/api/characters/{word}")
async def get_character(word: str):
    """Dictionary details for a word."""
    details = await lookup_character_details(word)
    if details is None:
        raise HTTPException(status_code=404, detail="No details available")
    return details
