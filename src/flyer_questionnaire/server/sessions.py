from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from dataclasses import dataclass, field

from fastapi import WebSocket

from flyer_questionnaire.core.packager import Delivery, HttpDelivery, RelayDelivery, SubmissionPackager
from flyer_questionnaire.core.storage import KeyValueStore, MemoryStore, SqliteStore, get_db
from flyer_questionnaire.core.wizard import WizardController

from .config import Settings, get_settings
from .mailer import ResendMailer

logger = logging.getLogger(__name__)


@dataclass
class Session:
    wizard: WizardController
    packager: SubmissionPackager
    # sketch websocket clients, so every open tab hears about committed strokes
    clients: set[WebSocket] = field(default_factory=set)


SESSIONS: dict[str, Session] = {}
LOCK = asyncio.Lock()
_DB: sqlite3.Connection | None = None


def _store_for(session_id: str, settings: Settings) -> KeyValueStore:
    global _DB
    if settings.storage_path is None:
        return MemoryStore()
    if _DB is None:
        _DB = get_db(settings.storage_path)
    return SqliteStore(_DB, session_id)


def build_delivery(settings: Settings) -> Delivery:
    if settings.delivery_url:
        return HttpDelivery(settings.delivery_url, timeout_s=settings.delivery_timeout_s)
    return RelayDelivery(ResendMailer.from_settings(settings))


def build_session(session_id: str, settings: Settings) -> Session:
    wizard = WizardController(
        _store_for(session_id, settings),
        static_dir=settings.static_dir,
        default_stroke_width=settings.default_stroke_width,
    )
    packager = SubmissionPackager(wizard, build_delivery(settings), title=settings.application_title)
    return Session(wizard=wizard, packager=packager)


async def get_session(session_id: str) -> Session:
    async with LOCK:
        if session_id not in SESSIONS:
            SESSIONS[session_id] = build_session(session_id, get_settings())
            logger.debug("session %s created", session_id)
        return SESSIONS[session_id]


def reset_sessions() -> None:
    """Forget every live session and close the store (tests, settings reloads)."""
    global _DB
    SESSIONS.clear()
    if _DB is not None:
        _DB.close()
        _DB = None


async def broadcast(session: Session, msg: dict, exclude: WebSocket | None = None) -> None:
    dead: list[WebSocket] = []
    data = json.dumps(msg, separators=(",", ":"), ensure_ascii=False)
    for ws in list(session.clients):
        if exclude is ws:
            continue
        try:
            await ws.send_text(data)
        except Exception:
            dead.append(ws)
    for ws in dead:
        session.clients.discard(ws)
