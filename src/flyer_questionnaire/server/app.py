from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Annotated
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Path, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse, Response
from pydantic import ValidationError

from flyer_questionnaire.core.errors import (
    AlreadySubmittedError,
    MailerConfigError,
    MailerProviderError,
    UnknownQuestionError,
    UnknownSketchError,
)
from flyer_questionnaire.core.questions import QUESTIONS
from flyer_questionnaire.core.rendering import encode_png_bytes, resolve_background_path
from flyer_questionnaire.protocol.constants import (
    T_ERROR,
    T_HELLO,
    T_STROKE_COMMITTED,
    T_STROKE_DISCARDED,
)
from flyer_questionnaire.protocol.messages import (
    AnswerIn,
    ContactUpdate,
    PointerMsg,
    ResetIn,
    SizeIn,
    SubmissionPayload,
    ToggleIn,
    ToolIn,
    WidthIn,
)

from .config import configure_logging, get_settings
from .mailer import ResendMailer
from .questionnaire_page import render_questionnaire_html
from .sessions import broadcast, get_session

logger = logging.getLogger(__name__)

SessionId = Annotated[str, Path(pattern=r"^[A-Za-z0-9_-]{1,64}$")]

@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging(get_settings())
    yield


app = FastAPI(title="Flyer Questionnaire", lifespan=lifespan)


@app.exception_handler(AlreadySubmittedError)
async def _already_submitted(request: Request, exc: AlreadySubmittedError):
    return JSONResponse({"ok": False, "error": str(exc)}, status_code=409)


@app.exception_handler(UnknownQuestionError)
@app.exception_handler(UnknownSketchError)
async def _unknown(request: Request, exc: KeyError):
    return JSONResponse({"ok": False, "error": f"not found: {exc.args[0]}"}, status_code=404)


def _bad_input(e: ValueError) -> HTTPException:
    return HTTPException(status_code=422, detail=str(e))


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.get("/")
def index():
    return RedirectResponse(f"/apply/{uuid4().hex}", status_code=303)


@app.get("/apply/{session_id}", response_class=HTMLResponse)
def questionnaire(session_id: SessionId):
    return HTMLResponse(render_questionnaire_html(session_id, title=get_settings().application_title))


@app.get("/static/{path:path}")
def static_file(path: str):
    target = resolve_background_path(path, get_settings().static_dir)
    if target is None or not target.is_file():
        raise HTTPException(status_code=404, detail="not found")
    return FileResponse(target)


@app.get("/api/questions")
def questions():
    return {"questions": [q.to_dict() for q in QUESTIONS]}


# -- wizard ----------------------------------------------------------------


@app.get("/api/sessions/{session_id}")
async def session_state(session_id: SessionId):
    session = await get_session(session_id)
    return session.wizard.snapshot()


@app.put("/api/sessions/{session_id}/contact")
async def update_contact(session_id: SessionId, body: ContactUpdate):
    session = await get_session(session_id)
    session.wizard.update_contact(**body.model_dump())
    return session.wizard.snapshot()


@app.put("/api/sessions/{session_id}/answers/{question_id}")
async def set_answer(session_id: SessionId, question_id: str, body: AnswerIn):
    session = await get_session(session_id)
    try:
        session.wizard.set_answer(question_id, body.value)
    except ValueError as e:
        raise _bad_input(e) from e
    return session.wizard.snapshot()


@app.post("/api/sessions/{session_id}/answers/{question_id}/toggle")
async def toggle_option(session_id: SessionId, question_id: str, body: ToggleIn):
    session = await get_session(session_id)
    try:
        session.wizard.toggle_option(question_id, body.option)
    except ValueError as e:
        raise _bad_input(e) from e
    return session.wizard.snapshot()


@app.post("/api/sessions/{session_id}/advance")
async def advance(session_id: SessionId):
    session = await get_session(session_id)
    session.wizard.advance()
    return session.wizard.snapshot()


@app.post("/api/sessions/{session_id}/retreat")
async def retreat(session_id: SessionId):
    session = await get_session(session_id)
    session.wizard.retreat()
    return session.wizard.snapshot()


@app.post("/api/sessions/{session_id}/reset")
async def reset(session_id: SessionId, body: ResetIn):
    session = await get_session(session_id)
    if not session.wizard.reset(confirmed=body.confirm):
        raise HTTPException(status_code=400, detail="reset requires confirmation")
    return session.wizard.snapshot()


@app.post("/api/sessions/{session_id}/submit")
async def submit(session_id: SessionId):
    session = await get_session(session_id)
    result = await session.packager.submit()
    return {**result.to_dict(), "state": session.wizard.snapshot()}


# -- sketches --------------------------------------------------------------


@app.post("/api/sessions/{session_id}/sketches/{key}/undo")
async def undo(session_id: SessionId, key: str):
    session = await get_session(session_id)
    session.wizard.undo(key)
    return session.wizard.snapshot()


@app.post("/api/sessions/{session_id}/sketches/{key}/clear")
async def clear(session_id: SessionId, key: str):
    session = await get_session(session_id)
    session.wizard.clear(key)
    return session.wizard.snapshot()


@app.put("/api/sessions/{session_id}/sketches/{key}/tool")
async def set_tool(session_id: SessionId, key: str, body: ToolIn):
    session = await get_session(session_id)
    session.wizard.set_tool(key, body.tool)
    return session.wizard.snapshot()


@app.put("/api/sessions/{session_id}/sketches/{key}/width")
async def set_width(session_id: SessionId, key: str, body: WidthIn):
    session = await get_session(session_id)
    session.wizard.set_width(key, body.width)
    return session.wizard.snapshot()


@app.put("/api/sessions/{session_id}/sketches/{key}/size")
async def resize_sketch(session_id: SessionId, key: str, body: SizeIn):
    session = await get_session(session_id)
    session.wizard.resize_sketch(key, body.width, body.height, body.pixel_ratio)
    return session.wizard.snapshot()


@app.get("/api/sessions/{session_id}/sketches/{key}/render.png")
async def render_sketch(session_id: SessionId, key: str):
    session = await get_session(session_id)
    surface = session.wizard.sketch(key)
    png = await asyncio.to_thread(lambda: encode_png_bytes(surface.render()))
    return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-store"})


@app.websocket("/ws/{session_id}/sketches/{key}")
async def sketch_ws(session_id: str, key: str, ws: WebSocket):
    await ws.accept()
    session = await get_session(session_id)
    try:
        session.wizard.sketch(key)
    except UnknownSketchError:
        await ws.close(code=4404)
        return
    session.clients.add(ws)

    await ws.send_text(json.dumps({"t": T_HELLO, "session": session_id, "sketch": key}, separators=(",", ":")))

    try:
        while True:
            raw = await ws.receive_text()
            try:
                msg = PointerMsg.model_validate_json(raw)
            except ValidationError:
                await ws.send_text(json.dumps({"t": T_ERROR, "error": "bad message"}))
                continue
            if get_settings().debug_log_msgs:
                logger.debug("[ws:%s/%s] in phase=%s x=%.1f y=%.1f", session_id, key, msg.phase, msg.x, msg.y)

            try:
                outcome, _stroke = session.wizard.pointer(key, msg)
            except AlreadySubmittedError:
                await ws.send_text(json.dumps({"t": T_ERROR, "error": "application already submitted"}))
                continue

            count = len(session.wizard.sketch(key).strokes)
            if outcome == "committed":
                # every open view of this session redraws from the server render
                await broadcast(session, {"t": T_STROKE_COMMITTED, "sketch": key, "count": count})
            elif outcome == "discarded":
                await ws.send_text(json.dumps({"t": T_STROKE_DISCARDED, "sketch": key, "count": count}))
    except WebSocketDisconnect:
        pass
    finally:
        session.clients.discard(ws)


# -- email relay -----------------------------------------------------------


@app.post("/send-email")
async def send_email(payload: SubmissionPayload):
    mailer = ResendMailer.from_settings(get_settings())
    try:
        await asyncio.to_thread(mailer.send_application, payload)
    except MailerConfigError as e:
        return JSONResponse({"ok": False, "error": str(e)}, status_code=500)
    except MailerProviderError as e:
        logger.warning("relay: %s (%s) %s", e, e.status, e.details)
        return JSONResponse({"ok": False, "error": str(e), "details": e.details}, status_code=500)
    except Exception as e:
        logger.exception("relay: unexpected failure")
        return JSONResponse({"ok": False, "error": "Server error", "details": str(e)}, status_code=500)
    return {"ok": True}
