from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.deps import get_current_user
from app.db.session import get_db
from app.schemas.ai import ChatIn, NlQueryIn
from app.services.ai_prompts import build_chat_prompt, build_narrative_prompt, build_query_prompt
from app.services.gemini_client import (
    AiUnavailableError,
    ModelOutputError,
    extract_json_object,
    generate_optional_text,
    generate_text,
)
from app.services.query_pipeline import execute_safe_query, validate_descriptor
from app.services.rate_limit import enforce_ai_rate_limit

router = APIRouter()
_LOG = logging.getLogger("app.ai")


def _ai_user(user: dict = Depends(get_current_user)) -> dict:
    enforce_ai_rate_limit(user)
    return user


def _rejected(outcome) -> JSONResponse:
    return JSONResponse(status_code=400, content=outcome.error.as_payload())


@router.post("/nl-query")
def nl_query(payload: NlQueryIn, db: Session = Depends(get_db), user: dict = Depends(_ai_user)):
    question = str(payload.prompt or "").strip()
    if not question:
        raise HTTPException(status_code=400, detail="prompt required")

    try:
        descriptor = extract_json_object(generate_text(build_query_prompt(question)))
    except AiUnavailableError as exc:
        _LOG.error("AI query planning unavailable: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    except ModelOutputError as exc:
        _LOG.warning("Unusable model output: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    validated = validate_descriptor(descriptor)
    if not validated.ok:
        _LOG.warning("Rejected model query kind=%s message=%s", validated.error.kind.value, validated.error.message)
        return _rejected(validated)
    safe_query = validated.data

    try:
        executed = execute_safe_query(safe_query, db)
    except SQLAlchemyError:
        _LOG.exception("AI query execution failed collection=%s", safe_query.collection)
        raise HTTPException(status_code=500, detail="Query execution failed")
    if not executed.ok:
        _LOG.warning("Rejected model query kind=%s message=%s", executed.error.kind.value, executed.error.message)
        return _rejected(executed)

    query = safe_query.as_dict()
    narrative = None
    if payload.narrate:
        narrative = generate_optional_text(build_narrative_prompt(question, query, executed.data))

    return {"success": True, "data": {"results": executed.data, "query": query, "narrative": narrative}}


@router.post("/chat")
def chat(payload: ChatIn, user: dict = Depends(_ai_user)):
    message = str(payload.prompt or "").strip()
    if not message:
        raise HTTPException(status_code=400, detail="prompt required")
    try:
        text = generate_text(build_chat_prompt(message, payload.context))
    except AiUnavailableError as exc:
        _LOG.error("AI chat unavailable: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return {"success": True, "data": {"text": text}}
