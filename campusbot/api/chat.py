from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from campusbot.api.deps import orchestrator_dep
from campusbot.core.errors import BadRequestError, ChatbotError
from campusbot.models.chat import ChatRequest
from campusbot.services.chat_orchestrator import ChatOrchestrator

logger = logging.getLogger("campusbot.api.chat")
router = APIRouter()

GENERIC_APOLOGY = "Sorry, I encountered an error. Please try again."


# ---------------- Helpers ----------------
def error_payload(err: Exception) -> Dict[str, Any]:
    if isinstance(err, BadRequestError):
        return {"error": err.reason}
    public = err.public_error if isinstance(err, ChatbotError) else "Internal server error"
    return {"error": public, "message": GENERIC_APOLOGY, "usedSearch": False}


def error_response(err: Exception) -> JSONResponse:
    status = err.status_code if isinstance(err, ChatbotError) else 500
    return JSONResponse(error_payload(err), status_code=status)


# ---------------- Route impls ----------------
def _chat_impl(req: ChatRequest, orchestrator: ChatOrchestrator):
    count = len(req.messages or [])
    logger.info("POST /api/chat messages=%d", count)

    try:
        result = orchestrator.handle(req.messages)
    except BadRequestError as e:
        logger.warning("bad chat request: %s", e.reason)
        return error_response(e)
    except Exception as e:
        logger.exception("Chat API error")
        return error_response(e)

    logger.info("POST /api/chat done used_search=%s reply_len=%d", result.used_search, len(result.message))
    return JSONResponse(result.to_wire())


@router.post("", name="chat")
def chat(req: ChatRequest, orchestrator: ChatOrchestrator = Depends(orchestrator_dep)):
    return _chat_impl(req, orchestrator)


@router.post("/", include_in_schema=False, name="chat_slash")
def chat_slash(req: ChatRequest, orchestrator: ChatOrchestrator = Depends(orchestrator_dep)):
    return _chat_impl(req, orchestrator)
