from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import logging
import os

from campusbot.api import chat, health
from campusbot.api.deps import settings_dep
from campusbot.core.config import STATIC_DIR
from campusbot.core.errors import ChatbotError
from campusbot.middleware.request_logger import RequestLoggerMiddleware

# ---- Logging config ---------------------------------------------------------
LOG_LEVEL = os.getenv("CAMPUSBOT_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s:%(lineno)d - %(message)s",
)
logger = logging.getLogger("campusbot.main")

settings = settings_dep()
logger.info("Starting %s chatbot with LOG_LEVEL=%s", settings.short_name, LOG_LEVEL)

# ---- FastAPI app ------------------------------------------------------------
app = FastAPI(title=f"{settings.short_name} Chatbot")
app.add_middleware(RequestLoggerMiddleware)

# ---- CORS -------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ---- Error handlers ---------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def _invalid_body(request: Request, exc: RequestValidationError):
    logger.warning("invalid request body %s %s: %s", request.method, request.url.path, exc.errors()[:3])
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


@app.exception_handler(ChatbotError)
async def _chatbot_error(request: Request, exc: ChatbotError):
    # errors raised while wiring dependencies (e.g. missing API key)
    logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return chat.error_response(exc)


# ---- Routers ----------------------------------------------------------------
app.include_router(chat.router,   prefix="/api/chat", tags=["Chat"])
app.include_router(health.router, prefix="/health",   tags=["Health"])

# ---- Chat UI ----------------------------------------------------------------
# Mounted last so API routes win over the static catch-all.
chatbot_dir = os.path.join(STATIC_DIR, "chatbot")
if os.path.isdir(chatbot_dir):
    app.mount("/", StaticFiles(directory=chatbot_dir, html=True), name="chatbot")
    logger.info("Mounted chatbot UI / -> %s", chatbot_dir)

logger.info("Routers registered.")
