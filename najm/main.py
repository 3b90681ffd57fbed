# najm/main.py
import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from najm.auth.routes import router as auth_router
from najm.chat.routes import router as chat_router
from najm.core.config import get_settings
from najm.core.errors import register_error_handlers
from najm.core.init_db import init_db
from najm.core.logging import setup_logging
from najm.ocr.routes import router as ocr_router
from najm.speech.routes import router as speech_router
from najm.ticket.routes import router as ticket_router
from najm.upload.routes import router as upload_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("najm")

init_db(settings)
settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESC,
    version=settings.APP_VERSION,
)

origins = settings.cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

register_error_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    if settings.DEBUG_REQUESTS:
        logger.info("%s %s -> %d", request.method, request.url.path, response.status_code)
    return response


# Routers
app.include_router(auth_router)
app.include_router(ticket_router)
app.include_router(upload_router)
app.include_router(speech_router)
app.include_router(ocr_router)
app.include_router(chat_router)

app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/health", tags=["Health"])
def health():
    return {
        "status": "ok",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "ticket_store": settings.TICKET_STORE,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api", tags=["Health"])
def api_index():
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "endpoints": {
            "auth": {
                "login": "POST /api/auth/login",
                "verify": "GET /api/auth/verify",
                "logout": "POST /api/auth/logout",
            },
            "tickets": {
                "list": "GET /api/tickets",
                "get": "GET /api/tickets/{ticket_id}",
                "transcript": "GET /api/tickets/{ticket_id}/transcript",
                "create": "POST /api/tickets",
                "update": "PUT /api/tickets/{ticket_id}",
                "delete": "DELETE /api/tickets/{ticket_id}",
                "add_conversation": "POST /api/tickets/{ticket_id}/conversations",
                "add_finding": "POST /api/tickets/{ticket_id}/findings",
            },
            "upload": {
                "files": "POST /upload",
                "audio": "POST /api/upload/audio",
                "transcribe": "POST /api/upload/transcribe",
                "download": "GET /api/upload/audio/{filename}",
                "delete": "DELETE /api/upload/audio/{filename}",
            },
            "speech": {
                "tts": "POST /tts",
                "stt": "POST /stt",
            },
            "ocr": {
                "upload": "POST /api/ocr-upload",
                "batch": "POST /api/ocr-upload/batch",
                "get_image": "GET /api/ocr-upload/image/{filename}",
                "delete_image": "DELETE /api/ocr-upload/image/{filename}",
            },
            "chat": {
                "start": "POST /api/chat/sessions",
                "get": "GET /api/chat/sessions/{session_id}",
                "message": "POST /api/chat/sessions/{session_id}/messages",
                "upload": "POST /api/chat/sessions/{session_id}/uploads",
                "end": "DELETE /api/chat/sessions/{session_id}",
            },
        },
    }


def run() -> None:
    uvicorn.run("najm.main:app", host=settings.HOST, port=settings.PORT)
