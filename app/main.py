"""Создает FastAPI-приложение, подключает маршруты и обработчики ошибок."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import (
    BracketError,
    InsufficientTeamsError,
    InvalidScoreError,
    ParticipantNotFoundError,
    TournamentNotFoundError,
)
from app.routers.api import router as api_router

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)

ERROR_STATUS_CODES: list[tuple[type[BracketError], int]] = [
    (TournamentNotFoundError, 404),
    (ParticipantNotFoundError, 404),
    (InvalidScoreError, 400),
    (InsufficientTeamsError, 409),
]


@app.exception_handler(BracketError)
async def bracket_error_handler(request: Request, exc: BracketError):
    status_code = next((code for error_type, code in ERROR_STATUS_CODES if isinstance(exc, error_type)), 500)
    if status_code == 500:
        logger.error("Bracket operation failed on %s: %s", request.url.path, exc)
    return JSONResponse({"success": False, "message": str(exc)}, status_code=status_code)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    status_code = 404 if "not found" in str(exc).lower() else 400
    return JSONResponse({"success": False, "message": str(exc)}, status_code=status_code)


# Подключаем JSON API.
app.include_router(api_router)
