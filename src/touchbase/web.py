from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from touchbase.db import init_db
from touchbase.routes import companies, contacts, interactions, reminders, team

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


def create_app() -> FastAPI:
    init_db()

    app = FastAPI(title="TouchBase")
    app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

    templates = Jinja2Templates(directory=BASE_DIR / "templates")
    app.state.templates = templates

    app.include_router(contacts.router)
    app.include_router(companies.router)
    app.include_router(team.router)
    app.include_router(interactions.router)
    app.include_router(reminders.router)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if not errors:
            return JSONResponse({"error": "Invalid request"}, status_code=400)
        first = errors[0]
        loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        message = first.get("msg", "Invalid request")
        if loc:
            message = f"{'.'.join(loc)}: {message}"
        return JSONResponse({"error": message}, status_code=400)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Request %s %s failed", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    @app.get("/")
    async def index(request: Request):
        return RedirectResponse(url="/reminders", status_code=302)

    return app
