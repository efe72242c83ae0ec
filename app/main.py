# Run from project root: uvicorn app.main:app --reload

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import router
from app.core.chat_db import ChatDB
from app.core.config import CHAT_DB_PATH, LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Connection opens lazily on first query; close it on shutdown
    app.state.db = ChatDB(CHAT_DB_PATH)
    try:
        yield
    finally:
        app.state.db.close()


app = FastAPI(title="Agent Chat Backend", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())[1:]) or "body"
        problems.append(f"{loc}: {err.get('msg', 'invalid')}")
    logger.info("[api] invalid request %s %s: %s", request.method, request.url.path, problems)
    return JSONResponse(status_code=400, content={"error": "Invalid request data: " + "; ".join(problems)})


app.include_router(router)
