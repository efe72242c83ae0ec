"""
Request dependencies: the shared document store and the caller's identity.

Identity is verified upstream (gateway / identity provider); this service
only requires the pre-validated email header to be present.
"""

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from app.core.chat_db import ChatDB
from app.core.config import IDENTITY_HEADER

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    email: str


def get_db(request: Request) -> ChatDB:
    """The ChatDB created in the app lifespan."""
    return request.app.state.db


def get_auth_context(request: Request) -> AuthContext:
    email = (request.headers.get(IDENTITY_HEADER) or "").strip()
    if not email:
        logger.info("[deps:get_auth_context] missing %s header on %s", IDENTITY_HEADER, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized access. Please log in.",
        )
    return AuthContext(email=email)
