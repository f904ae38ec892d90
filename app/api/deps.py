"""
Shared route dependencies: database session, current user, AI services.
"""
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError
from sqlmodel import Session

from app.core import security
from app.core.config import settings
from app.core.db import get_session
from app.core.resilience import ResilientCaller
from app.models import TokenPayload, User
from app.services.insights import InsightService
from app.services.llm_client import AIProviderNotConfiguredError, LLMClient

reusable_oauth2 = OAuth2PasswordBearer(tokenUrl=f"{settings.API_STR}/auth/login")
optional_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_STR}/auth/login", auto_error=False
)


def get_db() -> Generator[Session, None, None]:
    yield from get_session()


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[str, Depends(reusable_oauth2)]


def _user_from_token(session: Session, token: str) -> User:
    try:
        payload = security.decode_access_token(token)
        token_data = TokenPayload(**payload)
    except (InvalidTokenError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not token_data.sub or not token_data.sub.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = session.get(User, int(token_data.sub))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return user


def get_current_user(session: SessionDep, token: TokenDep) -> User:
    return _user_from_token(session, token)


def get_optional_user(
    session: SessionDep,
    token: Annotated[str | None, Depends(optional_oauth2)],
) -> User | None:
    """Like get_current_user, but anonymous requests get None instead of 401."""
    if not token:
        return None
    return _user_from_token(session, token)


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]


# =============================================================================
# AI services (process-wide singletons built at startup)
# =============================================================================


def get_llm_client(request: Request) -> LLMClient:
    client = getattr(request.app.state, "llm_client", None)
    if client is None:
        raise AIProviderNotConfiguredError()
    return client


def get_resilient_caller(request: Request) -> ResilientCaller:
    return request.app.state.ai_guard


def get_insight_service(
    llm_client: Annotated[LLMClient, Depends(get_llm_client)],
    guard: Annotated[ResilientCaller, Depends(get_resilient_caller)],
) -> InsightService:
    return InsightService(llm_client=llm_client, guard=guard)


InsightServiceDep = Annotated[InsightService, Depends(get_insight_service)]
