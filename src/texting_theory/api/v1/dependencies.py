"""Shared API dependencies for authentication and engine wiring."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from texting_theory.core.errors import (
    ConsensusError,
    InvalidTargetLayoutError,
    InvalidVoteError,
    PostExistsError,
    PostNotFoundError,
    TargetNotFoundError,
    VotingClosedError,
    VotingDeniedError,
)
from texting_theory.core.settings import settings
from texting_theory.db.session import get_db
from texting_theory.repositories.post_repo import PostRepository
from texting_theory.services.engine import ConsensusEngine, EngineContext

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_voter(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Return the platform user id carried in the bearer token's ``sub`` claim.

    Raises:
        HTTPException: If the token is invalid or carries no subject
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return subject


def get_engine_context_dep(request: Request) -> EngineContext:
    """Return the engine context built by the application's startup hook."""
    return request.app.state.engine_context


def get_engine(
    db: SessionDep,
    context: Annotated[EngineContext, Depends(get_engine_context_dep)],
) -> ConsensusEngine:
    """Bind the shared engine context to this request's database session."""
    return ConsensusEngine(context, PostRepository(db))


CurrentVoterDep = Annotated[str, Depends(get_current_voter)]
EngineDep = Annotated[ConsensusEngine, Depends(get_engine)]

_ERROR_STATUS: list[tuple[type[ConsensusError], int]] = [
    (VotingClosedError, status.HTTP_403_FORBIDDEN),
    (VotingDeniedError, status.HTTP_403_FORBIDDEN),
    (PostNotFoundError, status.HTTP_404_NOT_FOUND),
    (TargetNotFoundError, status.HTTP_404_NOT_FOUND),
    (PostExistsError, status.HTTP_409_CONFLICT),
    (InvalidVoteError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidTargetLayoutError, status.HTTP_422_UNPROCESSABLE_ENTITY),
]


def http_error_for(err: ConsensusError) -> HTTPException:
    """Translate an engine error into the matching HTTP error."""
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(err, error_type):
            return HTTPException(status_code=status_code, detail=str(err))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err))
