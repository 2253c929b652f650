# quizlive/auth.py
"""Bearer token verification.

Tokens are issued by the session service; this module only checks them.
The subject is ``participant:<id>`` for players and ``admin:<id>`` for
operators.
"""

from datetime import datetime, timedelta
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from quizlive.models import Participant
from quizlive.database import get_session
from sqlalchemy.ext.asyncio import AsyncSession

import os

SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "240"))

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token")


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _subject(token: str) -> tuple[str, int]:
    """Return ``(kind, id)`` from a token subject such as ``participant:7``."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        sub: str = payload.get("sub")
        if not sub or ":" not in sub:
            raise credentials_exception
        kind, raw_id = sub.split(":", 1)
        return kind, int(raw_id)
    except (JWTError, ValueError):
        raise credentials_exception


async def get_current_participant(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> Participant:
    kind, participant_id = _subject(token)
    if kind != "participant":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    participant = await db.get(Participant, participant_id)
    if participant is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return participant


async def require_admin(token: str = Depends(oauth2_scheme)) -> int:
    """Dependency returning the operator id of an admin token."""
    kind, admin_id = _subject(token)
    if kind != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return admin_id
