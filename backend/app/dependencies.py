import uuid
from dataclasses import dataclass
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.audit.service import client_ip
from app.core.auth.security import decode_access_token
from app.core.emergencies.schemas import Actor
from app.core.users.models import AccountRole, AccountStatus, User
from app.core.users.service import get_user
from app.db.session import get_session

bearer = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    user: User
    user_id: uuid.UUID
    role: AccountRole


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with get_session() as session:
        yield session


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token is required")
    try:
        payload = decode_access_token(credentials.credentials)
        user_id = uuid.UUID(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = await get_user(db, user_id)
    if not user or user.status != AccountStatus.ACTIVE.value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    # The stored role wins over whatever the token claims
    return CurrentUser(user=user, user_id=user_id, role=AccountRole(user.role))


def require_roles(*roles: AccountRole):
    async def dependency(
        request: Request,
        current: CurrentUser = Depends(get_current_user),
    ) -> Actor:
        if current.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return Actor(user_id=current.user_id, role=current.role, ip_address=client_ip(request))
    return dependency
