from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from app.core.database import get_db
from app.core.exceptions import Unauthenticated
from app.core.security import authenticate_token
from app.modules.users.models import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user from the bearer token"""
    if not token:
        raise Unauthenticated()

    user_id = authenticate_token(token)
    if user_id is None:
        raise Unauthenticated()

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise Unauthenticated()

    return user


async def get_current_user_id(current_user: User = Depends(get_current_user)) -> int:
    """Identity of the acting user, for services that only need the id"""
    return current_user.id
