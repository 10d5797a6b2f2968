from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict

from app.core.database import get_db
from app.core.responses import success_response
from app.modules.users import schemas
from app.modules.users.services import UserService

router = APIRouter(tags=["users"])


@router.post("/signup")
async def signup(
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user and issue a bearer token.

    - name, email and password are required
    - email must be well-formed and not already registered
    - password must be at least 6 characters
    """
    user_data = await UserService.validate_signup(db, payload)
    user = await UserService.register_user(db, user_data)
    token = UserService.create_token(user)
    result = schemas.TokenResponse(message="Account created successfully!", token=token)
    return success_response(result.model_dump())


@router.post("/login")
async def login(
    login_data: schemas.UserLoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Login with email and password and receive a bearer token.
    """
    user = await UserService.authenticate_user(db, login_data.email, login_data.password)
    token = UserService.create_token(user)
    payload = schemas.TokenResponse(message="Logged in successfully!", token=token)
    return success_response(payload.model_dump())
