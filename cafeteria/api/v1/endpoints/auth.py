"""Authentication endpoints (API JWT)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from cafeteria.core.security import create_access_token, get_current_user
from cafeteria.db.session import get_db
from cafeteria.models.user import User
from cafeteria.schemas.auth import AuthUserResponse, LoginRequest, TokenResponse
from cafeteria.services.user_service import authenticate_user

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user: User | None = authenticate_user(db, payload.email, payload.password)
    if user is None:
        logger.info("[AUTH] Failed login for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    return TokenResponse(access_token=create_access_token(data={"sub": str(user.id), "role": user.role}))


@router.get("/me", response_model=AuthUserResponse)
def me(current_user: User = Depends(get_current_user)) -> AuthUserResponse:
    return AuthUserResponse.model_validate(current_user)
