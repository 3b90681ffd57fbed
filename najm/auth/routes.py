# najm/auth/routes.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from najm.auth import services as auth_service
from najm.auth.schemas import LoginRequest, TokenOut, UserOut
from najm.core.config import Settings, get_settings
from najm.core.database import get_db
from najm.core.security import create_access_token, get_current_user

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=TokenOut)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = auth_service.authenticate(db, payload.username, payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid username or password")

    token = create_access_token(
        {"id": user.id, "username": user.username, "role": user.role}, settings
    )
    return TokenOut(
        token=token,
        user=UserOut(
            id=user.id,
            username=user.username,
            role=user.role,
            login_time=datetime.now(timezone.utc),
        ),
    )


@router.get("/verify")
def verify(user: dict = Depends(get_current_user)):
    return {"user": user}


@router.post("/logout")
def logout():
    # Tokens are stateless; the client just drops it
    return {"message": "Logout successful"}
