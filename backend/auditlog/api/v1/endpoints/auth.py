from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auditlog.core.security import create_access_token, get_current_user, verify_password
from auditlog.db.session import get_db
from auditlog.models.user import User
from auditlog.schemas.auth import LoginRequest, TokenResponse
from auditlog.schemas.user import UserOut

router = APIRouter()


def _build_user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        email=user.email,
        display_name=user.display_name,
        roles=user.role_names,
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user = db.query(User).filter(User.username == payload.username.strip()).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )

    return TokenResponse(access_token=create_access_token({"sub": str(user.id)}))


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)) -> UserOut:
    return _build_user_out(user)
