# poufmaker/api/auth.py
# Роуты регистрации, входа, подтверждения email и сброса пароля.
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from poufmaker.api.deps import client_info, get_db, get_mailer, get_principal
from poufmaker.core.email import Mailer
from poufmaker.core.security import Principal
from poufmaker.schemas import (
    LoginInput,
    LoginOut,
    MessageOut,
    RegisterInput,
    RegisterOut,
    ResetPasswordInput,
    ResetRequestInput,
    UserOut,
)
from poufmaker.services import accounts

router = APIRouter()


@router.post("/register", response_model=RegisterOut, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterInput,
    request: Request,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Регистрация пользователя. По умолчанию роль = client."""
    ip, user_agent = client_info(request)
    user = accounts.register(
        db,
        mailer,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        phone_number=payload.phone_number,
        role=payload.role,
        ip_address=ip,
        user_agent=user_agent,
    )
    return RegisterOut(
        message="Registration successful. Please check your email to confirm your account.",
        user_id=user.id,
    )


@router.post("/login", response_model=LoginOut)
def login(payload: LoginInput, request: Request, db: Session = Depends(get_db)):
    """Логин: возвращает JWT на 24 часа и профиль пользователя."""
    ip, user_agent = client_info(request)
    token, user = accounts.login(db, payload.email, payload.password, ip_address=ip, user_agent=user_agent)
    return LoginOut(token=token, user=UserOut.model_validate(user))


@router.get("/verify-email", response_model=MessageOut)
def verify_email(token: str = Query(""), db: Session = Depends(get_db)):
    accounts.verify_email(db, token)
    return MessageOut(message="Email verified successfully. You can now log in.")


@router.post("/request-reset", response_model=MessageOut)
def request_reset(
    payload: ResetRequestInput,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    accounts.request_password_reset(db, mailer, payload.email)
    return MessageOut(message="Password reset instructions sent to your email")


@router.post("/reset-password", response_model=MessageOut)
def reset_password(payload: ResetPasswordInput, request: Request, db: Session = Depends(get_db)):
    ip, user_agent = client_info(request)
    accounts.reset_password(db, payload.token, payload.new_password, ip_address=ip, user_agent=user_agent)
    return MessageOut(
        message="Password has been reset successfully. You can now login with your new password."
    )


@router.get("/me", response_model=UserOut)
def me(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    return UserOut.model_validate(accounts.get_user(db, principal.user_id))
