import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import VerificationFailure
from app.core.security import verify_password, create_access_token
from app.models.user import User, RoleEnum
from app.models.password_history import PasswordHistory
from app.schemas.auth import RegisterIn, LoginIn, TokenOut, UserOut, ChangePasswordIn
from app.api.deps import get_current_user, get_account_service
from app.services.account import AccountService, register_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", response_model=UserOut, status_code=201)
async def register(payload: RegisterIn, db: AsyncSession = Depends(get_db)):
    exists = await db.execute(select(User).where(User.email == payload.email.lower()))
    if exists.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="El email ya está registrado.")

    # el alta pública siempre es rol user; admins se crean desde el panel
    hashed, history = register_password(payload.password, RoleEnum.user)
    user = User(
        email=payload.email.lower(),
        full_name=payload.full_name,
        role=RoleEnum.user,
        hashed_password=hashed,
        backup_codes=[],
        recovery_codes=[],
    )
    db.add(user)
    await db.flush()
    db.add_all([PasswordHistory(user_id=user.id, position=i, password_hash=h) for i, h in enumerate(history)])
    await db.commit()
    await db.refresh(user)
    logger.info("Usuario registrado id=%s", user.id)
    return user

@router.post("/login", response_model=TokenOut)
async def login(
    payload: LoginIn,
    db: AsyncSession = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciales inválidas")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Usuario inactivo")

    # si 2FA está activo, requerimos OTP (o código de respaldo / recuperación)
    if user.is_2fa_enabled:
        if not payload.otp:
            raise HTTPException(status_code=401, detail="Se requiere OTP (2FA) para este usuario")
        try:
            await service.verify_login(user.id, payload.otp.strip())
        except VerificationFailure:
            raise HTTPException(status_code=401, detail="OTP inválido")

    user.last_login_at = datetime.now(tz=timezone.utc)
    await db.commit()

    token = create_access_token(subject=user.id, extra={"role": user.role.value})
    return TokenOut(access_token=token)

@router.put("/change-password")
async def change_password(
    body: ChangePasswordIn,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    await service.change_password(current_user.id, body.new_password, current_password=body.current_password)
    return {"ok": True}

@router.get("/me", response_model=UserOut)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
