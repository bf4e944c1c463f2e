from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.security import decode_access_token
from app.models.user import User
from app.services.account import AccountService
from app.services.attempts import AttemptLimiter
from app.services.credential_store import SqlCredentialStore


bearer = HTTPBearer(auto_error=True)

# contador de intentos 2FA compartido por todos los requests del proceso
attempt_limiter = AttemptLimiter()

async def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> User:
    sub = decode_access_token(creds.credentials)
    if not sub:
        raise HTTPException(status_code=401, detail="Token inválido")

    result = await db.execute(select(User).where(User.id == sub))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="Usuario no encontrado")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Usuario inactivo")

    return user

# --- servicio de cuentas sobre la sesión del request ---
async def get_account_service(db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(SqlCredentialStore(db), limiter=attempt_limiter)
