from fastapi import APIRouter, Depends, Request

from app.api.deps import get_current_user, get_account_service
from app.models.user import User
from app.schemas.two_factor import (
    TwoFASetupOut, TwoFATokenIn, TwoFACodeIn, TwoFAVerifyLoginIn, TwoFAEnabledOut,
    TwoFAStatusOut, CodesOut, TwoFAVerifyLoginOut,
)
from app.services.account import AccountService
from app.services.two_factor import seconds_until_next_window

router = APIRouter(prefix="/2fa", tags=["2fa"])

@router.get("/status", response_model=TwoFAStatusOut)
async def twofa_status(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    st = await service.status(current_user.id)
    return TwoFAStatusOut(**st.__dict__)

@router.post("/setup", response_model=TwoFASetupOut)
async def twofa_setup(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    data = await service.setup_request(current_user.id)
    return TwoFASetupOut(
        secret=data.secret,
        otpauth_url=data.provisioning_uri,
        manual_entry_key=data.manual_entry_key,
        qr_code=data.qr_code,
        time_remaining=data.time_remaining,
    )

@router.post("/verify", response_model=TwoFAEnabledOut)
async def twofa_verify(
    body: TwoFATokenIn,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    data = await service.confirm_setup(current_user.id, body.token)
    return TwoFAEnabledOut(
        backup_codes=data.backup_codes,
        recovery_codes=data.recovery_codes,
        time_remaining=seconds_until_next_window(),
    )

@router.post("/disable")
async def twofa_disable(
    body: TwoFACodeIn,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    await service.disable(current_user.id, body.token)
    return {"ok": True}

# público: se usa entre el login con contraseña y el segundo factor.
# Sin contraseña de por medio, los fallos cuentan por cuenta + IP: así un
# tercero no puede agotar los intentos del /auth/login del dueño.
@router.post("/verify-login", response_model=TwoFAVerifyLoginOut)
async def twofa_verify_login(
    body: TwoFAVerifyLoginIn,
    request: Request,
    service: AccountService = Depends(get_account_service),
):
    client = request.client.host if request.client else "unknown"
    key = f"verify-login:{body.user_id}:{client}"
    check = await service.verify_login(body.user_id, body.token, attempt_key=key)
    return TwoFAVerifyLoginOut(method=check.method, codes_remaining=check.codes_remaining)

@router.get("/backup-codes", response_model=CodesOut)
async def twofa_backup_codes(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    codes = await service.backup_codes(current_user.id)
    return CodesOut(codes=codes, count=len(codes))

@router.post("/regenerate-backup-codes", response_model=CodesOut)
async def twofa_regenerate_backup_codes(
    body: TwoFATokenIn,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    codes = await service.regenerate_backup_codes(current_user.id, body.token)
    return CodesOut(codes=codes, count=len(codes))

@router.post("/regenerate-recovery-codes", response_model=CodesOut)
async def twofa_regenerate_recovery_codes(
    body: TwoFATokenIn,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    codes = await service.regenerate_recovery_codes(current_user.id, body.token)
    return CodesOut(codes=codes, count=len(codes))
