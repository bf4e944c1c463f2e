from pydantic import BaseModel, Field

TOKEN_PATTERN = r"^\d{6}$"

class TwoFASetupOut(BaseModel):
    secret: str
    otpauth_url: str
    manual_entry_key: str
    qr_code: str            # data URI (PNG, o texto si no se pudo renderizar)
    time_remaining: int

class TwoFATokenIn(BaseModel):
    token: str = Field(..., pattern=TOKEN_PATTERN)

class TwoFACodeIn(BaseModel):
    # token TOTP, código de respaldo (8 hex) o de recuperación (XXXXXX-XXXXXX-XXXXXX)
    token: str = Field(..., min_length=6, max_length=32)

class TwoFAVerifyLoginIn(TwoFACodeIn):
    user_id: str = Field(..., min_length=1)

class TwoFAEnabledOut(BaseModel):
    backup_codes: list[str]
    recovery_codes: list[str]
    time_remaining: int

class TwoFAStatusOut(BaseModel):
    enabled: bool
    configured: bool
    pending_setup: bool
    backup_codes_remaining: int
    recovery_codes_remaining: int
    time_remaining: int

class CodesOut(BaseModel):
    codes: list[str]
    count: int

class TwoFAVerifyLoginOut(BaseModel):
    ok: bool = True
    method: str
    codes_remaining: int | None = None
