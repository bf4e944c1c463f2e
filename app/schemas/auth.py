from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from enum import Enum

class Role(str, Enum):
    user = "user"
    admin = "admin"
    super_admin = "super_admin"

class RegisterIn(BaseModel):
    full_name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)  # la política real la aplica el servicio

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    otp: str | None = None   # <-- token TOTP o código de respaldo, requerido si 2FA activo

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"

class UserOut(BaseModel):
    id: str
    full_name: str
    email: EmailStr
    role: Role
    is_active: bool
    is_2fa_enabled: bool
    last_login_at: datetime | None = None

    class Config:
        from_attributes = True

class ChangePasswordIn(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=256)
