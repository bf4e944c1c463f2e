from pydantic import BaseModel, Field

class StrengthIn(BaseModel):
    password: str
    policy: str | None = None   # user | admin | super_admin

class StrengthOut(BaseModel):
    is_valid: bool
    errors: list[str]
    strength: str
    allowed: bool | None = None   # sólo si se pidió una política
    reason: str | None = None

class SuggestionOut(BaseModel):
    password: str
    strength: str

class PolicyOut(BaseModel):
    name: str
    min_length: int
    max_length: int
    require_lowercase: bool
    require_uppercase: bool
    require_numbers: bool
    require_special_chars: bool
    check_history: bool
    history_count: int
    custom_rules: int = Field(..., description="cantidad de reglas extra del rol")
