from fastapi import APIRouter, HTTPException, Query

from app.schemas.password import StrengthIn, StrengthOut, SuggestionOut, PolicyOut
from app.services.password_policy import (
    POLICIES, apply_policy, get_policy, suggest_passwords, validate_strength,
)

router = APIRouter(prefix="/passwords", tags=["passwords"])

@router.post("/strength", response_model=StrengthOut)
async def password_strength(body: StrengthIn):
    if body.policy is None:
        res = validate_strength(body.password)
        return StrengthOut(is_valid=res.is_valid, errors=res.errors, strength=res.strength)

    policy = get_policy(body.policy)
    if policy is None:
        raise HTTPException(status_code=404, detail="Política no encontrada")
    res = policy.strength(body.password)
    # sin historial: desde acá no sabemos de qué cuenta es
    decision = apply_policy(policy.name, body.password)
    return StrengthOut(
        is_valid=res.is_valid,
        errors=res.errors,
        strength=res.strength,
        allowed=decision.allowed,
        reason=decision.reason,
    )

@router.get("/suggestions", response_model=list[SuggestionOut])
async def password_suggestions(
    length: int = Query(12, ge=8, le=128),
    count: int = Query(3, ge=1, le=10),
):
    return [SuggestionOut(password=s.password, strength=s.strength) for s in suggest_passwords(length, count)]

@router.get("/policies", response_model=list[PolicyOut])
async def password_policies():
    return [
        PolicyOut(
            name=p.name,
            min_length=p.min_length,
            max_length=p.max_length,
            require_lowercase=p.require_lowercase,
            require_uppercase=p.require_uppercase,
            require_numbers=p.require_numbers,
            require_special_chars=p.require_special_chars,
            check_history=p.check_history,
            history_count=p.history_count,
            custom_rules=len(p.custom_rules),
        )
        for p in POLICIES.values()
    ]
