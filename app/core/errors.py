# app/core/errors.py
"""
Errores de dominio del servicio de cuentas. Los motores (2FA y política de
contraseñas) devuelven resultados estructurados; estas excepciones sólo las
levanta la capa que orquesta y `app.main` las traduce a respuestas HTTP.
"""


class ServiceError(Exception):
    status_code: int = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class GenerationError(ServiceError):
    """Falla de la fuente de entropía: el setup de 2FA se aborta."""
    status_code = 500


class VerificationFailure(ServiceError):
    status_code = 400


class ValidationError(ServiceError):
    status_code = 422


class PolicyViolation(ServiceError):
    status_code = 400

    def __init__(self, detail: str, errors: list[str] | None = None):
        super().__init__(detail)
        self.errors = errors or []


class TwoFactorStateError(ServiceError):
    status_code = 400


class TooManyAttempts(ServiceError):
    status_code = 429

    def __init__(self, detail: str, retry_after: int):
        super().__init__(detail)
        self.retry_after = retry_after


class AccountNotFound(ServiceError):
    status_code = 404
