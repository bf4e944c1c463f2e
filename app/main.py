from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import PolicyViolation, ServiceError, TooManyAttempts
from app.core.logging import setup_logging
from app.api.v1.auth import router as auth_router
from app.api.v1.two_factor import router as two_factor_router
from app.api.v1.passwords import router as passwords_router

setup_logging()

app = FastAPI(title=settings.APP_NAME, version="0.1.0")

# 🔓 ajustá CORS_ORIGINS con la URL del panel
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    body: dict = {"detail": exc.detail}
    headers = None
    if isinstance(exc, PolicyViolation):
        body["errors"] = exc.errors
    if isinstance(exc, TooManyAttempts):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)

app.include_router(auth_router)
app.include_router(two_factor_router)
app.include_router(passwords_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
