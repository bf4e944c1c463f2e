# app/core/logging.py
import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def setup_logging(level: str | None = None) -> None:
    """Configura el logging raíz una sola vez (uvicorn mantiene sus propios handlers)."""
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT)
    # passlib avisa por la versión de bcrypt en cada arranque
    logging.getLogger("passlib").setLevel(logging.ERROR)
