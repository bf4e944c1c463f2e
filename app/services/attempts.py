# app/services/attempts.py
import threading
import time
from collections import deque

from app.core.config import settings


class AttemptLimiter:
    """
    Ventana deslizante de intentos fallidos por clave para los chequeos de
    2FA (tokens, códigos de respaldo y de recuperación). La clave suele ser
    el id de cuenta; el endpoint público usa cuenta + IP.

    Es memoria del proceso: no sobrevive reinicios ni se comparte entre
    instancias. Con varios workers hay que respaldarlo en Redis o en la base.
    """

    def __init__(self, max_attempts: int | None = None, window_seconds: int | None = None,
                 clock=time.monotonic):
        self.max_attempts = settings.TWOFA_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.window_seconds = (settings.TWOFA_ATTEMPT_WINDOW_SECONDS
                               if window_seconds is None else window_seconds)
        self._clock = clock
        self._failures: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, key: str, now: float) -> deque[float]:
        # sólo lectura: no crea entradas para claves sin fallos
        hits = self._failures.get(key)
        if hits is None:
            return deque()
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()
        if not hits:
            del self._failures[key]
        return hits

    def is_blocked(self, key: str) -> bool:
        with self._lock:
            return len(self._prune(key, self._clock())) >= self.max_attempts

    def retry_after(self, key: str) -> int:
        with self._lock:
            now = self._clock()
            hits = self._prune(key, now)
            if len(hits) < self.max_attempts:
                return 0
            if not hits:
                # max_attempts == 0: bloqueado siempre, una ventana entera
                return max(1, int(self.window_seconds))
            return max(1, int(self.window_seconds - (now - hits[0])))

    def hit(self, key: str) -> int:
        """Registra un fallo y devuelve cuántos intentos quedan en la ventana."""
        with self._lock:
            now = self._clock()
            self._prune(key, now)
            hits = self._failures.setdefault(key, deque())
            hits.append(now)
            return max(0, self.max_attempts - len(hits))

    def tracked(self) -> int:
        """Cantidad de claves con fallos registrados."""
        with self._lock:
            return len(self._failures)

    def reset(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._failures.clear()
