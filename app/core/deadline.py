# ===================================
# app/core/deadline.py
# ===================================
import time
from typing import Optional

from app.core.exceptions import OperationTimeout


class Deadline:
    """Échéance fournie par l'appelant, vérifiée avant chaque accès au stockage"""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self.expires_at = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def none(cls) -> "Deadline":
        return cls(None)

    def remaining(self) -> Optional[float]:
        """Secondes restantes, None si aucune échéance"""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    def check(self, operation: str) -> None:
        if self.expired:
            raise OperationTimeout(
                f"Délai de {self.timeout}s dépassé avant l'étape: {operation}"
            )

    def __repr__(self):
        return f"<Deadline(timeout={self.timeout}, remaining={self.remaining()})>"
