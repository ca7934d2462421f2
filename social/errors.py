# backend/social/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Optional


class SocialError(Exception):
    """Base de todos los errores del pipeline de publicación."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class GraphAPIError(SocialError):
    """La Graph API devolvió un objeto `error` o una respuesta ilegible."""

    def __init__(self, reason: str, *, status: Optional[int] = None, code: Optional[int] = None,
                 subcode: Optional[int] = None, fbtrace_id: Optional[str] = None):
        super().__init__(reason)
        self.status = status
        self.code = code
        self.subcode = subcode
        self.fbtrace_id = fbtrace_id

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], status: Optional[int] = None) -> "GraphAPIError":
        err = payload.get("error") or {}
        if not isinstance(err, dict):
            return cls(str(err), status=status)
        return cls(
            str(err.get("message") or f"HTTP {status}"),
            status=status,
            code=err.get("code"),
            subcode=err.get("error_subcode"),
            fbtrace_id=err.get("fbtrace_id"),
        )


class UnsupportedMediaError(SocialError):
    pass


class ConnectionMissingError(SocialError):
    def __init__(self, reason: str = "connection details not provided"):
        super().__init__(reason)


class FacebookPublishError(SocialError):
    pass


class InstagramPublishError(SocialError):
    pass


class InstagramDependencyError(InstagramPublishError):
    def __init__(self, reason: str = "Facebook image publish required first"):
        super().__init__(reason)


class PollingTimeoutError(InstagramPublishError):
    def __init__(self, reason: str = "Instagram media container processing timed out.", *,
                 attempts: int = 0, elapsed: float = 0.0):
        super().__init__(reason)
        self.attempts = attempts
        self.elapsed = elapsed


class PublishCancelledError(SocialError):
    def __init__(self, reason: str = "publish cancelled", *, attempts: int = 0, elapsed: float = 0.0):
        super().__init__(reason)
        self.attempts = attempts
        self.elapsed = elapsed


# --- Errores agregados del orquestador ---

class PublishFailedError(SocialError):
    """Fallaron todas las plataformas pedidas."""

    def __init__(self, message: str, failures: List[Any]):
        super().__init__(message)
        self.failures = failures


class PartialPublishError(SocialError):
    """Algunas plataformas fallaron; `post` contiene las que sí salieron."""

    def __init__(self, message: str, failures: List[Any], post: Any):
        super().__init__(message)
        self.failures = failures
        self.post = post
