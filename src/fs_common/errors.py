"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Session/User
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Session/User ---

class SessionError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Session expired or not logged in", 401)


# --- 9xxx: System ---

class AccessLimitReachedError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Access limit reached, try again later", 429)


class StoreUnavailableError(AppError):
    def __init__(self, detail: str = "Counter store unavailable") -> None:
        super().__init__(9003, detail, 503)
