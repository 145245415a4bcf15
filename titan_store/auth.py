import hmac
from typing import Optional


class AdminGate:
    """Single shared-secret check guarding the admin surface."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("admin secret must not be empty")
        self._secret = secret.encode("utf-8")

    def verify(self, code: Optional[str]) -> bool:
        # missing and wrong codes are indistinguishable to the caller
        if not code:
            return False
        return hmac.compare_digest(code.encode("utf-8"), self._secret)
