"""
Configuration for the catalog service.
"""
import os
import logging
from dataclasses import dataclass, field

DEFAULT_ADMIN_CODE = "TITAN2024"

logger = logging.getLogger(__name__)


def _env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


@dataclass
class Config:
    """Settings read from the environment when the instance is created"""

    # Admin gate
    ADMIN_SECURITY_CODE: str = field(default_factory=lambda: _env("ADMIN_SECURITY_CODE", DEFAULT_ADMIN_CODE))

    # Catalog document
    PRODUCTS_FILE: str = field(default_factory=lambda: _env("TITAN_PRODUCTS_FILE", "data/products.json"))

    # Contact deep links
    WHATSAPP_NUMBER: str = field(default_factory=lambda: _env("TITAN_WHATSAPP_NUMBER", "918380889935"))
    CALL_NUMBER: str = field(default_factory=lambda: _env("TITAN_CALL_NUMBER", "918380889935"))

    # Server
    LOG_LEVEL: str = field(default_factory=lambda: _env("TITAN_LOG_LEVEL", "INFO"))
    HOST: str = field(default_factory=lambda: _env("TITAN_HOST", "127.0.0.1"))
    PORT: int = field(default_factory=lambda: int(_env("TITAN_PORT", "8085")))

    def uses_default_secret(self) -> bool:
        return self.ADMIN_SECURITY_CODE == DEFAULT_ADMIN_CODE

    def validate(self) -> bool:
        """Warn about settings that work but should not reach production"""
        if not self.ADMIN_SECURITY_CODE:
            raise ValueError("ADMIN_SECURITY_CODE must not be empty")
        if self.uses_default_secret():
            logger.warning("ADMIN_SECURITY_CODE is not set, falling back to the built-in default code")
        return True


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
