from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# shared/shared/auth/config.py -> repo root
_REPO_ROOT = Path(__file__).resolve().parents[3]


class AuthSettings(BaseSettings):
    """JWT verification parameters (``JWT_*`` environment variables).

    Must match what the identity provider signs with.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        env_file=(str(_REPO_ROOT / ".env"), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    secret: str = "change-me"
    algorithm: str = "HS256"
    issuer: str = "coursemart-identity"
    audience: str = "coursemart-services"
