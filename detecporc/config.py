"""Application configuration"""
import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic_settings import BaseSettings, SettingsConfigDict

from detecporc.schemas import AdminAccount

# scrypt of the reference deployment password with the salt below
DEFAULT_ADMIN_SALT = "detecporc-salt-v1"
DEFAULT_ADMIN_HASH = (
    "873866cbfde6c0f6aab3eaa6f43b539cd702406ee025a43dfaa5594622fa0094"
    "b8636fd3dd1c9ded039c6658c79df2bd2abee8fadcf6f53cb7cbf7776afa8419"
)


class Settings(BaseSettings):
    """Application settings from environment variables (DETECPORC_*)"""

    model_config = SettingsConfigDict(
        env_prefix="DETECPORC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "DETECPORC"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    # Storage
    data_dir: Path = Path("data")
    seed_default_points: bool = True
    max_body_bytes: int = 200 * 1024

    # Sessions
    session_secret: str = "detecporc-session-secret"
    session_ttl_hours: float = 6
    session_cookie: str = "detecporc_session"
    cookie_secure: bool = False

    # Administrator
    admin_username: str = "admindp"
    admin_salt: str = DEFAULT_ADMIN_SALT
    admin_hash: str = DEFAULT_ADMIN_HASH

    # Messages
    locale: str = "fr"

    # CORS - JSON string, comma separated string or list
    cors_origins: Union[str, list[str]] = []

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_json: bool = False

    @property
    def points_file(self) -> Path:
        return self.data_dir / "points.json"

    @property
    def pending_file(self) -> Path:
        return self.data_dir / "pending.json"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from JSON string if needed"""
        if isinstance(self.cors_origins, str):
            try:
                return json.loads(self.cors_origins)
            except ValueError:
                return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
        return self.cors_origins

    def admin_accounts(self) -> Dict[str, AdminAccount]:
        account = AdminAccount(
            username=self.admin_username,
            salt=self.admin_salt,
            password_hash=self.admin_hash,
        )
        return {account.username: account}


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
