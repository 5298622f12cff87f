"""Application settings and configuration.

This module defines all configuration options for the Marco bridge.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Marco", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Where generated files (secret, registration, database) live
    config_root: str = Field(default="./config", alias="CONFIG_ROOT")

    # Database configuration
    database_url: str = Field(default="sqlite:///./config/marco.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Appservice / homeserver
    homeserver_url: str = Field(default="https://matrix.org", alias="HOMESERVER_URL")
    homeserver_name: str = Field(default="matrix.org", alias="HOMESERVER_NAME")
    bind_address: str = Field(default="0.0.0.0", alias="BIND_ADDRESS")
    port: int = Field(default=3051, alias="PORT")
    registration_path: str | None = Field(default=None, alias="REGISTRATION_PATH")
    homeserver_timeout_seconds: float = Field(default=10.0, alias="HOMESERVER_TIMEOUT_SECONDS")
    bot_localpart: str = Field(default="_mc_bot", alias="BOT_LOCALPART")
    puppet_prefix: str = Field(default="_mc_", alias="PUPPET_PREFIX")

    # Empty list allows everyone to create bridges
    user_whitelist: list[str] = Field(default_factory=list, alias="USER_WHITELIST")
    command_prefix: str = Field(default="!minecraft", alias="COMMAND_PREFIX")

    # Bridge token signing
    signing_secret: str | None = Field(default=None, alias="SIGNING_SECRET")
    signing_secret_path: str | None = Field(default=None, alias="SIGNING_SECRET_PATH")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Mojang identity lookups
    mojang_api_url: str = Field(default="https://api.mojang.com", alias="MOJANG_API_URL")
    mojang_session_url: str = Field(
        default="https://sessionserver.mojang.com",
        alias="MOJANG_SESSION_URL",
    )
    player_lookup_timeout_seconds: float = Field(
        default=5.0,
        alias="PLAYER_LOOKUP_TIMEOUT_SECONDS",
    )

    # Events waiting for the plugin to poll; oldest are dropped past this
    outbound_queue_max_events: int = Field(default=500, alias="OUTBOUND_QUEUE_MAX_EVENTS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_registration_path(self) -> str:
        """Return the registration file path, defaulting into the config root."""
        return self.registration_path or f"{self.config_root}/appservice.yaml"

    @property
    def effective_signing_secret_path(self) -> str:
        """Return the signing secret file path, defaulting into the config root."""
        return self.signing_secret_path or f"{self.config_root}/signing.key"


settings = Settings()
