# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the G4A
School Portal. Settings are loaded from environment variables with
sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from g4a_portal.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ADMIN_PASSWORD = "admin123"


class MasterDatabaseSettings(BaseSettings):
    """Master database configuration.

    The master database stores the tenant registry. Its server also hosts
    every tenant database, so the same credentials are used to issue
    CREATE DATABASE / DROP DATABASE statements.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Master database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Whether SQLAlchemy logs every statement.
        auto_migrate: Whether central migrations run on application startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="MASTER_DB_",
        extra="ignore",
    )

    user: str = "username"
    password: SecretStr = SecretStr("password")
    host: str = "localhost"
    port: int = 5432
    database: str = "g4a_master"
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False
    auto_migrate: bool = True

    def url_for(self, database: str) -> str:
        """Build an async connection URL for a database on the master server.

        Args:
            database: Database name to connect to.

        Returns:
            postgresql+asyncpg URL.
        """
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{database}"

    @property
    def url(self) -> str:
        """Build the async master database URL from components."""
        return self.url_for(self.database)

    @property
    def sync_url(self) -> str:
        """Build the sync database URL for tooling."""
        pwd = self.password.get_secret_value()
        return f"postgresql://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class TenantDatabaseSettings(BaseSettings):
    """Tenant database configuration.

    Tenant databases live on the master server and are named
    ``<name_prefix><clean tenant name>_<first 8 chars of tenant id>``.

    Attributes:
        name_prefix: Prefix for generated tenant database names.
        pool_size: Connection pool size per tenant.
        max_overflow: Maximum overflow connections per tenant.
        maintenance_database: Database used for CREATE/DROP DATABASE.
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANT_DB_",
        extra="ignore",
    )

    name_prefix: str = "g4a_tenant_"
    pool_size: int = 5
    max_overflow: int = 10
    maintenance_database: str = "postgres"


class ProvisioningSettings(BaseSettings):
    """Tenant provisioning workflow configuration.

    Attributes:
        max_listeners: Handlers per event type before a leak warning is logged.
        tracker_history_size: Finished setups remembered by the completion tracker.
        default_admin_email: Email of the seeded tenant administrator.
        default_admin_password: Password of the seeded tenant administrator.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROVISIONING_",
        extra="ignore",
    )

    max_listeners: int = 10
    tracker_history_size: int = 1000
    default_admin_email: str = "admin@example.com"
    default_admin_password: SecretStr = SecretStr(DEFAULT_ADMIN_PASSWORD)


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "*"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        request_timeout: Seconds before a request is answered with 408.
        reload: Whether to enable auto-reload.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 32190
    request_timeout: float = 30.0
    reload: bool = False


class ShutdownSettings(BaseSettings):
    """Graceful shutdown configuration.

    Attributes:
        signals: Comma-separated signal names that trigger shutdown.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHUTDOWN_",
        extra="ignore",
    )

    signals: str = "SIGTERM,SIGINT,SIGUSR2"

    @property
    def signals_list(self) -> list[str]:
        """Parse signals string into a list of names."""
        return [name.strip().upper() for name in self.signals.split(",") if name.strip()]


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, test, production).
        debug: Enable debug mode.
        log_level: Logging level.
        master_db: Master database settings.
        tenant_db: Tenant database settings.
        provisioning: Provisioning workflow settings.
        cors: CORS settings.
        api: API server settings.
        shutdown: Graceful shutdown settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "test", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    master_db: MasterDatabaseSettings = Field(default_factory=MasterDatabaseSettings)
    tenant_db: TenantDatabaseSettings = Field(default_factory=TenantDatabaseSettings)
    provisioning: ProvisioningSettings = Field(default_factory=ProvisioningSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)
    shutdown: ShutdownSettings = Field(default_factory=ShutdownSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            password = self.provisioning.default_admin_password.get_secret_value()
            if password == DEFAULT_ADMIN_PASSWORD:
                raise ValueError(
                    "Default tenant admin password must be changed in production. "
                    "Set PROVISIONING_DEFAULT_ADMIN_PASSWORD environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    """
    get_settings.cache_clear()
