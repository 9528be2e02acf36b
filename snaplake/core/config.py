from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from snaplake.schemas.api import StorageConfig


class Settings(BaseSettings):
    # Environment mode: dev or prod
    ENV: Literal["dev", "prod"] = "dev"

    # Metadata database (registry + snapshot ledger)
    DATABASE_URL: str = "sqlite:///./snaplake.db"
    RUN_MIGRATIONS: bool = True

    # Object storage (S3 / MinIO)
    S3_ENDPOINT: str = "http://localhost:9000"
    S3_BUCKET: str = "analytics"
    S3_REGION: str | None = None
    S3_ACCESS_KEY_ID: str = "minioadmin"
    S3_SECRET_ACCESS_KEY: str = "minioadmin"
    S3_FORCE_PATH_STYLE: bool = True

    # Query resolution
    QUERY_STRICT_TABLES: bool = False  # raise instead of skipping tables without a complete snapshot
    SNAPSHOT_LIST_LIMIT: int = 20

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True
    SLACK_WEBHOOK_URL: str | None = None

    # Docs Configuration
    DOCS_ENABLED: bool | None = None  # Override docs setting (None = auto based on ENV)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # ignore unrelated keys in local .env
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "prod"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENV == "dev"

    @property
    def debug_enabled(self) -> bool:
        """Debug mode is only enabled in development."""
        return self.is_development

    @property
    def effective_log_level(self) -> str:
        """Return appropriate log level based on environment."""
        if self.is_production:
            # In production, minimum INFO level (ignore DEBUG)
            return self.LOG_LEVEL if self.LOG_LEVEL.upper() != "DEBUG" else "INFO"
        return self.LOG_LEVEL

    @property
    def docs_enabled(self) -> bool:
        """Swagger/ReDoc docs enabled based on environment or override."""
        if self.DOCS_ENABLED is not None:
            return self.DOCS_ENABLED
        return self.is_development

    @property
    def storage(self) -> StorageConfig:
        """Object storage configuration in its wire shape."""
        return StorageConfig(
            endpoint=self.S3_ENDPOINT,
            bucket=self.S3_BUCKET,
            region=self.S3_REGION,
            access_key_id=self.S3_ACCESS_KEY_ID,
            secret_access_key=self.S3_SECRET_ACCESS_KEY,
            force_path_style=self.S3_FORCE_PATH_STYLE,
        )


settings = Settings()
