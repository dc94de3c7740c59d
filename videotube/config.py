"""
Centralized configuration management using pydantic-settings.

A single Settings instance is built at startup and handed to every component
that needs it (database, password hasher, token service, media storage).
"""

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from videotube.utils.logger import setup_logger

load_dotenv(override=True)

logger = setup_logger("core_config")

PLACEHOLDER_ACCESS_SECRET = "change-me-access-secret"
PLACEHOLDER_REFRESH_SECRET = "change-me-refresh-secret"


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
        env_prefix="",
    )

    app_env: str = Field(
        default="development",
        alias="APP_ENV",
        description="Deployment environment (development, test, production)",
    )

    # ===== Server Configuration =====
    server_host: str = Field(
        default="0.0.0.0", alias="SERVER_HOST", description="Server host address"
    )

    server_port: int = Field(
        default=8000, alias="SERVER_PORT", description="Server port number"
    )

    server_workers: int = Field(
        default=1, alias="SERVER_WORKERS", description="Number of uvicorn workers"
    )

    api_prefix: str = Field(
        default="/api/v1",
        alias="API_PREFIX",
        description="Path prefix under which all API routers are mounted",
    )

    # ===== Database Configuration =====
    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="Application database URL (postgresql:// or sqlite+aiosqlite://)",
    )

    db_echo: bool = Field(
        default=False, alias="DB_ECHO", description="Log every SQL statement"
    )

    # ===== Token Configuration =====
    access_token_secret: str = Field(
        default=PLACEHOLDER_ACCESS_SECRET,
        alias="ACCESS_TOKEN_SECRET",
        description="Symmetric secret used to sign access tokens",
    )

    refresh_token_secret: str = Field(
        default=PLACEHOLDER_REFRESH_SECRET,
        alias="REFRESH_TOKEN_SECRET",
        description="Symmetric secret used to sign refresh tokens",
    )

    jwt_algorithm: str = Field(
        default="HS256", alias="JWT_ALGORITHM", description="JWT signing algorithm"
    )

    access_token_expire_minutes: int = Field(
        default=15,
        gt=0,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
        description="Lifetime of access tokens in minutes",
    )

    refresh_token_expire_days: int = Field(
        default=10,
        gt=0,
        alias="REFRESH_TOKEN_EXPIRE_DAYS",
        description="Lifetime of refresh tokens in days",
    )

    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        alias="BCRYPT_ROUNDS",
        description="bcrypt cost factor",
    )

    # ===== Cookie Configuration =====
    cookie_secure: bool = Field(
        default=True,
        alias="COOKIE_SECURE",
        description="Send token cookies over HTTPS only",
    )

    cookie_samesite: str = Field(
        default="lax",
        alias="COOKIE_SAMESITE",
        description="SameSite attribute for token cookies (lax, strict, none)",
    )

    # ===== Media Host Configuration =====
    cloudinary_cloud_name: str | None = Field(
        default=None, alias="CLOUDINARY_CLOUD_NAME", description="Cloudinary cloud name"
    )

    cloudinary_api_key: str | None = Field(
        default=None, alias="CLOUDINARY_API_KEY", description="Cloudinary API key"
    )

    cloudinary_api_secret: str | None = Field(
        default=None, alias="CLOUDINARY_API_SECRET", description="Cloudinary API secret"
    )

    cloudinary_api_base_url: str = Field(
        default="https://api.cloudinary.com/v1_1",
        alias="CLOUDINARY_API_BASE_URL",
        description="Cloudinary REST API base URL",
    )

    cloudinary_folder: str | None = Field(
        default="videotube",
        alias="CLOUDINARY_FOLDER",
        description="Folder that uploaded assets are placed in",
    )

    media_upload_timeout: float = Field(
        default=120.0,
        alias="MEDIA_UPLOAD_TIMEOUT",
        description="Timeout for a single media upload round trip in seconds",
    )

    # ===== Upload Configuration =====
    upload_temp_dir: str = Field(
        default="public/temp",
        alias="UPLOAD_TEMP_DIR",
        description="Directory where multipart uploads are staged before hosting",
    )

    max_upload_size_mb: int = Field(
        default=200,
        gt=0,
        alias="MAX_UPLOAD_SIZE_MB",
        description="Maximum accepted size of a single uploaded file",
    )

    # ===== CORS Configuration =====
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",  # Vite dev server default port
            "http://localhost:3000",  # Alternative dev port
            "http://127.0.0.1:5173",
        ],
        alias="CORS_ALLOW_ORIGINS",
        description="CORS allowed origins",
    )

    cors_allow_credentials: bool = Field(
        default=True,
        alias="CORS_ALLOW_CREDENTIALS",
        description="Whether to allow credentials in CORS requests",
    )

    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_METHODS",
        description="CORS allowed methods",
    )

    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_HEADERS",
        description="CORS allowed headers",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings and log warnings for missing critical configurations."""
        placeholder_secrets = (
            self.access_token_secret == PLACEHOLDER_ACCESS_SECRET
            or self.refresh_token_secret == PLACEHOLDER_REFRESH_SECRET
        )
        if self.is_production and placeholder_secrets:
            raise ValueError(
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set in production."
            )
        if placeholder_secrets:
            logger.warning("Token secrets are not set; using placeholder values.")

        if self.access_token_secret == self.refresh_token_secret:
            logger.warning("Access and refresh tokens share the same signing secret.")

        if not self.database_url:
            logger.warning("DATABASE_URL environment variable not set.")

        if not self.media_configured:
            logger.warning(
                "Cloudinary credentials are incomplete; media uploads will fail."
            )

        if self.cookie_samesite.lower() not in {"lax", "strict", "none"}:
            raise ValueError("COOKIE_SAMESITE must be one of: lax, strict, none")

        logger.debug(f"Environment: {self.app_env}, API prefix: {self.api_prefix}")
        return self

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"

    @property
    def media_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


# Global settings instance
settings = Settings()
