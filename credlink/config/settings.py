"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProvingBackendMode(str, Enum):
    """Zero-knowledge proving backend."""

    MOCK = "mock"
    SNARKJS = "snarkjs"


class ZKSettings(BaseSettings):
    """Proving backend configuration."""

    model_config = SettingsConfigDict(env_prefix="ZK_")

    backend: ProvingBackendMode = ProvingBackendMode.MOCK

    # Compiled circuits (snarkjs layout: <build_dir>/<circuit>/...)
    build_dir: Path | None = None

    # Width of every private input and public threshold
    bit_width: int = Field(default=32, ge=8, le=126)

    # Key material for the in-process mock backend
    mock_secret: SecretStr = SecretStr("credlink-mock-verification-secret")


class ScoringSettings(BaseSettings):
    """Scoring policy constants."""

    model_config = SettingsConfigDict(env_prefix="SCORING_")

    initial_score: int = Field(default=0, ge=0)
    max_score: int = Field(default=1000, gt=0)

    # Lower score bound of tiers 1, 2 and 3
    tier_breakpoints: list[int] = Field(default_factory=lambda: [200, 500, 750])

    # Score deltas for each verified predicate
    wallet_age_delta: int = 25
    repayment_delta: int = 50
    default_ratio_delta: int = 50

    # Lending pool hooks
    repayment_bonus: int = 50
    liquidation_penalty: int = 100

    # Rate proofs need this many recorded loans before they move the score
    min_loans_for_rate_proofs: int = Field(default=1, ge=1)

    # Attestations per predicate kind that move the score
    max_attestations_per_kind: int = Field(default=4, ge=1)

    # Least strict public thresholds the ledger accepts
    min_wallet_age_days: int = Field(default=30, ge=0)
    min_repayment_rate: int = Field(default=80, ge=0, le=100)
    max_default_rate: int = Field(default=20, ge=0, le=100)


class CapabilitySettings(BaseSettings):
    """Capability token signing configuration."""

    model_config = SettingsConfigDict(env_prefix="CAPABILITY_")

    secret_key: SecretStr = SecretStr("your-capability-secret-key-min-32-chars")
    algorithm: str = "HS256"
    expire_minutes: int = 60


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class ServicePorts(BaseSettings):
    """Service port configuration."""

    attestation: int = Field(default=8010, alias="ATTESTATION_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Project paths
    project_root: Path = Field(default_factory=lambda: Path(__file__).parent.parent.parent)

    # Service ports
    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Core
    zk: ZKSettings = Field(default_factory=ZKSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)

    # Security
    capability: CapabilitySettings = Field(default_factory=CapabilitySettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def circuit_build_dir(self) -> Path:
        """Directory holding compiled circuits and keys."""
        return self.zk.build_dir or self.project_root / "circuits" / "build"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
