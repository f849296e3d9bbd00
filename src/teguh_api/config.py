"""Application configuration and plan settings."""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_env: Environment = Environment.DEVELOPMENT
    api_prefix: str = "/api"
    creator: str = "Teguh"

    # Database
    database_url: str = "sqlite+aiosqlite:///./teguh.db"
    database_pool_size: int = 20
    database_max_overflow: int = 10
    database_pool_timeout: float = 30.0
    database_echo: bool = False

    # Redis (optional, backs the IP throttle only)
    redis_enabled: bool = True
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 100

    # Session tokens
    jwt_secret: str = "change-this-jwt-secret-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expires_days: int = 30
    session_retention_days: int = 7

    # API keys
    default_key_expiry_days: int = 365

    # Per-IP throttle
    ip_rate_limit_enabled: bool = True
    ip_rate_limit_per_minute: int = 2000
    trust_proxy_headers: bool = False

    # Upstream integrations
    upstream_timeout_seconds: float = 30.0
    downloader_base_url: str = "https://api.vreden.my.id/api/v1/download"
    deepseek_url: str = "https://api-rebix.vercel.app/api/deepseek-r1"
    copilot_url: str = "https://api.yupra.my.id/api/ai/copilot"
    gpt5_url: str = "https://api.yupra.my.id/api/ai/gpt5"

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class Plan(str, Enum):
    """Billing plans."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"
    ADMIN = "admin"


@dataclass(frozen=True)
class PlanConfig:
    """Configuration for a billing plan."""

    daily_limit: int  # requests per API key per UTC day
    max_api_keys: int
    price: int  # IDR


PLAN_CONFIGS: dict[Plan, PlanConfig] = {
    Plan.FREE: PlanConfig(daily_limit=100, max_api_keys=2, price=0),
    Plan.BASIC: PlanConfig(daily_limit=1000, max_api_keys=5, price=25000),
    Plan.PREMIUM: PlanConfig(daily_limit=5000, max_api_keys=10, price=75000),
    Plan.ENTERPRISE: PlanConfig(daily_limit=20000, max_api_keys=25, price=200000),
    Plan.ADMIN: PlanConfig(daily_limit=100000, max_api_keys=50, price=0),
}


def get_plan_config(plan: Plan | str) -> PlanConfig:
    """Get configuration for a plan, falling back to free for unknown names."""
    try:
        return PLAN_CONFIGS[Plan(plan)]
    except ValueError:
        return PLAN_CONFIGS[Plan.FREE]
