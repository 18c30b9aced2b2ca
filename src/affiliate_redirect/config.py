"""Application configuration via pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All runtime configuration, loaded from environment / .env file."""

    # Affiliate network credentials. Empty means "not configured".
    awin_affiliate_id: str = ""
    cj_pid: str = ""
    amazon_tag: str = ""

    # Own attribution tags appended to every outbound link.
    attribution_source: str = "2list"
    attribution_medium: str = "app"

    # Unclassified hosts: False = passthrough with attribution, True = 403.
    enforce_allowlist: bool = False

    registry_path: str | None = None

    expansion_hop_timeout_seconds: float = 2.5
    expansion_budget_seconds: float = 6.0

    log_enabled: bool = True
    log_webhook_url: str | None = None
    webhook_timeout_seconds: float = 2.0

    port: int = 8080
    log_level: str = "INFO"
    environment: str = "development"
    vercel_env: str = "unknown"
    vercel_git_commit_sha: str = "n/a"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


# Module-level singleton; imported everywhere.
settings = Settings()
