from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    openai_api_key: str | None = None
    openai_base_url: str | None = "https://api.openai.com/v1"
    request_timeout_seconds: float = 60.0

    cors_origins: str = "*"

    stream_interval_seconds: float = 0.016
    stream_steps: int = 120

    system_prompt: str = (
        "You are a helpful, empathetic customer support assistant for ACME Store.\n"
        "Policies:\n"
        "- Greet warmly, be concise, and ask clarifying questions when needed.\n"
        "- Never invent order data; if unknown, ask for order ID or email.\n"
        "- Provide step-by-step troubleshooting for common issues (orders, returns, "
        "refunds, shipping, account, payments).\n"
        "- Offer to escalate to a human agent when issues are sensitive or unresolved.\n"
        "- Keep answers under 6 sentences unless the user asks for more detail."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())

    def config_warnings(self) -> List[str]:
        """Return non-blocking configuration warnings to surface to users."""
        warnings: List[str] = []
        if not self.has_api_key:
            warnings.append("No API key found. Set OPENAI_API_KEY in your environment.")
        return warnings


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Return the application settings singleton (loaded from env / .env)."""
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings()
    return _SETTINGS
