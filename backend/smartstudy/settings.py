from typing import List, Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5"
DEFAULT_WIKI_SUMMARY_URL = "https://en.wikipedia.org/api/rest_v1/page/summary/"
DEFAULT_USER_AGENT = "SmartStudyAssistant/0.1 (https://github.com/SmartStudyAssistant)"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    ai_provider: Literal["gemini", "openai", "claude"] = "gemini"

    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    gemini_model: str = DEFAULT_GEMINI_MODEL
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    anthropic_api_key: Optional[str] = None
    claude_model: str = DEFAULT_CLAUDE_MODEL

    wiki_summary_url: str = DEFAULT_WIKI_SUMMARY_URL
    wiki_user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 15.0

    allowed_origins: str = ""
    host: str = "127.0.0.1"
    port: int = 4000

    log_level: str = Field(default="INFO", validation_alias=AliasChoices("log_level", "SMARTSTUDY_LOG_LEVEL"))
    log_dir: str = Field(
        default=".smartstudy_logs", validation_alias=AliasChoices("log_dir", "SMARTSTUDY_LOG_DIR")
    )
    log_max_bytes: int = Field(
        default=5 * 1024 * 1024, validation_alias=AliasChoices("log_max_bytes", "SMARTSTUDY_LOG_MAX_BYTES")
    )
    log_backup_count: int = Field(
        default=5, validation_alias=AliasChoices("log_backup_count", "SMARTSTUDY_LOG_BACKUP_COUNT")
    )

    def ai_credential(self) -> Optional[str]:
        raw = {
            "gemini": self.gemini_api_key,
            "openai": self.openai_api_key,
            "claude": self.anthropic_api_key,
        }.get(self.ai_provider)
        key = (raw or "").strip()
        return key or None

    def ai_model(self) -> str:
        return {
            "gemini": self.gemini_model,
            "openai": self.openai_model,
            "claude": self.claude_model,
        }[self.ai_provider]

    @property
    def allowed_origin_list(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


def load_settings() -> Settings:
    return Settings()


settings = load_settings()
