# backend/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, List
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown keys instead of crashing
    )

    # ---- Auth context (tokens are issued by the auth service, we only verify)
    jwt_secret: str = Field("dev-secret-change-me", alias="JWT_SECRET")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")

    # ---- DB (accept either)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    db_url_compat: Optional[str] = Field(default=None, alias="DB_URL")

    # ---- CORS raw (we parse)
    cors_origins_raw: str = Field(
        "http://localhost:3000,http://127.0.0.1:3000",
        alias="CORS_ORIGINS",
    )

    # ---- Model-assisted grading
    ai_provider: str = Field("stub", alias="AI_PROVIDER")  # "stub" | "ollama" | "openai"
    ollama_url: str = Field("http://127.0.0.1:11434", alias="OLLAMA_URL")
    ollama_model: str = Field("tinyllama", alias="OLLAMA_MODEL")
    openai_api_key: str = Field("", alias="OPENAI_API_KEY")
    openai_model: str = Field("gpt-4o-mini", alias="OPENAI_MODEL")
    grading_timeout_seconds: float = Field(60.0, alias="GRADING_TIMEOUT_SECONDS")

    # ---- Evaluation queue
    eval_max_attempts: int = Field(3, alias="EVAL_MAX_ATTEMPTS")
    eval_retry_delay_seconds: float = Field(2.0, alias="EVAL_RETRY_DELAY_SECONDS")
    eval_workers: int = Field(1, alias="EVAL_WORKERS")
    eval_queue_maxsize: int = Field(1000, alias="EVAL_QUEUE_MAXSIZE")

    # fraction of the question's points awarded when grading cannot complete
    code_fallback_credit: float = Field(0.3, alias="CODE_FALLBACK_CREDIT")
    exhausted_fallback_credit: float = Field(0.0, alias="EXHAUSTED_FALLBACK_CREDIT")

    # ---- Session policy
    session_resume_grace_seconds: int = Field(300, alias="SESSION_RESUME_GRACE_SECONDS")
    # late manual answers within this many seconds of the deadline still count
    answer_grace_seconds: int = Field(2, alias="ANSWER_GRACE_SECONDS")

    # ---- Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(True, alias="JSON_LOGS")

    # ---- Helpers / parsed properties
    @property
    def cors_origins(self) -> List[str]:
        s = (self.cors_origins_raw or "").strip()
        if not s:
            return ["http://localhost:3000", "http://127.0.0.1:3000"]
        if s.startswith("["):
            try:
                arr = json.loads(s)
                if isinstance(arr, list):
                    return [str(x).strip() for x in arr if str(x).strip()]
            except ValueError:
                pass
        return [x.strip() for x in s.split(",") if x.strip()]

    @property
    def database_url_effective(self) -> str:
        return self.database_url or self.db_url_compat or "sqlite:///./interview_core.db"

    @property
    def DATABASE_URL(self) -> str:
        return self.database_url_effective

    @property
    def AI_PROVIDER(self) -> str:
        return (self.ai_provider or "stub").lower()


settings = Settings()
