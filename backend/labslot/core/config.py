from functools import lru_cache
import json
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    # Resolve to backend/.env so `uvicorn --app-dir backend` works from any cwd.
    model_config = SettingsConfigDict(env_file=str(BACKEND_ENV_FILE), env_file_encoding="utf-8")

    project_name: str = "LabSlot API"
    api_prefix: str = "/api"

    database_url: str = "sqlite+pysqlite:///./labslot.db"
    auto_create_schema: bool = True

    # When set, a validator's slot proposal waits for the owner's approval
    # instead of replacing the accepted slots immediately.
    validator_moves_require_review: bool = False
    resource_label_template: str = "Resource {id}"

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("resource_label_template")
    @classmethod
    def validate_label_template(cls, value: str) -> str:
        if "{id}" not in value:
            raise ValueError("resource_label_template must contain an {id} placeholder")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
