from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Target repository
    GITHUB_TOKEN: str = ""
    GITHUB_REPO_OWNER: str = ""
    GITHUB_REPO_NAME: str = ""
    GITHUB_REPO_BRANCH: str = "main"
    GITHUB_API_URL: str = "https://api.github.com"

    # Submission filtering
    FORM_NAME_PREFIX: str = "comments-"
    HONEYPOT_FIELD: str = "bot-field"

    # Persistence
    COMMENTS_ROOT: str = "_data/comments"
    APPEND_STRATEGY: Literal["direct", "review"] = "review"
    CONFLICT_RETRIES: int = 0
    STORE_BACKEND: Literal["github", "memory"] = "github"

    # Commit identity
    BOT_NAME: str = "Comments Bot"
    BOT_EMAIL: str = "comments-bot@example.com"
    REVIEW_INCLUDE_EMAIL: bool = False

    HTTP_TIMEOUT: float = 10.0
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
