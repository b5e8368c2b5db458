"""Application configuration."""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file from project root
load_dotenv()


class Settings:
    """Application settings from environment variables."""

    database_url: str
    anthropic_api_key: str
    analyzer_model: str
    reader_base_url: str
    reader_api_key: str
    clerk_secret_key: str
    clerk_api_url: str
    clerk_webhook_secret: str
    auth_user_header: str
    otlp_endpoint: str
    root_path: str

    def __init__(self):
        self.database_url = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./laterstack.db")
        self.anthropic_api_key = os.environ.get("ANTHROPIC_API_KEY", "")
        self.analyzer_model = os.environ.get("ANALYZER_MODEL", "claude-haiku-4-5-20251001")
        self.reader_base_url = os.environ.get("READER_BASE_URL", "https://r.jina.ai")
        self.reader_api_key = os.environ.get("READER_API_KEY", "")
        self.clerk_secret_key = os.environ.get("CLERK_SECRET_KEY", "")
        self.clerk_api_url = os.environ.get("CLERK_API_URL", "https://api.clerk.com/v1")
        self.clerk_webhook_secret = os.environ.get("CLERK_WEBHOOK_SECRET", "")
        # The authenticating edge (proxy or session middleware) forwards the
        # identity provider's user id in this header.
        self.auth_user_header = os.environ.get("AUTH_USER_HEADER", "X-User-Id")
        self.otlp_endpoint = os.environ.get("OTLP_ENDPOINT", "http://localhost:4317")
        self.root_path = os.environ.get("ROOT_PATH", "")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
