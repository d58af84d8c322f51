"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 5001
    api_debug: bool = False
    cors_origins: list[str] = ["*"]

    # Service
    service_name: str = "travelgram"
    service_version: str = "0.1.0"

    # Neo4j (social graph)
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "password"

    # PostgreSQL (media metadata)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "travelgram"
    postgres_password: str = "travelgram"
    postgres_db: str = "travelgram"

    # Metadata and graph queries
    query_timeout_seconds: float = 30.0

    # MinIO (binary store)
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "uploads"
    minio_secure: bool = False
    storage_timeout_seconds: float = 30.0

    # Uploads
    staging_dir: str = "temp"
    image_max_bytes: int = 5 * 1024 * 1024
    audio_max_bytes: int = 10 * 1024 * 1024

    # Feed
    feed_limit: int = 20
    audio_match_window_seconds: int = 60

    # Firebase (identity provider)
    firebase_project_id: str = ""
    firebase_credentials_file: str = ""

    # AI - Gemini
    gemini_api_key: str = ""
    gemini_vision_model: str = "gemini-1.5-pro"

    # AI - OpenAI (fallback)
    openai_api_key: str = ""
    openai_vision_model: str = "gpt-4o"

    ai_timeout_seconds: float = 60.0

    @property
    def postgres_url(self) -> str:
        """Get PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
