import os
from pydantic_settings import BaseSettings


def _parse_cors_origins() -> list[str] | None:
    """Parse CORS_ORIGINS env var as comma-separated string or JSON list."""
    raw = os.environ.get("CORS_ORIGINS")
    if not raw:
        return None
    if raw.startswith("["):
        import json
        return json.loads(raw)
    return [o.strip() for o in raw.split(",") if o.strip()]


class Settings(BaseSettings):
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Cache layer
    cache_backend: str = "memory"  # "memory" | "redis"
    redis_url: str = "redis://localhost:6379/0"

    # Inference capability
    inference_backend: str = "remote"  # "remote" | "local"
    huggingface_api_key: str = ""
    inference_base_url: str = "https://api-inference.huggingface.co/models"
    ner_model: str = "dslim/bert-base-NER"
    sentiment_model: str = "j-hartmann/emotion-english-distilroberta-base"
    ner_timeout_seconds: float = 15.0
    sentiment_timeout_seconds: float = 10.0
    positive_sentiment_labels: list[str] = ["joy", "positive"]

    # Content sources
    content_timeout_seconds: float = 10.0

    # Job pipeline
    max_concurrent_jobs: int = 5
    job_max_attempts: int = 3
    job_backoff_base_seconds: float = 5.0
    maintenance_max_attempts: int = 3
    job_retention_seconds: int = 86400
    scheduler_enabled: bool = True

    # Uploads
    upload_dir: str = "uploads"
    max_upload_size_mb: int = 5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "protected_namespaces": ("settings_",)}


_cors_override = _parse_cors_origins()
settings = Settings(**{"cors_origins": _cors_override} if _cors_override else {})
