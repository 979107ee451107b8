from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    api_base_url: str = "http://localhost:8080/v1"
    api_key: str = ""
    request_timeout_seconds: float = 30.0
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    # CSV import tuning
    csv_max_payload_size: int = 500 * 1024  # bytes per uploaded chunk
    csv_delay_between_chunks_ms: int = 100
    csv_chunk_max_retries: int = 3
    csv_chunk_initial_backoff_ms: int = 100

    # Preview settings (for /csv/preview and the console)
    preview_row_limit: int = 10

    # Item listing cache, invalidated after every import
    items_cache_ttl_seconds: int = 300

    # Display preferences (row height, preview rows)
    preferences_path: str = "~/.dataset_importer/preferences.json"

    model_config = ConfigDict(env_file=".env", env_prefix="DATASET_IMPORTER_", extra="ignore")


settings = Settings()
