from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_path: Path = Path.home() / "ApplyHub"
    # Uploads above this size are rejected before hashing.
    max_upload_bytes: int = 25 * 1024 * 1024  # 25 MiB
    allowed_extensions: set[str] = {"pdf"}
    session_ttl_seconds: int = 3600
    notification_max_attempts: int = 3
    notification_backoff_seconds: float = 0.5
    api_prefix: str = "/api/v1"
    host: str = "127.0.0.1"
    port: int = 8000

    @property
    def db_path(self) -> Path:
        return self.data_path / "db.sqlite"

    @property
    def documents_dir(self) -> Path:
        return self.data_path / "documents"

    model_config = {"env_prefix": "APPLYHUB_"}


settings = Settings()
