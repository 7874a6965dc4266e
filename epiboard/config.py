from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    UPLOAD_DIR: Path = Path("/tmp/uploads")        # escribible (uploads + reporte)
    DATA_DIR: Path = BASE_DIR / "data"             # datos semilla, solo lectura
    STATIC_DIR: Path = BASE_DIR / "wwwroot"        # dashboard.html, si existe
    MAX_UPLOAD_MB: int = 20
    MAX_LINE_LENGTH: int = 200_000
    REPORT_FILENAME: str = "tablas_notificante.csv"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]
    GZIP_MIN_SIZE: int = 1000
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    model_config = SettingsConfigDict(
        env_file="./.env",
        env_ignore_empty=True,
        extra="ignore",
    )

settings = Settings()
