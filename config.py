import os
from functools import lru_cache
from pathlib import Path
from typing import Optional


class Settings:
    def __init__(
        self,
        data_dir: Path,
        database_url: str,
        token_secret: str,
        token_max_age_hours: int,
        storage_backend: str,
        storage_dir: Path,
        storage_base_url: str,
        cloudinary_cloud_name: Optional[str],
        cloudinary_api_key: Optional[str],
        cloudinary_api_secret: Optional[str],
        page_size_default: int,
        page_size_max: int,
        log_level: str,
    ) -> None:
        self.data_dir = data_dir
        self.database_url = database_url
        self.token_secret = token_secret
        self.token_max_age_hours = token_max_age_hours
        self.storage_backend = storage_backend
        self.storage_dir = storage_dir
        self.storage_base_url = storage_base_url
        self.cloudinary_cloud_name = cloudinary_cloud_name
        self.cloudinary_api_key = cloudinary_api_key
        self.cloudinary_api_secret = cloudinary_api_secret
        self.page_size_default = page_size_default
        self.page_size_max = page_size_max
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("LEDGER_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "ledger.db"
    database_url = os.getenv("LEDGER_DATABASE_URL", f"sqlite:///{default_db}")
    token_secret = os.getenv(
        "LEDGER_TOKEN_SECRET",
        "3f9c0d1e7a5b48c2a6e1f04d9b7c2e58a1d6f3b09c4e7a2d5f8b1c6e0a3d9f47",
    )
    token_max_age_hours = int(os.getenv("LEDGER_TOKEN_MAX_AGE_HOURS", "24"))
    storage_backend = os.getenv("LEDGER_STORAGE_BACKEND", "local").lower()
    storage_dir = Path(
        os.getenv("LEDGER_STORAGE_DIR", str(data_dir / "uploads"))
    ).resolve()
    storage_base_url = os.getenv("LEDGER_STORAGE_BASE_URL", "/uploads").rstrip("/")
    page_size_default = int(os.getenv("LEDGER_PAGE_SIZE_DEFAULT", "20"))
    page_size_max = int(os.getenv("LEDGER_PAGE_SIZE_MAX", "100"))
    log_level = os.getenv("LEDGER_LOG_LEVEL", "INFO").upper()
    return Settings(
        data_dir=data_dir,
        database_url=database_url,
        token_secret=token_secret,
        token_max_age_hours=token_max_age_hours,
        storage_backend=storage_backend,
        storage_dir=storage_dir,
        storage_base_url=storage_base_url,
        cloudinary_cloud_name=os.getenv("LEDGER_CLOUDINARY_CLOUD_NAME"),
        cloudinary_api_key=os.getenv("LEDGER_CLOUDINARY_API_KEY"),
        cloudinary_api_secret=os.getenv("LEDGER_CLOUDINARY_API_SECRET"),
        page_size_default=page_size_default,
        page_size_max=page_size_max,
        log_level=log_level,
    )
