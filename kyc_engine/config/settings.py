"""
Application Settings.

Centraliza toda configuração via .env / variáveis de ambiente.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configurações carregadas de variáveis de ambiente."""

    # --- App ---
    env: str = "development"
    debug: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    load_demo_data: bool = False

    # --- Database ---
    database_url: str = "sqlite:///kyc_engine.db"

    # --- Requirement Catalog ---
    default_purpose: str = "identity_kyc"
    catalog_path: str = ""          # empty → built-in catalog
    catalog_version: str = ""       # empty → latest version in catalog

    # --- Review rules ---
    rejection_reason_min_length: int = 5
    rejection_reason_max_length: int = 500

    # --- Queue ---
    queue_default_page_size: int = 20
    queue_max_page_size: int = 100

    # --- Expiry ---
    expiry_warning_days: int = 30
    sweep_batch_size: int = 200

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Singleton de settings."""
    return Settings()
