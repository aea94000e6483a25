# core/config.py

"""
Application Configuration
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    app_name: str = "TinyShrink Compression API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # API Settings
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 3001

    # Remote compression service
    tinify_api_url: str = "https://api.tinify.com"
    tinify_api_key: Optional[str] = None
    request_timeout: float = 60.0

    # Companion proxy server (when the pipeline runs as its client)
    companion_url: Optional[str] = None
    use_proxy: bool = False

    # History Settings
    max_history_entries: int = 50

    # Directory Settings
    data_dir: str = "data"
    state_file: str = "data/state.json"
    artifacts_dir: str = "data/compressed"
    persist_artifacts: bool = False

    class Config:
        env_prefix = "TINYSHRINK_"
        env_file = ".env"
        case_sensitive = False


settings = Settings()
