"""
Configuration management for the LiveTV player.
Uses pydantic-settings for environment variable loading.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # API Configuration
    app_name: str = "LiveTV Player"
    app_version: str = "2.0.0"
    debug: bool = False
    
    # Server Configuration
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["*"]
    rate_limit_per_minute: int = 300
    
    # Playlist source
    playlist_url: str = "https://m3u.work/jwuF5FPp.m3u"
    user_agent: str = "LiveTVPlayer/2.0"
    playlist_timeout: float = 15.0
    playlist_max_bytes: int = 10 * 1024 * 1024
    playlist_max_redirects: int = 5
    
    # Logo downloads
    logo_timeout: float = 6.0
    logo_max_bytes: int = 2 * 1024 * 1024
    logo_max_redirects: int = 3
    logo_max_concurrency: int = 8
    logo_width: int = 52
    logo_height: int = 42
    
    # Playback session
    debounce_seconds: float = 0.15
    retry_delay_seconds: float = 3.0
    max_retries: int = 2
    default_volume: int = 100
    engine: str = "mpv"  # "mpv" or "null"
    
    # Online status probe (0 = disabled)
    status_check_interval: float = 30.0
    
    # Resume state
    database_path: str = "data/livetv.db"
    
    model_config = SettingsConfigDict(env_prefix="LIVETV_", env_file=".env")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
