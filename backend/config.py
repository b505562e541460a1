"""
Configuration Module for VibeSync API
Handles logging setup, environment settings and Flask app initialization
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from spotify_normalizer import DEFAULT_GENRE_COVER_TEMPLATE

DEFAULT_CORS_ORIGINS = 'https://vibesync-neon.vercel.app,*'


def configure_logging():
    """
    Configure application logging with standard format

    Returns:
        Logger instance for the config module
    """
    logging.basicConfig(
        level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger(__name__)


@dataclass
class Settings:
    """Runtime settings, normally read from the environment"""
    spotify_client_id: Optional[str] = None
    spotify_client_secret: Optional[str] = None
    http_timeout: float = 10
    ffprobe_path: str = 'ffprobe'
    ffprobe_timeout: float = 30
    cors_origins: List[str] = field(default_factory=lambda: DEFAULT_CORS_ORIGINS.split(','))
    storage_root: Optional[Path] = None
    genre_cover_url_template: str = DEFAULT_GENRE_COVER_TEMPLATE
    port: int = 10000

    @property
    def spotify_configured(self) -> bool:
        return bool(self.spotify_client_id and self.spotify_client_secret)


def _env_float(name, default):
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logging.getLogger(__name__).warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


def load_settings() -> Settings:
    """
    Build Settings from environment variables

    Call load_dotenv() first if a .env file should be honoured.
    """
    origins = os.environ.get('CORS_ORIGINS', DEFAULT_CORS_ORIGINS)
    storage_root = os.environ.get('STORAGE_ROOT')

    return Settings(
        spotify_client_id=os.environ.get('SPOTIFY_CLIENT_ID') or None,
        spotify_client_secret=os.environ.get('SPOTIFY_CLIENT_SECRET') or None,
        http_timeout=_env_float('HTTP_TIMEOUT', 10),
        ffprobe_path=os.environ.get('FFPROBE_PATH', 'ffprobe'),
        ffprobe_timeout=_env_float('FFPROBE_TIMEOUT', 30),
        cors_origins=[o.strip() for o in origins.split(',') if o.strip()],
        storage_root=Path(storage_root) if storage_root else None,
        genre_cover_url_template=os.environ.get('GENRE_COVER_URL_TEMPLATE', DEFAULT_GENRE_COVER_TEMPLATE),
        port=int(_env_float('PORT', 10000)),
    )


def init_app_config(app, settings: Settings):
    """
    Initialize Flask app configuration

    This sets up:
    - Custom JSON provider for normalized catalog records
    - Settings copied into app.config

    Args:
        app: Flask application instance
        settings: Settings instance
    """
    from utils.json_provider import CustomJSONProvider
    app.json = CustomJSONProvider(app)

    app.config['SETTINGS'] = settings
    app.config['STORAGE_ROOT'] = settings.storage_root
    app.config['FFPROBE_PATH'] = settings.ffprobe_path
    app.config['FFPROBE_TIMEOUT'] = settings.ffprobe_timeout
    app.config['GENRE_COVER_URL_TEMPLATE'] = settings.genre_cover_url_template
