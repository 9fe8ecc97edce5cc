from __future__ import annotations
import os
from typing import Dict, Any, List, Optional

from dotenv import load_dotenv
from flask import current_app, has_app_context

# Load environment variables from .env file
load_dotenv()


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class Settings:
    """Lightweight settings wrapper that reads from environment variables.

    Values are read once; the rest of the codebase treats an instance as
    read-only. Overrides for tests go through ``Settings(**overrides)``.
    """

    def __init__(self, **overrides: Any) -> None:
        self.ENV: str = os.getenv('FLASK_ENV', 'production')
        self.DEBUG: bool = os.getenv('FLASK_DEBUG', '0').lower() in ('1', 'true', 'yes')
        self.HOST: str = os.getenv('HOST', '0.0.0.0')
        self.PORT: int = _env_int('PORT', 4000)
        self.LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()
        # Per-call bounds for every outbound request
        self.RPC_TIMEOUT_SECONDS: float = _env_float('RPC_TIMEOUT_SECONDS', 8.0)
        self.PRICE_TIMEOUT_SECONDS: float = _env_float('PRICE_TIMEOUT_SECONDS', 10.0)
        self.MAX_WORKERS: int = _env_int('MAX_WORKERS', 8)
        self.COINGECKO_BASE: str = os.getenv('COINGECKO_BASE', 'https://api.coingecko.com/api/v3')
        self.COINGECKO_API_KEY: Optional[str] = os.getenv('COINGECKO_API_KEY') or None
        self.CORS_ALLOW_ORIGIN: str = os.getenv('CORS_ALLOW_ORIGIN', '*')
        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @staticmethod
    def from_env() -> 'Settings':
        return Settings()

    @staticmethod
    def extra_rpc_urls(chain: str) -> List[str]:
        """Endpoints from ``VANTA_RPC_<CHAIN>`` (comma separated), tried before the defaults."""
        raw = os.getenv(f"VANTA_RPC_{chain.upper()}", '')
        return [u.strip() for u in raw.split(',') if u.strip()]

    def as_dict(self) -> Dict[str, Any]:
        return {
            'ENV': self.ENV,
            'DEBUG': self.DEBUG,
            'HOST': self.HOST,
            'PORT': self.PORT,
            'LOG_LEVEL': self.LOG_LEVEL,
            'RPC_TIMEOUT_SECONDS': self.RPC_TIMEOUT_SECONDS,
            'PRICE_TIMEOUT_SECONDS': self.PRICE_TIMEOUT_SECONDS,
            'MAX_WORKERS': self.MAX_WORKERS,
            'COINGECKO_BASE': self.COINGECKO_BASE,
            'COINGECKO_API_KEY': self.COINGECKO_API_KEY,
            'CORS_ALLOW_ORIGIN': self.CORS_ALLOW_ORIGIN,
        }


# Convenience singleton
settings = Settings()


def active_settings() -> Settings:
    """Settings of the Flask app handling the current request, else the singleton.

    ``create_app`` stores its Settings under ``app.extensions['vanta']``.
    Worker threads carry no app context and fall back to the singleton, so
    values they need are read on the request thread and passed in.
    """
    if has_app_context():
        cfg = current_app.extensions.get('vanta')
        if isinstance(cfg, Settings):
            return cfg
    return settings
