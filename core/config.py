# core/config.py
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from core import constants

load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return float(value)


@dataclass
class Settings:
    gemini_api_key: str = field(default_factory=lambda: os.getenv('GEMINI_API_KEY', ''))
    gemini_model: str = field(default_factory=lambda: os.getenv('GEMINI_MODEL', constants.GEMINI_MODEL))
    max_ip_count: int = field(default_factory=lambda: _env_int('MAX_IP_COUNT', constants.MAX_IP_COUNT))
    default_ip_count: int = field(default_factory=lambda: _env_int('DEFAULT_IP_COUNT', constants.DEFAULT_IP_COUNT))
    synthesis_max_attempts: int = field(
        default_factory=lambda: _env_int('SYNTHESIS_MAX_ATTEMPTS', constants.SYNTHESIS_MAX_ATTEMPTS))
    progress_delay: float = field(default_factory=lambda: _env_float('PROGRESS_DELAY', 0.01))
    max_stored_scans: int = field(default_factory=lambda: _env_int('MAX_STORED_SCANS', constants.MAX_STORED_SCANS))
    secret_key: str = field(default_factory=lambda: os.getenv('FLASK_SECRET_KEY', ''))
    host: str = field(default_factory=lambda: os.getenv('HOST', '127.0.0.1'))
    port: int = field(default_factory=lambda: _env_int('PORT', 5000))

    def to_flask_config(self) -> dict:
        """Values routes read from app.config"""
        return {
            'GEMINI_API_KEY': self.gemini_api_key,
            'GEMINI_MODEL': self.gemini_model,
            'MAX_IP_COUNT': self.max_ip_count,
            'DEFAULT_IP_COUNT': self.default_ip_count,
            'SYNTHESIS_MAX_ATTEMPTS': self.synthesis_max_attempts,
            'PROGRESS_DELAY': self.progress_delay,
            'MAX_STORED_SCANS': self.max_stored_scans,
        }
