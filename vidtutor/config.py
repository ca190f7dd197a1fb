"""
Configuration settings for the video tutor gateway.
"""

import os
from typing import Dict, Any
from pathlib import Path
from dotenv import load_dotenv


# Ensure environment variables are loaded
load_dotenv()


class Config:
    """Base configuration class."""

    # Application info
    APP_NAME = "Video Tutor Gateway"
    APP_VERSION = "0.2.0"

    BASE_DIR = Path(__file__).resolve().parent.parent.absolute()
    LOGS_DIR = BASE_DIR / "logs"

    # API keys
    BIBIGPT_API_TOKEN = os.getenv("BIBIGPT_API_TOKEN", "")
    SILICONFLOW_API_KEY = os.getenv("SILICONFLOW_API_KEY", "")

    # Upstream engines
    BIBIGPT_BASE = os.getenv("BIBIGPT_BASE", "https://api.bibigpt.co")
    SILICONFLOW_BASE = os.getenv("SILICONFLOW_BASE", "https://api.siliconflow.cn/v1")
    # Latest free chat model on SiliconFlow; only this constant changes on upgrade
    SILICONFLOW_MODEL = os.getenv("SILICONFLOW_MODEL", "Qwen/Qwen3-8B")

    # Mirrors the 60s deadline the gateway gets from its hosting platform
    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60"))

    # Tutorial streaming
    MAX_SUBTITLE_CHARS = 8000
    CHUNK_SIZE = 20
    CHUNK_DELAY = 0.015

    # Larger videos get a yt-dlp command instead of a proxied stream
    MAX_DOWNLOAD_BYTES = 50 * 1024 * 1024

    BROWSER_USER_AGENT = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    BILIBILI_REFERER = "https://www.bilibili.com"

    PUBLIC_URL = os.getenv("PUBLIC_URL", "http://localhost:8000")

    @classmethod
    def initialize(cls):
        """Initialize the application configuration."""
        cls.LOGS_DIR.mkdir(parents=True, exist_ok=True)

        # Missing keys are a handled condition, the gateway still starts
        if not cls.BIBIGPT_API_TOKEN:
            print("WARNING: BIBIGPT_API_TOKEN not set, BibiGPT engine disabled.")
        if not cls.SILICONFLOW_API_KEY:
            print("WARNING: SILICONFLOW_API_KEY not set, tutorial fallback engine disabled.")
            print("Please set it in the .env file or environment variables.")

    @classmethod
    def get_engine_settings(cls) -> Dict[str, Any]:
        """Get the non-secret engine settings."""
        return {
            "bibigpt_base": cls.BIBIGPT_BASE,
            "siliconflow_base": cls.SILICONFLOW_BASE,
            "siliconflow_model": cls.SILICONFLOW_MODEL,
            "request_timeout": cls.REQUEST_TIMEOUT,
        }


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    LOG_LEVEL = "INFO"


def get_config():
    """Get the appropriate configuration based on environment."""
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env == "production":
        return ProductionConfig
    else:
        return DevelopmentConfig


# Create a config instance
config = get_config()
config.initialize()
