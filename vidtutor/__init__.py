"""
Video Tutor Gateway.

Looks up Bilibili and YouTube videos, proxies their downloads, and streams
AI-written beginner tutorials built from their subtitles.
"""

from vidtutor.config import config

__version__ = config.APP_VERSION
