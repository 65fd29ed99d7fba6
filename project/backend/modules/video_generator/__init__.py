"""
Video Generator module.

Veo text-to-video adapter for background scenes.
"""

from modules.video_generator.generator import VeoClient
from modules.video_generator.google_auth import GoogleTokenProvider

__all__ = ["VeoClient", "GoogleTokenProvider"]
