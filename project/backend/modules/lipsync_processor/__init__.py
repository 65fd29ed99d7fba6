"""
Lipsync Processor Module

Lip-synced performer clips from the user's selfie and song via the Sync API.
"""
from modules.lipsync_processor.generator import SyncLipsyncClient

__all__ = ["SyncLipsyncClient"]
