"""
Lipsync Processor configuration.

Request constants for the Sync lip-sync API.
"""

from shared.models.video import VERTICAL_ASPECT_RATIO

LIPSYNC_OUTPUT_FORMAT = "mp4"
LIPSYNC_ASPECT_RATIO = VERTICAL_ASPECT_RATIO

# Per-request HTTP timeout for submit and status calls
LIPSYNC_REQUEST_TIMEOUT_SECONDS = 60.0

# Terminal statuses reported by the status endpoint
STATUS_COMPLETED = "COMPLETED"
STATUS_FAILED = {"FAILED", "REJECTED", "CANCELED", "CANCELLED", "TIMED_OUT"}
