"""
Scene Fulfillment module.

Resolves every planned scene to a media URL, substituting the selfie for
scenes whose generation failed or was skipped.
"""

from modules.scene_fulfillment.process import FulfillmentResult, fulfill_scenes

__all__ = ["FulfillmentResult", "fulfill_scenes"]
