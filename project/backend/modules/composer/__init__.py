"""
Composer module.

Builds assembly manifests and assembles them into the final MP4.
"""
from modules.composer.manifest_builder import build_manifest, final_render_path
from modules.composer.process import assemble

__all__ = ["assemble", "build_manifest", "final_render_path"]
