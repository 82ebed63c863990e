"""Vincent-Soille watershed segmentation of 3D scalar fields."""

from .config import DEFAULT_CONNECTIVITY, DEFAULT_MAX_CLEANUP_PASSES, SegmentationConfig
from .grid import VoxelGrid
from .pipeline import SegmentationResult, segment_grid, segment_volume

__all__ = [
    "DEFAULT_CONNECTIVITY",
    "DEFAULT_MAX_CLEANUP_PASSES",
    "SegmentationConfig",
    "SegmentationResult",
    "VoxelGrid",
    "segment_grid",
    "segment_volume",
]
