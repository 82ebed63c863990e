"""Configuration models for watershed segmentation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


SMOOTHING_KINDS = ("none", "gaussian", "laplacian")
CLEANUP_MODES = ("remove", "fill", "none")
CONNECTIVITIES = (6, 18, 26)

DEFAULT_CONNECTIVITY = 6
DEFAULT_MAX_CLEANUP_PASSES = 64


class ConfigError(ValueError):
    """Raised when a configuration value is out of its allowed domain."""


@dataclass(frozen=True)
class SmoothingConfig:
    """Optional pre-filter applied to the scalar field before flooding."""

    kind: str = "none"
    radius: int = 1
    iterations: int = 1

    def validate(self) -> None:
        if self.kind not in SMOOTHING_KINDS:
            raise ConfigError(f"unknown smoothing kind {self.kind!r}; expected one of {SMOOTHING_KINDS}")
        if self.radius < 1:
            raise ConfigError("smoothing radius must be >= 1")
        if self.iterations < 1:
            raise ConfigError("smoothing iterations must be >= 1")


@dataclass(frozen=True)
class FloodConfig:
    """Controls the immersion flood."""

    connectivity: int = DEFAULT_CONNECTIVITY

    def validate(self) -> None:
        if self.connectivity not in CONNECTIVITIES:
            raise ConfigError(f"connectivity must be one of {CONNECTIVITIES}, got {self.connectivity}")


@dataclass(frozen=True)
class CleanupConfig:
    """Controls how watershed voxels are resolved after flooding."""

    mode: str = "remove"
    max_passes: int = DEFAULT_MAX_CLEANUP_PASSES

    def validate(self) -> None:
        if self.mode not in CLEANUP_MODES:
            raise ConfigError(f"unknown cleanup mode {self.mode!r}; expected one of {CLEANUP_MODES}")
        if self.max_passes < 1:
            raise ConfigError("cleanup max_passes must be >= 1")


@dataclass(frozen=True)
class ExportConfig:
    """Controls artifacts written by the driver."""

    preview_axis: int = 2
    write_previews: bool = True
    write_heights: bool = True

    def validate(self) -> None:
        if self.preview_axis not in (0, 1, 2):
            raise ConfigError("preview_axis must be 0, 1 or 2")


@dataclass(frozen=True)
class SegmentationConfig:
    """Primary segmentation configuration."""

    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    flood: FloodConfig = field(default_factory=FloodConfig)
    cleanup: CleanupConfig = field(default_factory=CleanupConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    def validate(self) -> None:
        self.smoothing.validate()
        self.flood.validate()
        self.cleanup.validate()
        self.export.validate()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
