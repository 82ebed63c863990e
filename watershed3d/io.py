"""Volume import/export and output directory handling."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
import shutil
from typing import Any

import nrrd
import numpy as np
from PIL import Image

from watershed3d.grid import VoxelGrid

VOLUME_SUFFIXES = (".nrrd", ".npz", ".npy")
EXPORT_FORMATS = ("npz", "nrrd")


class GridFormatError(ValueError):
    """Raised when an input volume file cannot be interpreted."""


@dataclass(frozen=True)
class LoadedVolume:
    """The import quadruple: dimensions come from ``values.shape``."""

    values: np.ndarray
    origin: tuple[float, float, float]
    spacing: tuple[float, float, float]

    def to_grid(self) -> VoxelGrid:
        return VoxelGrid.from_volume(self.values, origin=self.origin, spacing=self.spacing)


def read_volume(path: str | Path) -> LoadedVolume:
    """Read a scalar volume indexed ``[x, y, z]`` from NRRD, NPZ or NPY."""

    src = Path(path)
    if not src.is_file():
        raise FileNotFoundError(f"{src} is not a valid file path.")

    suffix = src.suffix.lower()
    if suffix == ".nrrd":
        return _read_nrrd(src)
    if suffix == ".npz":
        return _read_npz(src)
    if suffix == ".npy":
        values = np.load(src, allow_pickle=False)
        return LoadedVolume(_as_volume(values, src), (0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
    raise GridFormatError(f"unsupported volume format {suffix!r} for {src}; expected one of {VOLUME_SUFFIXES}")


def _read_nrrd(src: Path) -> LoadedVolume:
    try:
        data, header = nrrd.read(str(src))
    except nrrd.NRRDError as exc:
        raise GridFormatError(f"could not read NRRD file {src}: {exc}") from exc

    values = _as_volume(data, src)
    directions = header.get("space directions")
    if directions is not None:
        dirs = np.asarray(directions, dtype=np.float64)
        spacing = tuple(float(v) for v in np.linalg.norm(dirs, axis=1))
    else:
        spacing = tuple(float(v) for v in header.get("spacings", (1.0, 1.0, 1.0)))
    origin = tuple(float(v) for v in header.get("space origin", (0.0, 0.0, 0.0)))
    return LoadedVolume(values, _triple(origin), _triple(spacing))


def _read_npz(src: Path) -> LoadedVolume:
    with np.load(src, allow_pickle=False) as archive:
        if "heights" not in archive.files:
            raise GridFormatError(f"{src} has no 'heights' array (found {sorted(archive.files)})")
        values = _as_volume(archive["heights"], src)
        origin = archive["origin"] if "origin" in archive.files else np.zeros(3)
        spacing = archive["spacing"] if "spacing" in archive.files else np.ones(3)
        return LoadedVolume(values, _triple(origin), _triple(spacing))


def _as_volume(values: np.ndarray, src: Path) -> np.ndarray:
    arr = np.asarray(values)
    if arr.ndim != 3:
        raise GridFormatError(f"{src} holds a {arr.ndim}D array; a 3D volume is required")
    return arr.astype(np.float64, copy=False)


def _triple(values) -> tuple[float, float, float]:
    vals = [float(v) for v in np.asarray(values, dtype=np.float64).ravel()]
    if len(vals) != 3:
        raise GridFormatError(f"expected 3 geometry values, got {len(vals)}")
    return vals[0], vals[1], vals[2]


def write_volume_nrrd(
    path: str | Path,
    volume: np.ndarray,
    *,
    origin: tuple[float, float, float],
    spacing: tuple[float, float, float],
) -> None:
    header = {
        "space dimension": 3,
        "space directions": np.diag(np.asarray(spacing, dtype=np.float64)),
        "space origin": np.asarray(origin, dtype=np.float64),
    }
    nrrd.write(str(Path(path)), volume, header)


def write_segmentation(
    out_dir: str | Path,
    grid: VoxelGrid,
    labels: np.ndarray,
    *,
    fmt: str = "npz",
    write_heights: bool = True,
) -> list[Path]:
    """Write the region label volume and, optionally, the scalar volume."""

    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"unknown export format {fmt!r}; expected one of {EXPORT_FORMATS}")

    target = Path(out_dir)
    region = grid.volume(labels).astype(np.int32)
    written: list[Path] = []

    if fmt == "npz":
        path = target / "segmentation.npz"
        payload: dict[str, np.ndarray] = {
            "region": region,
            "origin": np.asarray(grid.origin, dtype=np.float64),
            "spacing": np.asarray(grid.spacing, dtype=np.float64),
        }
        if write_heights:
            payload["heights"] = grid.volume().astype(np.float64)
        np.savez_compressed(path, **payload)
        written.append(path)
        return written

    region_path = target / "region.nrrd"
    write_volume_nrrd(region_path, region, origin=grid.origin, spacing=grid.spacing)
    written.append(region_path)
    if write_heights:
        scalar_path = target / "scalar.nrrd"
        write_volume_nrrd(scalar_path, grid.volume().astype(np.float64), origin=grid.origin, spacing=grid.spacing)
        written.append(scalar_path)
    return written


def resolve_output_dir(out_root: str | Path, run_name: str, *, overwrite: bool) -> Path:
    """Create and return the output directory for one segmentation run."""

    target = Path(out_root) / run_name
    if target.exists() and any(target.iterdir()) and not overwrite:
        raise FileExistsError(
            f"Output directory already exists and is not empty: {target}. Use --overwrite to replace files."
        )
    target.mkdir(parents=True, exist_ok=True)
    return target


def safe_clean_output_dir(target: Path, *, out_root: Path) -> None:
    """Delete all children of target directory, which must sit under out_root."""

    out_root_r = out_root.resolve()
    target_r = target.resolve()
    target_r.relative_to(out_root_r)

    if not target_r.exists():
        target_r.mkdir(parents=True, exist_ok=True)
        return

    for child in target_r.iterdir():
        if child.is_symlink() or child.is_file():
            child.unlink()
        elif child.is_dir():
            shutil.rmtree(child)


def move_tree_contents(src_dir: Path, dst_dir: Path) -> None:
    """Move all files from src_dir into dst_dir."""

    for child in src_dir.iterdir():
        shutil.move(str(child), str(dst_dir / child.name))


def write_png_u8(path: str | Path, raster_u8: np.ndarray) -> None:
    image = Image.fromarray(np.ascontiguousarray(raster_u8, dtype=np.uint8))
    image.save(Path(path))


def write_png_rgb(path: str | Path, raster_rgb: np.ndarray) -> None:
    image = Image.fromarray(np.ascontiguousarray(raster_rgb, dtype=np.uint8))
    image.save(Path(path))


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    text = json.dumps(payload, indent=2, sort_keys=True)
    Path(path).write_text(text + "\n", encoding="utf-8")
