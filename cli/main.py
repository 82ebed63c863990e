"""CLI entry point for 3D watershed segmentation."""

from __future__ import annotations

import argparse
from dataclasses import asdict
from datetime import datetime, timezone
import logging
from pathlib import Path
import platform
import shutil
import sys
import tempfile
import time

import numpy as np
import structlog

from watershed3d.config import (
    CLEANUP_MODES,
    CONNECTIVITIES,
    DEFAULT_MAX_CLEANUP_PASSES,
    SMOOTHING_KINDS,
    CleanupConfig,
    ConfigError,
    ExportConfig,
    FloodConfig,
    SegmentationConfig,
    SmoothingConfig,
)
from watershed3d.derive import (
    basin_boundary_mask,
    float_preview_u8,
    label_colormap_rgb,
    label_preview_u8,
    take_slice,
)
from watershed3d.grid import GridConfigError, VoxelGrid
from watershed3d.io import (
    EXPORT_FORMATS,
    GridFormatError,
    move_tree_contents,
    read_volume,
    resolve_output_dir,
    safe_clean_output_dir,
    write_json,
    write_png_rgb,
    write_png_u8,
    write_segmentation,
)
from watershed3d.pipeline import segment_grid
from watershed3d.synthetic import SYNTHETIC_KINDS, synthetic_volume
from watershed3d.topology import neighbor_table


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vincent-Soille watershed segmentation of a 3D scalar field")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", help="Input volume (.nrrd, .npz with a 'heights' array, or .npy)")
    source.add_argument("--synthetic", choices=SYNTHETIC_KINDS, help="Segment a built-in synthetic field")
    parser.add_argument("--size", type=int, default=24, help="Edge length of synthetic cube volumes")
    parser.add_argument("--seed", type=int, default=0, help="Seed for the synthetic noise field")
    parser.add_argument("--out", default="out", help="Output root directory")
    parser.add_argument("--smooth", choices=SMOOTHING_KINDS, default="none", help="Pre-smoothing filter")
    parser.add_argument("--radius", type=int, default=1, help="Smoothing kernel half-width in voxels")
    parser.add_argument("--iterations", type=int, default=1, help="Number of smoothing passes")
    parser.add_argument(
        "--connectivity",
        type=int,
        choices=CONNECTIVITIES,
        default=6,
        help="Voxel neighborhood used for flooding and cleanup",
    )
    parser.add_argument("--cleanup", choices=CLEANUP_MODES, default="remove", help="Watershed voxel policy")
    parser.add_argument("--max-passes", type=int, default=DEFAULT_MAX_CLEANUP_PASSES, help="Cleanup pass limit")
    parser.add_argument("--format", choices=EXPORT_FORMATS, default="npz", help="Label volume output format")
    parser.add_argument("--preview-axis", type=int, choices=(0, 1, 2), default=2, help="Axis sliced for previews")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite files in existing output directory")
    parser.add_argument(
        "--json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write metadata JSON files",
    )
    parser.add_argument(
        "--previews",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write PNG slice previews",
    )
    parser.add_argument("--verbose", action="store_true", help="Log pipeline stages to stderr")
    return parser


def configure_logging(verbose: bool) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO if verbose else logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    config = SegmentationConfig(
        smoothing=SmoothingConfig(kind=args.smooth, radius=args.radius, iterations=args.iterations),
        flood=FloodConfig(connectivity=args.connectivity),
        cleanup=CleanupConfig(mode=args.cleanup, max_passes=args.max_passes),
        export=ExportConfig(preview_axis=args.preview_axis, write_previews=args.previews),
    )
    try:
        config.validate()
        grid, run_name = _load_grid(args)
    except (ConfigError, GridConfigError, GridFormatError, FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    start = time.perf_counter()
    result = segment_grid(grid, config=config)
    segmentation_seconds = time.perf_counter() - start
    metrics = result.metrics

    out_dir = resolve_output_dir(args.out, run_name, overwrite=args.overwrite)
    stage_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(out_dir.parent)))
    try:
        write_segmentation(
            stage_dir,
            result.grid,
            result.labels,
            fmt=args.format,
            write_heights=config.export.write_heights,
        )
        if config.export.write_previews:
            _write_previews(stage_dir, result, config)
        if args.json:
            deterministic_meta = {
                "run_name": run_name,
                "dimensions": list(result.grid.dimensions),
                "origin": list(result.grid.origin),
                "spacing": list(result.grid.spacing),
                "config": config.to_dict(),
                "metrics": asdict(metrics),
            }
            meta = {
                **deterministic_meta,
                "input": args.input,
                "generated_at_utc": datetime.now(timezone.utc).isoformat(),
                "flood_seconds": result.flood_seconds,
                "segmentation_seconds": segmentation_seconds,
                "python_version": platform.python_version(),
                "numpy_version": np.__version__,
            }
            write_json(stage_dir / "deterministic_meta.json", deterministic_meta)
            write_json(stage_dir / "meta.json", meta)

        safe_clean_output_dir(out_dir, out_root=Path(args.out))
        move_tree_contents(stage_dir, out_dir)
    finally:
        shutil.rmtree(stage_dir, ignore_errors=True)

    print(f"Segmented volume: {out_dir}")
    print(
        "Grid "
        f"{'x'.join(str(d) for d in result.grid.dimensions)}; "
        f"heights [{metrics.height_min:.4g}, {metrics.height_max:.4g}]; "
        f"{metrics.level_count} tie levels"
    )
    print(
        "Basins: "
        f"count={metrics.basin_count}, "
        f"largest={metrics.largest_basin_ratio * 100.0:.2f}% of voxels"
    )
    print(
        "Watershed voxels: "
        f"raw={metrics.watershed_voxels_raw}, "
        f"final={metrics.watershed_voxels_final}, "
        f"cleanup={metrics.cleanup_mode} passes={metrics.cleanup_passes} converged={metrics.cleanup_converged}"
    )
    print(f"Segmentation time: {segmentation_seconds:.3f} s (flood {result.flood_seconds:.3f} s)")
    file_count = sum(1 for child in out_dir.iterdir() if child.is_file())
    print(f"Output files: {file_count}")
    return 0


def _load_grid(args: argparse.Namespace) -> tuple[VoxelGrid, str]:
    if args.input is not None:
        loaded = read_volume(args.input)
        return loaded.to_grid(), Path(args.input).stem
    volume = synthetic_volume(args.synthetic, args.size, seed=args.seed)
    name = f"synthetic-{args.synthetic}-{'x'.join(str(d) for d in volume.shape)}"
    return VoxelGrid.from_volume(volume), name


def _write_previews(stage_dir: Path, result, config: SegmentationConfig) -> None:
    axis = config.export.preview_axis
    grid = result.grid
    neighbors = neighbor_table(grid, config.flood.connectivity)
    boundary = grid.volume(basin_boundary_mask(result.labels, neighbors))

    write_png_u8(stage_dir / "preview_height.png", float_preview_u8(take_slice(result.height_volume(), axis)))
    write_png_u8(stage_dir / "preview_labels_raw.png", label_preview_u8(take_slice(result.raw_label_volume(), axis)))
    write_png_rgb(stage_dir / "preview_labels.png", label_colormap_rgb(take_slice(result.label_volume(), axis)))
    write_png_u8(stage_dir / "preview_boundary.png", np.where(take_slice(boundary, axis), 255, 0))


if __name__ == "__main__":
    raise SystemExit(main())
