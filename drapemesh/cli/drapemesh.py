"""
Command-line interface for DRAPEMESH - outline-constrained terrain meshes

License: AGPL-3.0
"""

import argparse
import logging
import sys

from drapemesh import drapemesh
from drapemesh.errors import DrapeMeshError
from drapemesh.logging_config import setup_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description=(
            "Triangulate a GeoJSON outline and drape DEM elevation onto it."
        )
    )

    parser.add_argument(
        "--vector", required=True,
        help="GeoJSON file with line or polygon features"
    )
    parser.add_argument(
        "--dem", nargs="*", help="Path(s) to GeoTIFF DEM files", default=[]
    )
    parser.add_argument(
        "--dem-list", type=str,
        help="Text file with a list of DEM GeoTIFF paths (one per line)"
    )
    parser.add_argument(
        "--bbox",
        help="Region of interest 'minx,miny,maxx,maxy' in vector CRS"
    )
    parser.add_argument("--property-key", help="GeoJSON property key for selection")
    parser.add_argument("--property-value", help="GeoJSON property value to match")

    parser.add_argument("--density", type=float, default=500.0,
                        help="Approximate triangles over the outline bbox (default: 500)")
    parser.add_argument("--outline-rule", choices=["area", "max_x"], default="area",
                        help="Outer ring selection rule (default: area)")
    parser.add_argument("--min-angle", type=float, default=20.0,
                        help="Minimum triangle angle in degrees (default: 20)")
    parser.add_argument("--densify", type=float,
                        help="Split boundary edges longer than this before meshing")
    parser.add_argument("--method", choices=["bilinear", "nearest"], default="bilinear",
                        help="Elevation sampling method (default: bilinear)")
    parser.add_argument("--on-missing", choices=["raise", "nan"], default="raise",
                        help="Vertices outside the DEM: fail or set NaN (default: raise)")
    parser.add_argument("--vector-crs", type=str,
                        help="CRS of the vector data (default: from file or EPSG:4326)")
    parser.add_argument("--target-crs", type=str,
                        help="Working CRS; the DEM is reprojected to it")
    parser.add_argument("--resolution", type=float,
                        help="DEM cell size after reprojection to --target-crs")

    parser.add_argument("--xy-scale", type=float, default=1.0,
                        help="Horizontal scale factor on export (default: 1)")
    parser.add_argument("--z-exag", type=float,
                        help="Vertical exaggeration factor on export")
    parser.add_argument("--out", required=True,
                        help="Output mesh path (.npz, .ply, .obj, .stl, ...)")
    parser.add_argument("--log-file", help="Also write log messages to this file")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")

    return parser.parse_args(argv)


def read_file_list(file_path):
    """Read a text file with one path per line, skipping blank lines."""
    with open(file_path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def parse_bbox(text):
    minx, miny, maxx, maxy = map(float, text.split(","))
    return minx, miny, maxx, maxy


def main(argv=None):
    args = parse_args(argv)

    setup_logging(
        logging.INFO if args.verbose else logging.WARNING,
        log_file=args.log_file
    )

    dem_paths = list(args.dem)
    if args.dem_list:
        try:
            dem_paths.extend(read_file_list(args.dem_list))
        except FileNotFoundError:
            print(f"ERROR: DEM list file not found: {args.dem_list}", file=sys.stderr)
            return 1

    if not dem_paths:
        print("ERROR: No DEM files provided (--dem or --dem-list required).", file=sys.stderr)
        return 1

    bbox = None
    if args.bbox:
        try:
            bbox = parse_bbox(args.bbox)
        except ValueError:
            print("ERROR: Invalid --bbox, expected 'minx,miny,maxx,maxy'.", file=sys.stderr)
            return 1

    try:
        drapemesh(
            vector_path=args.vector,
            raster_paths=dem_paths,
            density=args.density,
            bbox=bbox,
            property_key=args.property_key,
            property_value=args.property_value,
            outline_rule=args.outline_rule,
            vector_crs=args.vector_crs,
            target_crs=args.target_crs,
            resolution=args.resolution,
            densify=args.densify,
            min_angle=args.min_angle,
            method=args.method,
            on_missing=args.on_missing,
            out_path=args.out,
            xy_scale=args.xy_scale,
            z_scale=args.z_exag,
            verbose=args.verbose
        )
    except (DrapeMeshError, FileNotFoundError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
