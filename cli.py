#!/usr/bin/env python
"""
Command-line interface for the roof measurement engine

Usage:
    python cli.py measure --input segments.geojson --pitch 6/12 --output result.json
    python cli.py pitch --plan-area 1000 --pitch 6/12
"""

import os
import sys
import json
import argparse
from datetime import datetime

from loguru import logger

from roofmeasure import (
    MeasurementConfig, RoofMeasureError, RoofMeasurementPipeline, get_config, load_env_overrides
)
from roofmeasure.structures.pitch import (
    PITCH_PRESETS, parse_pitch, plan_squares, surface_area, surface_squares
)


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def cmd_measure(args):
    """Measure roof structures from drawn segments"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    output_path = args.output or f"roof_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"

    try:
        config = load_env_overrides(MeasurementConfig(), env_file=args.env_file)
        if args.metric:
            config.metric = args.metric
        if args.merge_collinear:
            config.extractor.merge_collinear_segments = True
        if args.infer_ridge_lines:
            config.classifier.infer_ridge_lines = True

        pipeline = RoofMeasurementPipeline(config)
        segments = pipeline.load_segments(args.input)
        ridge_lines = pipeline.load_ridge_lines(args.input)

        result = pipeline.run(
            segments,
            pitch=args.pitch,
            ridge_lines=ridge_lines,
            property_id=args.property_id
        )

        pipeline.save(result, output_path)

        totals = result.totals
        logger.info(f"✓ Measured: {output_path}")
        logger.info(f"  Property ID: {result.property_id}")
        logger.info(f"  Structures: {', '.join(totals.included_structures) or 'none'}")
        logger.info(f"  Plan Area: {totals.plan_area_sqft:.0f} sq ft")
        logger.info(f"  Surface Area: {totals.surface_area_sqft:.0f} sq ft ({totals.surface_squares:.2f} squares)")

        if args.summary:
            summary = {
                "property_id": result.property_id,
                "faces": len(result.faces),
                "structures": totals.included_structures,
                "plan_area_sqft": round(totals.plan_area_sqft, 1),
                "surface_area_sqft": round(totals.surface_area_sqft, 1),
                "surface_squares": round(totals.surface_squares, 2),
                "eave_lf": round(totals.eave_lf, 1),
                "rake_lf": round(totals.rake_lf, 1),
                "ridge_lf": round(totals.ridge_lf, 1),
                "hip_lf": round(totals.hip_lf, 1),
                "valley_lf": round(totals.valley_lf, 1),
                "wall_lf": round(totals.wall_lf, 1)
            }
            print(json.dumps(summary, indent=2))

        return 0

    except RoofMeasureError as e:
        logger.error(f"Measurement failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Failed to measure roof: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def cmd_pitch(args):
    """Convert a plan area to surface area for a pitch"""
    setup_logging(args.verbose)

    if args.list:
        for preset in PITCH_PRESETS:
            pitch = parse_pitch(preset)
            print(f"{pitch.label:>6}  {pitch.angle_deg:5.1f}°  x{pitch.factor:.4f}")
        return 0

    if args.plan_area is None:
        logger.error("--plan-area is required unless --list is given")
        return 1

    try:
        pitch = parse_pitch(args.pitch, max_slope=get_config().pitch.max_slope)
        surface = surface_area(args.plan_area, pitch)
        print(json.dumps({
            "pitch": pitch.label,
            "angle_deg": round(pitch.angle_deg, 2),
            "factor": round(pitch.factor, 4),
            "plan_area_sqft": args.plan_area,
            "surface_area_sqft": round(surface, 2),
            "plan_squares": round(plan_squares(args.plan_area), 2),
            "surface_squares": round(surface_squares(surface), 2)
        }, indent=2))
        return 0

    except RoofMeasureError as e:
        logger.error(f"Invalid input: {e}")
        return 1


def main():
    parser = argparse.ArgumentParser(
        description="Roof Measurement CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Measure drawn segments:
    python cli.py measure --input segments.geojson --pitch 6/12 --output result.json

  Measure in a local metre frame:
    python cli.py measure --input plan.json --metric planar --summary

  Surface area for a pitch:
    python cli.py pitch --plan-area 1000 --pitch 6/12
        """
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Measure command
    measure_parser = subparsers.add_parser("measure", parents=[common], help="Measure roof structures from segments")
    measure_parser.add_argument("--input", "-i", required=True, help="GeoJSON FeatureCollection or {'segments': [...]} file")
    measure_parser.add_argument("--output", "-o", help="Output JSON file")
    measure_parser.add_argument("--pitch", "-p", help="Pitch for every structure, e.g. 6/12 (default from config)")
    measure_parser.add_argument("--metric", "-m", choices=["spherical", "ellipsoidal", "planar"], help="Distance/area model")
    measure_parser.add_argument("--property-id", help="Custom property ID")
    measure_parser.add_argument("--env-file", help=".env file with ROOFMEASURE_* overrides")
    measure_parser.add_argument("--merge-collinear", action="store_true", help="Join strokes drawn in straight pieces")
    measure_parser.add_argument("--infer-ridge-lines", action="store_true", help="Estimate ridge/hip lines for simple roofs")
    measure_parser.add_argument("--summary", "-s", action="store_true", help="Print summary to stdout")
    measure_parser.set_defaults(func=cmd_measure)

    # Pitch command
    pitch_parser = subparsers.add_parser("pitch", parents=[common], help="Pitch-adjust a plan area")
    pitch_parser.add_argument("--plan-area", "-a", type=float, help="Plan area in sq ft")
    pitch_parser.add_argument("--pitch", "-p", default="4/12", help="Pitch, e.g. 6/12")
    pitch_parser.add_argument("--list", "-l", action="store_true", help="List common pitches and their factors")
    pitch_parser.set_defaults(func=cmd_pitch)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
