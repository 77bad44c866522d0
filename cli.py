#!/usr/bin/env python
"""
Command-line interface for the lanes and signals network converter

Usage:
    python cli.py fetch --bbox 52.51 13.37 52.52 13.39 --output raw.json
    python cli.py convert --input raw.json --output network.json
    python cli.py summary --input network.json
"""

import os
import sys
import json
import argparse

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))

from loguru import logger
from lanesignals.config import ConverterConfig
from lanesignals.pipeline import NetworkConverter
from lanesignals.raw import OverpassClient


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def cmd_fetch(args):
    """Download the raw street graph of a bounding box"""
    setup_logging(args.verbose)

    south, west, north, east = args.bbox
    client = OverpassClient(ConverterConfig().api)
    try:
        data = client.fetch_bbox(south, west, north, east)
    except RuntimeError as e:
        logger.error(f"Failed to fetch raw graph: {e}")
        return 1

    os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
    with open(args.output, "w", encoding="utf-8") as f:
        json.dump(data, f)
    logger.info(f"✓ Saved {len(data.get('elements', []))} elements to {args.output}")
    return 0


def cmd_convert(args):
    """Convert an Overpass JSON extract into a lane and signal network"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    with open(args.input, "r", encoding="utf-8") as f:
        data = json.load(f)

    config = ConverterConfig(
        keep_paths=args.keep_paths,
        scale_max_speed=args.scale_max_speed,
        strict=args.strict,
        target_crs=args.crs,
    )

    try:
        converter = NetworkConverter(config)
        result = converter.convert_overpass(data)
        output_path = args.output or os.path.splitext(args.input)[0] + "_network.json"
        converter.save(result, output_path)
    except (RuntimeError, ValueError) as e:
        logger.error(f"Failed to convert network: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    logger.info(f"✓ Generated: {output_path}")
    if args.summary:
        print(json.dumps(summarize(result.model_dump(mode="json")), indent=2))
    return 0


def summarize(data):
    """Headline numbers of a saved conversion result"""
    report = data.get("report", {})
    systems = data.get("signal_systems", {})
    return {
        "nodes": len(data.get("network", {}).get("nodes", {})),
        "links": len(data.get("network", {}).get("links", {})),
        "lane_tables": len(data.get("lanes", {})),
        "signal_systems": len(systems),
        "signal_groups": sum(len(s.get("groups", {})) for s in systems.values()),
        "signals_relocated": report.get("signals_relocated", 0),
        "clusters": report.get("clusters", {}),
        "unknown_highways": sorted(report.get("unknown_highways", [])),
        "unexpected_junctions": report.get("unexpected_junctions", []),
        "consistency_issues": len(report.get("consistency_issues", [])),
    }


def cmd_summary(args):
    """Print a summary of a converted network"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    with open(args.input, "r", encoding="utf-8") as f:
        data = json.load(f)

    print(json.dumps(summarize(data), indent=2))
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Lanes and signals network converter CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Fetch a raw extract:
    python cli.py fetch --bbox 52.51 13.37 52.52 13.39 --output raw.json

  Convert it:
    python cli.py convert --input raw.json --output network.json --summary

  Summarize a converted network:
    python cli.py summary --input network.json
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Fetch command
    fetch_parser = subparsers.add_parser("fetch", help="Download highways of a bounding box from Overpass")
    fetch_parser.add_argument("--bbox", type=float, nargs=4, required=True,
                              metavar=("SOUTH", "WEST", "NORTH", "EAST"), help="WGS84 bounding box")
    fetch_parser.add_argument("--output", "-o", required=True, help="Output JSON file")
    fetch_parser.set_defaults(func=cmd_fetch)

    # Convert command
    conv_parser = subparsers.add_parser("convert", help="Convert an Overpass JSON extract")
    conv_parser.add_argument("--input", "-i", required=True, help="Overpass JSON file")
    conv_parser.add_argument("--output", "-o", help="Output JSON file")
    conv_parser.add_argument("--crs", help="Target CRS (default: UTM zone of the data)")
    conv_parser.add_argument("--keep-paths", action="store_true", help="Keep every way node")
    conv_parser.add_argument("--scale-max-speed", action="store_true", help="Scale freespeed by class factor")
    conv_parser.add_argument("--strict", action="store_true", help="Fail on junctions with more than 4 in-links")
    conv_parser.add_argument("--summary", "-s", action="store_true", help="Print summary to stdout")
    conv_parser.set_defaults(func=cmd_convert)

    # Summary command
    sum_parser = subparsers.add_parser("summary", help="Summarize a converted network JSON file")
    sum_parser.add_argument("--input", "-i", required=True, help="Converted network JSON file")
    sum_parser.set_defaults(func=cmd_summary)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
