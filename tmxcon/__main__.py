"""
Main entry point for the tmxcon content build.
"""

import argparse
import sys
from collections import defaultdict
from pathlib import Path
from concurrent.futures import ThreadPoolExecutor, as_completed
from multiprocessing import cpu_count
from .constants import CellOrder, DEFAULT_CELL_ORDER
from .map_worker import convert_single_map
from .utils import find_tmx_files, output_path_for
from .logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tmxcon",
        description="Import Tiled TMX maps and write engine tilemap content as JSON"
    )
    parser.add_argument(
        "--input",
        required=True,
        action="append",
        help="TMX file or directory of TMX files (may be given more than once)"
    )
    parser.add_argument(
        "--output",
        required=True,
        help="Output directory for content files"
    )
    parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Search input directories recursively"
    )
    parser.add_argument(
        "--row-major",
        action="store_true",
        help=f"Read layer cells row by row (default: {DEFAULT_CELL_ORDER.value})"
    )
    parser.add_argument(
        "--lenient-properties",
        action="store_true",
        help="Skip properties missing a name or value instead of failing the map"
    )
    parser.add_argument(
        "--jobs", "-j",
        type=int,
        default=max(1, cpu_count() - 1),
        help="Number of maps imported in parallel (default: all but one CPU core)"
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation (default: 2)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress information"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Show debug information (implies verbose)"
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write log messages to this file"
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    
    logger = setup_logging(args.verbose, args.debug, args.log_file)
    
    output_dir = Path(args.output).resolve()
    cell_order = CellOrder.ROW_MAJOR if args.row_major else DEFAULT_CELL_ORDER
    strict_properties = not args.lenient_properties
    
    # map_path -> content file; a directory input's layout is mirrored under output_dir
    maps = {}
    for input_arg in args.input:
        input_path = Path(input_arg).resolve()
        if not input_path.exists():
            logger.error(f"Input does not exist: {input_path}")
            return 1
        input_root = input_path if input_path.is_dir() else input_path.parent
        for map_path in find_tmx_files(input_path, args.recursive):
            maps[map_path] = output_path_for(map_path, output_dir, input_root)
    
    if not maps:
        logger.error("No TMX maps found")
        return 1
    
    logger.info(f"Found {len(maps)} maps")
    logger.info(f"Output directory: {output_dir}")
    output_dir.mkdir(parents=True, exist_ok=True)
    
    converted = 0
    failed = []
    
    # Two inputs mapping to the same content file would overwrite each other
    claimed = defaultdict(list)
    for map_path, output_path in maps.items():
        claimed[output_path].append(map_path)
    
    tasks = []
    for output_path, map_paths in claimed.items():
        if len(map_paths) > 1:
            for map_path in map_paths:
                error_msg = f"Output {output_path} is also written by {len(map_paths) - 1} other map(s)"
                failed.append((map_path, error_msg))
                logger.error(f"  Failed to import {map_path}: {error_msg}")
            continue
        tasks.append((map_paths[0], output_path, cell_order, strict_properties, args.indent))
    
    with ThreadPoolExecutor(max_workers=max(1, args.jobs)) as executor:
        future_to_map = {
            executor.submit(convert_single_map, task): task[0]
            for task in tasks
        }
        
        # as_completed() hands results back on this thread, so the counters need no lock
        for future in as_completed(future_to_map):
            status, map_path, error_msg, summary = future.result()
            
            if status == "success":
                converted += 1
                logger.info(
                    f"  {map_path.name} -> {summary['output']} "
                    f"({summary['tiles']} tiles, {summary['layers']} layers)"
                )
            else:
                failed.append((map_path, error_msg))
                logger.error(f"  Failed to import {map_path}: {error_msg}")
    
    logger.info(f"Imported {converted} of {len(maps)} maps")
    if failed:
        logger.error(f"{len(failed)} maps failed to import")
        return 1
    
    return 0


if __name__ == "__main__":
    sys.exit(main())
