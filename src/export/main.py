"""
Command-line entry point for loading an OpenStreetMap relation.

Resolves the relation's boundary, fetches the OSM data inside it and reports
what was fetched. Optionally saves the raw dataset and the boundary polygon.

Usage:
    python -m src.export.main 12345
    python -m src.export.main 12345 --save-copy --boundary --output-dir downloads
    python -m src.export.main --list-servers
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from src.acquisition.exceptions import AcquisitionError, describe_failure
from src.acquisition.models import KNOWN_OVERPASS_SERVERS
from src.export.artifacts import BoundaryExporter, DatasetCopyExporter
from src.pipeline.orchestrator import AcquisitionOrchestrator
from src.pipeline.settings import SettingsFile, UserSettings
from src.pipeline.state import AppState

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch the OSM street network inside a relation's boundary."
    )
    parser.add_argument("relation_id", type=int, nargs="?", help="OSM relation id")
    parser.add_argument(
        "--server",
        help="Overpass server to use (known or custom URL); remembered for next time",
    )
    parser.add_argument(
        "--save-copy",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Save a copy of the fetched dataset; remembered for next time",
    )
    parser.add_argument(
        "--output-dir", type=Path, default=Path("downloads"), help="Directory for files"
    )
    parser.add_argument(
        "--boundary", action="store_true", help="Also save the boundary as GeoJSON"
    )
    parser.add_argument(
        "--list-servers", action="store_true", help="List known Overpass servers"
    )
    parser.add_argument(
        "--settings", type=Path, default=None, help="Settings file (YAML)"
    )
    parser.add_argument(
        "--yield-delay", type=float, default=0.01, help="Pause between steps (seconds)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def print_servers(settings: UserSettings) -> None:
    current = settings.overpass_server.get()
    print("Known Overpass servers:")
    for server in KNOWN_OVERPASS_SERVERS:
        marker = "*" if server == current else " "
        print(f"  {marker} {server}")
    if current not in KNOWN_OVERPASS_SERVERS:
        print(f"  * {current} (custom)")


def main(argv: Optional[list[str]] = None) -> int:
    """Load one relation and print a summary. Returns the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = UserSettings(SettingsFile(args.settings) if args.settings else None)

    if args.server:
        try:
            settings.select_server(args.server)
        except ValueError as e:
            parser.error(str(e))
    if args.save_copy is not None:
        settings.save_copy.set(args.save_copy)

    if args.list_servers:
        print_servers(settings)
        return 0

    if args.relation_id is None:
        parser.error("relation_id is required")

    state = AppState()

    def show_progress(message: Optional[str]) -> None:
        if message:
            print(f"  {message}...")

    state.loading.subscribe(show_progress)

    orchestrator = AcquisitionOrchestrator(
        state,
        settings,
        exporter=DatasetCopyExporter(args.output_dir),
        yield_delay=args.yield_delay,
    )

    print("\n" + "=" * 60)
    print(f"RELATION {args.relation_id} via {settings.overpass_server.get()}")
    print("=" * 60 + "\n")

    start_time = datetime.now()
    try:
        result = asyncio.run(orchestrator.load(args.relation_id))
    except AcquisitionError as e:
        print(f"\n[FAILED] {describe_failure(e)}")
        return 1
    except ValueError as e:
        print(f"\n[FAILED] {e}")
        return 1

    elapsed = datetime.now() - start_time
    print(f"\n  [OK] Geometry: {result.geometry.geom_type}")
    print(f"  [OK] Boundary: {len(result.boundary.exterior.coords) - 1} vertices")
    print(f"  [OK] Dataset: {len(result.dataset):,} bytes")

    if result.artifact_path:
        print(f"  [OK] Dataset copy: {result.artifact_path}")
    if result.persist_error:
        print(f"  [WARN] {result.persist_error.message}")

    if args.boundary:
        try:
            boundary_path = BoundaryExporter(args.output_dir).export(
                args.relation_id, result.boundary
            )
        except OSError as e:
            print(f"  [WARN] Failed to save the boundary: {e}")
        else:
            print(f"  [OK] Boundary GeoJSON: {boundary_path}")

    print(f"\nTotal time: {elapsed.total_seconds():.1f} seconds")
    return 0


if __name__ == "__main__":
    sys.exit(main())
