"""
File artifacts produced by a relation load.

- A copy of the raw Overpass dataset, for audit and debugging
- The boundary polygon as GeoJSON
"""

import logging
from pathlib import Path

import geopandas as gpd
from shapely.geometry import Polygon

logger = logging.getLogger(__name__)


def dataset_filename(relation_id: int) -> str:
    return f"relation_{relation_id}.osm.xml"


def boundary_filename(relation_id: int) -> str:
    return f"relation_{relation_id}_boundary.geojson"


class DatasetCopyExporter:
    """Save the raw dataset of a load as a UTF-8 text file."""

    def __init__(self, output_dir: Path | str = "downloads"):
        """
        Initialize the dataset exporter.

        Args:
            output_dir: Directory for output files
        """
        self.output_dir = Path(output_dir)

    def export(self, relation_id: int, data: bytes) -> Path:
        """
        Write the dataset decoded as UTF-8 text.

        Bytes that are not valid UTF-8 are replaced rather than failing the
        write. The in-memory dataset is not touched.

        Args:
            relation_id: Relation the dataset was fetched for
            data: Raw Overpass response body

        Returns:
            Path to the written file

        Raises:
            OSError: If the directory or file can't be written
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / dataset_filename(relation_id)

        text = data.decode("utf-8", errors="replace")
        output_path.write_text(text, encoding="utf-8")
        logger.info(f"Saved dataset copy: {output_path} ({len(data)} bytes)")

        return output_path


class BoundaryExporter:
    """Save a boundary polygon as a single-feature GeoJSON file."""

    def __init__(self, output_dir: Path | str = "downloads", crs: str = "EPSG:4326"):
        self.output_dir = Path(output_dir)
        self.crs = crs

    def export(self, relation_id: int, boundary: Polygon) -> Path:
        """
        Write the boundary polygon with the relation id as its only property.

        Returns:
            Path to the written GeoJSON file
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / boundary_filename(relation_id)

        gdf = gpd.GeoDataFrame(
            {"relation_id": [relation_id]}, geometry=[boundary], crs=self.crs
        )
        gdf.to_file(output_path, driver="GeoJSON")
        logger.info(f"Saved boundary: {output_path}")

        return output_path
