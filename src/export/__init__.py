"""
Export module for relation load artifacts.

Provides exporters for files a load can leave behind:
- A UTF-8 copy of the raw Overpass dataset
- The boundary polygon as GeoJSON
"""

from .artifacts import (
    BoundaryExporter,
    DatasetCopyExporter,
    boundary_filename,
    dataset_filename,
)

__all__ = [
    "BoundaryExporter",
    "DatasetCopyExporter",
    "boundary_filename",
    "dataset_filename",
]
