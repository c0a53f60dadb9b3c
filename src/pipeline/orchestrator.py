"""
Relation load pipeline.

Sequences one load of an OpenStreetMap relation:

1. Resolve the relation's geometry through Overpass
2. Simplify it to its convex hull boundary
3. Fetch everything inside the boundary from Overpass
4. Optionally save a copy of the raw dataset
5. Hand (dataset bytes, boundary) to the analysis engine and publish it

The whole load is one asyncio task. Between network-bound steps it yields to
the event loop so a loading indicator can repaint, and checks its cancellation
token. Nothing is retried: failures propagate to the caller unchanged.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from shapely.geometry import Polygon, mapping
from shapely.geometry.base import BaseGeometry

from src.acquisition.exceptions import (
    LoadCancelledError,
    PersistenceError,
    describe_failure,
)
from src.acquisition.models import (
    DEFAULT_OVERPASS_CONFIG,
    OverpassClientConfig,
    normalize_endpoint,
)
from src.acquisition.overpass_client import OverpassClient
from src.acquisition.queries import dataset_request
from src.export.artifacts import DatasetCopyExporter
from src.geometry.extractor import GeometryExtractor, validate_relation_id
from src.geometry.simplifier import BoundarySimplifier

from .settings import UserSettings
from .state import AppState

logger = logging.getLogger(__name__)


class LoadStage(str, Enum):
    """Stages of a relation load, in order."""

    RESOLVING_GEOMETRY = "resolving_geometry"
    SIMPLIFYING_BOUNDARY = "simplifying_boundary"
    FETCHING_DATASET = "fetching_dataset"
    PERSISTING = "persisting"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


STAGE_MESSAGES = {
    LoadStage.RESOLVING_GEOMETRY: "Loading relation {relation_id}",
    LoadStage.SIMPLIFYING_BOUNDARY: "Computing boundary of relation {relation_id}",
    LoadStage.FETCHING_DATASET: "Fetching OSM data inside relation {relation_id}",
    LoadStage.PERSISTING: "Saving a copy of relation {relation_id}",
    LoadStage.COMPLETE: "Building model for relation {relation_id}",
}


@dataclass(frozen=True)
class AnalysisInput:
    """
    Default analysis engine handoff.

    Attributes:
        osm_bytes: Raw Overpass dataset.
        boundary: Boundary polygon in lon/lat order.
    """

    osm_bytes: bytes
    boundary: Polygon

    def boundary_feature(self) -> dict[str, Any]:
        """The boundary as a GeoJSON Feature."""
        return {"type": "Feature", "properties": {}, "geometry": mapping(self.boundary)}


EngineFactory = Callable[[bytes, Polygon], Any]


class CancellationToken:
    """Set by the caller to stop a load at its next yield point."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, relation_id: int) -> None:
        if self._cancelled:
            raise LoadCancelledError(f"Loading relation {relation_id} was cancelled")


@dataclass
class LoadResult:
    """Everything a finished load produced."""

    relation_id: int
    generation: int
    geometry: BaseGeometry
    boundary: Polygon
    dataset: bytes
    model: Any
    published: bool
    artifact_path: Optional[Path] = None
    persist_error: Optional[PersistenceError] = None


class AcquisitionOrchestrator:
    """
    Runs relation loads and publishes their results to shared state.

    Each call to load() is an independent pipeline. Loads are numbered; when
    several run at once only the most recently started one publishes.

    Usage:
        orchestrator = AcquisitionOrchestrator(AppState(), UserSettings())
        result = await orchestrator.load(12345)

    Attributes:
        state: Stores for the published dataset, progress and errors.
        settings: User settings (Overpass server, save-a-copy flag).
        client_config: Base client config; the endpoint is taken from settings
            at the start of each load.
        client_factory: Builds the Overpass client, an async context manager.
        engine_factory: Builds the analysis engine from (bytes, boundary).
        exporter: Writes the optional dataset copy.
        yield_delay: Seconds to sleep at each yield point.
    """

    def __init__(
        self,
        state: AppState,
        settings: UserSettings,
        client_config: Optional[OverpassClientConfig] = None,
        client_factory: Optional[Callable[[OverpassClientConfig], OverpassClient]] = None,
        engine_factory: EngineFactory = AnalysisInput,
        exporter: Optional[DatasetCopyExporter] = None,
        simplifier: Optional[BoundarySimplifier] = None,
        yield_delay: float = 0.01,
    ) -> None:
        self.state = state
        self.settings = settings
        self.client_config = client_config or DEFAULT_OVERPASS_CONFIG
        self.client_factory = client_factory or OverpassClient
        self.engine_factory = engine_factory
        self.exporter = exporter or DatasetCopyExporter()
        self.simplifier = simplifier or BoundarySimplifier()
        self.yield_delay = yield_delay
        self._generation = 0

    @property
    def generation(self) -> int:
        """Number of the most recently started load."""
        return self._generation

    def _report(self, stage: LoadStage, relation_id: int, generation: int) -> None:
        logger.debug("Relation %d: %s", relation_id, stage.value)
        message = STAGE_MESSAGES.get(stage)
        if message and self._is_latest(generation):
            self.state.loading.set(message.format(relation_id=relation_id))

    async def _yield_ui(
        self, relation_id: int, cancel_token: Optional[CancellationToken]
    ) -> None:
        await asyncio.sleep(self.yield_delay)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(relation_id)

    def _is_latest(self, generation: int) -> bool:
        return generation == self._generation

    async def _persist(
        self, relation_id: int, dataset: bytes
    ) -> tuple[Optional[Path], Optional[PersistenceError]]:
        """Save a copy of the dataset without ever failing the load."""
        try:
            path = await asyncio.to_thread(self.exporter.export, relation_id, dataset)
        except Exception as e:
            error = PersistenceError(
                f"Failed to save a copy of relation {relation_id}",
                path=str(self.exporter.output_dir),
                cause=e,
            )
            logger.error("%s", error)
            return None, error
        return path, None

    async def load(
        self, relation_id: int, cancel_token: Optional[CancellationToken] = None
    ) -> LoadResult:
        """
        Load a relation and publish the analysis engine built from it.

        Args:
            relation_id: Positive OpenStreetMap relation id.
            cancel_token: Optional token checked at every yield point.

        Returns:
            LoadResult describing what was fetched and whether it was published.

        Raises:
            ValueError: If the relation id is not a positive integer.
            NotFoundError, WrongTypeError, NoGeometryError: The relation
                can't be used.
            HullFailedError: The relation's geometry is degenerate.
            UpstreamTimeoutError, UpstreamError, ConnectionError,
            InvalidResponseError: The Overpass server failed.
            LoadCancelledError: The token was cancelled.
        """
        validate_relation_id(relation_id)

        self._generation += 1
        generation = self._generation
        endpoint = self.settings.overpass_server.get()
        config = self.client_config.model_copy(
            update={"endpoint": normalize_endpoint(endpoint)}
        )

        logger.info(
            "Loading relation %d from %s (load #%d)", relation_id, endpoint, generation
        )
        self.state.error.set(None)

        try:
            async with self.client_factory(config) as client:
                self._report(LoadStage.RESOLVING_GEOMETRY, relation_id, generation)
                geometry = await GeometryExtractor(client).resolve(relation_id)

                await self._yield_ui(relation_id, cancel_token)
                self._report(LoadStage.SIMPLIFYING_BOUNDARY, relation_id, generation)
                boundary = self.simplifier.simplify(
                    geometry, feature_id=f"relation/{relation_id}"
                )

                await self._yield_ui(relation_id, cancel_token)
                self._report(LoadStage.FETCHING_DATASET, relation_id, generation)
                dataset = await client.fetch_bytes(
                    dataset_request(boundary, config.endpoint)
                )
                logger.info(
                    "Fetched %d bytes for relation %d", len(dataset), relation_id
                )

            await self._yield_ui(relation_id, cancel_token)

            # Superseded loads leave nothing on disk
            artifact_path, persist_error = None, None
            if self.settings.save_copy.get() and self._is_latest(generation):
                self._report(LoadStage.PERSISTING, relation_id, generation)
                artifact_path, persist_error = await self._persist(relation_id, dataset)

            self._report(LoadStage.COMPLETE, relation_id, generation)
            model = self.engine_factory(dataset, boundary)
        except LoadCancelledError:
            logger.info("Relation %d: %s", relation_id, LoadStage.CANCELLED.value)
            if self._is_latest(generation):
                self.state.loading.set(None)
            raise
        except Exception as e:
            logger.error(
                "Relation %d: %s: %s", relation_id, LoadStage.FAILED.value, e
            )
            if self._is_latest(generation):
                self.state.loading.set(None)
                self.state.error.set(describe_failure(e))
            raise

        published = self._is_latest(generation)
        if published:
            self.state.current_dataset.set(model)
            self.state.loading.set(None)
            logger.info("Published relation %d (load #%d)", relation_id, generation)
        else:
            logger.warning(
                "Relation %d finished after a newer load started; not publishing",
                relation_id,
            )

        return LoadResult(
            relation_id=relation_id,
            generation=generation,
            geometry=geometry,
            boundary=boundary,
            dataset=dataset,
            model=model,
            published=published,
            artifact_path=artifact_path,
            persist_error=persist_error,
        )
