# tests/conftest.py
from functools import partial

import httpx
import pytest

from src.acquisition.overpass_client import OverpassClient
from src.export.artifacts import DatasetCopyExporter
from src.pipeline.orchestrator import AcquisitionOrchestrator
from src.pipeline.settings import SettingsFile, UserSettings
from src.pipeline.state import AppState

RELATION_ID = 12345

# lon, lat corners of a small square in Berlin
SQUARE = [(13.375, 52.5), (13.4, 52.5), (13.4, 52.525), (13.375, 52.525)]

DATASET = b'<?xml version="1.0" encoding="UTF-8"?>\n<osm version="0.6"></osm>\n'


# ---- Overpass JSON builders ----
def geom(coords):
    return [{"lat": lat, "lon": lon} for lon, lat in coords]


def way_member(ref, coords, role="outer"):
    return {"type": "way", "ref": ref, "role": role, "geometry": geom(coords)}


def node_member(ref, lon, lat, role=""):
    return {"type": "node", "ref": ref, "role": role, "lat": lat, "lon": lon}


def square_members(coords=SQUARE):
    closed = coords + coords[:1]
    return [way_member(100 + i, closed[i : i + 2]) for i in range(len(coords))]


def relation(relation_id=RELATION_ID, members=None, tags=None):
    return {
        "type": "relation",
        "id": relation_id,
        "tags": tags if tags is not None else {"type": "boundary", "name": "Square"},
        "members": members if members is not None else square_members(),
    }


def response(*elements):
    return {"version": 0.6, "generator": "Overpass API", "elements": list(elements)}


# ---- fake Overpass server ----
class FakeOverpass:
    """Answers POSTed queries with JSON and GET URLs with the dataset, recording requests."""

    def __init__(
        self,
        relation_json=None,
        relation_status=200,
        dataset=DATASET,
        dataset_status=200,
    ):
        self.relation_json = relation_json if relation_json is not None else response(relation())
        self.relation_status = relation_status
        self.dataset = dataset
        self.dataset_status = dataset_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            if self.relation_status != 200:
                return httpx.Response(self.relation_status, text="error")
            return httpx.Response(200, json=self.relation_json)
        if self.dataset_status != 200:
            return httpx.Response(self.dataset_status, text="error")
        return httpx.Response(200, content=self.dataset)

    @property
    def dataset_requests(self):
        return [r for r in self.requests if r.method == "GET"]

    def client_factory(self):
        return partial(OverpassClient, transport=httpx.MockTransport(self))


@pytest.fixture
def fake_overpass():
    return FakeOverpass()


@pytest.fixture
def settings(tmp_path):
    return UserSettings(SettingsFile(tmp_path / "settings.yaml"))


@pytest.fixture
def app_state():
    return AppState()


@pytest.fixture
def make_orchestrator(app_state, settings, tmp_path):
    def build(fake, **kwargs):
        kwargs.setdefault("exporter", DatasetCopyExporter(tmp_path / "downloads"))
        return AcquisitionOrchestrator(
            app_state,
            settings,
            client_factory=fake.client_factory(),
            yield_delay=0,
            **kwargs,
        )

    return build
