# tests/geometry/test_extractor.py
import asyncio

import pytest
from conftest import RELATION_ID, SQUARE, FakeOverpass, node_member, relation, response

from src.acquisition.exceptions import (
    FailureHint,
    InvalidResponseError,
    NoGeometryError,
    NotFoundError,
    UpstreamTimeoutError,
    WrongTypeError,
)
from src.geometry.extractor import GeometryExtractor, validate_relation_id


def resolve(fake, relation_id=RELATION_ID):
    async def go():
        async with fake.client_factory()() as client:
            return await GeometryExtractor(client).resolve(relation_id)

    return asyncio.run(go())


def test_resolves_square_relation():
    fake = FakeOverpass()
    geometry = resolve(fake)

    assert geometry.geom_type == "Polygon"
    assert set(geometry.exterior.coords) == set(SQUARE)

    (request,) = fake.requests
    assert request.content == b"[out:json]; relation(12345); out geom;"


def test_empty_elements_is_not_found():
    with pytest.raises(NotFoundError) as exc_info:
        resolve(FakeOverpass(relation_json=response()))

    assert exc_info.value.relation_id == RELATION_ID
    assert exc_info.value.hint is FailureHint.UNUSABLE_RELATION


@pytest.mark.parametrize(
    "element",
    [
        {"type": "node", "id": RELATION_ID, "lat": 52.5, "lon": 13.4},
        {"type": "way", "id": RELATION_ID, "nodes": [1, 2]},
    ],
)
def test_non_relation_is_wrong_type(element):
    with pytest.raises(WrongTypeError) as exc_info:
        resolve(FakeOverpass(relation_json=response(element)))

    assert exc_info.value.element_type == element["type"]


def test_relation_without_shape_is_no_geometry():
    rel = relation(
        tags={"type": "collection"},
        members=[{"type": "relation", "ref": 1, "role": ""}],
    )
    with pytest.raises(NoGeometryError):
        resolve(FakeOverpass(relation_json=response(rel)))


def test_other_relation_first_is_no_geometry():
    with pytest.raises(NoGeometryError):
        resolve(FakeOverpass(relation_json=response(relation(relation_id=1))))


def test_single_point_relation_resolves_to_point_geometry():
    rel = relation(tags={"type": "site"}, members=[node_member(1, 13.4, 52.5)])
    geometry = resolve(FakeOverpass(relation_json=response(rel)))

    assert geometry.geom_type == "MultiPoint"


def test_schema_violation_is_invalid_response():
    with pytest.raises(InvalidResponseError):
        resolve(FakeOverpass(relation_json={"elements": [{"id": "abc"}]}))


def test_upstream_errors_propagate():
    with pytest.raises(UpstreamTimeoutError):
        resolve(FakeOverpass(relation_status=504))


@pytest.mark.parametrize("bad", [0, -5, True, "12345", 1.5])
def test_invalid_relation_ids_are_rejected_before_fetching(bad):
    fake = FakeOverpass()
    with pytest.raises(ValueError):
        resolve(fake, relation_id=bad)
    assert fake.requests == []


def test_validate_relation_id_passes_positive_ints():
    assert validate_relation_id(1) == 1
