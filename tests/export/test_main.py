# tests/export/test_main.py
import httpx
import pytest
from conftest import DATASET, FakeOverpass

from src.acquisition.overpass_client import OverpassClient
from src.export import main as cli


@pytest.fixture
def fake_server(monkeypatch):
    fake = FakeOverpass()
    transport = httpx.MockTransport(fake)

    def client(config=None):
        return OverpassClient(config, transport=transport)

    monkeypatch.setattr("src.pipeline.orchestrator.OverpassClient", client)
    return fake


def test_list_servers(tmp_path, capsys):
    code = cli.main(["--list-servers", "--settings", str(tmp_path / "s.yaml")])

    assert code == 0
    assert "* https://overpass-api.de/api" in capsys.readouterr().out


def test_custom_server_is_listed(tmp_path, capsys):
    settings = str(tmp_path / "s.yaml")
    cli.main(["--server", "https://my.overpass.local/api", "--settings", settings, "--list-servers"])

    assert "* https://my.overpass.local/api (custom)" in capsys.readouterr().out


def test_invalid_server_exits(tmp_path):
    with pytest.raises(SystemExit):
        cli.main(["--server", "nope", "--settings", str(tmp_path / "s.yaml"), "1"])


def test_missing_relation_id_exits(tmp_path):
    with pytest.raises(SystemExit):
        cli.main(["--settings", str(tmp_path / "s.yaml")])


def test_load_prints_summary_and_saves_files(fake_server, tmp_path, capsys):
    out_dir = tmp_path / "out"
    code = cli.main(
        [
            "12345",
            "--settings", str(tmp_path / "s.yaml"),
            "--save-copy",
            "--boundary",
            "--output-dir", str(out_dir),
            "--yield-delay", "0",
        ]
    )

    output = capsys.readouterr().out
    assert code == 0
    assert "[OK] Boundary: 4 vertices" in output
    assert (out_dir / "relation_12345.osm.xml").read_bytes() == DATASET
    assert (out_dir / "relation_12345_boundary.geojson").exists()


def test_failed_load_prints_hint(fake_server, tmp_path, capsys):
    fake_server.dataset_status = 504

    code = cli.main(["12345", "--settings", str(tmp_path / "s.yaml"), "--yield-delay", "0"])

    assert code == 1
    assert "Try again later" in capsys.readouterr().out


def test_boundary_write_failure_is_a_warning(fake_server, tmp_path, capsys):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")

    code = cli.main(
        [
            "12345",
            "--settings", str(tmp_path / "s.yaml"),
            "--boundary",
            "--output-dir", str(blocker / "out"),
            "--yield-delay", "0",
        ]
    )

    output = capsys.readouterr().out
    assert code == 0
    assert "[WARN] Failed to save the boundary" in output
    assert "[OK] Boundary GeoJSON" not in output
