import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
from mapcache.core.tile_download_manager import (
    EXIT_FATAL,
    EXIT_OK,
    EXIT_TILE_FAILURES,
    TileDownloadManager,
)
from mapcache.exceptions.tile_downloader_exceptions import InputValidationError, MissingTokenError
from mapcache.models.download_config import DownloadConfig
from mapcache.models.provider import ProviderConfig, ProviderKind
from mapcache.models.tile import BoundingBox, GeoPoint, ZoomRange
from mapcache.services.tile_fetcher import RetryingFetcher
from mapcache import tile_downloader

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"valid"

NYC_ARGS = ["--lat1", "40.7128", "--lng1", "-74.0060", "--lat2", "40.7228", "--lng2", "-73.9960"]


class DummyResponse:
    def __init__(self, status_code: int, content: bytes, url: str = ""):
        self.status_code = status_code
        self.content = content
        self.url = url

    def raise_for_status(self):
        if not (200 <= self.status_code < 300):
            raise requests.HTTPError(f"{self.status_code} Client Error: Not Found for url: {self.url}")


class DummySession:
    def __init__(self, url_to_payload: Dict[str, bytes], calls: List[str]):
        self.url_to_payload = url_to_payload
        self.calls = calls
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.calls.append(url)
        payload = self.url_to_payload.get(url)
        if payload is None:
            return DummyResponse(404, b"", url)
        return DummyResponse(200, payload, url)

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI reconfigures the root logger; put it back after each test"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def opened_sessions() -> List[DummySession]:
    return []


@pytest.fixture
def http_calls(monkeypatch, opened_sessions: List[DummySession]) -> List[str]:
    """Route every RetryingFetcher session to a dummy serving all OSM tiles"""
    calls: List[str] = []

    class AnyTileSession(DummySession):
        def get(self, url, headers=None, timeout=None):
            if "openstreetmap" in url:
                self.url_to_payload.setdefault(url, PNG_BYTES)
            return super().get(url, headers, timeout)

    def create_session(self):
        session = AnyTileSession({}, calls)
        opened_sessions.append(session)
        return session

    monkeypatch.setattr(RetryingFetcher, "create_session", create_session)
    return calls


def nyc_config(folder: Path, **overrides) -> DownloadConfig:
    values = dict(
        bounding_box=BoundingBox.from_corners(GeoPoint(40.7128, -74.0060), GeoPoint(40.7228, -73.9960)),
        zoom_range=ZoomRange(0, 1),
        output_folder=str(folder),
        provider=ProviderConfig(ProviderKind.OSM),
    )
    values.update(overrides)
    return DownloadConfig(**values)


def test_end_to_end_new_york(tmp_path: Path, http_calls: List[str]):
    summary = TileDownloadManager().download(nyc_config(tmp_path))

    assert sorted(p.name for p in tmp_path.iterdir()) == ["osm_0_0_0.png", "osm_0_0_1.png"]
    assert http_calls == [
        "https://tile.openstreetmap.org/0/0/0.png",
        "https://tile.openstreetmap.org/1/0/0.png",
    ]
    assert (summary.total, summary.succeeded, summary.skipped, summary.failed) == (2, 2, 0, 0)


def test_second_run_skips_everything(tmp_path: Path, http_calls: List[str]):
    manager = TileDownloadManager()
    manager.download(nyc_config(tmp_path))
    http_calls.clear()

    summary = manager.download(nyc_config(tmp_path))

    assert http_calls == []
    assert summary.skipped == 2
    assert summary.total == 2


def test_output_folder_is_created(tmp_path: Path, http_calls: List[str]):
    folder = tmp_path / "nested" / "out"
    TileDownloadManager().download(nyc_config(folder, zoom_range=ZoomRange(0, 0)))
    assert (folder / "osm_0_0_0.png").exists()


def test_missing_token_aborts_before_network(tmp_path: Path, http_calls: List[str]):
    config = nyc_config(tmp_path / "out", provider=ProviderConfig(ProviderKind.MAPBOX_TERRAIN_RGB))

    with pytest.raises(MissingTokenError):
        TileDownloadManager().download(config)

    assert http_calls == []
    assert not (tmp_path / "out").exists()


def test_failed_tiles_are_reported(tmp_path: Path, http_calls: List[str]):
    config = nyc_config(tmp_path, provider=ProviderConfig(ProviderKind.MAPBOX_SATELLITE, "pk.x"),
                        retries=2, backoff=0)

    summary = TileDownloadManager().download(config)

    # DummySession has no satellite payloads: every attempt is a 404
    assert summary.failed == 2
    assert len(http_calls) == 4
    assert all(o.attempts == 2 for o in summary.failures)


def test_progress_callback(tmp_path: Path, http_calls: List[str]):
    reports = []
    TileDownloadManager().download(nyc_config(tmp_path), progress_callback=lambda p, t: reports.append((p, t)))
    assert reports == [(1, 1), (2, 2)]


def test_cli_success(tmp_path: Path, http_calls: List[str], capsys):
    folder = tmp_path / "tiles"
    code = TileDownloadManager().run_from_command_line(
        NYC_ARGS + ["--zout", "0", "--zin", "1", "--folder", str(folder)]
    )

    assert code == EXIT_OK
    assert sorted(p.name for p in folder.iterdir()) == ["osm_0_0_0.png", "osm_0_0_1.png"]
    assert "Download completed successfully!" in capsys.readouterr().out


def test_cli_failures_exit_status(tmp_path: Path, http_calls: List[str]):
    code = TileDownloadManager().run_from_command_line(
        NYC_ARGS + ["--zin", "0", "--folder", str(tmp_path), "--provider", "1", "--token", "pk.x", "--retries", "1"]
    )
    assert code == EXIT_TILE_FAILURES


def test_cli_uses_config_file(tmp_path: Path, http_calls: List[str]):
    config_path = tmp_path / "mapcache.json"
    config_path.write_text(json.dumps({"provider": "terrain", "retries": 1, "logging": {"level": "WARNING"}}))

    code = TileDownloadManager().run_from_command_line(
        NYC_ARGS + ["--zin", "0", "--folder", str(tmp_path / "out"), "--config", str(config_path),
                    "--token", "pk.x"]
    )

    assert code == EXIT_TILE_FAILURES
    assert http_calls == ["https://api.mapbox.com/v4/mapbox.terrain-rgb/0/0/0.png?access_token=pk.x"]


def test_cli_invalid_input_raises(tmp_path: Path):
    with pytest.raises(InputValidationError):
        TileDownloadManager().run_from_command_line(
            NYC_ARGS + ["--zout", "5", "--zin", "2", "--folder", str(tmp_path)]
        )


def test_main_returns_fatal_on_missing_token(tmp_path: Path, http_calls: List[str], capsys):
    code = tile_downloader.main(NYC_ARGS + ["--zin", "1", "--folder", str(tmp_path), "--provider", "satellite"])

    assert code == EXIT_FATAL
    assert http_calls == []
    assert "requires an access token" in capsys.readouterr().out


def test_sessions_are_closed_after_the_run(tmp_path: Path, http_calls: List[str],
                                           opened_sessions: List[DummySession]):
    TileDownloadManager().download(nyc_config(tmp_path))

    assert opened_sessions
    assert all(session.closed for session in opened_sessions)


def test_cli_failure_list_hides_token(tmp_path: Path, http_calls: List[str], capsys):
    code = TileDownloadManager().run_from_command_line(
        NYC_ARGS + ["--zin", "0", "--folder", str(tmp_path), "--provider", "terrain",
                    "--token", "pk.secret", "--retries", "1", "--log-level", "DEBUG"]
    )

    out = capsys.readouterr().out
    assert code == EXIT_TILE_FAILURES
    assert "access_token=***" in out
    assert "pk.secret" not in out
