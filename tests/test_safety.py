"""Guards against the suite touching a real install.

The defaults in app_config point at ./data/state, ./data/media and
./db/pharmastudy.db. Every test must run against tmp_path instead.
"""

import time
from pathlib import Path

import pytest

from pharmastudy.client.service import StudyClient
from pharmastudy.config.app_config import ClientConfig, ServerConfig, load_app_config
from pharmastudy.web.dependencies import get_media_store

# Collection imports this module before any test runs
COLLECTED_AT = time.time()

DEFAULT_PATHS = (
    Path(ClientConfig.store_path),
    Path(ServerConfig.media_dir),
    Path(ServerConfig.database_url.removeprefix("sqlite:///")),
)


def _touched_since_collection(path: Path) -> list[str]:
    if not path.exists():
        return []
    candidates = [path, *path.rglob("*")] if path.is_dir() else [path]
    return [str(p) for p in candidates if p.stat().st_mtime >= COLLECTED_AT]


def test_configured_paths_live_in_tmp(tmp_path):
    config = load_app_config()

    assert Path(config.client.store_path).is_relative_to(tmp_path)
    assert Path(config.server.media_dir).is_relative_to(tmp_path)
    assert config.server.database_url == "sqlite://"
    assert StudyClient().store.path.is_relative_to(tmp_path)
    assert get_media_store().media_dir.is_relative_to(tmp_path)


@pytest.mark.parametrize("path", DEFAULT_PATHS, ids=str)
def test_default_locations_untouched(path):
    touched = _touched_since_collection(path)
    if touched:
        pytest.fail("Modified during the test run: " + ", ".join(touched))


def test_no_test_opens_the_default_database():
    offenders = [
        str(test_file)
        for test_file in sorted(Path("tests").glob("f[234]/*.py"))
        if "init_db()" in test_file.read_text()
    ]
    assert offenders == [], "init_db() without a URL opens ./db/pharmastudy.db"
