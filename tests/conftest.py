import json
import textwrap
from pathlib import Path

import pytest
import structlog


@pytest.fixture(autouse=True)
def log_events():
    """Collect structlog events instead of printing them."""
    with structlog.testing.capture_logs() as events:
        yield events


@pytest.fixture
def write_file(tmp_path):
    """Write a text file under tmp_path; dicts are dumped as JSON."""

    def _write(name: str, content) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, (dict, list)):
            path.write_text(json.dumps(content), encoding="utf-8")
        else:
            path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def settings_file(write_file):
    """A dmbinder.toml pointing at a small generators directory."""
    write_file("gens/npc.json", {"values": ["Aldo the Bold"]})
    write_file(
        "gens/tavern.toml",
        """
        [name]
        values = ["The Gilded Goose"]

        [greeting]
        generatorType = "switch"
        condition = "mood"

        [greeting.switchValues]
        calm = "Welcome, traveller."
        angry = "We're closed."
        """,
    )
    return write_file("dmbinder.toml", '[generators]\ndirectory = "gens"\n')
