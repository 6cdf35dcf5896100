import shlex
import sys
from pathlib import Path

import pytest
from rest_framework.test import APIClient

STUB_DECODER = Path(__file__).with_name("stub_decoder.py")


@pytest.fixture(autouse=True)
def downloads_root(tmp_path, settings):
    root = tmp_path / "downloads"
    root.mkdir()
    settings.DOWNLOADS_ROOT = root
    settings.DOWNLOAD_BACKEND = "decoder"
    return root


@pytest.fixture
def stub_decoder(settings, monkeypatch):
    """Point DECODER_COMMAND at the stub script; returns a setter for its mode."""
    settings.DECODER_COMMAND = shlex.join([sys.executable, str(STUB_DECODER)])
    settings.DECODER_TIMEOUT_SECONDS = 30
    monkeypatch.delenv("STUB_DECODER_MODE", raising=False)

    def set_mode(mode, content=None):
        monkeypatch.setenv("STUB_DECODER_MODE", mode)
        if content is not None:
            monkeypatch.setenv("STUB_DECODER_CONTENT", content)

    return set_mode


@pytest.fixture
def api_client():
    return APIClient()
