from __future__ import annotations

import pytest

from docuchat.api.multimodal import file_input_manager
from tests.fakes import RecordingProvider


@pytest.fixture
def recording_provider() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture(autouse=True)
def isolated_upload_dir(tmp_path, monkeypatch):
    upload_dir = tmp_path / "uploads"
    monkeypatch.setattr(file_input_manager, "UPLOAD_DIR", str(upload_dir))
    return upload_dir
