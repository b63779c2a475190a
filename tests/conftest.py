from __future__ import annotations

import os
from pathlib import Path

import pytest

from tests.helpers import jsonl


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("AGENTLOG_") or key == "DATA_DIR":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def data_root(tmp_path) -> Path:
    """A small data directory: two logs, one stray file, one hidden file, two dirs."""
    root = tmp_path / "logs"
    root.mkdir()
    (root / "a.jsonl").write_bytes(jsonl({"role": "user", "content": "hello"}))
    (root / "B.json").write_text('[{"role": "assistant", "content": "hi"}]', encoding="utf-8")
    (root / "notes.txt").write_text("not a log", encoding="utf-8")
    (root / ".hidden.jsonl").write_text("", encoding="utf-8")
    (root / "sub").mkdir()
    (root / "sub" / "nested.jsonl").write_bytes(jsonl({"role": "system", "content": "boot"}))
    (root / "Zdir").mkdir()
    return root


@pytest.fixture
def session_file(tmp_path) -> Path:
    """A three-line session log whose second line is malformed."""
    path = tmp_path / "session.jsonl"
    path.write_bytes(
        jsonl({"ts": 1735689600, "role": "user", "content": "hello, reach me at test@example.com"})
        + b'{"role": "assistant", "content": \n'
        + jsonl({"ts": 1735689601, "role": "assistant", "content": "hi there"})
    )
    return path
