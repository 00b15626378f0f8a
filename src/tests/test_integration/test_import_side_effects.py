"""
Integration tests guarding against import-time side effects.

These tests run imports in a fresh Python subprocess to avoid interference from
already-imported modules within the pytest process.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path


def _run_python_import(code: str, home: Path) -> subprocess.CompletedProcess[str]:
    src_dir = Path(__file__).resolve().parents[2]
    env = {**os.environ, "HOME": str(home), "PYTHONPATH": str(src_dir)}
    env.pop("PREDICT_CHAT_DATA_DIR", None)
    env.pop("PREDICT_CHAT_LOG_DIR", None)
    return subprocess.run(
        [sys.executable, "-c", code],
        cwd=str(src_dir),
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )


def test_import_is_quiet_and_creates_no_directories(tmp_path):
    """Importing the packages should not validate, log, or touch the filesystem"""
    proc = _run_python_import(
        "import predict_chat.config, predict_chat.core, predict_chat.services, predict_chat.cli",
        tmp_path,
    )

    assert proc.returncode == 0, proc.stderr
    assert (proc.stdout or "") + (proc.stderr or "") == ""
    assert not (tmp_path / ".predict_chat").exists()


def test_event_bus_not_started_on_import(tmp_path):
    proc = _run_python_import(
        "from predict_chat.services import event_bus; print(event_bus.is_processing)",
        tmp_path,
    )

    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.strip() == "False"
