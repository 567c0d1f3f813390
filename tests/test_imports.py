"""Tests that every entry module imports on its own."""

import os
import subprocess
import sys

import pytest


@pytest.mark.parametrize(
    "module",
    [
        "upbit_autotrader.main",
        "upbit_autotrader.api.app",
        "upbit_autotrader.exchange",
        "upbit_autotrader.exchange.client",
        "upbit_autotrader.execution.executor",
        "upbit_autotrader.data.feed",
        "upbit_autotrader.core.controller",
        "upbit_autotrader.risk",
    ],
)
def test_module_imports_in_fresh_interpreter(module):
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        capture_output=True,
        env={**os.environ, "PYTHONPATH": os.pathsep.join(sys.path)},
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr
