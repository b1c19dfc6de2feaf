"""
Every test module must import and collect on its own.

A module that fails at import time (for example a class decorator Django
rejects) stops the whole pytest run during collection.
"""

import importlib
import subprocess
import sys
from pathlib import Path

import pytest

APP_DIR = Path(__file__).resolve().parents[2]
REPO_ROOT = APP_DIR.parent

TEST_FILES = sorted(APP_DIR.glob("*/tests/test_*.py"))


def _module_name(path):
    return ".".join(path.relative_to(APP_DIR).with_suffix("").parts)


@pytest.mark.parametrize("path", TEST_FILES, ids=_module_name)
def test_module_imports(path):
    importlib.import_module(_module_name(path))


def test_every_app_has_tests():
    apps_with_tests = {path.relative_to(APP_DIR).parts[0] for path in TEST_FILES}

    assert {"core", "accounts", "payments"} <= apps_with_tests


@pytest.mark.parametrize(
    "target",
    [
        "app/payments/tests/test_stripe_adapter.py",
        "app/accounts/tests/test_views.py",
    ],
)
def test_single_file_collects(target):
    # App conftests beside the file are imported before pytest_configure.
    completed = subprocess.run(
        [sys.executable, "-m", "pytest", "--collect-only", "-q", "-p", "no:cacheprovider", target],
        cwd=REPO_ROOT,
        capture_output=True,
        text=True,
        timeout=120,
    )

    assert completed.returncode == 0, completed.stdout + completed.stderr
