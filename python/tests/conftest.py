"""
Pytest configuration and fixtures for inspx tests.
"""
import sys
from pathlib import Path

import pytest

PYTHON_SRC = Path(__file__).resolve().parents[1]
TESTS_DIR = Path(__file__).resolve().parent
for entry in (PYTHON_SRC, TESTS_DIR):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

from agent_stubs import FakeChannel  # noqa: E402


@pytest.fixture
def channel():
    """Agent channel stand-in that grants read and write access everywhere."""
    return FakeChannel()
