"""
Pytest configuration for the clipmill test suite.
"""

import sys
from pathlib import Path

import pytest

# Add backend to Python path so tests run without an install
backend_path = Path(__file__).parent.parent
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from clipmill.jobs.models import StitchConfig, TaskDescriptor, TaskFile  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: spawns real subprocesses"
    )


@pytest.fixture
def make_descriptor(tmp_path):
    """Factory for minimal pending stitch descriptors writing into tmp_path."""

    def _make(n: int = 0, concurrency: int = 0) -> TaskDescriptor:
        return TaskDescriptor(
            files=[
                TaskFile(path=f"/in/a{n}.mp4", index=1, category="A", category_name="A"),
                TaskFile(path=f"/in/b{n}.mp4", index=1, category="B", category_name="B"),
            ],
            config=StitchConfig(),
            output_dir=str(tmp_path),
            concurrency=concurrency,
        )

    return _make
