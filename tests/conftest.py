"""Global pytest fixtures and configuration."""

import sys
from pathlib import Path

import pytest

# Add src (package) and tests (shared fakes) to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from suite_operator.config.settings import load_settings  # noqa: E402
from suite_operator.models.installation import (  # noqa: E402
    Installation,
    InstallationSpec,
    ObjectMeta,
)
from suite_operator.models.installation_type import parse_installation_types  # noqa: E402
from suite_operator.services.store import MemoryObjectStore  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    """Settings with deterministic values, independent of the environment."""
    return load_settings(
        requeue_delay_seconds=10.0,
        required_secrets="github-oauth-secret",
        products="all",
        installation_types_file="",
        event_report_url="",
        store_url="",
        log_file=str(tmp_path / "logs" / "suite-operator.log"),
    )


@pytest.fixture
def store():
    """Fresh in-process object store."""
    return MemoryObjectStore()


@pytest.fixture
def installation_types():
    """Two-stage template: S1 = [A, B], S2 = [C]."""
    return parse_installation_types(
        {
            "test": {
                "stages": [
                    {"name": "S1", "products": ["A", "B"]},
                    {"name": "S2", "products": ["C"]},
                ]
            }
        }
    )


@pytest.fixture
def installation():
    """Unsaved installation of the two-stage test type."""
    return Installation(
        metadata=ObjectMeta(name="test-install", namespace="ops"),
        spec=InstallationSpec(type="test", namespace_prefix="t-"),
    )
