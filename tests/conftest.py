"""Shared test fixtures for podstage tests."""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from uuid import UUID

import pytest
from typer.testing import CliRunner

import podstage
from podstage.core import ensure_pod_dirs, get_pod_dir
from podstage.models import PodLocation


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def pods_dir(tmp_path: Path) -> Path:
    """Create an empty pod directory set."""
    return ensure_pod_dirs(tmp_path / "pods")


@pytest.fixture
def config_file(tmp_path: Path, pods_dir: Path) -> Path:
    """Write a config pointing at the test pod directory set."""
    path = tmp_path / "config.toml"
    path.write_text(
        f"""[pods]
dir = "{pods_dir}"

[gc]
grace_period_seconds = 0
expire_prepared_seconds = 0
"""
    )
    return path


@pytest.fixture(autouse=True)
def reset_cli_state() -> Generator[None, None, None]:
    """Clear the CLI globals between tests."""
    import podstage.config
    import podstage.output

    yield
    podstage.config._active = None
    podstage.output._ctx = None


@pytest.fixture
def pod_uuid() -> UUID:
    """A fixed pod UUID."""
    return UUID("6f1d2b8e-3c4a-4f5e-9a7b-0c1d2e3f4a5b")


@pytest.fixture
def make_pod(pods_dir: Path, pod_uuid: UUID) -> Callable[..., Path]:
    """Factory creating a bare pod directory at a location."""

    def _make(location: PodLocation, uuid: UUID = pod_uuid) -> Path:
        path = get_pod_dir(pods_dir, location, uuid)
        path.mkdir()
        (path / "pod").write_text("{}")
        return path

    return _make


@pytest.fixture
def child_env() -> dict[str, str]:
    """Environment for child interpreters that import podstage from this tree."""
    src = str(Path(podstage.__file__).resolve().parents[1])
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [src, env.get("PYTHONPATH")]))
    return env
