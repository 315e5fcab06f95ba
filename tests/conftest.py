"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from reclaimctl.core.errors import ExecutionError
from reclaimctl.models.cleanup import CleanupItem, RiskLevel
from reclaimctl.models.disk import DiskInfo

HOME = "/Users/tester"


class FakeExecutor:
    """Executor double that records commands and replays canned output.

    Responses are matched by command prefix. A response that is an
    exception instance is raised instead of returned.
    """

    def __init__(self, responses: dict[str, str | Exception] | None = None) -> None:
        self.responses = responses or {}
        self.commands: list[str] = []

    def execute(self, command: str) -> str:
        self.commands.append(command)
        for prefix, response in self.responses.items():
            if command.startswith(prefix):
                if isinstance(response, Exception):
                    raise response
                return response
        return ""


@pytest.fixture(autouse=True)
def isolated_xdg_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep every test away from the real config and state directories."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))


@pytest.fixture
def home() -> str:
    """Home directory used for path normalization in safety tests."""
    return HOME


@pytest.fixture
def fake_executor() -> FakeExecutor:
    """Executor that succeeds silently for every command."""
    return FakeExecutor()


@pytest.fixture
def make_executor() -> Callable[..., FakeExecutor]:
    """Build an executor with canned responses keyed by command prefix."""
    return FakeExecutor


@pytest.fixture
def failing_executor_factory() -> Callable[..., FakeExecutor]:
    """Build an executor that fails for commands starting with given prefixes."""

    def factory(*prefixes: str) -> FakeExecutor:
        return FakeExecutor(
            {
                prefix: ExecutionError("Command exited with code 1", command=prefix, returncode=1)
                for prefix in prefixes
            }
        )

    return factory


@pytest.fixture
def mock_df_output() -> str:
    """Sample ``df -h /`` output from macOS."""
    return """Filesystem     Size   Used  Avail Capacity iused ifree %iused  Mounted on
/dev/disk3s1s1  460Gi  228Gi   45Gi    84%  404k  472M    0%   /"""


@pytest.fixture
def mock_df_output_linux() -> str:
    """Sample ``df -h /`` output from Linux."""
    return """Filesystem      Size  Used Avail Use% Mounted on
/dev/nvme0n1p2  468G  312G  133G  71% /"""


@pytest.fixture
def mock_snapshot_listing() -> str:
    """Sample ``tmutil listlocalsnapshots /`` output."""
    return """Snapshots for disk /:
com.apple.TimeMachine.2024-01-15-103000.local
com.apple.TimeMachine.2024-01-16-091500.local
com.apple.os.update-7A1B2C3D4E5F
com.example.backup.nightly"""


@pytest.fixture
def disk_before() -> DiskInfo:
    """Disk usage before a cleanup run."""
    return DiskInfo(total="460 GB", used="100 GB", available="360 GB", usage_percentage=22)


@pytest.fixture
def disk_after() -> DiskInfo:
    """Disk usage after a cleanup run that freed 3 GB."""
    return DiskInfo(total="460 GB", used="97 GB", available="363 GB", usage_percentage=21)


@pytest.fixture
def sample_items() -> list[CleanupItem]:
    """Three checked cleanup items in execution order."""
    return [
        CleanupItem(
            id="caches",
            title="Clear user caches",
            description="Application caches",
            estimated_size_gb=2.5,
            command="rm -rf ~/Library/Caches/com.example.app",
            risk_level=RiskLevel.LOW,
        ),
        CleanupItem(
            id="trash",
            title="Empty trash",
            description="Files in the trash",
            estimated_size_gb=1.0,
            command="rm -rf ~/.Trash/*",
            risk_level=RiskLevel.LOW,
        ),
        CleanupItem(
            id="downloads",
            title="Old installers",
            description="Disk images in Downloads",
            estimated_size_gb=4.0,
            command="rm -f ~/Downloads/installer.dmg",
            risk_level=RiskLevel.MEDIUM,
        ),
    ]
