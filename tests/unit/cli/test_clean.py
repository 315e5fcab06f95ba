"""Unit tests for clean command.

Tests for the CLI clean command that executes the saved cleanup plan.
"""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from reclaimctl.advisor.plan import NormalizedPlan, save_plan
from reclaimctl.cli.commands.clean import WhitelistReader, select_items
from reclaimctl.cli.main import app
from reclaimctl.core.config import AppConfig, CleanupConfig
from reclaimctl.core.errors import ConfigError, ExecutionError, MeasurementError
from reclaimctl.models.cleanup import CleanupItem
from reclaimctl.models.disk import DiskInfo
from reclaimctl.models.whitelist import WhitelistEntry
from typer import BadParameter
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def plan_file(tmp_path: Path, sample_items: list[CleanupItem]) -> Path:
    path = tmp_path / "plan.json"
    save_plan(NormalizedPlan(root_cause_summary="Caches", items=tuple(sample_items)), path)
    return path


@pytest.fixture
def executor() -> MagicMock:
    mock = MagicMock()
    mock.execute.return_value = ""
    return mock


@pytest.fixture
def cli_env(
    executor: MagicMock, disk_before: DiskInfo, disk_after: DiskInfo
) -> Iterator[dict[str, MagicMock]]:
    """Patch the clean command's collaborators."""
    probe = MagicMock()
    probe.measure.side_effect = [disk_before, disk_after]
    config = AppConfig(cleanup=CleanupConfig(settle_seconds=0))

    with (
        patch("reclaimctl.cli.commands.clean.require_config", return_value=config),
        patch("reclaimctl.cli.commands.clean.get_disk_probe", return_value=probe),
        patch("reclaimctl.cli.commands.clean.load_whitelist", return_value=[]),
        patch("reclaimctl.cli.commands.clean.ShellExecutor", return_value=executor) as shell,
        patch("reclaimctl.cli.commands.clean.record_cleanup_run") as record,
    ):
        yield {
            "probe": probe,
            "shell_executor": shell,
            "record": record,
        }


class TestSelectItems:
    """Tests for select_items function."""

    def test_no_selection(self, sample_items: list[CleanupItem]) -> None:
        """Without options the plan selection is kept."""
        assert select_items(sample_items, None, None) == sample_items

    def test_only(self, sample_items: list[CleanupItem]) -> None:
        """--only checks exactly the named items."""
        selected = select_items(sample_items, ["trash"], None)

        assert [item.checked for item in selected] == [False, True, False]

    def test_skip(self, sample_items: list[CleanupItem]) -> None:
        """--skip unchecks the named items."""
        selected = select_items(sample_items, None, ["caches", "downloads"])

        assert [item.checked for item in selected] == [False, True, False]

    def test_unknown_id(self, sample_items: list[CleanupItem]) -> None:
        """Unknown ids are a usage error."""
        with pytest.raises(BadParameter, match="Unknown item id"):
            select_items(sample_items, ["nope"], None)


class TestWhitelistReader:
    """Tests for WhitelistReader class."""

    def test_reads_current_whitelist(self) -> None:
        """Each call returns the whitelist currently on disk."""
        fresh = [WhitelistEntry(id="new", path="~/Projects")]
        reader = WhitelistReader([])

        with patch("reclaimctl.cli.commands.clean.load_whitelist", return_value=fresh):
            assert reader() == fresh

    def test_keeps_last_good_whitelist(self) -> None:
        """A config read failure falls back to the previous whitelist."""
        initial = [WhitelistEntry(id="old", path="~/Music")]
        reader = WhitelistReader(initial)

        with patch(
            "reclaimctl.cli.commands.clean.load_whitelist",
            side_effect=ConfigError("broken"),
        ):
            assert reader() == initial


class TestCleanCommand:
    """Tests for reclaimctl clean command."""

    def test_missing_plan(self, tmp_path: Path, cli_env: dict[str, MagicMock]) -> None:
        """Without a plan file the command fails."""
        result = runner.invoke(app, ["clean", "--plan", str(tmp_path / "none.json")])

        assert result.exit_code == 1
        assert "No plan found" in result.output

    def test_unreadable_plan(self, tmp_path: Path, cli_env: dict[str, MagicMock]) -> None:
        """A plan file without JSON is refused."""
        path = tmp_path / "plan.json"
        path.write_text("no plan here")

        result = runner.invoke(app, ["clean", "--plan", str(path)])

        assert result.exit_code == 1
        assert "could not be read" in result.output

    def test_runs_all_items(
        self, plan_file: Path, executor: MagicMock, cli_env: dict[str, MagicMock]
    ) -> None:
        """With --yes all checked items run and the run is recorded."""
        result = runner.invoke(app, ["clean", "--plan", str(plan_file), "--yes"])

        assert result.exit_code == 0
        assert executor.execute.call_count == 3
        assert "All 3 item(s) completed successfully" in result.stdout
        assert "3.00 GB" in result.stdout
        cli_env["shell_executor"].assert_called_once_with(dry_run=False, timeout=300)
        assert cli_env["record"].call_args.kwargs == {"dry_run": False}

    def test_confirmation_declined(
        self, plan_file: Path, executor: MagicMock, cli_env: dict[str, MagicMock]
    ) -> None:
        """Declining the prompt runs nothing."""
        result = runner.invoke(app, ["clean", "--plan", str(plan_file)], input="n\n")

        assert result.exit_code == 0
        assert "Aborted" in result.stdout
        executor.execute.assert_not_called()
        cli_env["probe"].measure.assert_not_called()

    def test_confirmation_accepted(
        self, plan_file: Path, executor: MagicMock, cli_env: dict[str, MagicMock]
    ) -> None:
        """Accepting the prompt runs the plan."""
        result = runner.invoke(app, ["clean", "--plan", str(plan_file)], input="y\n")

        assert result.exit_code == 0
        assert executor.execute.call_count == 3

    def test_dry_run(self, plan_file: Path, cli_env: dict[str, MagicMock]) -> None:
        """A dry run needs no confirmation and is recorded as such."""
        result = runner.invoke(app, ["clean", "--plan", str(plan_file), "--dry-run"])

        assert result.exit_code == 0
        assert "Dry run" in result.stdout
        cli_env["shell_executor"].assert_called_once_with(dry_run=True, timeout=300)
        assert cli_env["record"].call_args.kwargs == {"dry_run": True}

    def test_skip_item(
        self, plan_file: Path, executor: MagicMock, cli_env: dict[str, MagicMock]
    ) -> None:
        """Skipped items are not executed."""
        result = runner.invoke(
            app, ["clean", "--plan", str(plan_file), "--skip", "trash", "--yes"]
        )

        assert result.exit_code == 0
        commands = [call.args[0] for call in executor.execute.call_args_list]
        assert commands == [
            "rm -rf ~/Library/Caches/com.example.app",
            "rm -f ~/Downloads/installer.dmg",
        ]

    def test_unknown_only_id(self, plan_file: Path, cli_env: dict[str, MagicMock]) -> None:
        """An unknown --only id is a usage error."""
        result = runner.invoke(app, ["clean", "--plan", str(plan_file), "--only", "bogus"])

        assert result.exit_code == 2

    def test_nothing_selected(self, tmp_path: Path, sample_items: list[CleanupItem]) -> None:
        """A plan without checked items does nothing."""
        path = tmp_path / "plan.json"
        items = tuple(item.with_checked(False) for item in sample_items)
        save_plan(NormalizedPlan(root_cause_summary="", items=items), path)

        with patch("reclaimctl.cli.commands.clean.require_config", return_value=AppConfig()):
            result = runner.invoke(app, ["clean", "--plan", str(path)])

        assert result.exit_code == 0
        assert "No items selected" in result.stdout

    def test_failed_item_sets_exit_code(
        self, plan_file: Path, executor: MagicMock, cli_env: dict[str, MagicMock]
    ) -> None:
        """A failing item is reported and the run exits non-zero."""

        def execute(command: str) -> str:
            if command.startswith("rm -rf ~/.Trash"):
                raise ExecutionError("Command exited with code 1", command=command, returncode=1)
            return ""

        executor.execute.side_effect = execute

        result = runner.invoke(app, ["clean", "--plan", str(plan_file), "--yes"])

        assert result.exit_code == 1
        assert executor.execute.call_count == 3
        assert "2 completed" in result.stdout
        assert "Files in the trash" in result.stdout
        cli_env["record"].assert_called_once()

    def test_measurement_failure(
        self, plan_file: Path, disk_before: DiskInfo, cli_env: dict[str, MagicMock]
    ) -> None:
        """A failed final measurement lists what already completed."""
        cli_env["probe"].measure.side_effect = [disk_before, MeasurementError("df failed")]

        result = runner.invoke(app, ["clean", "--plan", str(plan_file), "--yes"])

        assert result.exit_code == 1
        assert "df failed" in result.output
        assert "caches, trash, downloads" in result.output
        cli_env["record"].assert_not_called()
