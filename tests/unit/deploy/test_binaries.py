"""Unit tests for binary deployment."""

import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from confctl.core.conflict import ConflictResolver
from confctl.deploy.binaries import BinaryDeployer
from confctl.models.config import BinarySpec
from confctl.models.state import ManagedBinary
from confctl.utils.shell import CommandResult


@pytest.fixture
def deployer(tmp_path: Path) -> BinaryDeployer:
    return BinaryDeployer(ConflictResolver(), staging_dir=tmp_path / "staging")


class TestBinaryDeployer:
    """Tests for BinaryDeployer.deploy."""

    def test_local_binary(self, deployer: BinaryDeployer, tmp_path: Path) -> None:
        """Local binaries are copied and made executable."""
        source = tmp_path / "jq"
        source.write_bytes(b"\x7fELF")
        destination = tmp_path / "bin" / "jq"

        result = deployer.deploy("jq", BinarySpec(source=str(source), destination=str(destination)))

        assert result.success
        assert stat.S_IMODE(destination.stat().st_mode) == 0o755
        assert isinstance(result.record, ManagedBinary)
        assert result.record.source == str(source)

    def test_download(self, deployer: BinaryDeployer, tmp_path: Path) -> None:
        """Remote binaries are downloaded into staging and then placed."""
        destination = tmp_path / "bin" / "tool"
        url = "https://example.com/tool"

        def fake_curl(args: list[str], **kwargs: object) -> CommandResult:
            Path(args[args.index("--output") + 1]).write_bytes(b"binary")
            return CommandResult(stdout="", stderr="", returncode=0)

        with (
            patch("confctl.deploy.binaries.command_exists", return_value=True),
            patch("confctl.deploy.binaries.run_command", side_effect=fake_curl) as mock_run,
        ):
            result = deployer.deploy("tool", BinarySpec(source=url, destination=str(destination)))

        args = mock_run.call_args[0][0]
        assert args[0] == "curl"
        assert "--fail" in args
        assert args[-1] == url
        assert destination.read_bytes() == b"binary"
        assert deployer.staging_path("tool").exists()
        assert result.record is not None
        assert result.record.source == url

    def test_download_failure(self, deployer: BinaryDeployer, tmp_path: Path) -> None:
        """A failed download fails the binary and leaves no partial file."""
        with (
            patch("confctl.deploy.binaries.command_exists", return_value=True),
            patch(
                "confctl.deploy.binaries.run_command",
                return_value=CommandResult(stdout="", stderr="curl: (22) 404", returncode=22),
            ),
        ):
            result = deployer.deploy(
                "tool",
                BinarySpec(source="https://example.com/tool", destination=str(tmp_path / "t")),
            )

        assert result.failed
        assert "404" in (result.error or "")
        assert list((tmp_path / "staging").iterdir()) == []

    def test_insecure_url_refused(self, deployer: BinaryDeployer, tmp_path: Path) -> None:
        """Plain http URLs are refused."""
        with patch("confctl.deploy.binaries.run_command") as mock_run:
            result = deployer.deploy(
                "tool", BinarySpec(source="http://example.com/t", destination=str(tmp_path / "t"))
            )

        mock_run.assert_not_called()
        assert "insecure" in (result.error or "")

    def test_missing_curl(self, deployer: BinaryDeployer, tmp_path: Path) -> None:
        """Downloads need curl."""
        with patch("confctl.deploy.binaries.command_exists", return_value=False):
            result = deployer.deploy(
                "tool", BinarySpec(source="https://example.com/t", destination=str(tmp_path / "t"))
            )

        assert "curl" in (result.error or "")

    def test_dry_run_skips_download(self, tmp_path: Path) -> None:
        """Dry runs never download."""
        deployer = BinaryDeployer(ConflictResolver(), dry_run=True, staging_dir=tmp_path)

        with patch("confctl.deploy.binaries.run_command") as mock_run:
            result = deployer.deploy(
                "tool", BinarySpec(source="https://example.com/t", destination=str(tmp_path / "t"))
            )

        mock_run.assert_not_called()
        assert result.changed is True

    def test_staging_name_is_sanitized(self, deployer: BinaryDeployer) -> None:
        """Resource names cannot escape the staging directory."""
        assert deployer.staging_path("../evil tool").name == ".._evil_tool"
