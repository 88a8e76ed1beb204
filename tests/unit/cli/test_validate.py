"""Unit tests for validate command."""

import tomllib
from pathlib import Path

from typer.testing import CliRunner

from confctl.cli.main import app

runner = CliRunner()


class TestValidateCommand:
    """Tests for confctl validate."""

    def test_valid_configuration(self, sample_config: Path) -> None:
        """A resolvable configuration is reported with its documents."""
        result = runner.invoke(app, ["validate", "--config", str(sample_config)])

        assert result.exit_code == 0
        assert "Included documents" in result.stdout
        assert "1 apt" in result.stdout
        assert "Files: 1" in result.stdout
        assert "Configuration is valid" in result.stdout

    def test_export(self, sample_config: Path, tmp_path: Path) -> None:
        """--output writes the merged configuration."""
        output = tmp_path / "merged.toml"

        result = runner.invoke(
            app, ["validate", "-c", str(sample_config), "--output", str(output)]
        )

        assert result.exit_code == 0
        data = tomllib.loads(output.read_text())
        assert data["packages"]["apt"] == ["git"]
        assert "includes" not in data

    def test_missing_include(self, write_doc, xdg_dirs: dict[str, Path]) -> None:
        """A missing include fails with its error kind."""
        root = write_doc("confctl.toml", 'includes = ["gone.toml"]\n')

        result = runner.invoke(app, ["validate", "-c", str(root)])

        assert result.exit_code == 1
        assert "not_found" in result.output

    def test_invalid_document(self, write_doc, xdg_dirs: dict[str, Path]) -> None:
        """Schema errors fail validation."""
        root = write_doc("confctl.toml", "[bogus]\nkey = 1\n")

        result = runner.invoke(app, ["validate", "-c", str(root)])

        assert result.exit_code == 1
        assert "Failed to load configuration" in result.output

    def test_missing_root(self, tmp_path: Path, xdg_dirs: dict[str, Path]) -> None:
        """An explicit root that does not exist fails."""
        result = runner.invoke(app, ["validate", "-c", str(tmp_path / "none.toml")])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_semantic_error_fails(self, write_doc, xdg_dirs: dict[str, Path]) -> None:
        """A package name apt-get would read as an option fails validation."""
        root = write_doc(
            "confctl.toml", '[packages]\napt = ["-oAPT::Get::AllowUnauthenticated=1"]\n'
        )

        result = runner.invoke(app, ["validate", "-c", str(root)])

        assert result.exit_code == 1
        assert "Configuration has 1 error(s)" in result.output
        assert "Configuration is valid" not in result.output

    def test_warnings_do_not_fail(self, write_doc, xdg_dirs: dict[str, Path]) -> None:
        """Warnings are reported and validation still passes."""
        root = write_doc("confctl.toml", '[packages]\napt = ["htop"]\nsnap = ["htop"]\n')

        result = runner.invoke(app, ["validate", "-c", str(root)])

        assert result.exit_code == 0
        assert "Configuration is valid (1 warning(s))" in result.stdout
