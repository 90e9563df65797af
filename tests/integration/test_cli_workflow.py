"""Integration tests for the CLI.

Uses Click's CliRunner with refresh off, so nothing leaves the process.
"""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from stockfeed.cli import cli

pytestmark = pytest.mark.integration

MANUAL_CSV = (
    "Date;Open;High;Low;Close;Volume\n"
    "03/04/2017;10;10.5;9.5;10.2;100\n"
    "04/04/2017;10.2;10.8;10.1;10.6;120\n"
    "06/04/2017;N/D;N/D;N/D;N/D;N/D\n"
    "07/04/2017;10.6;11;10.4;10.9;90\n"
)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path) -> str:
    path = tmp_path / "stockfeed.yml"
    path.write_text(
        "acquisition:\n"
        "  refresh: false\n"
        "  interpolation: linear\n"
        "storage:\n"
        f"  sqlite_path: {tmp_path / 'data' / 'stockfeed.db'}\n"
        "registry:\n"
        "  default_exchange: London\n"
    )
    return str(path)


@pytest.fixture
def imported(runner, config_path, tmp_path) -> str:
    """Cache pre-loaded with XDND bars via the import command."""
    csv_file = tmp_path / "xdnd.csv"
    csv_file.write_text(MANUAL_CSV)
    result = runner.invoke(cli, ["--config", config_path, "import", "XDND", str(csv_file)])
    assert result.exit_code == 0, result.output
    assert "Imported 3 new bars for London:XDND" in result.output
    return config_path


class TestCLIHelp:
    def test_help_output(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "stockfeed" in result.output

    def test_version_output(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0

    @pytest.mark.parametrize("command", ["fetch", "export", "import", "status"])
    def test_subcommand_help(self, runner, command):
        result = runner.invoke(cli, [command, "--help"])
        assert result.exit_code == 0


class TestCachedWorkflow:
    def test_fetch_from_cache(self, runner, imported):
        result = runner.invoke(
            cli,
            ["--config", imported, "fetch", "XDND", "--from", "2017-04-03", "--to", "2017-04-07", "--format", "csv"],
        )
        assert result.exit_code == 0, result.output
        assert result.output.splitlines()[:4] == [
            "date,open,high,low,close,volume",
            "2017-04-03,10.00,10.50,9.50,10.20,100,manual",
            "2017-04-04,10.20,10.80,10.10,10.60,120,manual",
            "2017-04-07,10.60,11.00,10.40,10.90,90,manual",
        ]

    def test_fetch_interpolated(self, runner, imported):
        result = runner.invoke(
            cli,
            [
                "--config", imported, "fetch", "XDND",
                "--from", "2017-04-03", "--to", "2017-04-07",
                "--interpolate", "--format", "csv",
            ],
        )
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        # Linear fill between 10.60 (Tue) and 10.90 (Fri)
        assert "2017-04-05,10.70,10.70,10.70,10.70,0,linear" in lines
        assert "2017-04-06,10.80,10.80,10.80,10.80,0,linear" in lines

    def test_reimport_adds_nothing(self, runner, imported, tmp_path):
        csv_file = tmp_path / "xdnd.csv"
        result = runner.invoke(cli, ["--config", imported, "import", "XDND", str(csv_file)])
        assert result.exit_code == 0, result.output
        assert "Imported 0 new bars" in result.output

    def test_export_round_trip(self, runner, imported, tmp_path):
        out = tmp_path / "out"
        result = runner.invoke(
            cli,
            ["--config", imported, "export", "XDND", "--from", "2017-04-03", "--to", "2017-04-07", "-o", str(out)],
        )
        assert result.exit_code == 0, result.output
        exported = out / "London_XDND.csv"
        assert exported.exists()

        result = runner.invoke(cli, ["--config", imported, "import", "VUSA", str(exported)])
        assert result.exit_code == 0, result.output
        assert "Imported 3 new bars for London:VUSA" in result.output

    def test_status_lists_cached_instrument(self, runner, imported):
        result = runner.invoke(cli, ["--config", imported, "status"])
        assert result.exit_code == 0, result.output
        assert "London:XDND" in result.output
        assert "2017-04-03" in result.output

    def test_unknown_ticker_offline(self, runner, imported):
        result = runner.invoke(
            cli, ["--config", imported, "fetch", "NOPE", "--from", "2017-04-03", "--to", "2017-04-07"]
        )
        assert result.exit_code == 1
        assert "No data found for London:NOPE" in result.output
