"""
Tests for the encounters command line interface.
"""

import json

import pytest
from click.testing import CliRunner

from cli.files import get_filename, read_input, resolve_format
from cli.main import app
from encounters.exceptions import FileReaderError, InvalidPathError, MissingFileError
from encounters.model import InputFormat


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep user config files and variables out of the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for name in ("ENCOUNTERS_MAX_RESULTS", "ENCOUNTERS_NODE_CAPACITY", "ENCOUNTERS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def files(tmp_path, location_records_json, gpx_track):
    """Input files with recognizable extensions."""
    records = tmp_path / "Records.json"
    records.write_text(location_records_json, encoding="utf-8")
    ride = tmp_path / "ride.gpx"
    ride.write_text(gpx_track, encoding="utf-8")
    return records, ride


# ============================================================================
# FILE HANDLING
# ============================================================================

class TestFiles:
    """Input file acquisition."""

    def test_get_filename(self):
        assert get_filename(r"C:\fakepath\location-history.json") == "location-history.json"
        assert get_filename("/fakepath/location-history.json") == "location-history.json"

    @pytest.mark.parametrize("path", ["", "/fakepath/", "C:\\fakepath\\"])
    def test_get_filename_rejects(self, path):
        with pytest.raises(InvalidPathError) as exc_info:
            get_filename(path)
        assert exc_info.value.path == path

    def test_resolve_format(self, tmp_path):
        assert resolve_format(tmp_path / "a.JSON") == InputFormat.JSON
        assert resolve_format(tmp_path / "a.gpx") == InputFormat.GPX
        assert resolve_format(tmp_path / "a.txt", "gpx") == InputFormat.GPX
        with pytest.raises(ValueError, match="Cannot tell the format"):
            resolve_format(tmp_path / "a.txt")

    def test_read_input(self, files):
        records, _ = files
        raw = read_input(records)
        assert raw.format == InputFormat.JSON
        assert raw.name == "Records.json"
        assert "locations" in raw.content

    def test_missing_file(self):
        with pytest.raises(MissingFileError, match="Please provide both files"):
            read_input(None)

    def test_directory(self, tmp_path):
        with pytest.raises(InvalidPathError):
            read_input(tmp_path)

    def test_not_utf8(self, tmp_path):
        path = tmp_path / "binary.json"
        path.write_bytes(b"\xff\xfe\x00\x80")
        with pytest.raises(FileReaderError, match="can not be parsed as string"):
            read_input(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.gpx"
        path.write_text("  \n")
        with pytest.raises(FileReaderError, match="is empty file"):
            read_input(path)


# ============================================================================
# GLOBAL OPTIONS
# ============================================================================

class TestApp:
    """Group options and help."""

    def test_help(self, runner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Chance Encounters" in result.output
        assert "Examples:" in result.output
        assert "match" in result.output

    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_verbose_and_quiet_conflict(self, runner, files):
        records, _ = files
        result = runner.invoke(app, ["-v", "-q", "decode", str(records)])
        assert result.exit_code == 2
        assert "Cannot use both" in result.output

    def test_info(self, runner):
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        assert "Package Versions" in result.output
        assert "max_encounters: 10" in result.output

    def test_invalid_config_file(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("max_encounters: 0\n")
        result = runner.invoke(app, ["-c", str(path), "info"])
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    @pytest.mark.parametrize("flags", [[], ["-q"], ["-v"]])
    def test_config_file_with_yaml_syntax_error(self, runner, tmp_path, flags):
        path = tmp_path / "broken.yaml"
        path.write_text("encounters: [max_encounters: 3\n")
        result = runner.invoke(app, [*flags, "-c", str(path), "info"])
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output


# ============================================================================
# DECODE
# ============================================================================

class TestDecodeCommand:
    """encounters decode."""

    def test_text_summary(self, runner, files):
        _, ride = files
        result = runner.invoke(app, ["decode", str(ride)])
        assert result.exit_code == 0, result.output
        assert "Points: 4" in result.output
        assert "Format: gpx" in result.output
        assert "2024-03-01 12:00:00 UTC" in result.output

    def test_json_output(self, runner, files):
        records, _ = files
        result = runner.invoke(app, ["decode", str(records), "--output", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["source"] == "Records.json"
        assert data["total_points"] == 3

    def test_explicit_format(self, runner, tmp_path, gpx_track):
        path = tmp_path / "track.txt"
        path.write_text(gpx_track)
        result = runner.invoke(app, ["decode", str(path), "--format", "gpx"])
        assert result.exit_code == 0, result.output
        assert "Points: 4" in result.output

    def test_unknown_extension(self, runner, tmp_path, gpx_track):
        path = tmp_path / "track.txt"
        path.write_text(gpx_track)
        result = runner.invoke(app, ["decode", str(path)])
        assert result.exit_code == 2
        assert "Cannot tell the format" in result.output

    def test_malformed_file(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        result = runner.invoke(app, ["decode", str(path)])
        assert result.exit_code == 1
        assert "Deserialize Error" in result.output

    def test_empty_file(self, runner, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("")
        result = runner.invoke(app, ["decode", str(path)])
        assert result.exit_code == 1
        assert "is empty file" in result.output


# ============================================================================
# MATCH
# ============================================================================

class TestMatchCommand:
    """encounters match."""

    def test_text_output(self, runner, files):
        records, ride = files
        result = runner.invoke(app, ["match", str(records), str(ride)])
        assert result.exit_code == 0, result.output
        assert "Records.json  <->  ride.gpx" in result.output
        assert "#1:" in result.output
        assert "#3:" in result.output
        assert "#4:" not in result.output

    def test_json_output(self, runner, files):
        records, ride = files
        result = runner.invoke(app, ["match", str(records), str(ride), "-o", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["status"] == "completed"
        assert len(data["encounters"]) == 3
        assert data["encounters"][0]["rank"] == 1

    def test_limit(self, runner, files):
        records, ride = files
        result = runner.invoke(app, ["match", str(records), str(ride), "--limit", "1", "-o", "json"])
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.output)["encounters"]) == 1

    def test_limit_from_config(self, runner, files, tmp_path):
        records, ride = files
        config = tmp_path / "config.yaml"
        config.write_text("encounters:\n  max_encounters: 2\n")
        result = runner.invoke(app, ["-c", str(config), "match", str(records), str(ride), "-o", "json"])
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.output)["encounters"]) == 2

    def test_no_encounters(self, runner, files, tmp_path):
        _, ride = files
        empty = tmp_path / "empty.json"
        empty.write_text("[]")
        result = runner.invoke(app, ["match", str(empty), str(ride)])
        assert result.exit_code == 0, result.output
        assert "No encounters found." in result.output

    def test_failed_input_is_named(self, runner, files, tmp_path):
        records, _ = files
        broken = tmp_path / "broken.gpx"
        broken.write_text("<gpx><trk>")
        result = runner.invoke(app, ["match", str(records), str(broken)])
        assert result.exit_code == 1
        assert "broken.gpx: Deserialize Error" in result.output

    def test_missing_file(self, runner, files, tmp_path):
        records, _ = files
        result = runner.invoke(app, ["match", str(records), str(tmp_path / "absent.gpx")])
        assert result.exit_code == 2
