"""Unit tests for CLI utilities."""

import json

import pytest

from tasmocompiler.cli_utils import ErrorFormatter, PathValidator, RequestLoader
from tasmocompiler.errors import RequestError, WriteFailed


class TestRequestLoader:
    """Tests for RequestLoader class."""

    def test_load(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"features": {"USE_X": True}, "customParams": "#define Y"}))

        request = RequestLoader.load(config)

        assert request.features == {"USE_X": True}
        assert request.custom_params == "#define Y"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RequestLoader.load(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text("{")

        with pytest.raises(RequestError, match="Invalid JSON"):
            RequestLoader.load(config)


class TestErrorFormatter:
    """Tests for ErrorFormatter class."""

    def test_print_error(self, capsys):
        ErrorFormatter.print_error("Build failed!", "details")

        err = capsys.readouterr().err
        assert "✗ Build failed!" in err
        assert "details" in err

    def test_handle_tasmocompiler_error(self, tmp_path, capsys):
        error = WriteFailed(tmp_path / "x.h", OSError("disk full"))

        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_tasmocompiler_error(error)

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "WriteFailed" in err
        assert "disk full" in err

    def test_handle_keyboard_interrupt(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_keyboard_interrupt()

        assert exc_info.value.code == 130
        assert "interrupted" in capsys.readouterr().err

    def test_handle_unexpected_error_verbose(self, capsys):
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            with pytest.raises(SystemExit):
                ErrorFormatter.handle_unexpected_error(e, verbose=True)

        err = capsys.readouterr().err
        assert "RuntimeError: boom" in err
        assert "Traceback" in err


class TestPathValidator:
    """Tests for PathValidator class."""

    def test_valid(self, tmp_path):
        PathValidator.validate_repo_dir(tmp_path)

    def test_missing(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_repo_dir(tmp_path / "missing")

        assert exc_info.value.code == 2

    def test_file(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("")

        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_repo_dir(path)

        assert exc_info.value.code == 2
