"""Tests for Config, SceneImageHandle and orchestrator wiring."""

import logging
from unittest.mock import MagicMock

import pytest

from vistaquest.config import Config, config
from vistaquest.core.orchestrator import Orchestrator
from vistaquest.errors import (
    BusyError,
    ContentBlockedError,
    EmptyResultError,
    MalformedResponseError,
    TransportError,
)
from vistaquest.llm.transport import RetryingTransport
from vistaquest.logging_config import BRIEF_FORMAT, DEBUG_FORMAT, resolve_level, setup_logging
from vistaquest.media.handles import SceneImageHandle
from vistaquest.prompts.themes import reset_theme_book


class TestConfig:
    def test_defaults(self):
        assert Config.MAX_RETRIES >= 1
        assert Config.retry_base_delay() == Config.RETRY_BASE_DELAY_MS / 1000.0

    def test_validate_missing_key(self, monkeypatch):
        monkeypatch.setattr(Config, "GOOGLE_API_KEY", "")
        issues = Config.validate()
        assert any("GOOGLE_API_KEY" in issue for issue in issues)

    def test_validate_bad_numbers(self, monkeypatch):
        monkeypatch.setattr(Config, "GOOGLE_API_KEY", "key")
        monkeypatch.setattr(Config, "MAX_RETRIES", 0)
        monkeypatch.setattr(Config, "VISION_MAX_DIMENSION", 0)
        assert len(Config.validate()) == 2

    def test_media_dir(self, monkeypatch, tmp_path):
        monkeypatch.setattr(Config, "MEDIA_DIR", "")
        assert Config.media_dir() is None
        monkeypatch.setattr(Config, "MEDIA_DIR", str(tmp_path))
        assert Config.media_dir() == tmp_path


class TestErrors:
    @pytest.mark.parametrize("error, kind", [
        (TransportError("x", attempts=3), "transport"),
        (ContentBlockedError("x", ["SAFETY"]), "content_blocked"),
        (MalformedResponseError("x"), "malformed_response"),
        (EmptyResultError("x"), "empty_result"),
        (BusyError(), "busy"),
    ])
    def test_kind(self, error, kind):
        assert error.kind == kind
        assert error.to_dict()["kind"] == kind

    def test_extra_fields(self):
        assert TransportError("x", attempts=3).to_dict()["attempts"] == 3
        assert ContentBlockedError("x", ["SAFETY"]).to_dict()["categories"] == ["SAFETY"]


class TestSceneImageHandle:
    def test_replace_and_release(self, tmp_path):
        handle = SceneImageHandle(tmp_path)
        first = handle.replace(b"one", "image/png")
        assert first.read_bytes() == b"one"
        assert first.suffix == ".png"

        second = handle.replace(b"two", "image/jpeg")
        assert not first.exists()
        assert second.read_bytes() == b"two"
        assert handle.mime_type == "image/jpeg"

        handle.release()
        assert not second.exists()
        assert handle.path is None

    def test_release_tolerates_missing_file(self, tmp_path):
        handle = SceneImageHandle(tmp_path)
        path = handle.replace(b"data")
        path.unlink()
        handle.release()
        assert handle.path is None

    def test_failed_write_keeps_current_file(self, tmp_path):
        handle = SceneImageHandle(tmp_path / "media")
        current = handle.replace(b"current")
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")
        handle.directory = blocker / "media"

        with pytest.raises(OSError):
            handle.replace(b"next")

        assert handle.path == current
        assert current.read_bytes() == b"current"
        assert handle.mime_type == "image/png"

    def test_context_manager(self, tmp_path):
        with SceneImageHandle(tmp_path / "nested") as handle:
            path = handle.replace(b"data")
            assert path.parent == tmp_path / "nested"
        assert not path.exists()


class TestFromConfig:
    def test_wires_shared_transport(self, monkeypatch, tmp_path):
        reset_theme_book()
        monkeypatch.setattr(config, "THEMES_FILE", "")
        monkeypatch.setattr(Config, "MEDIA_DIR", str(tmp_path))
        monkeypatch.setattr(Config, "MAX_RETRIES", 4)
        monkeypatch.setattr(Config, "VISION_MAX_DIMENSION", 512)

        orch = Orchestrator.from_config(client=MagicMock())
        try:
            transport = orch.image_generator.transport
            assert isinstance(transport, RetryingTransport)
            assert transport.max_retries == 4
            assert orch.choice_generator.transport is transport
            assert orch.vision_grounder.transport is transport
            assert orch.image_generator.model == Config.IMAGE_MODEL
            assert orch.choice_generator.model == Config.TEXT_MODEL
            assert orch.vision_grounder.model == Config.VISION_MODEL
            assert orch.vision_grounder.max_dimension == 512
            assert orch.image_handle.directory == tmp_path
        finally:
            orch.close()
            reset_theme_book()


class TestLogging:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        yield root
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    def test_quiets_third_party(self, restore_root_logger):
        assert setup_logging("DEBUG") == "DEBUG"
        assert restore_root_logger.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("google_genai").level == logging.WARNING

    def test_quiet_loggers_follow_stricter_level(self):
        setup_logging("ERROR")
        assert logging.getLogger("httpx").level == logging.ERROR

    def test_debug_format_has_timestamps(self, restore_root_logger):
        setup_logging("DEBUG")
        assert restore_root_logger.handlers[0].formatter._fmt == DEBUG_FORMAT
        setup_logging("INFO")
        assert restore_root_logger.handlers[0].formatter._fmt == BRIEF_FORMAT

    def test_level_from_config(self, monkeypatch):
        monkeypatch.setattr(Config, "DEBUG", False)
        monkeypatch.setattr(Config, "LOG_LEVEL", "warning")
        assert resolve_level() == logging.WARNING
        monkeypatch.setattr(Config, "DEBUG", True)
        assert resolve_level() == logging.DEBUG

    def test_unknown_level_is_info(self):
        assert resolve_level("LOUD") == logging.INFO
