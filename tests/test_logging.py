"""Tests for lsp_proxy.logging."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

import lsp_proxy.logging as proxy_logging
from lsp_proxy.logging import TRACE, VERBOSE, get_logger, setup_logging, verbosity_to_level


@pytest.fixture
def fresh_logging() -> Iterator[logging.Logger]:
    """Reset the module state so setup_logging runs again."""
    logger = proxy_logging.logger
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    saved_initialized = proxy_logging._initialized
    proxy_logging._initialized = False
    yield logger
    for handler in logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)
    proxy_logging._initialized = saved_initialized


class TestVerbosity:
    @pytest.mark.parametrize(
        "verbose,level",
        [
            (-1, logging.ERROR),
            (0, logging.ERROR),
            (1, logging.WARNING),
            (2, logging.INFO),
            (3, VERBOSE),
            (4, TRACE),
            (9, TRACE),
        ],
    )
    def test_levels(self, verbose: int, level: int) -> None:
        assert verbosity_to_level(verbose) == level


class TestSetupLogging:
    def test_writes_to_file(self, fresh_logging: logging.Logger, tmp_path: Path) -> None:
        log_file = tmp_path / "proxy.log"

        setup_logging(verbose=2, log_file=str(log_file))
        get_logger("router").info("routed %d frames", 3)
        for handler in fresh_logging.handlers:
            handler.flush()

        text = log_file.read_text()
        assert "info [lsp_proxy.router]: routed 3 frames" in text

    def test_env_var_fallback(
        self,
        fresh_logging: logging.Logger,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        log_file = tmp_path / "env.log"
        monkeypatch.setenv(proxy_logging.LOG_ENV_VAR, str(log_file))

        setup_logging(verbose=1)
        get_logger().warning("hello")
        get_logger().info("hidden")
        for handler in fresh_logging.handlers:
            handler.flush()

        text = log_file.read_text()
        assert "hello" in text
        assert "hidden" not in text

    def test_second_call_is_noop(self, fresh_logging: logging.Logger, tmp_path: Path) -> None:
        setup_logging(verbose=2, log_file=str(tmp_path / "a.log"))
        count = len(fresh_logging.handlers)

        setup_logging(verbose=4, log_file=str(tmp_path / "b.log"))

        assert len(fresh_logging.handlers) == count
        assert not (tmp_path / "b.log").exists()


class TestGetLogger:
    def test_child_names(self) -> None:
        assert get_logger("bridge").name == "lsp_proxy.bridge"
        assert get_logger().name == "lsp_proxy"
