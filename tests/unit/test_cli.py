"""
Unit tests for the command line entry point.
"""

import logging
import logging.handlers
import os
from unittest.mock import Mock, patch

import pytest


@pytest.fixture
def no_logging_setup():
    with patch("ldap_smoke.cli.main.setup_logging", return_value=logging.getLogger("ldap_smoke.cli.main")):
        yield


def _locator_returning(ctx):
    locator = Mock()
    locator.resolve_or_unavailable.return_value = ctx
    return Mock(return_value=locator)


class TestMain:
    """Test command dispatch and exit codes."""

    @pytest.mark.parametrize("argv", [[], ["deploy"], ["test", "extra"], ["--bogus", "test"]])
    def test_usage_exits_1(self, argv, clean_env, no_logging_setup, capsys):
        """Test missing or unknown commands print usage and exit 1."""
        from ldap_smoke.cli.main import main

        with patch("ldap_smoke.cli.main.RuntimeLocator") as locator:
            assert main(argv) == 1

        locator.assert_not_called()
        assert "Available Commands" in capsys.readouterr().out

    def test_test_exits_0_with_failures(self, clean_env, no_logging_setup, unavailable_ctx, capsys):
        """Test the default test run exits 0 even when nothing could be checked."""
        from ldap_smoke.cli.main import main

        with patch("ldap_smoke.cli.main.RuntimeLocator", _locator_returning(unavailable_ctx)):
            assert main(["test"]) == 0

        out = capsys.readouterr().out
        assert "SKIPPED" in out
        assert "All LDAP functionality tests completed" in out

    def test_strict_exits_1_on_failure(self, clean_env, no_logging_setup, docker_ctx, capsys):
        """Test --strict turns failed checks into exit status 1."""
        from ldap_smoke.cli.main import main
        from ldap_smoke.client import SearchResponse

        failing_client = Mock()
        failing_client.search.return_value = SearchResponse(exit_code=49, stdout="", stderr="Invalid credentials")
        failing_client.run.return_value = Mock(success=False, exit_code=1, stdout="", elapsed_ms=0)

        with patch("ldap_smoke.cli.main.RuntimeLocator", _locator_returning(docker_ctx)), patch(
            "ldap_smoke.cli.main.LdapSearchClient", return_value=failing_client
        ):
            assert main(["test", "--strict"]) == 1
            assert main(["test"]) == 0

    def test_strict_exits_0_when_all_skipped(self, clean_env, no_logging_setup, unavailable_ctx):
        """Test skipped probes alone do not fail a strict run."""
        from ldap_smoke.cli.main import main

        with patch("ldap_smoke.cli.main.RuntimeLocator", _locator_returning(unavailable_ctx)):
            assert main(["test", "--strict"]) == 0

    def test_search_returns_client_exit_code(self, clean_env, no_logging_setup, docker_ctx):
        """Test search returns what the interactive search returned."""
        from ldap_smoke.cli.main import main

        with patch("ldap_smoke.cli.main.RuntimeLocator", _locator_returning(docker_ctx)), patch(
            "ldap_smoke.cli.main.run_interactive_search", return_value=32
        ) as interactive:
            assert main(["search"]) == 32

        assert interactive.call_args.args[0] is docker_ctx

    def test_search_without_runtime(self, clean_env, no_logging_setup, unavailable_ctx):
        """Test search exits 1 when no runtime is running the service."""
        from ldap_smoke.cli.main import main

        with patch("ldap_smoke.cli.main.RuntimeLocator", _locator_returning(unavailable_ctx)):
            assert main(["search"]) == 1

    def test_runtime_timeout_from_config(self, no_logging_setup, unavailable_ctx):
        """Test runtime detection uses the configured timeout."""
        from ldap_smoke.cli.main import main

        locator_class = _locator_returning(unavailable_ctx)
        with patch.dict(os.environ, {"LDAP_SMOKE_RUNTIME_TIMEOUT": "4"}, clear=True), patch(
            "ldap_smoke.cli.main.RuntimeLocator", locator_class
        ):
            main(["test"])

        locator_class.assert_called_once_with(timeout_seconds=4)

    def test_invalid_fixtures_exit_1(self, tmp_path, no_logging_setup, unavailable_ctx, capsys):
        """Test an invalid fixtures file is reported and exits 1."""
        from ldap_smoke.cli.main import main

        fixtures = tmp_path / "fixtures.yaml"
        fixtures.write_text("entries:\n  - username: john.doe\n")

        with patch.dict(os.environ, {"LDAP_SMOKE_FIXTURES": str(fixtures)}, clear=True), patch(
            "ldap_smoke.cli.main.RuntimeLocator", _locator_returning(unavailable_ctx)
        ):
            assert main(["test"]) == 1

        assert "common_name" in capsys.readouterr().out

    def test_invalid_configuration_exit_1(self, no_logging_setup, capsys):
        """Test invalid settings are reported before anything runs."""
        from ldap_smoke.cli.main import main

        with patch.dict(os.environ, {"LDAP_SMOKE_RUNTIME_TIMEOUT": "-5"}, clear=True), patch(
            "ldap_smoke.cli.main.RuntimeLocator"
        ) as locator:
            assert main(["test"]) == 1

        locator.assert_not_called()
        assert "RUNTIME_TIMEOUT" in capsys.readouterr().out

    def test_invalid_boolean_exit_1(self, capsys):
        """Test an unparseable boolean setting exits 1."""
        from ldap_smoke.cli.main import main

        with patch.dict(os.environ, {"LDAP_SMOKE_COLOR": "sometimes"}, clear=True):
            assert main(["test"]) == 1

        assert "Invalid configuration" in capsys.readouterr().err

    def test_no_color_flag(self, clean_env, no_logging_setup, unavailable_ctx):
        """Test --no-color turns color off even for a terminal."""
        from ldap_smoke.cli.main import main

        with patch("ldap_smoke.cli.main.RuntimeLocator", _locator_returning(unavailable_ctx)), patch(
            "ldap_smoke.cli.main.Presenter"
        ) as presenter_class:
            presenter_class.return_value.present.return_value = Mock(has_failures=False)
            main(["test", "--no-color"])

        presenter_class.assert_called_once_with(color=False)

    def test_keyboard_interrupt(self, clean_env, no_logging_setup):
        """Test Ctrl-C exits with the shell's interrupt status."""
        from ldap_smoke.cli.main import EXIT_INTERRUPTED, main

        locator_class = Mock()
        locator_class.return_value.resolve_or_unavailable.side_effect = KeyboardInterrupt

        with patch("ldap_smoke.cli.main.RuntimeLocator", locator_class):
            assert main(["test"]) == EXIT_INTERRUPTED


class TestSetupLogging:
    """Test logging configuration."""

    def test_file_handler_created(self, tmp_path):
        """Test a rotating log file is created under the log directory."""
        from ldap_smoke.cli.main import setup_logging
        from ldap_smoke.config import Config

        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            with patch.dict(
                os.environ,
                {"LDAP_SMOKE_LOG_DIR": str(tmp_path / "logs"), "LDAP_SMOKE_FILE_LOGGING": "true"},
                clear=True,
            ):
                setup_logging(Config())

            handlers = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
            assert len(handlers) == 1
            assert handlers[0].baseFilename == str(tmp_path / "logs" / "ldap-smoke.log")
            for handler in handlers:
                handler.close()
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_console_only_when_disabled(self, tmp_path):
        """Test file logging can be switched off."""
        from ldap_smoke.cli.main import setup_logging
        from ldap_smoke.config import Config

        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            with patch.dict(
                os.environ,
                {"LDAP_SMOKE_LOG_DIR": str(tmp_path / "logs"), "LDAP_SMOKE_FILE_LOGGING": "false"},
                clear=True,
            ):
                setup_logging(Config())

            assert len(root.handlers) == 1
            assert not (tmp_path / "logs").exists()
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_no_log_file_by_default(self, tmp_path, monkeypatch):
        """Test a default run writes no log file into the working directory."""
        from ldap_smoke.cli.main import setup_logging
        from ldap_smoke.config import Config

        monkeypatch.chdir(tmp_path)
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            with patch.dict(os.environ, {}, clear=True):
                setup_logging(Config())

            assert not any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
            assert not (tmp_path / "logs").exists()
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
