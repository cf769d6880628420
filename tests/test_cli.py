"""Tests for the CLI module."""

import logging
import os
import tempfile
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import create_engine, inspect
from typer.testing import CliRunner

from hn_tracker.cli import app, parse_duration, run_poller, setup_logging
from hn_tracker.config import Config, PostgresConfig
from hn_tracker.storage.database import Database


def sqlite_config(url):
    config = Config()
    config.postgres = PostgresConfig(url=url)
    config.monitoring.enable_prometheus = False
    return config


class TestParseDuration:
    """Tests for duration parsing."""

    @pytest.mark.parametrize(
        "text, seconds",
        [
            ("1m", 60.0),
            ("1s", 1.0),
            ("500ms", 0.5),
            ("1h30m", 5400.0),
            ("1.5s", 1.5),
            ("250us", 0.00025),
            ("2.5", 2.5),
            ("0", 0.0),
            (" 10s ", 10.0),
        ],
    )
    def test_valid(self, text, seconds):
        assert parse_duration(text) == pytest.approx(seconds)

    @pytest.mark.parametrize("text", ["", "abc", "1x", "-1s", "-5", "inf", "nan", "1m junk", "m1"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)


class TestCli(unittest.TestCase):
    """Test cases for the CLI interface."""

    def setUp(self):
        """Set up test environment."""
        self.runner = CliRunner()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "hn.db")
        self.config = sqlite_config(f"sqlite:///{self.db_path}")

    def tearDown(self):
        """Clean up test environment."""
        self.temp_dir.cleanup()

    @patch("hn_tracker.cli.setup_logging")
    @patch("hn_tracker.cli.run_poller", new_callable=MagicMock)
    @patch("hn_tracker.cli.Config.from_files")
    def test_poll_hn_defaults(self, mock_from_files, mock_run_poller, mock_setup_logging):
        """Default interval is one minute and default throttle one second."""
        mock_from_files.return_value = self.config
        with patch("hn_tracker.cli.asyncio.run") as mock_run:
            result = self.runner.invoke(app, ["poll-hn"])

        self.assertEqual(result.exit_code, 0, result.output)
        mock_run_poller.assert_called_once_with(self.config, 60.0, 1.0)
        mock_run.assert_called_once_with(mock_run_poller.return_value)
        mock_setup_logging.assert_called_once_with("INFO", "logs/hn_tracker.log")

    @patch("hn_tracker.cli.setup_logging")
    @patch("hn_tracker.cli.run_poller", new_callable=MagicMock)
    @patch("hn_tracker.cli.Config.from_files")
    def test_poll_hn_with_options(self, mock_from_files, mock_run_poller, mock_setup_logging):
        mock_from_files.return_value = self.config
        with patch("hn_tracker.cli.asyncio.run"):
            result = self.runner.invoke(app, ["poll-hn", "--interval", "5m", "--throttle", "250ms"])

        self.assertEqual(result.exit_code, 0, result.output)
        mock_run_poller.assert_called_once_with(self.config, 300.0, 0.25)

    @patch("hn_tracker.cli.run_poller", new_callable=MagicMock)
    def test_poll_hn_bad_duration(self, mock_run_poller):
        result = self.runner.invoke(app, ["poll-hn", "--interval", "soon"])

        self.assertEqual(result.exit_code, 2)
        mock_run_poller.assert_not_called()

    @patch("hn_tracker.cli.setup_logging")
    @patch("hn_tracker.cli.Config.from_files")
    def test_poll_hn_invalid_config(self, mock_from_files, mock_setup_logging):
        self.config.scraper.root_url = ""
        mock_from_files.return_value = self.config
        with patch("hn_tracker.cli.asyncio.run") as mock_run:
            result = self.runner.invoke(app, ["poll-hn"])

        self.assertEqual(result.exit_code, 1)
        mock_run.assert_not_called()

    @patch("hn_tracker.cli.setup_logging")
    @patch("hn_tracker.cli.run_poller", new_callable=MagicMock)
    @patch("hn_tracker.cli.Config.from_files")
    def test_poll_hn_interrupted(self, mock_from_files, mock_run_poller, mock_setup_logging):
        mock_from_files.return_value = self.config
        with patch("hn_tracker.cli.asyncio.run", side_effect=KeyboardInterrupt):
            result = self.runner.invoke(app, ["poll-hn"])

        self.assertEqual(result.exit_code, 0)

    @patch("hn_tracker.cli.setup_logging")
    @patch("hn_tracker.cli.run_poller", new_callable=MagicMock)
    @patch("hn_tracker.cli.Config.from_files")
    def test_poll_hn_crash(self, mock_from_files, mock_run_poller, mock_setup_logging):
        mock_from_files.return_value = self.config
        with patch("hn_tracker.cli.asyncio.run", side_effect=RuntimeError("boom")):
            result = self.runner.invoke(app, ["poll-hn"])

        self.assertEqual(result.exit_code, 1)

    @patch("hn_tracker.cli.Config.from_files")
    def test_db_init(self, mock_from_files):
        mock_from_files.return_value = self.config

        result = self.runner.invoke(app, ["db", "init"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Database schema is ready", result.output)
        engine = create_engine(f"sqlite:///{self.db_path}")
        try:
            tables = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
        self.assertTrue({"snapshots", "articles", "comments", "threads"} <= tables)

    @patch("hn_tracker.cli.Config.from_files")
    def test_db_check(self, mock_from_files):
        mock_from_files.return_value = self.config

        result = self.runner.invoke(app, ["db", "check"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Connected to the database successfully", result.output)

    @patch("hn_tracker.cli.Config.from_files")
    def test_db_check_failure(self, mock_from_files):
        missing = os.path.join(self.temp_dir.name, "no", "such", "dir", "hn.db")
        mock_from_files.return_value = sqlite_config(f"sqlite:///{missing}")

        result = self.runner.invoke(app, ["db", "check"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Connection failed", result.output)


class TestRunPoller:
    """Tests for wiring the collector components together."""

    @pytest.mark.asyncio
    async def test_runs_scheduler_and_cleans_up(self, mocker):
        config = sqlite_config("sqlite://")
        database = Database("sqlite://")
        mocker.patch("hn_tracker.cli.Database.from_config", return_value=database)
        run = mocker.patch("hn_tracker.cli.SnapshotScheduler.run", new_callable=AsyncMock)
        close = mocker.patch("hn_tracker.cli.PageFetcher.close", new_callable=AsyncMock)
        dispose = mocker.spy(database, "dispose")

        await run_poller(config, 60.0, 1.0)

        run.assert_awaited_once()
        close.assert_awaited_once()
        dispose.assert_called_once()

    @pytest.mark.asyncio
    async def test_starts_metrics_server_when_enabled(self, mocker):
        config = sqlite_config("sqlite://")
        config.monitoring.enable_prometheus = True
        config.monitoring.prometheus_port = 9105
        mocker.patch("hn_tracker.cli.Database.from_config", return_value=Database("sqlite://"))
        mocker.patch("hn_tracker.cli.SnapshotScheduler.run", new_callable=AsyncMock)
        exporter_cls = mocker.patch("hn_tracker.cli.PrometheusExporter")

        await run_poller(config, 60.0, 1.0)

        exporter_cls.assert_called_once_with(port=9105)
        exporter_cls.return_value.start_server.assert_called_once()

    @pytest.mark.asyncio
    async def test_exits_when_database_unreachable(self, mocker, tmp_path):
        config = sqlite_config(f"sqlite:///{tmp_path}/missing/dir/hn.db")
        run = mocker.patch("hn_tracker.cli.SnapshotScheduler.run", new_callable=AsyncMock)

        with pytest.raises(SystemExit) as exc_info:
            await run_poller(config, 60.0, 1.0)

        assert exc_info.value.code == 1
        run.assert_not_called()


class TestSetupLogging:
    """Tests for logging configuration."""

    def test_writes_to_rotating_file(self, tmp_path):
        log_file = tmp_path / "logs" / "hn_tracker.log"
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("DEBUG", str(log_file))
            logging.getLogger("hn_tracker.test").info("hello from the tracker")
            for handler in root.handlers:
                handler.flush()

            assert log_file.exists()
            assert "hello from the tracker" in log_file.read_text(encoding="utf8")
            assert logging.getLogger("aiohttp").level == logging.WARNING
        finally:
            for handler in root.handlers[:]:
                if handler not in saved_handlers:
                    root.removeHandler(handler)
                    handler.close()
            for handler in saved_handlers:
                if handler not in root.handlers:
                    root.addHandler(handler)
            root.setLevel(saved_level)
