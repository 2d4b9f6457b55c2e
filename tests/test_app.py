"""Tests for the wiring helpers in newsflow.app."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

from newsflow.app import (
    build_chat_client,
    build_pipeline,
    build_store,
    local_verify_url,
    main,
    parse_args,
    run_once,
)
from newsflow.config.settings import Settings
from newsflow.models.types import RunResult, SourceConfig
from newsflow.pipeline import NewsPipeline
from newsflow.storage.database import Database
from newsflow.storage.supabase_store import SupabaseStore


def _settings(**overrides) -> Settings:
    values = dict(
        sources=[SourceConfig("https://a.pl/rss", "A", "Sport")],
        pacing={"base_delay": 0.5, "per_item_delay": 0.2, "verification_delay": 0.3,
                "correction_delay": 0.5},
        timeouts={"feed": 15, "scrape": 60, "llm": 60, "verify": 90, "store": 30},
    )
    values.update(overrides)
    return Settings(**values)


class TestBuildStore:
    def test_sqlite_by_default(self, tmp_path):
        store = build_store(_settings(database_path=str(tmp_path / "a.db")))
        try:
            assert isinstance(store, Database)
        finally:
            store.close()

    def test_supabase(self):
        store = build_store(
            _settings(store_backend="supabase", supabase_url="https://p.supabase.co",
                      supabase_service_key="key"),
            session=MagicMock(),
        )
        assert isinstance(store, SupabaseStore)


class TestBuildPipeline:
    def test_wires_a_pipeline(self, temp_database):
        pipeline = build_pipeline(_settings(), temp_database, session=MagicMock())
        assert isinstance(pipeline, NewsPipeline)


class TestRunOnce:
    def test_returns_json_payload(self):
        pipeline = MagicMock()
        pipeline.run.return_value = RunResult(success=True, processed=2, timestamp="t")
        payload = run_once(pipeline)
        assert payload["processed"] == 2
        assert payload["success"] is True


class TestParseArgs:
    def test_defaults(self):
        args = parse_args([])
        assert args.once is False
        assert args.port == 5001

    def test_once(self):
        assert parse_args(["--once"]).once is True


class TestBuildChatClient:
    def test_uses_gateway_settings(self):
        settings = _settings(llm_api_key="key", llm_base_url="https://gateway.test/v1")
        with patch("newsflow.processors.llm_client.OpenAI") as sdk_class:
            client = build_chat_client(settings)

        assert client.configured
        _, kwargs = sdk_class.call_args
        assert kwargs["base_url"] == "https://gateway.test/v1"
        assert kwargs["timeout"] == 60


class TestLocalVerifyUrl:
    def test_uses_host_and_port(self):
        assert local_verify_url("127.0.0.1", 8080) == "http://127.0.0.1:8080/verify-summary"

    def test_wildcard_bind_calls_loopback(self):
        assert local_verify_url("0.0.0.0", 5002) == "http://127.0.0.1:5002/verify-summary"

    def test_ipv6_host(self):
        assert local_verify_url("::1", 5001) == "http://[::1]:5001/verify-summary"


class TestMain:
    def _run(self, settings, argv):
        pipeline = MagicMock()
        with patch("newsflow.app.load_settings", return_value=settings), \
                patch("newsflow.app.setup_logging") as setup_logging, \
                patch("newsflow.app.build_store", return_value=MagicMock()), \
                patch("newsflow.app.build_pipeline", return_value=pipeline), \
                patch("newsflow.app.run_once", return_value={"success": True}):
            code = main(argv)
        return code, setup_logging

    def test_verify_url_follows_port(self):
        settings = _settings()
        code, _ = self._run(settings, ["--once", "--port", "8080"])

        assert code == 0
        assert settings.verify_service_url == "http://127.0.0.1:8080/verify-summary"

    def test_explicit_verify_url_is_kept(self):
        settings = _settings(verify_service_url="https://verify.example/verify-summary")
        self._run(settings, ["--once", "--port", "8080"])
        assert settings.verify_service_url == "https://verify.example/verify-summary"

    def test_logging_uses_settings(self):
        settings = _settings(log_level="DEBUG", log_file="custom.log")
        _, setup_logging = self._run(settings, ["--once"])
        setup_logging.assert_called_once_with("DEBUG", "custom.log")
