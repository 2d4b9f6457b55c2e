from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys

import requests
import schedule
from flask import Flask
from flask_cors import CORS

from newsflow.api.routes import api
from newsflow.config.logging import setup_logging
from newsflow.config.settings import Settings, load_settings
from newsflow.fetchers.rss_fetcher import RSSFetcher
from newsflow.fetchers.scraper import ContentScraper
from newsflow.pipeline import ArticleStore, NewsPipeline, PacingPolicy
from newsflow.processors.fact_checker import FactChecker
from newsflow.processors.llm_client import ChatClient
from newsflow.processors.summarizer import SummaryGenerator
from newsflow.processors.verifier import VerificationClient
from newsflow.storage.database import Database
from newsflow.storage.supabase_store import SupabaseStore

logger = logging.getLogger(__name__)

CORS_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def create_flask_app(pipeline: NewsPipeline, fact_checker: FactChecker) -> Flask:
    app = Flask(__name__)
    CORS(
        app,
        resources={r"/*": {"origins": "*"}},
        allow_headers=CORS_HEADERS,
        send_wildcard=True,
    )

    app.config["PIPELINE"] = pipeline
    app.config["FACT_CHECKER"] = fact_checker

    app.register_blueprint(api)
    return app


def build_store(settings: Settings, session: requests.Session | None = None) -> ArticleStore:
    if settings.store_backend == "supabase":
        return SupabaseStore(
            settings.supabase_url,
            settings.supabase_service_key,
            session=session,
            timeout=settings.timeout("store"),
        )
    return Database(settings.database_path)


def build_chat_client(settings: Settings) -> ChatClient:
    return ChatClient(
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        timeout=settings.timeout("llm"),
    )


def local_verify_url(host: str, port: int) -> str:
    if host in ("0.0.0.0", "::", ""):
        host = "127.0.0.1"
    if ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{port}/verify-summary"


def build_pipeline(
    settings: Settings,
    store: ArticleStore,
    session: requests.Session | None = None,
) -> NewsPipeline:
    session = session or requests.Session()
    summarizer = SummaryGenerator(
        build_chat_client(settings),
        max_attempts=settings.summary_max_attempts,
        max_prompt_chars=settings.max_prompt_chars,
        max_tokens=settings.llm_max_tokens,
        language=settings.summary_language,
    )
    return NewsPipeline(
        fetcher=RSSFetcher(
            session=session,
            items_per_feed=settings.items_per_feed,
            timeout=settings.timeout("feed"),
        ),
        sources=settings.sources,
        store=store,
        scraper=ContentScraper(
            settings.firecrawl_api_key,
            endpoint=settings.scraper_url,
            session=session,
            min_length=settings.min_content_length,
            timeout=settings.timeout("scrape"),
        ),
        summarizer=summarizer,
        verifier=VerificationClient(
            settings.verify_service_url,
            api_key=settings.verify_service_key,
            session=session,
            timeout=settings.timeout("verify"),
        ),
        pacing=PacingPolicy(**settings.pacing),
        batch_size=settings.batch_size,
        verification_max_attempts=settings.verification_max_attempts,
        max_stored_content=settings.max_stored_content,
        fetch_workers=settings.fetch_workers,
    )


def run_once(pipeline: NewsPipeline) -> dict:
    result = pipeline.run()
    payload = result.to_json()
    logger.info("Run result: %s", payload)
    return payload


async def run_scheduler(settings: Settings, pipeline: NewsPipeline) -> None:
    schedule.every(settings.schedule_interval_minutes).minutes.do(run_once, pipeline)

    logger.info(
        "Scheduler started: pipeline every %d min", settings.schedule_interval_minutes
    )

    loop = asyncio.get_running_loop()
    while True:
        try:
            await loop.run_in_executor(None, schedule.run_pending)
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            break
        except Exception as exc:
            logger.error("Scheduler error: %s", exc)
            await asyncio.sleep(60)


async def run_flask(app: Flask, host: str, port: int) -> None:
    from socketserver import ThreadingMixIn
    from wsgiref.simple_server import WSGIServer, make_server

    # /process-news calls back into /verify-summary on the same server.
    class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
        daemon_threads = True

    server = make_server(host, port, app, server_class=ThreadingWSGIServer)
    logger.info("Flask server starting on http://%s:%d", host, port)
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, server.serve_forever)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="newsflow")
    parser.add_argument("--once", action="store_true", help="run one batch and exit")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5001)
    return parser.parse_args(argv)


async def serve(
    settings: Settings,
    store: ArticleStore,
    pipeline: NewsPipeline,
    args: argparse.Namespace,
) -> None:
    fact_checker = FactChecker(build_chat_client(settings))
    app = create_flask_app(pipeline, fact_checker)

    def _shutdown(sig: int, _frame: object) -> None:
        logger.info("Received signal %s, shutting down...", sig)
        store.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    await asyncio.gather(
        run_flask(app, args.host, args.port),
        run_scheduler(settings, pipeline),
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_file)
    logger.info("Starting newsflow...")

    if not settings.verify_service_url:
        settings.verify_service_url = local_verify_url(args.host, args.port)
    logger.info("Verification service: %s", settings.verify_service_url)

    store = build_store(settings)
    pipeline = build_pipeline(settings, store)

    try:
        if args.once:
            payload = run_once(pipeline)
            print(json.dumps(payload, ensure_ascii=False, indent=2))
            return 0 if payload["success"] else 1
        asyncio.run(serve(settings, store, pipeline, args))
        return 0
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
