"""Feeding the real-time ticker into candles, and the program entry point."""

from __future__ import annotations

import argparse
import logging
import sqlite3
import threading
from collections.abc import Iterable, Mapping
from datetime import timedelta
from typing import Any

from coinbot.ai import AI
from coinbot.bitflyer import APIClient, Ticker
from coinbot.candle import create_candle_with_duration
from coinbot.config import load_config
from coinbot.database import connect
from coinbot.logsetup import configure_logging
from coinbot.webserver import create_app

logger = logging.getLogger(__name__)


def ingest_ticker(
    conn: sqlite3.Connection,
    ai: Any,
    ticker: Ticker,
    durations: Mapping[str, timedelta] | Iterable[timedelta],
    trade_duration: timedelta,
) -> list[timedelta]:
    """Fold ``ticker`` into each duration's candle; trade when a trading candle starts.

    Returns the durations for which a new candle was started.
    """
    values = durations.values() if isinstance(durations, Mapping) else durations
    created = []
    for duration in values:
        if create_candle_with_duration(conn, ticker, ticker.product_code, duration):
            created.append(duration)
            if duration == trade_duration and ai is not None:
                ai.trade()
    return created


def stream_ingestion_data(
    config: Any, conn: sqlite3.Connection, ai: Any, api: Any
) -> threading.Thread:
    """Start a background thread ingesting the ticker stream; returns the thread."""

    def run() -> None:
        try:
            for ticker in api.stream_ticker(config.product_code):
                logger.info("action=StreamIngestionData, %s", ticker)
                ingest_ticker(conn, ai, ticker, config.durations, config.trade_duration)
        except Exception:
            logger.exception("action=StreamIngestionData stream stopped")

    thread = threading.Thread(target=run, name="ticker-ingestion", daemon=True)
    thread.start()
    return thread


def main(argv: list[str] | None = None) -> int:
    """Run the trading bot: ingest the ticker stream and serve the web API."""
    parser = argparse.ArgumentParser(description="Trade on a real-time ticker.")
    parser.add_argument("--config", default="config.ini", help="configuration file")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        logger.error("Failed to read file: %s", exc)
        return 1

    configure_logging(config.log_file)
    conn = connect(config.db_name, config.product_code, config.durations)
    api = APIClient(config.api_key, config.api_secret)
    ai = AI(
        conn,
        config.product_code,
        config.trade_duration,
        config.data_limit,
        config.use_percent,
        config.stop_limit_percent,
        config.back_test,
        config.num_ranking,
        api,
    )
    stream_ingestion_data(config, conn, ai, api)
    app = create_app(config, conn, ai)
    try:
        app.run(host="0.0.0.0", port=config.port)
    except OSError as exc:
        logger.error("%s", exc)
        return 1
    return 0