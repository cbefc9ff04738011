"""HTTP API serving candles with indicators, plus the chart page."""

from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from flask import Flask, Response, render_template, request

from coinbot.dataframe import get_all_candles

logger = logging.getLogger(__name__)

_MAX_LIMIT = 1000
_DEFAULT_DURATION = "1m"
_INTEGER = re.compile(r"[+-]?\d+")


def api_error(message: str, code: int) -> Response:
    """A JSON error response carrying ``message`` and ``code``."""
    body = json.dumps({"error": message, "code": code}, separators=(",", ":"))
    return Response(body, status=code, mimetype="application/json")


def _atoi(text: str) -> int | None:
    if not _INTEGER.fullmatch(text):
        return None
    return int(text)


def _int_param(args: Mapping[str, str], name: str, default: int) -> int:
    value = _atoi(args.get(name, ""))
    if value is None or value < 0:
        return default
    return value


def _limit_param(args: Mapping[str, str]) -> int:
    value = _atoi(args.get("limit", ""))
    if value is None or value < 0 or value > _MAX_LIMIT:
        return _MAX_LIMIT
    return value


def create_app(config: Any, conn: sqlite3.Connection, ai: Any) -> Flask:
    """Build the web application over ``conn``; ``ai`` supplies back-test signals."""
    app = Flask(__name__, template_folder=os.path.abspath(os.path.join("app", "views")))

    @app.route("/chart/")
    def view_chart() -> Any:
        return render_template("chart.html")

    @app.route("/api/candle/<path:_rest>")
    def api_candle_unknown(_rest: str) -> Response:
        return api_error("Not found", 404)

    @app.route("/api/candle/")
    def api_candle() -> Response:
        args = request.args
        product_code = args.get("product_code", "")
        if not product_code:
            return api_error("No product_code param", 400)
        limit = _limit_param(args)
        duration_name = args.get("duration", "") or _DEFAULT_DURATION
        duration = config.durations.get(duration_name, timedelta(0))

        try:
            df = get_all_candles(conn, product_code, duration, limit)
        except sqlite3.Error as exc:
            return Response(str(exc), status=500, mimetype="text/plain")

        try:
            if args.get("sma"):
                for name, default in (("smaPeriod1", 7), ("smaPeriod2", 14), ("smaPeriod3", 50)):
                    df.add_sma(_int_param(args, name, default))
            if args.get("ema"):
                for name, default in (("emaPeriod1", 7), ("emaPeriod2", 14), ("emaPeriod3", 50)):
                    df.add_ema(_int_param(args, name, default))
            if args.get("bbands"):
                n = _int_param(args, "bbandsN", 20)
                k = _int_param(args, "bbandsK", 2)
                df.add_bbands(n, float(k))
            if args.get("ichimoku"):
                df.add_ichimoku()
            if args.get("rsi"):
                df.add_rsi(_int_param(args, "rsiPeriod", 14))
            if args.get("macd"):
                df.add_macd(
                    _int_param(args, "macdPeriod1", 12),
                    _int_param(args, "macdPeriod2", 26),
                    _int_param(args, "macdPeriod3", 9),
                )
            if args.get("hv"):
                for name, default in (("hvPeriod1", 21), ("hvPeriod2", 63), ("hvPeriod3", 252)):
                    df.add_hv(_int_param(args, name, default))
        except (ValueError, ZeroDivisionError) as exc:
            return api_error(str(exc), 400)

        if args.get("events") and df.candles:
            first_time = df.candles[0].time
            if config.back_test:
                if ai is not None:
                    df.events = ai.signal_events.collect_after(first_time)
            else:
                df.add_events(conn, first_time)

        try:
            body = json.dumps(df.to_dict(), separators=(",", ":"), allow_nan=False)
        except ValueError as exc:
            return Response(str(exc), status=500, mimetype="text/plain")
        return Response(body, mimetype="application/json")

    return app