"""Trading configuration read from an INI file."""

from __future__ import annotations

import configparser
from dataclasses import dataclass, field
from datetime import timedelta
from os import PathLike

DURATIONS: dict[str, timedelta] = {
    "1s": timedelta(seconds=1),
    "1m": timedelta(minutes=1),
    "1h": timedelta(hours=1),
}

_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True", "YES", "yes", "Yes", "y", "ON", "on", "On"}

_EXCHANGE_SECTION = "bitflyer"
_EXCHANGE_FIELDS = ("api_key", "api_secret")


@dataclass
class Config:
    """Settings for the exchange client, storage, web server and trading."""

    api_key: str = ""
    api_secret: str = ""
    log_file: str = ""
    product_code: str = ""
    trade_duration: timedelta = timedelta(0)
    durations: dict[str, timedelta] = field(default_factory=lambda: dict(DURATIONS))
    db_name: str = ""
    sql_driver: str = ""
    port: int = 0
    back_test: bool = False
    use_percent: float = 0.0
    data_limit: int = 0
    stop_limit_percent: float = 0.0
    num_ranking: int = 0


def _must_int(text: str) -> int:
    try:
        return int(text.strip(), 0)
    except ValueError:
        return 0


def _must_float(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError:
        return 0.0


def _must_bool(text: str) -> bool:
    return text.strip() in _TRUE_WORDS


def load_config(path: str | PathLike[str]) -> Config:
    """Read ``path`` and build a :class:`Config`.

    Missing keys give empty strings; unparsable numbers and booleans give
    zero and false. Raises FileNotFoundError when the file cannot be read.
    """
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # keep key case as written
    if not parser.read(path, encoding="utf-8"):
        raise FileNotFoundError(f"failed to read configuration file: {path}")

    def get(section: str, key: str) -> str:
        return parser.get(section, key, fallback="")

    exchange = {name: get(_EXCHANGE_SECTION, name) for name in _EXCHANGE_FIELDS}
    durations = dict(DURATIONS)
    return Config(
        **exchange,
        log_file=get("gotrading", "log_file"),
        product_code=get("gotrading", "product_code"),
        durations=durations,
        trade_duration=durations.get(get("gotrading", "trade_duration"), timedelta(0)),
        db_name=get("db", "name"),
        sql_driver=get("db", "driver"),
        port=_must_int(get("web", "port")),
        back_test=_must_bool(get("gotrading", "back_test")),
        use_percent=_must_float(get("gotrading", "use_percent")),
        data_limit=_must_int(get("gotrading", "data_limit")),
        stop_limit_percent=_must_float(get("gotrading", "stop_limit_percent")),
        num_ranking=_must_int(get("gotrading", "num_ranking")),
    )