# coinbot

coinbot reads the real-time ticker of the bitFlyer exchange, folds it into
price candles stored in SQLite for several durations, computes technical
indicators (SMA, EMA, Bollinger bands, Ichimoku cloud, RSI, MACD,
historical volatility) and back-tests simple strategies built on them. The
strategies that did best in back-testing drive a trader that records buy
and sell signals. A small web server serves candles, indicators and signal
events as JSON.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Configuration

`coinbot.config.load_config(path)` reads an INI file into a `Config`
dataclass. Missing keys give empty strings; numbers and booleans that
cannot be parsed give zero and false. A file that cannot be read raises
`FileNotFoundError`.

```ini
[bitflyer]
api_key = placeholder
api_secret = secret

[gotrading]
log_file = gotrading.log
product_code = BTC_USD
trade_duration = 1m
back_test = true
use_percent = 0.9
data_limit = 365
stop_limit_percent = 0.9
num_ranking = 2

[db]
name = stockdata.sql
driver = sqlite3

[web]
port = 8080
```

`trade_duration` is one of `1s`, `1m` or `1h`; candles are kept for all
three. The database is always SQLite; `driver` is read into the
configuration but not otherwise used.

## Running the trader

```
coinbot
coinbot --config path/to/config.ini
```

Without `--config`, `config.ini` in the working directory is read. The
command then:

- sends log records to standard output and to the configured log file
  (`coinbot.logsetup.configure_logging`);
- opens the database and creates the signal and candle tables
  (`coinbot.database.connect`);
- creates an `AI` (`coinbot.ai`), which optimises the strategies over the
  latest `data_limit` candles;
- starts a background thread that reads tickers from the exchange's
  websocket stream and folds each one into its candles
  (`coinbot.streaming.stream_ingestion_data`, `ingest_ticker`); whenever a
  new candle of the trade duration is started, `AI.trade()` runs;
- serves the web API on the configured port
  (`coinbot.webserver.create_app`).

### Web API

- `/api/candle/?product_code=BTC_USD&duration=1m&limit=100` returns
  candles as JSON. `duration` defaults to `1m`; `limit` defaults to, and is
  capped at, 1000. A missing `product_code` gives a 400 JSON error; any
  other path under `/api/candle/` gives a 404 JSON error.
- Add `sma`, `ema`, `bbands`, `ichimoku`, `rsi`, `macd` or `hv` to include
  indicators, with the periods `smaPeriod1`–`smaPeriod3` (7, 14, 50),
  `emaPeriod1`–`emaPeriod3` (7, 14, 50), `bbandsN` and `bbandsK` (20, 2),
  `rsiPeriod` (14), `macdPeriod1`–`macdPeriod3` (12, 26, 9) and
  `hvPeriod1`–`hvPeriod3` (21, 63, 252).
- Add `events` to include signal events since the first candle: from the
  trader's memory in back-test mode, otherwise from the database.
- `/chart/` renders the template `app/views/chart.html`, looked up under
  the working directory.

## Using the library

Indicators in `coinbot.algo` work on plain lists of floats and return lists
of the same length, with zeros before the window fills (`hv` is one
shorter):

```python
from coinbot.algo import ema, rsi, macd, ichimoku_cloud

closes = [float(p) for p in range(100, 160)]
fast = ema(closes, 7)
strength = rsi(closes, 14)
line, signal, hist = macd(closes, 12, 26, 9)
tenkan, kijun, senkou_a, senkou_b, chikou = ichimoku_cloud(closes)
```

Stored candles load as a `DataFrameCandle` (`coinbot.dataframe`), which
can carry indicators and be back-tested with `coinbot.backtest`:

```python
from datetime import timedelta

from coinbot.database import connect
from coinbot.dataframe import get_all_candles
from coinbot.backtest import optimize_ema, optimize_params

conn = connect("stockdata.sql", "BTC_USD", [timedelta(minutes=1)])
df = get_all_candles(conn, "BTC_USD", timedelta(minutes=1), 365)
df.add_sma(7)
df.add_macd(12, 26, 9)
payload = df.to_dict()

performance, period1, period2 = optimize_ema(df)
params = optimize_params(df, 2)
```

`SignalEvents` (`coinbot.events`) keeps an alternating BUY/SELL history,
refuses trades out of order or out of time, reports `profit()` and can
store events in the database. `Candle` and `create_candle_with_duration`
(`coinbot.candle`) keep candles up to date from tickers.

`APIClient` (`coinbot.bitflyer`) signs requests with the API key and
secret and offers `get_balance()`, `get_ticker()`, `send_order()`,
`list_orders()` and `stream_ticker()`, a generator of `Ticker` objects from
the websocket stream.

## What it does not do

- The trader places no orders on the exchange. `AI.buy` and `AI.sell`
  record signals only when `back_test` is true; otherwise they report the
  order as not completed and nothing is traded. `use_percent` is read but
  not acted on.
- No chart page is shipped: `/chart/` needs an `app/views/chart.html`
  template provided in the working directory.

## Extras

- `coinbot.contest` holds short programming-contest solutions:
  `count_matching_lengths`, `min_max_lunch_group`, `ends_with_san`,
  `first_difference`, `keyboard_distance`, `max_pair_sum` and
  `tour_distance`.
- `coinbot.mathutil.average` gives an integer mean truncated toward zero.
- `coinbot.greetings` has `hello` and `hellos`, and the command

  ```
  coinbot-greetings Alice Bob
  ```

  prints a random greeting for each name given, or for a default list
  when none are.