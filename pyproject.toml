[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "coinbot"
version = "0.1.0"
description = "Ticker ingestion, candles, technical indicators, back-testing and a signal-driven trader for the bitFlyer exchange"
requires-python = ">=3.10"
keywords = [
    "bitcoin",
    "trading",
    "bitflyer",
    "backtest",
    "technical-analysis",
    "candlestick",
    "ema",
    "macd",
    "rsi",
    "ichimoku",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "requests",
    "websocket-client",
    "flask",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
coinbot = "coinbot.streaming:main"
coinbot-greetings = "coinbot.greetings:main"

[tool.hatch.build.targets.wheel]
packages = ["coinbot"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
ignore_missing_imports = true
