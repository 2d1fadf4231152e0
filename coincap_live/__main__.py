"""Entry point for running the CoinCap live proxy."""

from __future__ import annotations

import asyncio

from dotenv import load_dotenv

from coincap_live.config import Config
from coincap_live.log import configure_logging
from coincap_live.server import serve


def main() -> None:
    load_dotenv()
    config = Config.from_env()
    configure_logging(config.log_level, json_logs=config.log_json)
    asyncio.run(serve(config))


if __name__ == '__main__':
    main()
