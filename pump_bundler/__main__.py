# pump_bundler/__main__.py
import asyncio
import sys

from pump_bundler.cli import main


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
