"""
Server entrypoint for docuchat.

Interface responsibilities:
- Load `.env` before anything reads the environment.
- Configure process-wide logging from `LOG_LEVEL`.
- Serve `docuchat.api.http_api.create_app` with uvicorn.

Options default to `HOST`, `PORT`, and `LOG_LEVEL` from the environment and can
be overridden on the command line.
"""

from dotenv import load_dotenv

load_dotenv()

import os
import argparse
import logging

import uvicorn


def _default_port() -> int:
    try:
        return int(os.getenv("PORT", "3000"))
    except ValueError:
        return 3000


def configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="docuchat HTTP server")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=_default_port())
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    logging.getLogger(__name__).info("Server running at http://%s:%s", args.host, args.port)

    uvicorn.run(
        "docuchat.api.http_api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
