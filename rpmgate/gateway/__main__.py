"""
CLI entrypoint for the rpmgate HTTP gateway.

Usage:
    python -m rpmgate.gateway --root /srv/rpm
    python -m rpmgate.gateway --config /etc/rpmgate.yaml --port 9000
"""
import argparse
import logging
import sys

import uvicorn

from rpmgate.gateway.api import create_app
from rpmgate.gateway.config import LOG_LEVELS, load_config


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="rpmgate HTTP gateway")
    parser.add_argument(
        "--config",
        help="YAML config file (keys: root, indexer, host, port, log_level)"
    )
    parser.add_argument(
        "--root",
        help="Directory holding the repositories (env: RPMGATE_ROOT)"
    )
    parser.add_argument(
        "--indexer",
        help="Indexer command (default: createrepo, env: RPMGATE_INDEXER)"
    )
    parser.add_argument(
        "--host",
        help="Bind address (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Bind port (default: 8080)"
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        help="Log level (default: info)"
    )
    return parser


def main(argv=None):
    """Run the gateway server."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(
            args.config,
            overrides={
                "root": args.root,
                "indexer": args.indexer,
                "host": args.host,
                "port": args.port,
                "log_level": args.log_level,
            }
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT
    )
    logger = logging.getLogger("rpmgate")
    logger.info(f"Serving repositories under {config.root} on {config.host}:{config.port}")
    logger.info(f"Indexer: {' '.join(config.indexer)}")

    app = create_app(config)
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level
    )


if __name__ == "__main__":
    main()
