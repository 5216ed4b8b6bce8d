"""Command-line entry point for the directory watcher."""
from __future__ import annotations

import argparse
import logging
import threading
from pathlib import Path

from .config import ConfigError, load_config
from .hooks import HookRegistry
from .store import PersistError
from .watcher import WatcherController


def main() -> None:
    parser = argparse.ArgumentParser(description="Watch a directory for files copied in from outside")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to the YAML configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Forget the persisted snapshot so every present file is reported as added",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    config_path = Path(args.config)
    try:
        app_config = load_config(config_path)
    except ConfigError as exc:
        logging.error("%s", exc)
        raise SystemExit(2) from exc

    if args.clear_cache:
        try:
            WatcherController.clear_cached_data(app_config.watcher.cache_dir)
        except PersistError as exc:
            logging.error("%s", exc)
            raise SystemExit(1) from exc

    watcher = WatcherController(app_config.watcher)
    hooks = HookRegistry(app_config.hooks, watch_path=app_config.watcher.watch_path)
    hooks.attach(watcher.bus)

    watcher.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logging.info("Watcher interrupted by user")
    finally:
        watcher.stop()


if __name__ == "__main__":
    main()
