import argparse
import dataclasses
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import CrawlConfig
from .errors import ConfigError
from .service import CrawlerService

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _attach_file_logging(log_path: Path, level: str) -> None:
    logger = logging.getLogger()

    for h in logger.handlers:
        if isinstance(h, logging.FileHandler):
            if Path(getattr(h, "baseFilename", "")) == log_path:
                return

    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(file_handler)


def configure_logging(config: CrawlConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logs.log_level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
    if config.logs.log_file:
        _attach_file_logging(Path(config.logs.log_file).resolve(), config.logs.log_level)


def run_crawler(config: CrawlConfig, start_time: Optional[datetime] = None) -> None:
    service = CrawlerService(config, start_time=start_time)

    try:
        service.start()
        while service.workers_alive():
            service.wait(timeout=1.0)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
    finally:
        service.stop(timeout=5.0)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Rule-driven story crawler")

    parser.add_argument(
        "--config",
        required=False,
        help="Path to YAML config file",
        default="config.yaml",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Override the configured worker count",
    )

    args = parser.parse_args(argv)

    # taken once; names the archive directory for the whole run
    start_time = datetime.now()

    try:
        config = CrawlConfig.from_yaml(args.config)
        if args.workers is not None:
            config = dataclasses.replace(config, workers=args.workers)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    configure_logging(config)

    print("\n=== Crawler Configuration ===")
    print(f"Workers: {config.workers}")
    print(f"Seeds: {len(config.seeds)}")
    print(f"User Agent: {config.user_agent}")
    print(f"Dedup: {config.dedup.strategy}")
    print(f"Archive: {config.get_archive_path()}")
    print("=============================\n")

    run_crawler(config, start_time)
    return 0


if __name__ == "__main__":
    sys.exit(main())
