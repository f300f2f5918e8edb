"""
Batch entry point: one run of the crawl over the data store.

usage:
  $ python main.py [--firsttime]
"""
import argparse
import logging
import sys

from github_contrib_tracker import config
from github_contrib_tracker.pipeline import DataPipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"Update the contribution dataset under {config.DATA_DIR}."
    )
    parser.add_argument(
        "--firsttime",
        action="store_true",
        help="Consider repos fresh for a year instead of 72 hours, to fetch new repos quickly.",
    )
    return parser


def main(argv=None) -> int:
    args, extra = build_parser().parse_known_args(argv)
    unknown_options = [arg for arg in extra if arg.startswith("-")]
    if unknown_options:
        print(
            f"Error: unknown option {unknown_options[0]}. See `python main.py --help`.",
            file=sys.stderr,
        )
        return 1
    if extra:
        print(
            "Error: positional arguments are not supported. See `python main.py --help`.",
            file=sys.stderr,
        )
        return 1

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    DataPipeline().run(first_time=args.firsttime)
    return 0


if __name__ == "__main__":
    sys.exit(main())
