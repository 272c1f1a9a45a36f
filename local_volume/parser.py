"""Command line arguments parser."""

import argparse
import logging

log_values = [i.lower() for i in logging._nameToLevel.keys()]

parser = argparse.ArgumentParser(
    description="Create and delete local persistent volumes for the directories "
    "and block devices found in the discovery paths of this node."
)
parser.add_argument(
    "-l",
    "--loglevel",
    default="info",
    choices=log_values,
    help=f"Provide logging level. Valid values: {log_values}. \
        Example --loglevel debug, default=info",
)
parser.add_argument(
    "--once",
    action="store_true",
    help="Run a single discovery pass and exit.",
)
