"""
Simple logging setup.
"""

import sys
import logging


# Get our logger
logger = logging.getLogger("simplex")
logger.propagate = False
logger.setLevel(logging.INFO)

# Initialize the logger to write to stderr (but can be overriden)
_handler = logging.StreamHandler(sys.stderr)
_handler.setFormatter(
    logging.Formatter(
        fmt="[%(levelname)s %(asctime)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
)
logger.addHandler(_handler)
