import logging
import os
import sys


def get_logger(verbose: bool = False):
    """The ``reposign`` logger; diagnostics go to stderr, results to stdout."""
    logger = logging.getLogger("reposign")
    if not logger.handlers:
        h = logging.StreamHandler(sys.stderr)
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(message)s")
        h.setFormatter(fmt)
        logger.addHandler(h)
        logger.setLevel(os.getenv("REPOSIGN_LOG_LEVEL", "INFO").upper())
    if verbose:
        logger.setLevel(logging.DEBUG)
    return logger
