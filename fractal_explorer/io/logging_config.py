"""
Logging setup for applications embedding the explorer.
"""

import logging


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Configure root logging.

    Args:
        verbose: Debug output with timestamps and logger names
        quiet: Errors only
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')
