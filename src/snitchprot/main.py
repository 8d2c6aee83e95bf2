#!/usr/bin/env python3
"""Runs a single reconciliation cycle, meant to be started by a scheduler."""

import logging
import sys

from snitchprot import core, helpers
from snitchprot.errors import SnitchprotError

# LOGGER
# Get logger
logger = logging.getLogger("snitchprot")


def main() -> None:
    """Reconcile the firewall profile once."""
    # Errors while loading the configuration must be reported as well.
    helpers.setup_logging()

    try:
        settings = helpers.load_settings()
    except SnitchprotError:
        logger.critical("Configuration couldn't be loaded.", exc_info=True)
        sys.exit(1)

    helpers.setup_logging(settings)

    reconciler = core.Reconciler.from_settings(settings)
    try:
        reconciler.run_cycle()
    except SnitchprotError:
        logger.critical("Reconciliation cycle failed.", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
