"""Process-wide logging setup for the agentwatch CLI."""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure logging based on verbosity."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=log_level, format=LOG_FORMAT, force=True)

    # Quiet noisy libraries
    if level.upper() != "DEBUG":
        logging.getLogger("markdown_it").setLevel(logging.WARNING)
