# artforge/core/logging_config.py
import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
STRIPE_LOGGER_NAME = "artforge.stripe"


def configure_logging(level: str = "INFO", log_dir: str = "logs") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    _attach_stripe_file_handler(log_dir)


def _attach_stripe_file_handler(log_dir: str) -> None:
    """Payment traffic also goes to LOG_DIR/stripe.log for support lookups."""
    stripe_logger = logging.getLogger(STRIPE_LOGGER_NAME)
    if any(isinstance(h, logging.FileHandler) for h in stripe_logger.handlers):
        return
    os.makedirs(log_dir, exist_ok=True)
    handler = logging.FileHandler(os.path.join(log_dir, "stripe.log"))
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    stripe_logger.setLevel(logging.INFO)
    stripe_logger.addHandler(handler)
