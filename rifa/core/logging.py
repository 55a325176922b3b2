import logging


def configure_logging() -> logging.Logger:
    logger = logging.getLogger("rifa")
    if not logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    return logger
