import logging
import sys

def setup_logger(name="screentrans", level=logging.INFO):
    """Set up and return a logger with a standard configuration"""
    logger = logging.getLogger(name)

    # Avoid duplicate handlers if setup_logger is called multiple times
    if not logger.handlers:
        logger.setLevel(level)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )
        handler.setFormatter(formatter)

        logger.addHandler(handler)
    else:
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)

    return logger
