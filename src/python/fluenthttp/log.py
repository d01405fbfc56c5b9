import logging

PACKAGE_LOGGER = "fluenthttp"

# Silent unless the application configures logging.
logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
