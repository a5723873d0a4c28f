import logging


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def mask_token(token: str | None) -> str:
    """Shorten a customer access token so it can be logged safely."""
    if not token:
        return "<none>"
    return f"{token[:6]}..."
