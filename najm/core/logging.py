# najm/core/logging.py
import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging once for the whole process.

    Vendor SDK loggers (httpx, openai) are held at WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
