"""Logging setup shared by the API and the pipelines"""
from __future__ import annotations
import logging

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    # basicConfig is a no-op once the root logger has handlers (uvicorn, pytest)
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, level.upper(), logging.INFO))
    root = logging.getLogger("marketplace")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return root
