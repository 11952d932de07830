from __future__ import annotations
from enum import Enum


class ErrorKind(str, Enum):
    INPUT = "input"
    UPSTREAM_FETCH = "upstream_fetch"
    MODEL_CALL = "model_call"
    PARSE = "parse"
    STORE = "store"
    CONFIG = "config"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class MarketplaceError(Exception):
    # Message is user facing, keep internals out of it
    kind = ErrorKind.INTERNAL
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.message, "kind": self.kind.value}


class InputError(MarketplaceError):
    kind = ErrorKind.INPUT
    status_code = 400


class UpstreamFetchError(MarketplaceError):
    kind = ErrorKind.UPSTREAM_FETCH
    status_code = 400


class ModelCallError(MarketplaceError):
    kind = ErrorKind.MODEL_CALL
    status_code = 500


class ModelResponseParseError(MarketplaceError):
    kind = ErrorKind.PARSE
    status_code = 500


class StoreError(MarketplaceError):
    kind = ErrorKind.STORE
    status_code = 500


class ConfigurationError(MarketplaceError):
    kind = ErrorKind.CONFIG
    status_code = 500
