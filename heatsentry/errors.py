"""
Error taxonomy for the heatmap pipeline.

Every stage failure aborts its invocation. The only errors that are
swallowed are per-recipient delivery failures inside the notifier.
"""
from typing import Optional


class HeatSentryError(Exception):
    """Base class for all pipeline errors."""


class UnsupportedSymbolError(HeatSentryError):
    """Symbol has no price-oracle mapping. Raised before any network call."""

    def __init__(self, symbol: str):
        super().__init__(f"Unsupported symbol: {symbol!r}")
        self.symbol = symbol


class ConfigMissingError(HeatSentryError):
    """A required operational setting is absent."""

    def __init__(self, key: str):
        super().__init__(f"Missing setting: {key}")
        self.key = key


class ConfigInvalidError(HeatSentryError):
    """An operational setting exists but cannot be used."""

    def __init__(self, key: str, value):
        super().__init__(f"Invalid value for setting {key}: {value!r}")
        self.key = key
        self.value = value


class UpstreamError(HeatSentryError):
    """An external HTTP dependency failed. Safe to retry on the next tick."""

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class PipelineTimeoutError(UpstreamError):
    """The ingestion run exceeded its overall deadline."""


class PersistenceError(HeatSentryError):
    """Snapshot store read or write failed."""


class InsufficientDataError(HeatSentryError):
    """Two snapshots cannot be diffed by position (level counts differ)."""
