class TradeLabError(Exception):
    """Base class for all tradelab exceptions."""


class InvalidInputError(TradeLabError, ValueError):
    """Raised for empty bar sequences, unknown kinds or malformed parameters."""


class InsufficientDataError(InvalidInputError):
    """Raised when a backtest is requested on fewer bars than its warm-up needs."""


class ConfigError(TradeLabError):
    """Raised for missing/malformed configuration."""


__all__ = [
    "TradeLabError",
    "InvalidInputError",
    "InsufficientDataError",
    "ConfigError",
]
