"""Error taxonomy for the arbitrage watcher.

Every error here is local to one evaluation cycle: the polling loop logs it,
keeps the previous result and carries on at the next tick.
"""


class ArbWatchError(Exception):
    """Base class for all watcher errors."""


class InvalidQuote(ArbWatchError):
    """A price is missing, non-finite, zero, negative, or the book is crossed."""


class InvalidSymbol(ArbWatchError):
    """A symbol cannot be parsed or is not listed on the venue."""


class AuthError(ArbWatchError):
    """The venue rejected the configured credentials."""


class UpstreamUnavailable(ArbWatchError):
    """The quote source could not be reached."""


class NetworkError(UpstreamUnavailable):
    """Transport-level failure talking to a venue (timeout, reset, 5xx)."""
