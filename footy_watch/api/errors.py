"""Exceptions raised by the BWAPs client.

Callers can catch the broad ``BwapsError`` or the specific cases that
need a distinct user-facing message:

    try:
        snap = await client.get_snapshot(key)
    except PaymentRequiredError as e:
        reply(str(e))
    except NoDataError:
        reply("No probability data for this event.")
    except BwapsError:
        reply("Try again later.")
"""

from __future__ import annotations


class BwapsError(Exception):
    """Base exception for upstream failures (transport or non-2xx)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PaymentRequiredError(BwapsError):
    """Raised on HTTP 402; the message carries the x402 instructions."""


class NoDataError(BwapsError):
    """Raised when a key is valid but has no usable probability snapshot."""
