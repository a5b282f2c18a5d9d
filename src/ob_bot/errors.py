"""Failure types raised by the market and order layers."""

from typing import Optional


class BotError(RuntimeError):
    pass


class MarketNotFound(BotError):
    """No market account matched, or the market account is gone from chain."""


class MarketDecodeError(BotError):
    """Account bytes do not parse as an OpenBook v2 market."""


class SubmissionError(BotError):
    """The ledger rejected a transaction or confirmation reported an error."""

    def __init__(self, message: str, signature: Optional[str] = None):
        super().__init__(message)
        self.signature = signature


class ProvisioningError(SubmissionError):
    """Creating a settlement (associated token) account failed."""
