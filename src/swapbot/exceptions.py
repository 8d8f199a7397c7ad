"""Custom exceptions for the swap bot.

Bootstrap errors (ConfigurationError and subclasses, or a LedgerError while
probing the node) are fatal and end the process with a non-zero exit.
Everything else is caught at the cycle boundary by the orchestrator.
"""


class BotError(Exception):
    """Base exception for all bot errors."""


class ConfigurationError(BotError):
    """Raised when startup configuration is missing or invalid."""


class KeyFormatError(ConfigurationError):
    """Raised when a private key is in an unrecognized or malformed format."""


class LedgerError(BotError):
    """Raised when the Sui node rejects or fails a request."""

    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code


class TransactionBuildError(BotError):
    """Raised when a swap transaction cannot be assembled."""


class UnsupportedPairError(TransactionBuildError):
    """Raised when a swap is requested for a pair the pool does not trade."""
