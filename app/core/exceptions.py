"""
Wallet authentication error taxonomy.

Endpoints translate these into ``{"error": message}`` JSON bodies using ``status_code``.
"""


class WalletAuthError(Exception):
    """Base class for errors raised by the wallet auth pipeline."""

    status_code = 500

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class InvalidInput(WalletAuthError):
    """Missing or malformed request fields. Not retried."""

    status_code = 400


class SignatureInvalid(WalletAuthError):
    """Cryptographic or binding failure. A fresh challenge is required."""

    status_code = 401


class TransportFailure(WalletAuthError):
    """Network, timeout or malformed response from the chain index or a remote service."""

    status_code = 502


class UpstreamFailure(WalletAuthError):
    """Data-service error while creating or reading a user record."""

    status_code = 500


class CacheCorruption(WalletAuthError):
    """A persisted record could not be parsed. Always treated as a cache miss."""


class WalletBridgeError(WalletAuthError):
    """The wallet bridge refused or failed an authorize/sign/deauthorize call."""
