"""
Exceptions raised by the firewall.

Rejections (limits, blocked contracts, failed simulations) are returned as
decision values and are not represented here; these are for conditions the
caller must fix.
"""


class FirewallError(Exception):
    """Base class for firewall errors."""
    pass


class ConfigurationError(FirewallError):
    """Raised when the firewall is constructed with invalid settings."""
    pass


class LedgerOverflowError(ConfigurationError):
    """Raised when the spend accumulator would leave the uint256 range."""
    pass


class UnknownReservationError(FirewallError):
    """Raised when confirming a reservation that does not exist."""
    pass
