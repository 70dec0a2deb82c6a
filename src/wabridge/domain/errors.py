"""Error taxonomy for the bridge bot.

HTTP status mapping lives with the routes; these classes carry no transport
or framework knowledge.
"""


class BridgeError(Exception):
    """Base class for all bot errors."""


class InvalidAddress(BridgeError):
    """Destination is not a usable phone number. Caller input error, never retried."""


class NotConnected(BridgeError):
    """WhatsApp session is not ready. Transient: poll /status and retry."""


class TransportError(BridgeError):
    """Provider or network failure while talking to the transport."""


class BackendUnavailable(BridgeError):
    """Backend, webhook or model call failed. Degrades to a fallback."""


class AuthFailure(NotConnected):
    """Credentials rejected by WhatsApp. Requires an operator restart."""
