"""Domain-specific errors for hygroscan."""


class HygroscanError(Exception):
    """Base error for hygroscan."""


class DecodeError(HygroscanError):
    """Base error for a single advertisement that could not be decoded."""


class TruncatedFrame(DecodeError):
    """Raised when the frame ends before a field its flags announce."""


class MalformedFrame(DecodeError):
    """Raised when bytes are left over after every announced field."""


class MissingBindKey(DecodeError):
    """Raised when an encrypted frame arrives and no bind key is configured."""


class DecryptionFailed(DecodeError):
    """Raised when an encrypted payload cannot be authenticated."""


class MalformedEventPayload(DecodeError):
    """Raised when an event payload does not match its type's layout."""


class UnknownEventType(DecodeError):
    """Raised for event type codes without a known layout."""

    def __init__(self, code: int) -> None:
        super().__init__(f"Unknown event type 0x{code:04x}")
        self.code = code


class ConfigError(HygroscanError):
    """Base configuration error."""


class ConfigLoadError(ConfigError):
    """Raised when the configuration file cannot be read."""


class ConfigValidationError(ConfigError):
    """Raised when configuration does not conform to schema or semantics."""


class DriverError(HygroscanError):
    """Base radio driver error."""


class ScanStartError(DriverError):
    """Raised when the radio driver rejects a start-scan command."""


class SubscriptionError(HygroscanError):
    """Raised when subscribing to a notification that does not exist."""
