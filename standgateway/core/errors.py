"""Domain-specific errors for standgateway."""


class StandGatewayError(Exception):
    """Base error for standgateway."""


class ConfigError(StandGatewayError):
    """Base configuration error."""


class ConfigLoadError(ConfigError):
    """Raised when reading a configuration file fails."""


class ConfigValidationError(ConfigError):
    """Raised when a configuration file does not conform to schema or semantics."""


class TransportError(StandGatewayError):
    """Base transport error."""


class TransportAbsentError(TransportError):
    """Raised when the device has no Bluetooth adapter at all."""

    def __init__(self, message: str = "no bluetooth adapter found, bluetooth not supported by device") -> None:
        super().__init__(message)


class TransportUnavailableError(TransportError):
    """Raised when the adapter vanished or was disabled before the worker ran."""

    def __init__(self, detail: str = "bluetooth adapter missing or turned off") -> None:
        super().__init__(f"transport unavailable: {detail}")


class EnableDeclinedError(TransportError):
    """Raised when the platform or user declines turning the adapter on."""

    def __init__(self, code: int) -> None:
        self.code = code
        super().__init__(f"bluetooth enable not successful, resultCode {code}")


class TransportCommandError(TransportError):
    """Raised when BlueZ command line tools fail."""


class PeerNotFoundError(StandGatewayError):
    """Raised when the target peer is not among the paired devices."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} not found among paired devices. giving up")


class ConnectionIOError(StandGatewayError):
    """Raised when opening the RFCOMM socket fails."""
