"""Domain errors shared by the core and the adapters."""


class TelefeedError(Exception):
    """Base class for errors that abort a feed run."""


class ConfigError(TelefeedError):
    """Raised when the configuration file is missing required values."""


class StoreUnavailable(TelefeedError):
    """Raised when the seen-entries store cannot be opened or used."""


class FetchFailure(TelefeedError):
    """Raised when a feed cannot be fetched or parsed."""


class DeliveryFailure(TelefeedError):
    """Raised when the messaging surface rejects or fails to accept a message."""
