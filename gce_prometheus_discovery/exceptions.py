"""Custom exception hierarchy for the GCE discovery daemon."""


class DiscoveryError(Exception):
    """Base exception for all daemon errors."""


class ConfigError(DiscoveryError):
    """Invalid or missing configuration."""


class FetchError(DiscoveryError):
    """Listing the instance inventory of a project failed."""

    def __init__(self, message: str, project: str | None = None):
        super().__init__(message)
        self.project = project


class DiscoveryTimeout(FetchError):
    """The discovery cycle ran past its deadline."""


class MappingError(DiscoveryError):
    """An instance could not be converted into a scrape target."""

    def __init__(self, message: str, instance: str | None = None):
        super().__init__(message)
        self.instance = instance


class NoInterfaceError(MappingError):
    """The instance has no network interface carrying an IP address."""


class WriteError(DiscoveryError):
    """The target file could not be written."""


class ReadError(DiscoveryError):
    """An existing target file could not be read back."""
