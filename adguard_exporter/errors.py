"""Exception types raised by the exporter."""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigurationError(ExporterError):
    """A required setting is missing or invalid at startup."""


class FetchError(ExporterError):
    """The statistics endpoint could not be queried or its body could not be read."""


class MalformedEntryError(ExporterError):
    """A single list entry in the statistics payload has no usable numeric value."""

    def __init__(self, series: str, index: int, entry):
        self.series = series
        self.index = index
        self.entry = entry
        super().__init__(f"Invalid entry #{index} for {series}: {entry!r}")


class RenderError(ExporterError):
    """The registry could not be serialized."""
