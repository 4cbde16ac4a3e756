class DollError(Exception):
    """Base class for errors reported to the operator."""


class ConfigurationError(DollError):
    """Invalid or inconsistent configuration."""


class FileResolutionError(DollError):
    """A layer image could not be located unambiguously."""
