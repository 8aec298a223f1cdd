"""Package exceptions."""


class TopovError(Exception):
    """Base class for topov errors."""


class EventDecodeError(TopovError):
    """An inbound envelope or payload could not be turned into a message."""


class SettingsError(TopovError):
    """A configuration value is present but unusable."""
