"""Exception classes shared by the scrobbler package."""


class ScrobblerError(Exception): ...


class ConfigurationError(ScrobblerError):
    """Decoder table incomplete or a backend client cannot be constructed."""


class BackendNotificationError(ScrobblerError):
    """A backend rejected a scrobble or could not be reached."""
