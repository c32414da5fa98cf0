from __future__ import annotations


class SyncError(Exception):
    """Base class for failures reported by the remote store.

    ``offline`` marks conditions the engine absorbs by serving the cache
    and queueing writes instead of surfacing them to the user.
    """

    offline = False

    @property
    def reason(self) -> str:
        return str(self) or self.__class__.__name__


class ConfigurationError(SyncError):
    offline = True


class UnreachableError(SyncError):
    offline = True


class BackendRejectedError(SyncError):
    offline = False
