__all__ = ["WatcherError", "CaptureError"]


class WatcherError(Exception):
    """
    The watcher could not be set up, e.g. the interface does not exist or the
    capture handle could not be opened.
    """


class CaptureError(WatcherError):
    pass
