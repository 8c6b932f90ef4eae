"""wpclone exception classes."""


class WPCError(Exception):
    """Generic errors."""

    def __init__(self, msg):
        Exception.__init__(self)
        self.msg = msg

    def __str__(self):
        return self.msg


class WPCConfigError(WPCError):
    """Config related errors."""
    pass


class WPCRuntimeError(WPCError):
    """Generic runtime errors."""
    pass


class WPCArgumentError(WPCError):
    """Argument related errors."""
    pass
