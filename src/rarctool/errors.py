"""Exception types raised by the archive and compression codecs."""


class RarcToolError(ValueError):
    """Base class for all errors raised by rarctool."""


class FormatError(RarcToolError):
    """Input bytes are not a valid instance of the expected format."""


class InvalidArgumentError(RarcToolError):
    """A caller passed an argument the operation cannot work with."""
