"""
Error kinds raised by edfplus.

Every error derives from :class:`EdfError` and from the builtin exception
closest in meaning, so callers may catch either.

Storage failures are not wrapped: the builtin :class:`OSError` (exported here
as :data:`IoError`) propagates untouched from the file operations.
"""


class EdfError(Exception):
    """Base class of all edfplus errors"""


class FormatError(EdfError, ValueError):
    """
    Malformed or unsupported header content, TAL data or channel parameters.
    A file raising this while being opened is unusable.
    """


class RangeError(EdfError, IndexError):
    """Signal index, sample range or time value outside the allowed bounds"""


class StateError(EdfError, RuntimeError):
    """Operation not allowed in the current reader/writer lifecycle state"""


class CapacityError(EdfError, ValueError):
    """Annotations do not fit the annotation capacity allocated to a data record"""


IoError = OSError
