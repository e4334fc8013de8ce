"""
:mod:`edfplus.core` provides the plain data objects shared by the readers and
the writers.

Classes:

.. autoclass:: Header
.. autoclass:: ChannelSpec
.. autoclass:: Annotation

Errors:

.. autoclass:: EdfError
.. autoclass:: FormatError
.. autoclass:: RangeError
.. autoclass:: StateError
.. autoclass:: CapacityError
"""

from edfplus.core.errors import EdfError, FormatError, RangeError, StateError, CapacityError, IoError
from edfplus.core.channelspec import ChannelSpec
from edfplus.core.annotation import Annotation
from edfplus.core.header import Header

__all__ = [
    "Header",
    "ChannelSpec",
    "Annotation",
    "EdfError",
    "FormatError",
    "RangeError",
    "StateError",
    "CapacityError",
    "IoError",
]
