"""
:mod:`edfplus.io` provides the classes for reading and writing EDF+ files.

Classes:

* :attr:`EdfReader`
* :attr:`EdfWriter`
* :attr:`RecordWriter`

.. autoclass:: edfplus.io.EdfReader

    .. autoattribute:: extensions

.. autoclass:: edfplus.io.EdfWriter

    .. autoattribute:: extensions

"""

from edfplus.io.recordwriter import RecordWriter
from edfplus.io.edfio import EdfReader, EdfWriter

iolist = [
    EdfReader,
    EdfWriter,
]

__all__ = ["EdfReader", "EdfWriter", "RecordWriter", "iolist"]
