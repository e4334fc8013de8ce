"""
:mod:`edfplus.rawio` provides the low-level API: the header and TAL codecs
and a reader giving fast access to the raw samples of an EDF+ file.

Functions:

.. autofunction:: edfplus.rawio.encode_header
.. autofunction:: edfplus.rawio.decode_header
.. autofunction:: edfplus.rawio.header_size_from_main
.. autofunction:: edfplus.rawio.encode_tal_entry
.. autofunction:: edfplus.rawio.encode_tal_block
.. autofunction:: edfplus.rawio.decode_tal_block


Classes:

* :attr:`EdfRawIO`


.. autoclass:: edfplus.rawio.EdfRawIO

    .. autoattribute:: extensions

"""

from .edfheader import encode_header, decode_header, header_size_from_main
from .tal import (
    encode_tal_entry,
    encode_timekeeping,
    encode_tal_block,
    pack_tal_blocks,
    decode_tal_block,
    format_seconds,
    format_ticks,
    parse_ticks,
)
from .edfrawio import EdfRawIO

rawiolist = [
    EdfRawIO,
]
