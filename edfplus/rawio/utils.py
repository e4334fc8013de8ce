import mmap
import re

import numpy as np

from edfplus.core.errors import FormatError
from edfplus.core.header import TIME_DIMENSION

_decimal_pattern = re.compile(r"^([+-]?)(\d+)(?:\.(\d*))?$")
_fraction_digits = len(str(TIME_DIMENSION)) - 1


def get_memmap_chunk_from_opened_file(fid, dtype, start, stop, file_offset=0):
    """
    Utility function to get a span of data records as a memmap array directly
    from an opened file.

    ``dtype`` is the structured dtype of one data record, ``start`` and
    ``stop`` are record indexes. Only the pages covering the span are mapped.
    """
    dtype = np.dtype(dtype)
    if stop <= start:
        return np.empty(0, dtype=dtype)

    # Calculate byte offsets
    start_byte = file_offset + start * dtype.itemsize
    length = (stop - start) * dtype.itemsize

    # The mmap offset must be a multiple of mmap.ALLOCATIONGRANULARITY
    memmap_offset, start_offset = divmod(start_byte, mmap.ALLOCATIONGRANULARITY)
    memmap_offset *= mmap.ALLOCATIONGRANULARITY

    # Adjust the length so it includes the extra data from rounding down
    # the memmap offset to a multiple of ALLOCATIONGRANULARITY
    length += start_offset

    memmap_obj = mmap.mmap(fid.fileno(), length=length, access=mmap.ACCESS_READ, offset=memmap_offset)

    arr = np.ndarray(
        shape=(stop - start,),
        dtype=dtype,
        buffer=memmap_obj,
        offset=start_offset,
    )

    return arr


def format_seconds(value):
    """
    Shortest positional decimal text of a time in seconds, without exponent.
    Integral values have no fractional part: 5.0 gives "5".
    """
    return np.format_float_positional(float(value), trim="-")


def format_ticks(ticks):
    """Exact decimal text of a time given in 100 ns ticks: 5000 gives "0.0005" """
    ticks = int(ticks)
    sign = "-" if ticks < 0 else ""
    seconds, fraction = divmod(abs(ticks), TIME_DIMENSION)
    if fraction == 0:
        return f"{sign}{seconds}"
    return f"{sign}{seconds}.{fraction:0{_fraction_digits}d}".rstrip("0")


def parse_ticks(text):
    """
    Parse decimal seconds into 100 ns ticks without going through a float.
    Digits beyond the tick resolution are dropped.
    """
    if isinstance(text, bytes):
        text = text.decode("ascii", errors="replace")
    match = _decimal_pattern.match(text.strip())
    if match is None:
        raise FormatError(f"invalid time value {text!r}")
    sign, seconds, fraction = match.groups()
    fraction = (fraction or "")[:_fraction_digits].ljust(_fraction_digits, "0")
    ticks = int(seconds) * TIME_DIMENSION + int(fraction)
    return -ticks if sign == "-" else ticks
