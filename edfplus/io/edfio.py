"""
EdfReader and EdfWriter, the user facing classes to read and write
continuous EDF+ files.

EdfReader keeps one cursor per signal: ``read_physical_samples(ch, n)``
returns the next ``n`` samples of signal ``ch``. ``seek``, ``tell`` and
``rewind`` move the cursor.

Example
-------
    >>> import numpy as np
    >>> from edfplus import EdfWriter, EdfReader, ChannelSpec
    >>> writer = EdfWriter.create("sleep.edf")
    >>> writer.add_signal(ChannelSpec("EEG Fpz-Cz", -200.0, 200.0, -32768, 32767, 100, physical_dimension="uV"))
    >>> writer.add_annotation(1.5, None, "Lights off")
    >>> for _ in range(10):
    ...     writer.write_samples([np.zeros(100)])
    >>> writer.finalize()
    >>> with EdfReader.open("sleep.edf") as reader:
    ...     samples = reader.read_physical_samples(0, 250)
    ...     annotations = reader.annotations()
"""

from __future__ import annotations

from pathlib import Path

import quantities as pq

from edfplus.core.errors import RangeError
from edfplus.rawio.edfrawio import EdfRawIO
from .baseio import BaseIO
from .recordwriter import RecordWriter


class EdfReader(BaseIO):
    """
    Read a continuous EDF+ file.

    The header is decoded and every annotation is read when the reader is
    created. Samples are read on demand.

    Parameters
    ----------
    filename: str | Path
        The EDF+ file to read

    Raises
    ------
    FormatError
        The file is not a valid EDF+C file, or it was not finalized
    """

    is_readable = True

    name = "EDF+"
    description = "Reader of continuous EDF+ files"
    extensions = ["edf"]

    def __init__(self, filename: str | Path):
        BaseIO.__init__(self, filename)
        self.rawio = EdfRawIO(filename=filename)
        self.rawio.parse_header()
        self._cursors = [0] * len(self.rawio.edf_header.signals)

    @classmethod
    def open(cls, filename: str | Path):
        return cls(filename)

    @property
    def header(self):
        """A copy of the file header, annotation channels included"""
        return self.rawio.edf_header.copy()

    @property
    def signals(self):
        """The signal channels, annotation channels excluded"""
        return self.header.signals

    def _signal(self, signal: int):
        signals = self.rawio.edf_header.signals
        if not 0 <= signal < len(signals):
            raise RangeError(f"signal {signal} does not exist, the file has {len(signals)} signals")
        return signals[signal]

    def read_digital_samples(self, signal: int, count: int):
        """
        Read the next ``count`` digital samples of a signal and move its cursor.

        Returns
        -------
        samples: np.array[int16]

        Raises
        ------
        RangeError
            Unknown signal, negative count or fewer than ``count`` samples
            left. The cursor is unchanged.
        """
        self._signal(signal)
        if count < 0:
            raise RangeError(f"count must not be negative, got {count}")
        position = self._cursors[signal]
        samples = self.rawio.get_channel_samples(signal, position, position + count)
        self._cursors[signal] = position + count
        return samples

    def read_physical_samples(self, signal: int, count: int, as_quantity: bool = False):
        """
        Read the next ``count`` samples of a signal in physical units and move
        its cursor.

        Parameters
        ----------
        signal: int
            Index of the signal
        count: int
            Number of samples
        as_quantity: bool, default: False
            Return a quantities array in the unit of the signal instead of a
            float64 array

        Raises
        ------
        RangeError
            Unknown signal, negative count or fewer than ``count`` samples
            left. The cursor is unchanged.
        """
        spec = self._signal(signal)
        physical = spec.to_physical(self.read_digital_samples(signal, count))
        if as_quantity:
            return pq.Quantity(physical, spec.units)
        return physical

    def seek(self, signal: int, position: int) -> int:
        """Move the cursor of a signal to ``position``, between 0 and the number of samples"""
        spec = self._signal(signal)
        if not 0 <= position <= spec.samples_in_file:
            raise RangeError(f"position {position} outside of [0, {spec.samples_in_file}] for signal {signal}")
        self._cursors[signal] = int(position)
        return self._cursors[signal]

    def tell(self, signal: int) -> int:
        self._signal(signal)
        return self._cursors[signal]

    def rewind(self, signal: int):
        self.seek(signal, 0)

    def annotations(self):
        """All annotations of the file sorted by onset, time-keeping entries excluded"""
        return list(self.rawio.annotations)

    def close(self):
        self.rawio.close()


class EdfWriter(RecordWriter):
    """
    Write a continuous EDF+ file.

    The file is created, or truncated, when the writer is created and stays
    open until ``finalize()`` or ``close()``.

    Parameters
    ----------
    filename: str | Path
        The EDF+ file to write
    """

    name = "EDF+"
    description = "Writer of continuous EDF+ files"

    def __init__(self, filename: str | Path):
        fid = open(filename, "wb")
        RecordWriter.__init__(self, fid, filename=filename)

    @classmethod
    def create(cls, filename: str | Path):
        return cls(filename)
