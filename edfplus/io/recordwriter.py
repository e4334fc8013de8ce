"""
RecordWriter streams an EDF+C file one data record at a time.

Lifecycle::

    created -> signals declared -> writing -> finalized

Header parameters and signals are set before the first record. The header is
written with a number of data records of -1 just before the first record and
``finalize()`` rewrites that field with the real count: this is the only
backward seek. A writer closed without ``finalize()`` leaves -1 in the file,
which readers refuse.

Annotations are queued by ``add_annotation()``. Each written record takes the
queued annotations whose onset falls in its time window
``[k * duration, (k + 1) * duration)`` from the start time of the header.
The sub-second start time only shifts the time-keeping entry of a record,
``subsecond + k * duration``.
"""

from __future__ import annotations

import datetime

import numpy as np
import quantities as pq

from edfplus.core.annotation import Annotation
from edfplus.core.channelspec import ChannelSpec, ANNOTATION_BYTES
from edfplus.core.errors import CapacityError, FormatError, RangeError, StateError
from edfplus.core.header import Header, MAX_ANNOTATION_SIGNALS, TIME_DIMENSION, UNKNOWN_RECORD_COUNT
from edfplus.rawio.edfheader import (
    DATARECORDS_OFFSET,
    check_channel,
    encode_ascii,
    encode_header,
    encode_record_count,
    encode_subfield,
)
from edfplus.rawio.tal import encode_tal_entry, encode_timekeeping, pack_tal_blocks
from edfplus.rawio.utils import format_ticks
from .baseio import BaseIO

CREATED = "created"
SIGNALS_DECLARED = "signals declared"
WRITING = "writing"
FINALIZED = "finalized"

MAX_DATARECORD_DURATION = 3600.0
# two digit years of the header start date
MIN_YEAR = 1985
MAX_YEAR = 2084


def _to_ticks(seconds):
    return int(round(seconds * TIME_DIMENSION))


class RecordWriter(BaseIO):
    """
    Write an EDF+C file to an opened binary file object.

    Parameters
    ----------
    fid: file object
        Writable and seekable binary file, owned by the writer from now on
    filename: str | None, default: None
        Name of the file, for messages

    Examples
    --------
        >>> with open("file.edf", "wb") as fid:
        ...     writer = RecordWriter(fid)
        ...     writer.add_signal(ChannelSpec("EEG", -200.0, 200.0, -32768, 32767, 256, physical_dimension="uV"))
        ...     writer.add_annotation(0.5, None, "Eyes closed")
        ...     writer.write_samples([np.zeros(256)])
        ...     writer.finalize()
    """

    is_writable = True

    name = "RecordWriter"
    description = "Streaming writer of continuous EDF+ files"
    extensions = ["edf"]

    def __init__(self, fid, filename=None):
        BaseIO.__init__(self, filename)
        self._fid = fid
        self.state = CREATED

        self._header = Header()
        self._signals = []
        self._nb_annotation_channel = 1
        self._annotation_bytes = ANNOTATION_BYTES

        self._pending = []
        self._header_written = False
        self._record_count = 0

    ###
    # state checks

    def _check_open(self):
        if self._fid is None:
            raise StateError(f"writer of {self.filename} is closed")

    def _check_not_finalized(self):
        self._check_open()
        if self.state == FINALIZED:
            raise StateError("the file is finalized")

    def _check_header_editable(self, what):
        self._check_not_finalized()
        if self.state == WRITING:
            raise StateError(f"{what} can not be changed once data records are written")

    ###
    # header parameters

    def set_patient_info(self, code: str, sex: str, birthdate: str, name: str, additional: str = ""):
        """
        Set the EDF+ patient identification subfields.

        Parameters
        ----------
        code: str
            Hospital administration code of the patient
        sex: str
            "M", "F" or "" when unknown
        birthdate: str
            dd-MMM-yyyy, e.g. "02-MAY-1951", or "" when unknown
        name: str
            Name of the patient
        additional: str, default: ""
            Free text

        Raises
        ------
        FormatError
            Non ASCII text, or a subfield other than ``additional`` that holds
            "_" or equals "X"
        """
        self._check_header_editable("patient information")
        for value, field in [(code, "patient code"), (sex, "sex"), (birthdate, "birthdate"), (name, "patient name")]:
            encode_ascii(value, field)
            encode_subfield(value, field)
        encode_ascii(additional, "patient additional")
        self._header.patient_code = code
        self._header.sex = sex
        self._header.birthdate = birthdate
        self._header.patient_name = name
        self._header.patient_additional = additional

    def set_recording_info(self, admin_code: str, technician: str, equipment: str, additional: str = ""):
        """Set the EDF+ recording identification subfields"""
        self._check_header_editable("recording information")
        for value, field in [(admin_code, "admin code"), (technician, "technician"), (equipment, "equipment")]:
            encode_ascii(value, field)
            encode_subfield(value, field)
        encode_ascii(additional, "recording additional")
        self._header.admin_code = admin_code
        self._header.technician = technician
        self._header.equipment = equipment
        self._header.recording_additional = additional

    def set_start_datetime(self, start: datetime.datetime):
        """
        Set the start date and time of the recording.

        Microseconds become the sub-second start time.
        """
        self._check_header_editable("start date/time")
        if not MIN_YEAR <= start.year <= MAX_YEAR:
            raise RangeError(f"start year must be between {MIN_YEAR} and {MAX_YEAR}, got {start.year}")
        self._header.start_datetime = start.replace(microsecond=0)
        self._header.starttime_subsecond = start.microsecond * (TIME_DIMENSION // 1_000_000)

    def set_subsecond_starttime(self, subsecond: int):
        """Sub-second part of the start time, in units of 100 nanoseconds"""
        self._check_header_editable("sub-second start time")
        if not 0 <= subsecond < TIME_DIMENSION:
            raise RangeError(f"sub-second start time must be between 0 and {TIME_DIMENSION - 1}, got {subsecond}")
        self._header.starttime_subsecond = int(subsecond)

    def set_datarecord_duration(self, duration: float):
        """Duration of one data record in seconds, 0 < duration <= 3600"""
        self._check_header_editable("data record duration")
        if not 0 < duration <= MAX_DATARECORD_DURATION:
            raise RangeError(f"data record duration must be in (0, {MAX_DATARECORD_DURATION}], got {duration}")
        ticks = _to_ticks(duration)
        if ticks == 0:
            raise RangeError(f"data record duration {duration} is below the 100 ns resolution")
        if len(format_ticks(ticks)) > 8:
            raise FormatError(f"data record duration {format_ticks(ticks)} does not fit in 8 characters")
        self._header.datarecord_duration = ticks

    def set_number_of_annotation_signals(self, count: int):
        """Number of "EDF Annotations" channels, between 1 and 64"""
        self._check_header_editable("number of annotation signals")
        if not 1 <= count <= MAX_ANNOTATION_SIGNALS:
            raise RangeError(f"number of annotation signals must be between 1 and {MAX_ANNOTATION_SIGNALS}")
        self._nb_annotation_channel = int(count)

    def set_annotation_capacity(self, nbytes: int):
        """Bytes of TAL data per annotation channel and per data record, a positive even number"""
        self._check_header_editable("annotation capacity")
        ChannelSpec.annotation_channel(nbytes)
        self._annotation_bytes = int(nbytes)

    def add_signal(self, spec: ChannelSpec) -> int:
        """
        Declare the next signal channel.

        Returns
        -------
        index: int
            Index of the signal, order of the vectors given to write_samples()
        """
        self._check_header_editable("signals")
        if spec.is_annotation:
            raise FormatError("annotation channels are added with set_number_of_annotation_signals()")
        check_channel(spec)
        self._signals.append(spec)
        self.state = SIGNALS_DECLARED
        return len(self._signals) - 1

    ###
    # annotations

    def add_annotation(self, onset: float, duration: float | None = None, description: str = ""):
        """
        Queue an annotation.

        Parameters
        ----------
        onset: float
            Seconds since the start time of the header, not negative
        duration: float | None, default: None
            Seconds, None for an instant event
        description: str, default: ""
            Truncated to 40 characters when written

        Notes
        -----
        The annotation is written with the data record whose time window holds
        its onset. An annotation whose window was already written when it was
        queued is dropped with a warning.
        """
        self._check_not_finalized()
        if not np.isfinite(onset) or onset < 0:
            raise RangeError(f"annotation onset must be a positive number of seconds, got {onset}")
        if duration is not None and (not np.isfinite(duration) or duration < 0):
            raise RangeError(f"annotation duration must be a positive number of seconds, got {duration}")

        annotation = Annotation(onset, duration, description)
        entry = encode_tal_entry(annotation)
        available = self._annotation_bytes
        if self._nb_annotation_channel == 1:
            # shares its sub-block with the time-keeping entry of its record
            window_start, _ = self._record_window(annotation)
            available -= len(encode_timekeeping(self._header.starttime_subsecond + window_start))
        if len(entry) > available:
            raise CapacityError(
                f"annotation {annotation.truncated().description!r} needs {len(entry)} bytes, "
                f"an annotation channel holds {available}"
            )

        self._pending.append(annotation)

    def annotation_count(self) -> int:
        """Number of queued annotations not yet written"""
        return len(self._pending)

    def _record_window(self, annotation):
        """Time window in ticks of the data record that holds the annotation"""
        duration = self._header.datarecord_duration
        k = _to_ticks(annotation.onset) // duration
        return k * duration, (k + 1) * duration

    ###
    # data records

    def _file_header(self, datarecords):
        header = self._header.copy()
        annotation_channels = [
            ChannelSpec.annotation_channel(self._annotation_bytes) for _ in range(self._nb_annotation_channel)
        ]
        header.channels = list(self._signals) + annotation_channels
        header.datarecords_in_file = datarecords
        return header

    def _to_digital(self, spec, vector):
        if isinstance(vector, pq.Quantity):
            vector = vector.rescale(spec.units).magnitude
        values = np.asarray(vector, dtype="float64")
        if values.ndim != 1 or values.size != spec.samples_per_record:
            raise RangeError(
                f"signal '{spec.label}' needs {spec.samples_per_record} samples per data record, got {values.shape}"
            )
        if not np.all(np.isfinite(values)):
            raise RangeError(f"signal '{spec.label}' has non finite samples")
        return spec.to_digital(values)

    def write_samples(self, vectors):
        """
        Write one data record.

        Parameters
        ----------
        vectors: list[np.array | pq.Quantity]
            One vector of physical values per signal, in the order of
            add_signal(). Each holds exactly ``samples_per_record`` values.
            Quantities are rescaled to the unit of their channel.

        Raises
        ------
        RangeError
            Wrong number of vectors or wrong vector length
        CapacityError
            The annotations of this record do not fit in the annotation channels

        Nothing is written when an error is raised.
        """
        self._check_not_finalized()
        if self.state == CREATED:
            raise StateError("add signals before writing data records")
        if len(vectors) != len(self._signals):
            raise RangeError(f"expected {len(self._signals)} signal vectors, got {len(vectors)}")

        data = [self._to_digital(spec, vector).astype("<i2").tobytes() for spec, vector in zip(self._signals, vectors)]

        # annotations of this record
        duration = self._header.datarecord_duration
        window_start = self._record_count * duration
        window_stop = window_start + duration
        stale, current, future = [], [], []
        for annotation in self._pending:
            onset = _to_ticks(annotation.onset)
            if onset < window_start:
                stale.append(annotation)
            elif onset < window_stop:
                current.append(annotation)
            else:
                future.append(annotation)
        current.sort(key=lambda annotation: annotation.onset)
        capacities = [self._annotation_bytes] * self._nb_annotation_channel
        data += pack_tal_blocks(current, capacities, self._header.starttime_subsecond + window_start)

        if not self._header_written:
            header_data = encode_header(self._file_header(UNKNOWN_RECORD_COUNT))
            self._fid.write(header_data)
            self._header_written = True
            self.logger.debug(f"{self.filename}: header written, {len(self._signals)} signals")
        self._fid.write(b"".join(data))

        for annotation in stale:
            self.logger.warning(
                f"annotation {annotation.description!r} at {annotation.onset} s is before data record "
                f"{self._record_count}, dropped"
            )
        self._pending = future
        self._record_count += 1
        self.state = WRITING

    def finalize(self):
        """
        Write the number of data records in the header and close the file.

        Annotations still queued lie after the last data record: they are
        dropped with a warning.
        """
        self._check_not_finalized()
        if not self._header_written:
            self._fid.write(encode_header(self._file_header(self._record_count)))
            self._header_written = True
        else:
            self._fid.flush()
            self._fid.seek(DATARECORDS_OFFSET)
            self._fid.write(encode_record_count(self._record_count))
            self._fid.seek(0, 2)

        for annotation in self._pending:
            self.logger.warning(
                f"annotation {annotation.description!r} at {annotation.onset} s is after the last data record, dropped"
            )
        self._pending = []

        self.state = FINALIZED
        self.logger.debug(f"{self.filename}: finalized with {self._record_count} data records")
        self._close_file()

    @property
    def datarecords_written(self) -> int:
        return self._record_count

    def close(self):
        """
        Close the file. A file that was not finalized keeps -1 as its number
        of data records.
        """
        if self._fid is None:
            return
        if self.state != FINALIZED:
            self.logger.warning(f"{self.filename} closed without finalize(), the file is incomplete")
        self._close_file()

    def _close_file(self):
        self._fid.close()
        self._fid = None
