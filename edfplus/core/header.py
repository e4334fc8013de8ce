"""
This module defines :class:`Header`, the file-wide metadata of an EDF+
recording: patient and recording identification, start date/time, data
record timing and the ordered list of :class:`ChannelSpec`.

Times are kept as integers in units of 100 nanoseconds (TIME_DIMENSION ticks
per second) so that record boundaries are exact.
"""

from __future__ import annotations

import datetime

from edfplus.core.channelspec import ChannelSpec

TIME_DIMENSION = 10_000_000
HEADER_BLOCK_SIZE = 256
MAX_ANNOTATION_SIGNALS = 64

# record count written while a file is being recorded
UNKNOWN_RECORD_COUNT = -1

DEFAULT_START = datetime.datetime(1985, 1, 1, 0, 0, 0)


class Header:
    """
    Metadata of an EDF+ file.

    Parameters
    ----------
    channels: list[ChannelSpec] | None, default: None
        All channels in file order, annotation channels included
    start_datetime: datetime.datetime, default: 1985-01-01 00:00:00
        Start of the recording, whole seconds
    starttime_subsecond: int, default: 0
        Sub-second part of the start time in 100 ns ticks
    datarecord_duration: int, default: TIME_DIMENSION
        Duration of one data record in 100 ns ticks
    datarecords_in_file: int, default: UNKNOWN_RECORD_COUNT
        Number of data records, -1 until the file is finalized
    patient_code, sex, birthdate, patient_name, patient_additional: str
        EDF+ patient identification subfields
    admin_code, technician, equipment, recording_additional: str
        EDF+ recording identification subfields
    """

    def __init__(
        self,
        channels=None,
        start_datetime: datetime.datetime = DEFAULT_START,
        starttime_subsecond: int = 0,
        datarecord_duration: int = TIME_DIMENSION,
        datarecords_in_file: int = UNKNOWN_RECORD_COUNT,
        patient_code: str = "",
        sex: str = "",
        birthdate: str = "",
        patient_name: str = "",
        patient_additional: str = "",
        admin_code: str = "",
        technician: str = "",
        equipment: str = "",
        recording_additional: str = "",
    ):
        self.channels = list(channels) if channels is not None else []
        self.start_datetime = start_datetime.replace(microsecond=0)
        self.starttime_subsecond = int(starttime_subsecond)
        self.datarecord_duration = int(datarecord_duration)
        self.datarecords_in_file = int(datarecords_in_file)

        self.patient_code = patient_code
        self.sex = sex
        self.birthdate = birthdate
        self.patient_name = patient_name
        self.patient_additional = patient_additional

        self.admin_code = admin_code
        self.technician = technician
        self.equipment = equipment
        self.recording_additional = recording_additional

    @property
    def signals(self) -> list[ChannelSpec]:
        """Signal channels, annotation channels excluded"""
        return [ch for ch in self.channels if not ch.is_annotation]

    @property
    def annotation_channels(self) -> list[ChannelSpec]:
        return [ch for ch in self.channels if ch.is_annotation]

    @property
    def header_bytes(self) -> int:
        return HEADER_BLOCK_SIZE * (len(self.channels) + 1)

    @property
    def record_size(self) -> int:
        """Bytes in one data record"""
        return sum(ch.nbytes_per_record for ch in self.channels)

    @property
    def file_duration(self) -> int:
        """Duration of all data records in 100 ns ticks"""
        return self.datarecord_duration * max(self.datarecords_in_file, 0)

    @property
    def datarecord_duration_seconds(self) -> float:
        return self.datarecord_duration / TIME_DIMENSION

    def copy(self):
        """Snapshot of the header: channel objects are copied too"""
        channels = [
            ChannelSpec(
                ch.label,
                ch.physical_min,
                ch.physical_max,
                ch.digital_min,
                ch.digital_max,
                ch.samples_per_record,
                physical_dimension=ch.physical_dimension,
                transducer=ch.transducer,
                prefilter=ch.prefilter,
                samples_in_file=ch.samples_in_file,
            )
            for ch in self.channels
        ]
        return Header(
            channels=channels,
            start_datetime=self.start_datetime,
            starttime_subsecond=self.starttime_subsecond,
            datarecord_duration=self.datarecord_duration,
            datarecords_in_file=self.datarecords_in_file,
            patient_code=self.patient_code,
            sex=self.sex,
            birthdate=self.birthdate,
            patient_name=self.patient_name,
            patient_additional=self.patient_additional,
            admin_code=self.admin_code,
            technician=self.technician,
            equipment=self.equipment,
            recording_additional=self.recording_additional,
        )

    def _key(self):
        return (
            self.channels,
            self.start_datetime,
            self.starttime_subsecond,
            self.datarecord_duration,
            self.datarecords_in_file,
            self.patient_code,
            self.sex,
            self.birthdate,
            self.patient_name,
            self.patient_additional,
            self.admin_code,
            self.technician,
            self.equipment,
            self.recording_additional,
        )

    def __eq__(self, other):
        if not isinstance(other, Header):
            return NotImplemented
        return self._key() == other._key()

    def __repr__(self):
        txt = f"Header: {self.start_datetime.isoformat()}\n"
        txt += f"patient: {self.patient_code} {self.sex} {self.birthdate} {self.patient_name}\n"
        txt += f"datarecords: {self.datarecords_in_file} x {self.datarecord_duration_seconds} s\n"
        txt += f"signals: {[ch.label for ch in self.signals]}\n"
        txt += f"annotation channels: {len(self.annotation_channels)}\n"
        return txt
