"""
This module defines :class:`ChannelSpec`, the description of one channel of
an EDF+ file, together with the affine transform between the stored digital
values and the physical values of a signal channel.

A channel is either a signal channel holding ``samples_per_record`` int16
samples per data record, or an annotation channel (label "EDF Annotations")
whose ``samples_per_record`` is the capacity of its TAL sub-block counted in
2-byte units.
"""

from __future__ import annotations

import numpy as np
import quantities as pq

from edfplus.core.errors import FormatError

DIGITAL_MIN_LIMIT = -32768
DIGITAL_MAX_LIMIT = 32767

ANNOTATION_LABEL = "EDF Annotations"
# bytes reserved for TAL data per annotation channel and per data record
ANNOTATION_BYTES = 120

SAMPLE_DTYPE = np.dtype("<i2")


class ChannelSpec:
    """
    Parameters of one channel.

    Parameters
    ----------
    label: str
        Name of the channel, at most 16 characters are stored
    physical_min: float
        Physical value matching ``digital_min``
    physical_max: float
        Physical value matching ``digital_max``, must be greater than ``physical_min``
    digital_min: int
        Smallest digital value, at least -32768
    digital_max: int
        Largest digital value, at most 32767 and greater than ``digital_min``
    samples_per_record: int
        Number of samples of the channel in each data record
    physical_dimension: str, default: ""
        Physical unit, e.g. "uV"
    transducer: str, default: ""
        Transducer type, e.g. "AgAgCl electrode"
    prefilter: str, default: ""
        Prefiltering, e.g. "HP:0.1Hz LP:75Hz"
    samples_in_file: int, default: 0
        Total number of samples of the channel, known once the file is finalized

    Examples
    --------
    >>> eeg = ChannelSpec("EEG Fp1", -200.0, 200.0, -32768, 32767, 256, physical_dimension="uV")
    >>> eeg.to_physical(-32768)
    -200.0
    """

    def __init__(
        self,
        label: str,
        physical_min: float,
        physical_max: float,
        digital_min: int,
        digital_max: int,
        samples_per_record: int,
        physical_dimension: str = "",
        transducer: str = "",
        prefilter: str = "",
        samples_in_file: int = 0,
    ):
        self.label = label
        self.transducer = transducer
        self.physical_dimension = physical_dimension
        self.physical_min = float(physical_min)
        self.physical_max = float(physical_max)
        self.digital_min = int(digital_min)
        self.digital_max = int(digital_max)
        self.prefilter = prefilter
        self.samples_per_record = int(samples_per_record)
        self.samples_in_file = int(samples_in_file)
        self._check_parameters()

    @classmethod
    def annotation_channel(cls, nbytes: int = ANNOTATION_BYTES):
        """Build an "EDF Annotations" channel holding ``nbytes`` bytes of TAL data per record"""
        if nbytes <= 0 or nbytes % 2:
            raise FormatError(f"annotation capacity must be a positive even number of bytes, got {nbytes}")
        return cls(ANNOTATION_LABEL, -1.0, 1.0, DIGITAL_MIN_LIMIT, DIGITAL_MAX_LIMIT, nbytes // 2)

    def _check_parameters(self):
        if self.samples_per_record <= 0:
            raise FormatError(f"samples_per_record of channel '{self.label}' must be positive")
        if not DIGITAL_MIN_LIMIT <= self.digital_min <= DIGITAL_MAX_LIMIT:
            raise FormatError(f"digital_min {self.digital_min} outside the 16 bit range")
        if not DIGITAL_MIN_LIMIT <= self.digital_max <= DIGITAL_MAX_LIMIT:
            raise FormatError(f"digital_max {self.digital_max} outside the 16 bit range")
        if self.digital_min >= self.digital_max:
            raise FormatError(f"digital_min must be lower than digital_max for channel '{self.label}'")
        if not np.isfinite(self.physical_min) or not np.isfinite(self.physical_max):
            raise FormatError(f"physical range of channel '{self.label}' must be finite")
        if self.physical_min >= self.physical_max:
            raise FormatError(f"physical_min must be lower than physical_max for channel '{self.label}'")

    @property
    def is_annotation(self) -> bool:
        return self.label.strip() == ANNOTATION_LABEL

    @property
    def nbytes_per_record(self) -> int:
        """Size of the channel block inside one data record"""
        return self.samples_per_record * SAMPLE_DTYPE.itemsize

    @property
    def units(self):
        """
        The physical dimension as a quantities unit, dimensionless when empty.
        Raises LookupError when quantities does not know the unit.
        """
        dimension = self.physical_dimension.strip()
        if not dimension:
            return pq.dimensionless
        return pq.Quantity(1.0, dimension).units

    ###
    # digital <-> physical transform

    @property
    def bit_value(self) -> float:
        """Physical size of one digital step"""
        return (self.physical_max - self.physical_min) / (self.digital_max - self.digital_min)

    @property
    def offset(self) -> float:
        """Digital offset such that physical = (digital - offset) * bit_value"""
        return self.digital_max - self.physical_max / self.bit_value

    @property
    def gain(self) -> float:
        return self.bit_value

    @property
    def physical_offset(self) -> float:
        """Physical offset such that physical = digital * gain + physical_offset"""
        return self.physical_min - self.digital_min * self.bit_value

    def to_physical(self, digital):
        """
        Convert digital values to physical values.

        A scalar gives a float, a sequence or an array gives a float64 array.
        """
        # same map as (digital - offset) * bit_value, anchored on physical_min so
        # that digital_min converts to physical_min exactly
        physical = self.physical_min + (np.asarray(digital, dtype="float64") - self.digital_min) * self.bit_value
        if physical.ndim == 0:
            return float(physical)
        return physical

    def to_digital(self, physical):
        """
        Convert physical values to digital values.

        Values are rounded half away from zero and clamped to
        [digital_min, digital_max]. A scalar gives an int, a sequence or an
        array gives an int16 array.
        """
        scaled = (np.asarray(physical, dtype="float64") - self.physical_min) / self.bit_value + self.digital_min
        digital = np.sign(scaled) * np.floor(np.abs(scaled) + 0.5)
        digital = np.clip(digital, self.digital_min, self.digital_max)
        if digital.ndim == 0:
            return int(digital)
        return digital.astype("int16")

    def __eq__(self, other):
        if not isinstance(other, ChannelSpec):
            return NotImplemented
        # samples_in_file is derived from the record count
        return (
            self.label == other.label
            and self.transducer == other.transducer
            and self.physical_dimension == other.physical_dimension
            and self.physical_min == other.physical_min
            and self.physical_max == other.physical_max
            and self.digital_min == other.digital_min
            and self.digital_max == other.digital_max
            and self.prefilter == other.prefilter
            and self.samples_per_record == other.samples_per_record
        )

    def __repr__(self):
        if self.is_annotation:
            return f"<ChannelSpec '{self.label}' annotations: {self.nbytes_per_record} bytes/record>"
        return (
            f"<ChannelSpec '{self.label}' [{self.physical_min}, {self.physical_max}] {self.physical_dimension} "
            f"[{self.digital_min}, {self.digital_max}] {self.samples_per_record} samples/record>"
        )
