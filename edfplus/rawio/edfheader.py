"""
Encoding and decoding of the EDF+ header.

The header is a 256 bytes main block followed by one 256 bytes block per
channel. Channel fields are stored field major: all labels first, then all
transducers and so on. Every field is ASCII, left justified and space padded.

EDF+ splits the patient field into the subfields
``code sex birthdate name additional`` and the recording field into
``Startdate dd-MMM-yyyy admincode technician equipment additional``.
Inside a subfield spaces are written as "_" and an unknown value as "X".
"""

from __future__ import annotations

import datetime
import re

import numpy as np

from edfplus.core.channelspec import ChannelSpec
from edfplus.core.errors import FormatError
from edfplus.core.header import Header, HEADER_BLOCK_SIZE
from .utils import format_ticks, parse_ticks

EDF_VERSION = "0"
EDFPLUS_CONTINUOUS = "EDF+C"

_main_header_fields = [
    ("version", 8),
    ("patient", 80),
    ("recording", 80),
    ("startdate", 8),
    ("starttime", 8),
    ("header_bytes", 8),
    ("reserved", 44),
    ("datarecords", 8),
    ("datarecord_duration", 8),
    ("nb_channel", 4),
]
_main_header_dtype = [(name, f"S{width}") for name, width in _main_header_fields]
# byte offset of the number of data records, rewritten when a file is finalized
DATARECORDS_OFFSET = np.dtype(_main_header_dtype).fields["datarecords"][1]

_channel_header_fields = [
    ("label", 16),
    ("transducer", 80),
    ("physical_dimension", 8),
    ("physical_min", 8),
    ("physical_max", 8),
    ("digital_min", 8),
    ("digital_max", 8),
    ("prefilter", 80),
    ("samples_per_record", 8),
    ("reserved", 32),
]

# month abbreviations of the recording field, independent of the locale
_months = ["JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"]

_header_date_pattern = re.compile(r"^(\d\d)\.(\d\d)\.(\d\d)$")
_edfplus_date_pattern = re.compile(r"^(\d\d)-([A-Za-z]{3})-(\d{4})$")


def _channel_header_dtype(nb_channel):
    return [(name, f"S{width}", (nb_channel,)) for name, width in _channel_header_fields]


###
# field level helpers


def encode_ascii(text, name):
    try:
        return text.encode("ascii")
    except UnicodeEncodeError:
        raise FormatError(f"{name} must be ASCII, got {text!r}")


def _string_field(text, width, name):
    return encode_ascii(text, name)[:width].ljust(width, b" ")


def _number_text(value):
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return np.format_float_positional(value, trim="-")


def _number_field(value, width, name):
    text = value if isinstance(value, str) else _number_text(value)
    if len(text) > width:
        raise FormatError(f"{name} {text} does not fit in {width} characters")
    return text.encode("ascii").ljust(width, b" ")


def _decode_text(raw, name):
    try:
        return raw.decode("ascii").strip()
    except UnicodeDecodeError:
        raise FormatError(f"{name} contains non ASCII characters")


def _parse_int(text, name):
    try:
        return int(text)
    except ValueError:
        raise FormatError(f"{name} is not an integer: {text!r}")


def _parse_float(text, name):
    try:
        return float(text)
    except ValueError:
        raise FormatError(f"{name} is not a number: {text!r}")


def encode_subfield(value, name="subfield"):
    """
    Encode one EDF+ subfield: empty gives "X", spaces become "_".

    A value holding "_" or equal to "X" would not decode back to itself
    and raises :class:`FormatError`.
    """
    if not value:
        return "X"
    if value == "X" or "_" in value:
        raise FormatError(f"{name} can not be 'X' or contain '_', got {value!r}")
    return value.replace(" ", "_")


def decode_subfield(value):
    if value == "X":
        return ""
    return value.replace("_", " ")


###
# EDF+ patient and recording fields


def _encode_patient(header):
    subfields = [(header.patient_code, "patient code"), (header.sex, "sex"), (header.birthdate, "birthdate"),
                 (header.patient_name, "patient name")]
    return " ".join([encode_subfield(v, name) for v, name in subfields] + [header.patient_additional])


def _decode_patient(text):
    parts = text.split(" ", 4)
    parts += [""] * (5 - len(parts))
    code, sex, birthdate, name = [decode_subfield(v) for v in parts[:4]]
    return dict(patient_code=code, sex=sex, birthdate=birthdate, patient_name=name, patient_additional=parts[4])


def _encode_edfplus_date(date):
    return f"{date.day:02d}-{_months[date.month - 1]}-{date.year:04d}"


def _encode_recording(header):
    subfields = [(header.admin_code, "admin code"), (header.technician, "technician"), (header.equipment, "equipment")]
    startdate = _encode_edfplus_date(header.start_datetime)
    parts = ["Startdate", startdate] + [encode_subfield(v, name) for v, name in subfields] + [header.recording_additional]
    return " ".join(parts)


def _decode_recording(text):
    """Return the recording subfields and the 4 digit year of the start date, if any"""
    parts = text.split(" ", 5)
    if parts[0] != "Startdate":
        # not EDF+ compliant, keep the whole field
        return dict(recording_additional=text), None

    year = None
    if len(parts) > 1:
        match = _edfplus_date_pattern.match(parts[1])
        if match is not None and match.group(2).upper() in _months:
            year = int(match.group(3))

    parts += [""] * (6 - len(parts))
    admin_code, technician, equipment = [decode_subfield(v) for v in parts[2:5]]
    fields = dict(admin_code=admin_code, technician=technician, equipment=equipment, recording_additional=parts[5])
    return fields, year


def _decode_start(startdate, starttime, year):
    match = _header_date_pattern.match(startdate)
    if match is None:
        raise FormatError(f"invalid start date {startdate!r}")
    day, month, yy = [int(v) for v in match.groups()]
    if year is None:
        year = 1900 + yy if yy >= 85 else 2000 + yy

    match = _header_date_pattern.match(starttime)
    if match is None:
        raise FormatError(f"invalid start time {starttime!r}")
    hour, minute, second = [int(v) for v in match.groups()]

    try:
        return datetime.datetime(year, month, day, hour, minute, second)
    except ValueError as e:
        raise FormatError(f"invalid start date/time {startdate} {starttime}: {e}")


###
# header


def header_size_from_main(data):
    """
    Total header size in bytes, read from the channel count of the 256 bytes
    main header block. Lets a reader fetch the channel headers.
    """
    if len(data) < HEADER_BLOCK_SIZE:
        raise FormatError(f"main header needs {HEADER_BLOCK_SIZE} bytes, got {len(data)}")
    raw = bytes(data[HEADER_BLOCK_SIZE - 4 : HEADER_BLOCK_SIZE])
    nb_channel = _parse_int(_decode_text(raw, "number of signals"), "number of signals")
    if nb_channel < 1:
        raise FormatError(f"number of signals must be at least 1, got {nb_channel}")
    return HEADER_BLOCK_SIZE * (nb_channel + 1)


def encode_record_count(count: int) -> bytes:
    """The 8 bytes number of data records field, written at DATARECORDS_OFFSET"""
    return _number_field(count, 8, "number of data records")


def _channel_fields(ch):
    """The ten fields of one channel header block, in file order"""
    return [
        _string_field(ch.label, 16, "label"),
        _string_field(ch.transducer, 80, "transducer"),
        _string_field(ch.physical_dimension, 8, "physical dimension"),
        _number_field(ch.physical_min, 8, "physical minimum"),
        _number_field(ch.physical_max, 8, "physical maximum"),
        _number_field(ch.digital_min, 8, "digital minimum"),
        _number_field(ch.digital_max, 8, "digital maximum"),
        _string_field(ch.prefilter, 80, "prefilter"),
        _number_field(ch.samples_per_record, 8, "samples per record"),
        b" " * 32,
    ]


def check_channel(ch: ChannelSpec):
    """
    Raise :class:`FormatError` when a text field of the channel is not ASCII
    or one of its numbers does not fit in its 8 characters.
    """
    _channel_fields(ch)


def encode_header(header: Header) -> bytes:
    """
    Encode a :class:`Header` to its on disk form,
    ``256 * (len(header.channels) + 1)`` bytes.

    String fields longer than their slot are truncated, a number that does
    not fit its slot raises :class:`FormatError`.
    """
    channels = header.channels
    if len(channels) == 0:
        raise FormatError("a header needs at least one channel")
    if not any(ch.is_annotation for ch in channels):
        raise FormatError("an EDF+ header needs an 'EDF Annotations' channel")

    start = header.start_datetime
    main = [
        _string_field(EDF_VERSION, 8, "version"),
        _string_field(_encode_patient(header), 80, "patient"),
        _string_field(_encode_recording(header), 80, "recording"),
        _string_field(f"{start.day:02d}.{start.month:02d}.{start.year % 100:02d}", 8, "startdate"),
        _string_field(f"{start.hour:02d}.{start.minute:02d}.{start.second:02d}", 8, "starttime"),
        _number_field(header.header_bytes, 8, "header bytes"),
        _string_field(EDFPLUS_CONTINUOUS, 44, "reserved"),
        encode_record_count(header.datarecords_in_file),
        _number_field(format_ticks(header.datarecord_duration), 8, "data record duration"),
        _number_field(len(channels), 4, "number of signals"),
    ]

    blocks = [_channel_fields(ch) for ch in channels]
    # channel headers are stored field by field
    fields = [block[i] for i in range(len(blocks[0])) for block in blocks]

    data = b"".join(main + fields)
    assert len(data) == header.header_bytes
    return data


def decode_header(data) -> Header:
    """
    Decode the full header, main block and channel blocks, into a
    :class:`Header`.

    ``starttime_subsecond`` is not part of the header, it is left to 0 and
    recovered by the reader from the first data record.
    """
    data = bytes(data)
    header_bytes = header_size_from_main(data)
    if len(data) != header_bytes:
        raise FormatError(f"header must be {header_bytes} bytes, got {len(data)}")

    main = np.frombuffer(data, dtype=_main_header_dtype, count=1)[0]
    info = {name: _decode_text(main[name], name) for name, _ in _main_header_fields}

    if info["version"] != EDF_VERSION:
        raise FormatError(f"unsupported version {info['version']!r}")
    if not info["reserved"].startswith(EDFPLUS_CONTINUOUS):
        if info["reserved"].startswith("EDF+D"):
            raise FormatError("discontinuous EDF+D files are not supported")
        raise FormatError("not an EDF+ file, only continuous EDF+C files are supported")
    if _parse_int(info["header_bytes"], "header bytes") != header_bytes:
        raise FormatError(f"header bytes field {info['header_bytes']} does not match {header_bytes}")

    nb_channel = header_bytes // HEADER_BLOCK_SIZE - 1
    datarecords = _parse_int(info["datarecords"], "number of data records")
    if datarecords < -1:
        raise FormatError(f"invalid number of data records {datarecords}")
    duration = parse_ticks(info["datarecord_duration"])
    if duration < 0:
        raise FormatError(f"negative data record duration {info['datarecord_duration']}")

    raw_channels = np.frombuffer(data, dtype=_channel_header_dtype(nb_channel), count=1, offset=HEADER_BLOCK_SIZE)[0]
    channels = []
    for c in range(nb_channel):
        ch = {name: _decode_text(raw_channels[name][c], name) for name, _ in _channel_header_fields}
        spr = _parse_int(ch["samples_per_record"], "samples per record")
        channel = ChannelSpec(
            ch["label"],
            _parse_float(ch["physical_min"], "physical minimum"),
            _parse_float(ch["physical_max"], "physical maximum"),
            _parse_int(ch["digital_min"], "digital minimum"),
            _parse_int(ch["digital_max"], "digital maximum"),
            spr,
            physical_dimension=ch["physical_dimension"],
            transducer=ch["transducer"],
            prefilter=ch["prefilter"],
            samples_in_file=spr * max(datarecords, 0),
        )
        channels.append(channel)
    if not any(ch.is_annotation for ch in channels):
        raise FormatError("no 'EDF Annotations' channel in an EDF+ file")

    recording, year = _decode_recording(info["recording"])
    start_datetime = _decode_start(info["startdate"], info["starttime"], year)

    return Header(
        channels=channels,
        start_datetime=start_datetime,
        datarecord_duration=duration,
        datarecords_in_file=datarecords,
        **_decode_patient(info["patient"]),
        **recording,
    )
