"""
Time-stamped Annotation Lists (TAL), the content of "EDF Annotations"
channels.

One entry is::

    [+|-]onset [0x15 duration] 0x14 description 0x14 0x00

A sub-block of an annotation channel holds consecutive entries and is zero
padded to its fixed capacity. The first annotation channel of every data
record starts with a time-keeping entry: the onset of the record and an empty
description, ``+onset 0x14 0x14 0x00``.
"""

from __future__ import annotations

import re

from edfplus.core.annotation import Annotation
from edfplus.core.errors import CapacityError, FormatError
from .utils import format_seconds, format_ticks, parse_ticks

ONSET_SEPARATOR = b"\x14"
DURATION_SEPARATOR = b"\x15"
TAL_END = b"\x00"

_onset_pattern = re.compile(rb"^[+-]\d+(\.\d*)?$")
_duration_pattern = re.compile(rb"^\d+(\.\d*)?$")

__all__ = [
    "encode_tal_entry",
    "encode_timekeeping",
    "encode_tal_block",
    "pack_tal_blocks",
    "decode_tal_block",
    "format_seconds",
    "format_ticks",
    "parse_ticks",
]


def _signed(text):
    return text if text.startswith("-") else "+" + text


def encode_tal_entry(annotation: Annotation) -> bytes:
    """
    Encode one annotation as a TAL entry.

    The description is truncated to MAX_DESCRIPTION_LENGTH characters before
    being UTF-8 encoded. Control characters used as separators are refused.
    """
    annotation = annotation.truncated()
    for separator in (ONSET_SEPARATOR, DURATION_SEPARATOR, TAL_END):
        if separator.decode() in annotation.description:
            raise FormatError(f"description {annotation.description!r} contains a TAL separator")

    data = _signed(format_seconds(annotation.onset)).encode("ascii")
    if annotation.duration is not None:
        if annotation.duration < 0:
            raise FormatError(f"negative annotation duration {annotation.duration}")
        data += DURATION_SEPARATOR + format_seconds(annotation.duration).encode("ascii")
    data += ONSET_SEPARATOR + annotation.description.encode("utf-8") + ONSET_SEPARATOR + TAL_END
    return data


def encode_timekeeping(record_onset: int) -> bytes:
    """Time-keeping entry of a data record, ``record_onset`` in 100 ns ticks"""
    return _signed(format_ticks(record_onset)).encode("ascii") + ONSET_SEPARATOR + ONSET_SEPARATOR + TAL_END


def encode_tal_block(entries, capacity: int, timekeeping: int | None = None) -> bytes:
    """
    Encode annotations into one annotation channel sub-block of exactly
    ``capacity`` bytes.

    Parameters
    ----------
    entries: list[Annotation]
        Annotations written in the given order
    capacity: int
        Size of the sub-block in bytes
    timekeeping: int | None, default: None
        Record onset in 100 ns ticks, when given a time-keeping entry is
        written first

    Raises
    ------
    CapacityError
        The entries do not fit in ``capacity`` bytes
    """
    data = b"" if timekeeping is None else encode_timekeeping(timekeeping)
    data += b"".join(encode_tal_entry(annotation) for annotation in entries)
    if len(data) > capacity:
        raise CapacityError(f"{len(entries)} annotations need {len(data)} bytes, only {capacity} available")
    return data.ljust(capacity, TAL_END)


def pack_tal_blocks(entries, capacities, timekeeping: int):
    """
    Distribute annotations over the annotation channels of one data record.

    Entries are placed in order, each one in the current sub-block when it
    fits, otherwise in the next one. An entry never spans two sub-blocks. The
    first sub-block starts with the time-keeping entry.

    Returns
    -------
    blocks: list[bytes]
        One zero padded block per capacity

    Raises
    ------
    CapacityError
        The entries do not fit in the sub-blocks
    """
    blocks = [bytearray(encode_timekeeping(timekeeping))] + [bytearray() for _ in capacities[1:]]
    if len(blocks[0]) > capacities[0]:
        raise CapacityError(f"annotation capacity {capacities[0]} too small for the time-keeping entry")

    current = 0
    for annotation in entries:
        entry = encode_tal_entry(annotation)
        while current < len(blocks) and len(blocks[current]) + len(entry) > capacities[current]:
            current += 1
        if current == len(blocks):
            raise CapacityError(
                f"{len(entries)} annotations do not fit in {len(capacities)} annotation channels "
                f"of {capacities[0]} bytes"
            )
        blocks[current] += entry

    return [bytes(block).ljust(capacity, TAL_END) for block, capacity in zip(blocks, capacities)]


def _decode_time(raw, pattern, name):
    if pattern.match(raw) is None:
        raise FormatError(f"invalid TAL {name} {raw!r}")
    return float(raw)


def decode_tal_block(data) -> list[Annotation]:
    """
    Decode every TAL entry of an annotation channel sub-block.

    Entries come back in stored order, the time-keeping entry included as an
    annotation with an empty description. An entry holding several
    descriptions gives one annotation per description.
    """
    annotations = []
    for tal in bytes(data).split(TAL_END):
        if not tal:
            # zero padding
            continue
        parts = tal.split(ONSET_SEPARATOR)
        if len(parts) < 3 or parts[-1] != b"":
            raise FormatError(f"TAL entry {tal!r} is not terminated")

        timestamp = parts[0].split(DURATION_SEPARATOR)
        if len(timestamp) > 2:
            raise FormatError(f"invalid TAL time stamp {parts[0]!r}")
        onset = _decode_time(timestamp[0], _onset_pattern, "onset")
        duration = None
        if len(timestamp) == 2:
            duration = _decode_time(timestamp[1], _duration_pattern, "duration")

        for raw in parts[1:-1]:
            try:
                description = raw.decode("utf-8")
            except UnicodeDecodeError:
                raise FormatError(f"TAL description {raw!r} is not UTF-8")
            annotations.append(Annotation(onset, duration, description))

    return annotations
