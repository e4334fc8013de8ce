"""
Tools for use with edfplus tests.
"""

import numpy as np

from edfplus.core.channelspec import ChannelSpec
from edfplus.io.edfio import EdfWriter


def assert_arrays_equal(a, b, dtype=False):
    """
    Check if two arrays have the same shape and contents.

    If dtype is True (default=False), then also check that they have the same
    dtype.
    """
    assert isinstance(a, np.ndarray), f"a is a {type(a)}"
    assert isinstance(b, np.ndarray), f"b is a {type(b)}"
    assert a.shape == b.shape, f"{a.shape} != {b.shape}"
    np.testing.assert_array_equal(a, b)
    if dtype:
        assert a.dtype == b.dtype, f"{a.dtype} != {b.dtype}"


def identity_channel(label, samples_per_record, physical_dimension="uV"):
    """A channel whose physical values equal its digital values"""
    return ChannelSpec(
        label, -32768.0, 32767.0, -32768, 32767, samples_per_record, physical_dimension=physical_dimension
    )


def ramp(start, count):
    """Integer valued test signal, inside the 16 bit range"""
    return np.arange(start, start + count, dtype="float64") % 30000


def write_ramp_file(
    filename,
    samples_per_record=(256,),
    nb_record=3,
    annotations=(),
    duration=1.0,
    subsecond=0,
    nb_annotation_signals=1,
    finalize=True,
):
    """
    Write a file of ramp signals, one per entry of ``samples_per_record``.

    ``annotations`` are (onset, duration, description) tuples queued before
    the first record.

    Returns
    -------
    expected: list[np.array]
        All the samples of each signal
    """
    writer = EdfWriter.create(filename)
    writer.set_datarecord_duration(duration)
    writer.set_subsecond_starttime(subsecond)
    writer.set_number_of_annotation_signals(nb_annotation_signals)
    for i, spr in enumerate(samples_per_record):
        writer.add_signal(identity_channel(f"ch{i}", spr))
    for onset, ann_duration, description in annotations:
        writer.add_annotation(onset, ann_duration, description)
    for k in range(nb_record):
        writer.write_samples([ramp(k * spr, spr) for spr in samples_per_record])
    if finalize:
        writer.finalize()
    else:
        writer.close()
    return [ramp(0, spr * nb_record) for spr in samples_per_record]
