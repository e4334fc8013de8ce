"""
Here a list for testing edfplus.rawio API compliance.

All rules are listed as function so it should be easier to:
  * identify the rawio API
  * debug
  * discuss rules

"""

import numpy as np

from edfplus.rawio.baserawio import _signal_channel_dtype, _signal_stream_dtype, _event_channel_dtype


def print_class(reader):
    return reader.__class__.__name__


def header_is_total(reader):
    """
    Test if header contains:
      * 'signal_streams'
      * 'signal_channels'
      * 'event_channels'

    """
    h = reader.header

    assert "signal_streams" in h, "signal_streams missing in header"
    dt = h["signal_streams"].dtype
    for k, _ in _signal_stream_dtype:
        assert k in dt.fields, f"{k} not in signal_streams.dtype"

    assert "signal_channels" in h, "signal_channels missing in header"
    dt = h["signal_channels"].dtype
    for k, _ in _signal_channel_dtype:
        assert k in dt.fields, f"{k} not in signal_channels.dtype"

    assert "event_channels" in h, "event_channels missing in header"
    dt = h["event_channels"].dtype
    for k, _ in _event_channel_dtype:
        assert k in dt.fields, f"{k} not in event_channels.dtype"


def count_element(reader):
    """
    Count signals/events

    """
    nb_stream = reader.signal_streams_count()
    nb_event_channel = reader.event_channels_count()

    t_start = reader.t_start()
    t_stop = reader.t_stop()
    assert t_stop >= t_start

    nb_chan = 0
    for stream_index in range(nb_stream):
        nb_chan += reader.signal_channels_count(stream_index)
        sig_size = reader.get_signal_size(stream_index=stream_index)
        assert sig_size >= 0
    assert nb_chan == reader.header["signal_channels"].size

    for event_channel_index in range(nb_event_channel):
        nb_event = reader.event_count(event_channel_index=event_channel_index)
        assert nb_event >= 0


def iter_over_sig_chunks(reader, stream_index, channel_indexes, chunksize=1024):
    sig_size = reader.get_signal_size(stream_index)

    nb = sig_size // chunksize + 1
    for i in range(nb):
        i_start = i * chunksize
        i_stop = min((i + 1) * chunksize, sig_size)
        raw_chunk = reader.get_analogsignal_chunk(
            i_start=i_start, i_stop=i_stop, stream_index=stream_index, channel_indexes=channel_indexes
        )
        yield raw_chunk


def read_analogsignals(reader):
    """
    Read and convert some signals chunks.
    """
    nb_stream = reader.signal_streams_count()
    if nb_stream == 0:
        return

    for stream_index in range(nb_stream):
        sr = reader.get_signal_sampling_rate(stream_index=stream_index)
        assert type(sr) == float, f"Type of sampling is {type(sr)} should float"

        sig_size = reader.get_signal_size(stream_index)

        # read all chunk for all channel
        channel_indexes = None
        for raw_chunk in iter_over_sig_chunks(reader, stream_index, channel_indexes, chunksize=1024):
            assert raw_chunk.ndim == 2

        i_start = 0
        i_stop = min(1024, sig_size)

        nb_chan = reader.signal_channels_count(stream_index)
        channel_indexes = np.arange(nb_chan, dtype=int)

        signal_channels = reader.header["signal_channels"]
        stream_id = reader.header["signal_streams"][stream_index]["id"]
        mask = signal_channels["stream_id"] == stream_id
        channel_names = signal_channels["name"][mask]
        channel_ids = signal_channels["id"][mask]

        # acces by channel index/ids/names should give the same chunk
        channel_indexes2 = channel_indexes[::2]
        channel_names2 = channel_names[::2]
        channel_ids2 = channel_ids[::2]

        # slice by index
        raw_chunk0 = reader.get_analogsignal_chunk(
            i_start=i_start, i_stop=i_stop, stream_index=stream_index, channel_indexes=channel_indexes2
        )
        assert raw_chunk0.ndim == 2
        assert raw_chunk0.shape[0] == i_stop
        assert raw_chunk0.shape[1] == len(channel_indexes2)
        assert raw_chunk0.dtype == "int16"

        # slice by ids
        raw_chunk2 = reader.get_analogsignal_chunk(
            i_start=i_start, i_stop=i_stop, stream_index=stream_index, channel_ids=channel_ids2
        )
        np.testing.assert_array_equal(raw_chunk0, raw_chunk2)

        # channel names are not always unique inside a stream
        unique_chan_name = np.unique(channel_names).size == channel_names.size
        if unique_chan_name:
            raw_chunk1 = reader.get_analogsignal_chunk(
                i_start=i_start, i_stop=i_stop, stream_index=stream_index, channel_names=channel_names2
            )
            np.testing.assert_array_equal(raw_chunk0, raw_chunk1)

        # convert to float32/float64
        for dt in ("float32", "float64"):
            float_chunk0 = reader.rescale_signal_raw_to_float(
                raw_chunk0, dtype=dt, stream_index=stream_index, channel_indexes=channel_indexes2
            )
            float_chunk2 = reader.rescale_signal_raw_to_float(
                raw_chunk2, dtype=dt, stream_index=stream_index, channel_ids=channel_ids2
            )
            assert float_chunk0.dtype == dt
            np.testing.assert_array_equal(float_chunk0, float_chunk2)

        # read with several chunksize
        ref_raw_sigs = reader.get_analogsignal_chunk(
            i_start=0, i_stop=sig_size, stream_index=stream_index, channel_indexes=channel_indexes
        )
        for chunksize in (100, 255, 256, 257, 1000):
            i_start = 0
            chunks = []
            while i_start < sig_size:
                i_stop = min(i_start + chunksize, sig_size)
                raw_chunk = reader.get_analogsignal_chunk(
                    i_start=i_start, i_stop=i_stop, stream_index=stream_index, channel_indexes=channel_indexes
                )
                chunks.append(raw_chunk)
                i_start += chunksize
            chunk_raw_sigs = np.concatenate(chunks, axis=0)
            np.testing.assert_array_equal(ref_raw_sigs, chunk_raw_sigs)


def read_events(reader):
    """
    Read event/epoch timestamps and check they are inside the recording
    and sorted.
    """
    for ev_chan in range(reader.event_channels_count()):
        nb_event = reader.event_count(event_channel_index=ev_chan)
        ev_times, ev_durations, ev_labels = reader.get_event_timestamps(event_channel_index=ev_chan)
        assert ev_times.shape[0] == nb_event
        assert ev_labels.shape[0] == nb_event
        assert np.all(np.diff(ev_times) >= 0)
        if ev_durations is not None:
            assert ev_durations.shape[0] == nb_event
            assert np.all(ev_durations >= 0)

        # limited range
        if nb_event > 0:
            t_start = ev_times[0]
            t_stop = ev_times[-1]
            ev_times2, _, _ = reader.get_event_timestamps(event_channel_index=ev_chan, t_start=t_start, t_stop=t_stop)
            assert np.all(ev_times2 >= t_start)
            assert np.all(ev_times2 < t_stop)
