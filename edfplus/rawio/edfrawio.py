"""
RawIO for reading continuous EDF+ files (EDF+C).

The file is a header followed by fixed size data records. A data record holds
``samples_per_record`` little endian int16 samples for each channel in channel
order. Annotation channels hold TAL data instead of samples.

Samples are read through a memmap of the data records covering the requested
range. The annotations are decoded once in parse_header(): this is the only
pass over the whole file.

EDF Format Specifications: https://www.edfplus.info/
"""

from __future__ import annotations

import os

import numpy as np

from edfplus.core.errors import FormatError, RangeError, StateError
from edfplus.core.header import HEADER_BLOCK_SIZE, TIME_DIMENSION, UNKNOWN_RECORD_COUNT
from .baserawio import BaseRawIO, _signal_channel_dtype, _signal_stream_dtype, _event_channel_dtype
from .edfheader import decode_header, header_size_from_main
from .tal import decode_tal_block
from .utils import get_memmap_chunk_from_opened_file


class EdfRawIO(BaseRawIO):
    """
    Class for reading continuous EDF+ files (EDF+C).
    Plain EDF files and discontinuous EDF+D files are refused with a FormatError.

    Parameters
    ----------
    filename: str | Path
        The EDF+ file to read

    Notes
    -----
    Signal channels with the same samples per record form one stream.
    Annotations are exposed as two event channels: 0 holds the instant events,
    1 the epochs (annotations with a duration).

    Examples
    --------
        >>> import edfplus.rawio
        >>> r = edfplus.rawio.EdfRawIO(filename='file.edf')
        >>> r.parse_header()
        >>> print(r)
        >>> raw_chunk = r.get_analogsignal_chunk(i_start=0, i_stop=1024, stream_index=0, channel_indexes=range(2))
        >>> float_chunk = r.rescale_signal_raw_to_float(raw_chunk, dtype='float64', stream_index=0,
                            channel_indexes=range(2))
    """

    extensions = ["edf"]
    rawmode = "one-file"

    def __init__(self, filename=""):
        BaseRawIO.__init__(self)

        # note that this filename is used in self._source_name
        self.filename = str(filename)

        self._fid = None
        self.edf_header = None
        self.annotations = []

    def _source_name(self):
        return self.filename

    def _parse_header(self):
        self._fid = open(self.filename, "rb")
        try:
            self._parse_edf_header()
            self._read_annotations()
        except Exception:
            self.close()
            raise

        self.logger.debug(
            f"{self.filename}: {len(self._signal_indexes)} signals, {self.edf_header.datarecords_in_file} data records, "
            f"{len(self.annotations)} annotations"
        )

    def _parse_edf_header(self):
        main = self._fid.read(HEADER_BLOCK_SIZE)
        header_bytes = header_size_from_main(main)
        edf_header = decode_header(main + self._fid.read(header_bytes - HEADER_BLOCK_SIZE))

        nb_record = edf_header.datarecords_in_file
        if nb_record == UNKNOWN_RECORD_COUNT:
            raise FormatError(f"{self.filename} was not finalized, the number of data records is unknown")
        file_size = os.fstat(self._fid.fileno()).st_size
        expected_size = header_bytes + nb_record * edf_header.record_size
        if file_size != expected_size:
            raise FormatError(
                f"{self.filename} has {file_size} bytes, {nb_record} data records need {expected_size} bytes"
            )
        self.edf_header = edf_header

        # one field per channel, annotation channels as raw bytes
        channels = edf_header.channels
        self._record_dtype = np.dtype(
            [
                (f"c{i}", "u1", (ch.nbytes_per_record,)) if ch.is_annotation else (f"c{i}", "<i2", (ch.samples_per_record,))
                for i, ch in enumerate(channels)
            ]
        )
        self._data_offset = header_bytes
        self._signal_indexes = [i for i, ch in enumerate(channels) if not ch.is_annotation]
        self._annotation_indexes = [i for i, ch in enumerate(channels) if ch.is_annotation]

        # 1 stream = 1 samples per record
        duration = edf_header.datarecord_duration_seconds
        stream_characteristics = []
        self.stream_idx_to_chidx = {}
        signal_channels = []
        for sig_idx, ch_idx in enumerate(self._signal_indexes):
            ch = channels[ch_idx]
            spr = ch.samples_per_record
            sr = spr / duration if duration > 0 else 0.0
            if spr not in stream_characteristics:
                stream_characteristics.append(spr)
            stream_id = stream_characteristics.index(spr)
            self.stream_idx_to_chidx.setdefault(stream_id, []).append(sig_idx)
            signal_channels.append(
                (ch.label, str(sig_idx), sr, "int16", ch.physical_dimension, ch.gain, ch.physical_offset, str(stream_id))
            )

        # convert channel index lists to arrays for indexing
        self.stream_idx_to_chidx = {k: np.array(v) for k, v in self.stream_idx_to_chidx.items()}

        signal_channels = np.array(signal_channels, dtype=_signal_channel_dtype)
        signal_streams = [
            (f"stream ({spr} samples/record)", str(i)) for i, spr in enumerate(stream_characteristics)
        ]
        signal_streams = np.array(signal_streams, dtype=_signal_stream_dtype)

        event_channels = []
        event_channels.append(("Event", "event_channel", "event"))
        event_channels.append(("Epoch", "epoch_channel", "epoch"))
        event_channels = np.array(event_channels, dtype=_event_channel_dtype)

        self.header = {}
        self.header["signal_streams"] = signal_streams
        self.header["signal_channels"] = signal_channels
        self.header["event_channels"] = event_channels

    def _read_annotations(self):
        """
        Decode the annotation channels of every data record.

        The leading time-keeping entry of the first annotation channel gives the
        onset of its record, the one of record 0 is the sub-second start time.
        """
        nb_record = self.edf_header.datarecords_in_file
        records = get_memmap_chunk_from_opened_file(self._fid, self._record_dtype, 0, nb_record, self._data_offset)

        annotations = []
        for k in range(nb_record):
            for j, ch_idx in enumerate(self._annotation_indexes):
                entries = decode_tal_block(records[f"c{ch_idx}"][k].tobytes())
                if j == 0 and len(entries) > 0 and entries[0].description == "":
                    if k == 0:
                        record_onset = int(round(entries[0].onset * TIME_DIMENSION))
                        if 0 <= record_onset < TIME_DIMENSION:
                            self.edf_header.starttime_subsecond = record_onset
                    entries = entries[1:]
                annotations.extend(entries)
        del records

        # stable sort: stored order is kept for equal onsets
        annotations.sort(key=lambda annotation: annotation.onset)
        self.annotations = annotations

    def _check_open(self):
        self._check_header_parsed()
        if self._fid is None:
            raise StateError(f"{self.filename} is closed")

    def _read_records(self, record_start, record_stop):
        return get_memmap_chunk_from_opened_file(
            self._fid, self._record_dtype, record_start, record_stop, self._data_offset
        )

    def _record_span(self, spr, i_start, i_stop):
        record_start = i_start // spr
        record_stop = -(-i_stop // spr)
        return record_start, record_stop

    def get_channel_samples(self, channel_index: int, i_start: int, i_stop: int):
        """
        Digital samples [i_start, i_stop) of one signal channel.

        Only the data records covering the range are mapped:
        record = sample // samples_per_record.

        Parameters
        ----------
        channel_index: int
            Index of the signal channel, annotation channels are not counted
        i_start: int
            Index of the first sample
        i_stop: int
            Index one past the last sample

        Returns
        -------
        samples: np.array[int16]
        """
        self._check_open()
        if not 0 <= channel_index < len(self._signal_indexes):
            raise RangeError(f"signal {channel_index} does not exist, the file has {len(self._signal_indexes)} signals")
        ch_idx = self._signal_indexes[channel_index]
        ch = self.edf_header.channels[ch_idx]
        size = ch.samples_per_record * self.edf_header.datarecords_in_file
        if not 0 <= i_start <= i_stop <= size:
            raise RangeError(f"samples [{i_start}, {i_stop}) outside of [0, {size}] for signal {channel_index}")
        if i_start == i_stop:
            return np.empty(0, dtype="int16")

        record_start, record_stop = self._record_span(ch.samples_per_record, i_start, i_stop)
        records = self._read_records(record_start, record_stop)
        offset = record_start * ch.samples_per_record
        samples = records[f"c{ch_idx}"].reshape(-1)[i_start - offset : i_stop - offset]
        return np.array(samples, dtype="int16")

    def _get_signal_size(self, stream_index):
        sig_idx = self.stream_idx_to_chidx[stream_index][0]
        ch = self.edf_header.channels[self._signal_indexes[sig_idx]]
        return ch.samples_per_record * self.edf_header.datarecords_in_file

    def _t_start(self):
        return self.edf_header.starttime_subsecond / TIME_DIMENSION

    def _t_stop(self):
        return self._t_start() + self.edf_header.file_duration / TIME_DIMENSION

    def _get_analogsignal_chunk(self, i_start, i_stop, stream_index, channel_indexes):
        self._check_open()
        stream_channel_idxs = self.stream_idx_to_chidx[stream_index]

        # keep all channels of the stream if none are selected
        if channel_indexes is None:
            channel_indexes = slice(None)
        selected_channel_idxs = np.atleast_1d(stream_channel_idxs[channel_indexes])

        n = i_stop - i_start
        if n == 0 or selected_channel_idxs.size == 0:
            return np.empty((n, selected_channel_idxs.size), dtype="int16")

        spr = self.edf_header.channels[self._signal_indexes[stream_channel_idxs[0]]].samples_per_record
        record_start, record_stop = self._record_span(spr, i_start, i_stop)
        records = self._read_records(record_start, record_stop)
        offset = record_start * spr

        # use dimensions (time, channel)
        data = np.empty((n, selected_channel_idxs.size), dtype="int16")
        for i, sig_idx in enumerate(selected_channel_idxs):
            field = f"c{self._signal_indexes[sig_idx]}"
            data[:, i] = records[field].reshape(-1)[i_start - offset : i_stop - offset]

        return data

    def _event_count(self, event_channel_index):
        is_epoch = self.header["event_channels"]["type"][event_channel_index] == b"epoch"
        return sum(1 for annotation in self.annotations if annotation.is_instant != is_epoch)

    def _get_event_timestamps(self, event_channel_index, t_start, t_stop):
        # these time are already in seconds
        is_epoch = self.header["event_channels"]["type"][event_channel_index] == b"epoch"
        selected = []
        for annotation in self.annotations:
            if annotation.is_instant == is_epoch:
                continue
            if t_start is not None and annotation.onset < t_start:
                continue
            if t_stop is not None and annotation.onset >= t_stop:
                continue
            selected.append(annotation)

        times = np.array([annotation.onset for annotation in selected], dtype="float64")
        labels = np.array([annotation.description for annotation in selected], dtype="U")
        if is_epoch:
            durations = np.array([annotation.duration for annotation in selected], dtype="float64")
        else:
            durations = None

        return times, durations, labels

    def __enter__(self):
        return self

    def __del__(self):
        self._close_reader()

    def __exit__(self, exc_type, exc_val, ex_tb):
        self._close_reader()

    def close(self):
        """
        Closes the file handler
        """
        self._close_reader()

    def _close_reader(self):
        if getattr(self, "_fid", None) is not None:
            self._fid.close()
            self._fid = None
