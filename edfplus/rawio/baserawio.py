"""
baserawio
======

Classes
-------

BaseRawIO
abstract class which should be overridden to write a RawIO.

RawIO is the low level reading API of edfplus that provides fast access to
the raw data. It follows these guidelines:
  * internal use of memmap
  * fast reading of the header (do not read the complete file)
  * samples are returned as stored, the rescaling to physical values is a
    separate step

A channel refers to a signal channel of a recording. It is identified by a
channel_id. A stream consists of a set of channels which all have the same
sampling rate and the same data type of samples: the samples of a stream can
be retrieved as one Numpy array, a chunk of samples (n_samples, n_channels).

Channels within a stream can be accessed by their channel_id, their name or
their channel_index, which is a 0 based index to all channels within the
stream.

Annotations are exposed as event channels: timestamps in seconds, durations
and labels.

With this API the IO have an attribute `header` with necessary keys.
This `header` attribute is done in `_parse_header(...)` method.
"""

from __future__ import annotations

import logging

import numpy as np

from edfplus import logging_handler
from edfplus.core.errors import RangeError, StateError


error_header = "Header is not read yet, do parse_header() first"

_signal_stream_dtype = [
    ("name", "U64"),  # not necessarily unique
    ("id", "U64"),  # must be unique
]

_signal_channel_dtype = [
    ("name", "U64"),  # not necessarily unique
    ("id", "U64"),  # must be unique
    ("sampling_rate", "float64"),
    ("dtype", "U16"),
    ("units", "U64"),
    ("gain", "float64"),
    ("offset", "float64"),
    ("stream_id", "U64"),
]

_common_sig_characteristics = ["sampling_rate", "dtype", "stream_id"]

# event and epoch are handled the same way
# except, that duration is `None` for events
_event_channel_dtype = [
    ("name", "U64"),
    ("id", "U64"),
    ("type", "S5"),  # epoch or event
]


class BaseRawIO:
    """
    Generic class to handle.

    """

    name = "BaseRawIO"
    description = ""
    extensions = []

    rawmode = None  # "one-file"

    def __init__(self, **kargs):
        """
        init docstring should be filled out at the rawio level so the user knows
        which filename to give.

        """
        # create a logger for the IO class
        fullname = self.__class__.__module__ + "." + self.__class__.__name__
        self.logger = logging.getLogger(fullname)
        # Create a logger for 'edfplus' and add a handler to it if it doesn't have one already.
        # (it will also not add one if the root logger has a handler)
        corename = self.__class__.__module__.split(".")[0]
        corelogger = logging.getLogger(corename)
        rootlogger = logging.getLogger()
        if not corelogger.handlers and not rootlogger.handlers:
            corelogger.addHandler(logging_handler)

        self.header = None
        self.is_header_parsed = False

    def parse_header(self):
        """
        Parses the header of the file to allow for faster computations
        for all other functions

        """
        # this must create
        # self.header['signal_streams']
        # self.header['signal_channels']
        # self.header['event_channels']

        self._parse_header()
        self._check_stream_signal_channel_characteristics()
        self.is_header_parsed = True

    def _check_header_parsed(self):
        if not self.is_header_parsed:
            raise StateError(error_header)

    def source_name(self):
        """Return fancy name of file source"""
        return self._source_name()

    def __repr__(self):
        txt = f"{self.__class__.__name__}: {self.source_name()}\n"
        if self.header is not None:
            # signal streams
            v = [
                s["name"] + f" (chans: {self.signal_channels_count(i)})"
                for i, s in enumerate(self.header["signal_streams"])
            ]
            v = pprint_vector(v)
            txt += f"signal_streams: {v}\n"

            for k in ("signal_channels", "event_channels"):
                v = pprint_vector(self.header[k]["name"])
                txt += f"{k}: {v}\n"

        return txt

    def signal_streams_count(self):
        """Return the number of signal streams."""
        return len(self.header["signal_streams"])

    def signal_channels_count(self, stream_index: int):
        """Returns the number of signal channels for a given stream.

        Parameters
        ----------
        stream_index: int
            the stream index in which to count the signal channels

        Returns
        -------
        count: int
            the number of signal channels of a given stream
        """
        stream_id = self.header["signal_streams"][stream_index]["id"]
        channels = self.header["signal_channels"]
        channels = channels[channels["stream_id"] == stream_id]
        return len(channels)

    def event_channels_count(self):
        """Return the number of event/epoch channels."""
        return len(self.header["event_channels"])

    def t_start(self):
        """Time of the first sample in seconds, relative to the start time of the file header"""
        return self._t_start()

    def t_stop(self):
        """Time in seconds one record duration after the last data record"""
        return self._t_stop()

    ###
    # signal and channel zone

    def _check_stream_signal_channel_characteristics(self):
        """
        Check that all channels that belonging to the same stream_id
        have the same stream id and _common_sig_characteristics. These
        presently includes:
          * sampling_rate
          * dtype
        """
        signal_streams = self.header["signal_streams"]
        signal_channels = self.header["signal_channels"]
        if signal_streams.size > 0:
            if signal_channels.size < 1:
                raise ValueError("Signal stream exists but there are no signal channels")

        for stream_index in range(signal_streams.size):
            stream_id = signal_streams[stream_index]["id"]
            mask = signal_channels["stream_id"] == stream_id
            characteristics = signal_channels[mask][_common_sig_characteristics]
            unique_characteristics = np.unique(characteristics)
            if unique_characteristics.size != 1:
                raise ValueError(
                    f"Some channels in stream_id {stream_id} "
                    f"do not have the same {_common_sig_characteristics} {unique_characteristics}"
                )

            # also check that channel_id is unique inside a stream
            channel_ids = signal_channels[mask]["id"]
            if np.unique(channel_ids).size != channel_ids.size:
                raise ValueError(f"signal_channels do not have unique ids for stream {stream_index}")

    def channel_name_to_index(self, stream_index: int, channel_names: list[str]):
        """
        Inside a stream, transform channel_names to channel_indexes.
        Based on self.header['signal_channels']
        channel_indexes are zero-based offsets within the stream

        Parameters
        ----------
        stream_index: int
            The stream in which to convert channel_names to their respective channel_indexes
        channel_names: list[str]
            The channel names to convert to channel_indexes

        Returns
        -------
        channel_indexes: np.array[int]
            the channel_indexes associated with the given channel_names

        """
        stream_id = self.header["signal_streams"][stream_index]["id"]
        mask = self.header["signal_channels"]["stream_id"] == stream_id
        signal_channels = self.header["signal_channels"][mask]
        chan_names = list(signal_channels["name"])
        if signal_channels.size != np.unique(chan_names).size:
            raise ValueError("Channel names are not unique")
        missing = [name for name in channel_names if name not in chan_names]
        if missing:
            raise RangeError(f"Channels {missing} not in stream {stream_index}")
        channel_indexes = np.array([chan_names.index(name) for name in channel_names])
        return channel_indexes

    def channel_id_to_index(self, stream_index: int, channel_ids: list[str]):
        """
        Inside a stream, transform channel_ids to channel_indexes.
        Based on self.header['signal_channels']
        channel_indexes are zero-based offsets within the stream

        Parameters
        ----------
        stream_index: int
            the stream index in which to convert the channel_ids to channel_indexes
        channel_ids: list[str]
            the list of channel_ids to convert to channel_indexes

        Returns
        -------
        channel_indexes: np.array[int]
             the channel_indexes associated with the given channel_ids
        """
        # unique ids is already checked in _check_stream_signal_channel_characteristics
        stream_id = self.header["signal_streams"][stream_index]["id"]
        mask = self.header["signal_channels"]["stream_id"] == stream_id
        signal_channels = self.header["signal_channels"][mask]
        chan_ids = list(signal_channels["id"])
        missing = [chan_id for chan_id in channel_ids if chan_id not in chan_ids]
        if missing:
            raise RangeError(f"Channel ids {missing} not in stream {stream_index}")
        channel_indexes = np.array([chan_ids.index(chan_id) for chan_id in channel_ids])
        return channel_indexes

    def _get_channel_indexes(
        self,
        stream_index: int,
        channel_indexes: list[int] | None,
        channel_names: list[str] | None,
        channel_ids: list[str] | None,
    ):
        """
        Select channel_indexes for a stream based on channel_indexes/channel_names/channel_ids
        depending on which one is not None.
        """
        if channel_indexes is None and channel_names is not None:
            channel_indexes = self.channel_name_to_index(stream_index, channel_names)
        elif channel_indexes is None and channel_ids is not None:
            channel_indexes = self.channel_id_to_index(stream_index, channel_ids)
        return channel_indexes

    def _get_stream_index_from_arg(self, stream_index_arg: int | None):
        """
        Verifies the desired stream_index exists

        Parameters
        ----------
        stream_index_arg: int | None, default: None
            The stream_index to verify
            If None checks if only one stream exists and then returns 0 if it is single stream

        Returns
        -------
        stream_index: int
            The stream_index to be used for function requiring a stream_index

        """
        if stream_index_arg is None:
            if self.header["signal_streams"].size != 1:
                raise RangeError("stream_index must be given for files with multiple streams")
            stream_index = 0
        else:
            if stream_index_arg < 0 or stream_index_arg >= self.header["signal_streams"].size:
                raise RangeError(f"stream_index must be between 0 and {self.header['signal_streams'].size}")
            stream_index = stream_index_arg
        return stream_index

    def get_signal_size(self, stream_index: int | None = None):
        """
        Retrieves the number of samples of the channels in a stream.

        Parameters
        ----------
        stream_index: int | None, default: None
            The optional stream index in which to determine signal size
            This is required for data with multiple streams

        Returns
        -------
        signal_size: int
            The number of samples of each channel of the stream
        """
        self._check_header_parsed()
        stream_index = self._get_stream_index_from_arg(stream_index)
        return self._get_signal_size(stream_index)

    def get_signal_sampling_rate(self, stream_index: int | None = None):
        """
        Retrieves the sampling rate for a stream and all channels within that stream.

        Parameters
        ----------
        stream_index: int | None, default: None
            The desired stream index in which to get the sampling_rate
            This is required for data with multiple streams

        Returns
        -------
        sr: float
            The sampling rate of a given stream and all channels in that stream

        """
        self._check_header_parsed()
        stream_index = self._get_stream_index_from_arg(stream_index)
        stream_id = self.header["signal_streams"][stream_index]["id"]
        mask = self.header["signal_channels"]["stream_id"] == stream_id
        signal_channels = self.header["signal_channels"][mask]
        sr = signal_channels[0]["sampling_rate"]
        return float(sr)

    def get_analogsignal_chunk(
        self,
        i_start: int | None = None,
        i_stop: int | None = None,
        stream_index: int | None = None,
        channel_indexes: list[int] | None = None,
        channel_names: list[str] | None = None,
        channel_ids: list[str] | None = None,
    ):
        """
        Returns a chunk of raw signal as a Numpy array.

        Parameters
        ----------
        i_start: int | None, default: None
            The index of the first sample (not time) of the desired analog signal
        i_stop: int | None, default: None
            The index of one past the last sample (not time) of the desired analog signal
        stream_index: int | None, default: None
            The index of the stream containing the channels to assess for the analog signal
            This is required for data with multiple streams
        channel_indexes: list[int] | np.array[int]|  slice | None, default: None
            The list of indexes of channels to retrieve
        channel_names: list[str] | None, default: None
            The list of channel names to retrieve
        channel_ids: list[str] | None, default: None
            The list of channel_ids to retrieve

        Returns
        -------
        raw_chunk: np.array (n_samples, n_channels)
            The array with the raw signal samples

        Notes
        -----
        Rows are the samples and columns are the channels
        The channels are chosen either by channel_names,
        if provided, otherwise by channel_ids, if provided, otherwise by channel_indexes, if
        provided, otherwise all channels are selected.

        A range outside of [0, signal size] raises a RangeError, it is never clamped.

        Examples
        --------
        # 1 sec recording at sampling_rate = 256. Hz
        >>> rawio_reader.parse_header()
        >>> raw_sigs = rawio_reader.get_analogsignal_chunk(i_start=0, i_stop=256, stream_index=0)
        >>> raw_sigs.shape
        (256, 4) # 256 samples by 4 channels
        >>> raw_sigs.dtype
        'int16' # returns the dtype from the recording itself

        """
        self._check_header_parsed()
        signal_streams = self.header["signal_streams"]
        signal_channels = self.header["signal_channels"]
        if signal_streams.size == 0 or signal_channels.size == 0:
            raise RangeError("get_analogsignal_chunk can't be called on a file with no signal channels")

        stream_index = self._get_stream_index_from_arg(stream_index)
        channel_indexes = self._get_channel_indexes(stream_index, channel_indexes, channel_names, channel_ids)

        # some check on channel_indexes
        if isinstance(channel_indexes, (list, range)):
            channel_indexes = np.asarray(channel_indexes)

        if isinstance(channel_indexes, np.ndarray):
            n = self.signal_channels_count(stream_index)
            if channel_indexes.dtype == "bool":
                if n != channel_indexes.size:
                    raise ValueError(
                        "If channel_indexes is a boolean it must have be the same length as the "
                        f"number of channels {n}"
                    )
                (channel_indexes,) = np.nonzero(channel_indexes)
            elif np.any(channel_indexes < 0) or np.any(channel_indexes >= n):
                raise RangeError(f"channel_indexes must be between 0 and {n - 1}")

        size = self._get_signal_size(stream_index)
        if i_start is None:
            i_start = 0
        if i_stop is None:
            i_stop = size
        if not 0 <= i_start <= i_stop <= size:
            raise RangeError(f"samples [{i_start}, {i_stop}) outside of [0, {size}]")

        raw_chunk = self._get_analogsignal_chunk(i_start, i_stop, stream_index, channel_indexes)

        return raw_chunk

    def rescale_signal_raw_to_float(
        self,
        raw_signal: np.ndarray,
        dtype: np.dtype = "float32",
        stream_index: int | None = None,
        channel_indexes: list[int] | None = None,
        channel_names: list[str] | None = None,
        channel_ids: list[str] | None = None,
    ):
        """
        Rescales a chunk of raw signals which are provided as a Numpy array. These are normally
        returned by a call to get_analogsignal_chunk.

        Parameters
        ----------
        raw_signal: np.array (n_samples, n_channels)
            The numpy array of samples with columns being samples for a single channel
        dtype: np.dype, default: "float32"
            The datatype for returning scaled samples, must be acceptable by the numpy dtype constructor
        stream_index: int | None, default: None
            The index of the stream containing the channels to assess
        channel_indexes: list[int], np.array[int], slice | None, default: None
            The list of indexes of channels to retrieve
        channel_names: list[str] | None, default: None
            The list of channel names to retrieve
        channel_ids: list[str] | None, default: None
            list of channel_ids to retrieve

        Returns
        -------
        float_signal: np.array (n_samples, n_channels)
            The rescaled signal

        Notes
        -----
        physical = raw * gain + offset, with gain and offset of each channel
        taken from header['signal_channels'].

        Examples
        --------
        >>> float_sigs = rawio_reader.rescale_signal_raw_to_float(raw_signal=raw_sigs, dtype='float64', stream_index=0)
        >>> float_sigs.shape == raw_sigs.shape
        True

        """
        self._check_header_parsed()
        stream_index = self._get_stream_index_from_arg(stream_index)
        channel_indexes = self._get_channel_indexes(stream_index, channel_indexes, channel_names, channel_ids)
        if channel_indexes is None:
            channel_indexes = slice(None)

        stream_id = self.header["signal_streams"][stream_index]["id"]
        mask = self.header["signal_channels"]["stream_id"] == stream_id
        channels = self.header["signal_channels"][mask]
        channels = channels[channel_indexes]

        float_signal = raw_signal.astype(dtype)

        if np.any(channels["gain"] != 1.0):
            float_signal *= channels["gain"]

        if np.any(channels["offset"] != 0.0):
            float_signal += channels["offset"]

        return float_signal

    # event and epoch zone
    def event_count(self, event_channel_index: int = 0):
        """
        Returns the count of events for a particular event channel

        Parameters
        ----------
        event_channel_index: int, default: 0
            The index of the channel in which to count events

        Returns
        -------
        n_events: int
            The number of events in the given event_channel_index
        """
        self._check_header_parsed()
        self._check_event_channel_index(event_channel_index)
        return self._event_count(event_channel_index)

    def _check_event_channel_index(self, event_channel_index: int):
        if event_channel_index < 0 or event_channel_index >= self.event_channels_count():
            raise RangeError(f"event_channel_index must be between 0 and {self.event_channels_count() - 1}")

    def get_event_timestamps(
        self,
        event_channel_index: int = 0,
        t_start: float | None = None,
        t_stop: float | None = None,
    ):
        """
        Returns the event timestamps along with their labels and durations

        Parameters
        ----------
        event_channel_index: int, default: 0
            The index of the channel in which to get the events
        t_start: float | None, default: None
            The time in seconds for the start of the section
            None indicates to start at the beginning of the recording
        t_stop: float | None, default: None
            The time in seconds for the end of the section
            None indicates to end at the end of the recording

        Returns
        -------
        timestamp: np.array
            The timestamps of events in seconds
        durations: np.array | None
            The durations of each epoch in seconds, None for events
        labels: np.array
            The labels of the events

        """
        self._check_header_parsed()
        self._check_event_channel_index(event_channel_index)
        timestamp, durations, labels = self._get_event_timestamps(event_channel_index, t_start, t_stop)
        return timestamp, durations, labels

    ##################

    # Functions to be implemented in IO below here

    def _parse_header(self):
        raise (NotImplementedError)

    def _source_name(self):
        raise (NotImplementedError)

    def _t_start(self):
        raise (NotImplementedError)

    def _t_stop(self):
        raise (NotImplementedError)

    ###
    # signal and channel zone
    def _get_signal_size(self, stream_index: int):
        """
        Return the size of a set of AnalogSignals indexed by channel_indexes.

        All channels indexed must have the same size and t_start.
        """
        raise (NotImplementedError)

    def _get_analogsignal_chunk(
        self,
        i_start: int,
        i_stop: int,
        stream_index: int,
        channel_indexes: list[int] | None,
    ):
        """
        Return the samples from a set of AnalogSignals indexed
        by stream_index and channel_indexes (local index inner stream).

        RETURNS
        -------
            array of samples, with each requested channel in a column
        """

        raise (NotImplementedError)

    ###
    # event and epoch zone
    def _event_count(self, event_channel_index: int):
        raise (NotImplementedError)

    def _get_event_timestamps(self, event_channel_index: int, t_start: float | None, t_stop: float | None):
        raise (NotImplementedError)


def pprint_vector(vector, lim: int = 8):
    vector = np.asarray(vector)
    if vector.ndim != 1:
        raise ValueError(f"`vector` must have a dimension of 1 and not {vector.ndim}")
    if len(vector) > lim:
        part1 = ", ".join(e for e in vector[: lim // 2])
        part2 = " , ".join(e for e in vector[-lim // 2 :])
        txt = f"[{part1} ... {part2}]"
    else:
        part1 = ", ".join(e for e in vector)
        txt = f"[{part1}]"
    return txt
