"""
Tests of edfplus.rawio.edfrawio
"""

import os
import unittest
from tempfile import TemporaryDirectory

import numpy as np

from edfplus.core.errors import FormatError, RangeError, StateError
from edfplus.rawio.baserawio import pprint_vector
from edfplus.rawio.edfrawio import EdfRawIO
from edfplus.test.tools import assert_arrays_equal, write_ramp_file
from edfplus.test.rawiotest import rawio_compliance as compliance


class TestEdfRawIO(unittest.TestCase):
    def setUp(self):
        self._tmpdir = TemporaryDirectory()
        self.filename = os.path.join(self._tmpdir.name, "ramp.edf")
        self.expected = write_ramp_file(
            self.filename,
            samples_per_record=(256, 256, 128),
            nb_record=3,
            annotations=[(0.5, None, "Lights off"), (1.0, 2.0, "Apnea"), (2.5, None, "Arousal")],
        )

    def tearDown(self):
        self._tmpdir.cleanup()

    def make_reader(self, filename=None):
        reader = EdfRawIO(filename=filename or self.filename)
        self.addCleanup(reader.close)
        reader.parse_header()
        return reader

    def test_compliance(self):
        reader = self.make_reader()
        txt = reader.__repr__()
        self.assertIn("EdfRawIO", txt)
        self.assertIn("ramp.edf", txt)
        self.assertIn(
            "signal_streams: [stream (256 samples/record) (chans: 2), stream (128 samples/record) (chans: 1)]", txt
        )
        self.assertIn("signal_channels: [ch0, ch1, ch2]", txt)
        self.assertIn("event_channels: [Event, Epoch]", txt)


        compliance.header_is_total(reader)
        compliance.count_element(reader)
        compliance.read_analogsignals(reader)
        compliance.read_events(reader)

    def test_streams(self):
        reader = self.make_reader()
        self.assertEqual(reader.signal_streams_count(), 2)
        self.assertEqual(reader.signal_channels_count(0), 2)
        self.assertEqual(reader.signal_channels_count(1), 1)
        self.assertEqual(reader.get_signal_sampling_rate(0), 256.0)
        self.assertEqual(reader.get_signal_sampling_rate(1), 128.0)
        self.assertEqual(reader.get_signal_size(0), 768)
        self.assertEqual(reader.get_signal_size(1), 384)
        self.assertEqual(list(reader.header["signal_channels"]["name"]), ["ch0", "ch1", "ch2"])
        self.assertEqual(list(reader.header["signal_channels"]["units"]), ["uV", "uV", "uV"])

    def test_chunk_across_records(self):
        reader = self.make_reader()
        raw_chunk = reader.get_analogsignal_chunk(i_start=200, i_stop=600, stream_index=0)
        self.assertEqual(raw_chunk.shape, (400, 2))
        self.assertEqual(raw_chunk.dtype, np.int16)
        np.testing.assert_array_equal(raw_chunk[:, 0], self.expected[0][200:600])
        np.testing.assert_array_equal(raw_chunk[:, 1], self.expected[1][200:600])

        raw_chunk = reader.get_analogsignal_chunk(i_start=100, i_stop=300, stream_index=1, channel_names=["ch2"])
        np.testing.assert_array_equal(raw_chunk[:, 0], self.expected[2][100:300])

        float_chunk = reader.rescale_signal_raw_to_float(raw_chunk, dtype="float64", stream_index=1)
        np.testing.assert_array_equal(float_chunk[:, 0], self.expected[2][100:300])

    def test_channel_samples(self):
        reader = self.make_reader()
        assert_arrays_equal(reader.get_channel_samples(1, 0, 768), self.expected[1].astype("int16"), dtype=True)
        np.testing.assert_array_equal(reader.get_channel_samples(2, 127, 129), self.expected[2][127:129])
        self.assertEqual(reader.get_channel_samples(0, 10, 10).size, 0)

    def test_out_of_range(self):
        reader = self.make_reader()
        with self.assertRaises(RangeError):
            reader.get_analogsignal_chunk(i_start=0, i_stop=769, stream_index=0)
        with self.assertRaises(RangeError):
            reader.get_analogsignal_chunk(i_start=-1, i_stop=10, stream_index=0)
        with self.assertRaises(RangeError):
            reader.get_analogsignal_chunk(i_start=0, i_stop=10, stream_index=2)
        with self.assertRaises(RangeError):
            # two streams, the stream must be given
            reader.get_analogsignal_chunk(i_start=0, i_stop=10)
        with self.assertRaises(RangeError):
            reader.get_analogsignal_chunk(i_start=0, i_stop=10, stream_index=0, channel_indexes=[5])
        with self.assertRaises(RangeError):
            reader.get_analogsignal_chunk(i_start=0, i_stop=10, stream_index=0, channel_names=["nope"])
        with self.assertRaises(RangeError):
            reader.get_channel_samples(3, 0, 10)
        with self.assertRaises(RangeError):
            reader.get_channel_samples(2, 300, 385)
        with self.assertRaises(RangeError):
            reader.event_count(event_channel_index=2)

    def test_events(self):
        reader = self.make_reader()
        self.assertEqual(reader.event_channels_count(), 2)
        self.assertEqual(reader.event_count(event_channel_index=0), 2)
        self.assertEqual(reader.event_count(event_channel_index=1), 1)

        times, durations, labels = reader.get_event_timestamps(event_channel_index=0)
        np.testing.assert_array_equal(times, [0.5, 2.5])
        self.assertIsNone(durations)
        self.assertEqual(list(labels), ["Lights off", "Arousal"])

        times, durations, labels = reader.get_event_timestamps(event_channel_index=1)
        np.testing.assert_array_equal(times, [1.0])
        np.testing.assert_array_equal(durations, [2.0])
        self.assertEqual(list(labels), ["Apnea"])

        times, _, _ = reader.get_event_timestamps(event_channel_index=0, t_start=1.0, t_stop=3.0)
        np.testing.assert_array_equal(times, [2.5])

        self.assertEqual([annotation.description for annotation in reader.annotations], ["Lights off", "Apnea", "Arousal"])

    def test_times(self):
        reader = self.make_reader()
        self.assertEqual(reader.t_start(), 0.0)
        self.assertEqual(reader.t_stop(), 3.0)

        filename = os.path.join(self._tmpdir.name, "subsecond.edf")
        write_ramp_file(filename, nb_record=4, duration=0.5, subsecond=2_500_000)
        reader = self.make_reader(filename)
        self.assertEqual(reader.edf_header.starttime_subsecond, 2_500_000)
        self.assertEqual(reader.t_start(), 0.25)
        self.assertEqual(reader.t_stop(), 2.25)
        self.assertEqual(reader.get_signal_sampling_rate(), 512.0)

    def test_not_finalized(self):
        filename = os.path.join(self._tmpdir.name, "unfinalized.edf")
        with self.assertLogs("edfplus", "WARNING"):
            write_ramp_file(filename, finalize=False)
        reader = EdfRawIO(filename=filename)
        with self.assertRaises(FormatError):
            reader.parse_header()
        self.assertIsNone(reader._fid)

    def test_truncated(self):
        size = os.path.getsize(self.filename)
        with open(self.filename, "r+b") as fid:
            fid.truncate(size - 10)
        with self.assertRaises(FormatError):
            EdfRawIO(filename=self.filename).parse_header()

    def test_state(self):
        reader = EdfRawIO(filename=self.filename)
        with self.assertRaises(StateError):
            reader.get_signal_size(0)
        reader.parse_header()
        reader.close()
        with self.assertRaises(StateError):
            reader.get_analogsignal_chunk(i_start=0, i_stop=10, stream_index=0)
        with self.assertRaises(StateError):
            reader.get_channel_samples(0, 0, 10)
        # header and annotations stay available
        self.assertEqual(reader.event_count(event_channel_index=0), 2)

    def test_context_manager(self):
        with EdfRawIO(filename=self.filename) as reader:
            reader.parse_header()
            self.assertEqual(reader.get_signal_size(1), 384)
        with self.assertRaises(StateError):
            reader.get_channel_samples(0, 0, 10)

    def test_repr_before_parse_header(self):
        reader = EdfRawIO(filename=self.filename)
        txt = repr(reader)
        self.assertTrue(txt.startswith("EdfRawIO: "))
        self.assertNotIn("signal_streams", txt)


class TestPprintVector(unittest.TestCase):
    def test_short(self):
        self.assertEqual(pprint_vector(["ch0", "ch1", "ch2"]), "[ch0, ch1, ch2]")
        self.assertEqual(pprint_vector([]), "[]")

    def test_truncated(self):
        names = [f"ch{i}" for i in range(10)]
        self.assertEqual(pprint_vector(names), "[ch0, ch1, ch2, ch3 ... ch6 , ch7 , ch8 , ch9]")
        self.assertEqual(pprint_vector(names, lim=2), "[ch0 ... ch9]")

    def test_not_1d(self):
        with self.assertRaises(ValueError):
            pprint_vector([["ch0", "ch1"], ["ch2", "ch3"]])


if __name__ == "__main__":
    unittest.main()
