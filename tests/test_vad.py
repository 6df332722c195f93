"""
Tests for energy VAD utterance segmentation.

Run with: python -m pytest tests/test_vad.py -v
"""

import numpy as np

from dia.audio.audio_utils import concat_audio_frames, get_rms_energy
from dia.audio.vad import EnergyVad, SegmentEvent, UtteranceSegmenter


SPEECH = np.full(320, 0.1, dtype=np.float32)
SILENCE = np.zeros(320, dtype=np.float32)


class TestAudioUtils:

    def test_rms(self):
        assert get_rms_energy(SILENCE) == 0.0
        assert abs(get_rms_energy(SPEECH) - 0.1) < 1e-6
        assert get_rms_energy(np.array([], dtype=np.float32)) == 0.0

    def test_concat_empty(self):
        assert concat_audio_frames([]).size == 0


class TestUtteranceSegmenter:

    def _segmenter(self):
        return UtteranceSegmenter(EnergyVad(threshold=0.015), silence_frames=3, max_frames=10)

    def test_silence_never_starts(self):
        seg = self._segmenter()

        assert [seg.push(SILENCE) for _ in range(5)] == [SegmentEvent.NONE] * 5
        assert not seg.has_audio

    def test_ends_after_silence_run(self):
        seg = self._segmenter()

        events = [seg.push(f) for f in (SPEECH, SPEECH, SILENCE, SILENCE, SILENCE)]

        assert events == [
            SegmentEvent.STARTED,
            SegmentEvent.CONTINUED,
            SegmentEvent.CONTINUED,
            SegmentEvent.CONTINUED,
            SegmentEvent.ENDED,
        ]
        audio = seg.take()
        assert audio.shape == (5 * 320,)
        assert not seg.has_audio

    def test_speech_resets_silence_run(self):
        seg = self._segmenter()

        events = [seg.push(f) for f in (SPEECH, SILENCE, SILENCE, SPEECH, SILENCE, SILENCE)]

        assert SegmentEvent.ENDED not in events

    def test_max_length_forces_end(self):
        seg = self._segmenter()

        events = [seg.push(SPEECH) for _ in range(10)]

        assert events[-1] is SegmentEvent.ENDED
        assert SegmentEvent.ENDED not in events[:-1]
