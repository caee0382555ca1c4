"""Tests for SounddeviceAudioSource gateway — patches sd.InputStream."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np

MODULE = 'pocket_whisper.l3_interface_adapters.gateways.sounddevice_audio_source'


class TestSounddeviceAudioSource:
    @patch(f'{MODULE}.sd.InputStream')
    def test_open_creates_and_starts_int16_stream(self, mock_stream_cls):
        from pocket_whisper.l3_interface_adapters.gateways.sounddevice_audio_source import SounddeviceAudioSource

        mock_stream = MagicMock()
        mock_stream_cls.return_value = mock_stream

        src = SounddeviceAudioSource(block_size=512)
        src.open(16000, 1)

        mock_stream_cls.assert_called_once()
        call_kwargs = mock_stream_cls.call_args.kwargs
        assert call_kwargs['samplerate'] == 16000
        assert call_kwargs['channels'] == 1
        assert call_kwargs['dtype'] == 'int16'
        assert call_kwargs['blocksize'] == 512
        mock_stream.start.assert_called_once()

    @patch(f'{MODULE}.sd.InputStream')
    def test_callback_wires_to_queue(self, mock_stream_cls):
        from pocket_whisper.l3_interface_adapters.gateways.sounddevice_audio_source import SounddeviceAudioSource

        mock_stream_cls.return_value = MagicMock()

        src = SounddeviceAudioSource()
        src.open(16000, 1)

        callback = mock_stream_cls.call_args.kwargs['callback']
        callback(np.array([[100], [-200]], dtype=np.int16), 2, None, None)

        result = src.read(timeout=0.1)
        assert result is not None
        assert result.dtype == np.int16
        np.testing.assert_array_equal(result, [100, -200])

    @patch(f'{MODULE}.sd.InputStream')
    def test_read_timeout_returns_none(self, mock_stream_cls):
        from pocket_whisper.l3_interface_adapters.gateways.sounddevice_audio_source import SounddeviceAudioSource

        mock_stream_cls.return_value = MagicMock()

        src = SounddeviceAudioSource()
        src.open(16000, 1)

        assert src.read(timeout=0.01) is None

    @patch(f'{MODULE}.sd.InputStream')
    def test_close_stops_stream_and_drops_pending_blocks(self, mock_stream_cls):
        from pocket_whisper.l3_interface_adapters.gateways.sounddevice_audio_source import SounddeviceAudioSource

        mock_stream = MagicMock()
        mock_stream_cls.return_value = mock_stream

        src = SounddeviceAudioSource()
        src.open(16000, 1)
        callback = mock_stream_cls.call_args.kwargs['callback']
        callback(np.zeros((4, 1), dtype=np.int16), 4, None, None)
        src.close()

        mock_stream.stop.assert_called_once()
        mock_stream.close.assert_called_once()
        assert src._stream is None
        assert src.read(timeout=0.01) is None

    def test_close_when_none_stream_is_noop(self):
        from pocket_whisper.l3_interface_adapters.gateways.sounddevice_audio_source import SounddeviceAudioSource

        src = SounddeviceAudioSource()
        src.close()
        assert src._stream is None
