"""Tests for ElevenLabs synthesis and the single-flight speech controller."""

import base64
import threading
from unittest.mock import MagicMock, patch

import pytest

from mindmesh.integrations.elevenlabs import ElevenLabsClient, SpeechController, SpeechError


def _streaming_response(chunks, ok=True, status_code=200):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.iter_content.return_value = iter(chunks)
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


class TestElevenLabsClient:
    """Test synthesis requests."""

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("ELEVENLABS_KEY", raising=False)
        with pytest.raises(SpeechError):
            ElevenLabsClient().synthesize("hello")

    def test_joins_streamed_chunks(self):
        client = ElevenLabsClient(api_key="test-key")
        with patch("mindmesh.integrations.elevenlabs.requests.post",
                   return_value=_streaming_response([b"ab", b"", b"cd"])) as post:
            audio = client.synthesize("hello", voice_id="voice-1")

        assert audio == b"abcd"
        url = post.call_args[0][0]
        assert url.endswith("/text-to-speech/voice-1")
        assert post.call_args[1]["json"]["text"] == "hello"

    def test_error_status_raises(self):
        client = ElevenLabsClient(api_key="test-key")
        with patch("mindmesh.integrations.elevenlabs.requests.post",
                   return_value=_streaming_response([], ok=False, status_code=401)):
            with pytest.raises(SpeechError):
                client.synthesize("hello")

    def test_cancelled_download_returns_none(self):
        client = ElevenLabsClient(api_key="test-key")
        cancel = threading.Event()
        cancel.set()
        with patch("mindmesh.integrations.elevenlabs.requests.post",
                   return_value=_streaming_response([b"ab"])):
            assert client.synthesize("hello", cancel_event=cancel) is None

    def test_slow_download_hits_overall_deadline(self):
        """Test that a stream trickling chunks past the time budget is abandoned."""
        client = ElevenLabsClient(api_key="test-key")
        ticks = iter([0.0, 1.0, 1000.0])
        response = _streaming_response([b"ab", b"cd", b"ef"])
        with patch("mindmesh.integrations.elevenlabs.requests.post", return_value=response), \
                patch("mindmesh.integrations.elevenlabs.time.monotonic", side_effect=lambda: next(ticks)):
            with pytest.raises(SpeechError, match="exceeded"):
                client.synthesize("hello")


class TestSpeechController:
    """Test that only the newest request produces audio."""

    def test_speak_encodes_audio(self):
        client = MagicMock()
        client.synthesize.return_value = b"mp3-bytes"

        result = SpeechController(client).speak("hi")

        assert base64.b64decode(result["audio_base64"]) == b"mp3-bytes"
        assert result["content_type"] == "audio/mpeg"
        assert result["size"] == len(b"mp3-bytes")

    def test_new_request_cancels_previous(self):
        controller = SpeechController(MagicMock())
        started = threading.Event()
        release = threading.Event()
        results = {}

        def slow_synthesize(text, voice_id=None, model_id=None, cancel_event=None):
            if text == "first":
                started.set()
                release.wait(timeout=5)
            return b"audio-" + text.encode()

        controller.client.synthesize.side_effect = slow_synthesize

        worker = threading.Thread(target=lambda: results.setdefault("first", controller.speak("first")))
        worker.start()
        assert started.wait(timeout=5)

        results["second"] = controller.speak("second")
        release.set()
        worker.join(timeout=5)

        assert results["first"] is None
        assert results["second"]["size"] == len(b"audio-second")

    def test_cancel_without_request_is_noop(self):
        SpeechController(MagicMock()).cancel()
