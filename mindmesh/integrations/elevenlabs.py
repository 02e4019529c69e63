"""ElevenLabs text-to-speech integration for MindMesh."""

import base64
import logging
import os
import threading
import time
from typing import Dict, Optional

import requests
from dotenv import load_dotenv

from mindmesh.models.constants import TTS_TIMEOUT_SEC

load_dotenv()

logger = logging.getLogger(__name__)

ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"
DEFAULT_VOICE_ID = "EXAVITQu4vr4xnSDxMaL"
DEFAULT_MODEL_ID = "eleven_monolingual_v1"
DEFAULT_VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.0,
    "use_speaker_boost": True,
}
AUDIO_CONTENT_TYPE = "audio/mpeg"


class SpeechError(Exception):
    """Raised when synthesis fails or the provider is not configured."""


class ElevenLabsClient:
    """Client for the ElevenLabs text-to-speech API."""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.getenv("ELEVENLABS_KEY")
        if not self.api_key:
            logger.warning("ELEVENLABS_KEY not found in environment. Text-to-speech will not be available.")

    def synthesize(
        self,
        text: str,
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[bytes]:
        """Synthesize speech as MP3 bytes.

        The response is streamed so a set `cancel_event` can abort the download
        between chunks. TTS_TIMEOUT_SEC bounds the whole download as well as
        each socket read.

        Returns:
            Audio bytes, or None if cancelled

        Raises:
            SpeechError: If the API key is missing or the request fails
        """
        if not self.api_key:
            raise SpeechError("ElevenLabs API key not configured")

        url = f"{ELEVENLABS_API_BASE}/text-to-speech/{voice_id or DEFAULT_VOICE_ID}"
        headers = {
            "Accept": AUDIO_CONTENT_TYPE,
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }
        body = {
            "text": text,
            "model_id": model_id or DEFAULT_MODEL_ID,
            "voice_settings": DEFAULT_VOICE_SETTINGS,
        }
        deadline = time.monotonic() + TTS_TIMEOUT_SEC
        try:
            with requests.post(url, headers=headers, json=body, stream=True, timeout=TTS_TIMEOUT_SEC) as response:
                if not response.ok:
                    logger.error(f"ElevenLabs API error: {response.status_code}")
                    raise SpeechError(f"ElevenLabs API error: {response.status_code}")
                chunks = []
                for chunk in response.iter_content(chunk_size=8192):
                    if cancel_event is not None and cancel_event.is_set():
                        logger.debug("Speech synthesis cancelled by a newer request")
                        return None
                    if time.monotonic() > deadline:
                        logger.error(f"ElevenLabs download exceeded {TTS_TIMEOUT_SEC}s")
                        raise SpeechError(f"ElevenLabs download exceeded {TTS_TIMEOUT_SEC}s")
                    if chunk:
                        chunks.append(chunk)
                return b"".join(chunks)
        except requests.RequestException as e:
            logger.error(f"Error calling ElevenLabs API: {type(e).__name__}")
            raise SpeechError(f"Error calling ElevenLabs API: {type(e).__name__}") from e


class SpeechController:
    """Keeps at most one synthesis in flight.

    Starting a new request cancels the previous one; the cancelled call
    returns None instead of audio.
    """

    def __init__(self, client: Optional[ElevenLabsClient] = None):
        self.client = client or ElevenLabsClient()
        self._lock = threading.Lock()
        self._current: Optional[threading.Event] = None

    def _begin(self) -> threading.Event:
        with self._lock:
            if self._current is not None:
                self._current.set()
            self._current = threading.Event()
            return self._current

    def _finish(self, token: threading.Event) -> None:
        with self._lock:
            if self._current is token:
                self._current = None

    def cancel(self) -> None:
        with self._lock:
            if self._current is not None:
                self._current.set()
                self._current = None

    def speak(
        self,
        text: str,
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> Optional[Dict]:
        """Synthesize and package audio for JSON transport.

        Returns:
            {"audio_base64", "content_type", "size"}, or None if superseded

        Raises:
            SpeechError: If synthesis fails
        """
        token = self._begin()
        try:
            audio = self.client.synthesize(text, voice_id=voice_id, model_id=model_id, cancel_event=token)
            if audio is None or token.is_set():
                return None
            return {
                "audio_base64": base64.b64encode(audio).decode("ascii"),
                "content_type": AUDIO_CONTENT_TYPE,
                "size": len(audio),
            }
        finally:
            self._finish(token)
