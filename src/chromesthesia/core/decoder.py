"""
Audio decoding front-end.

Turns an audio file into the PCM buffer the estimator consumes.  Decoding
is delegated to librosa; any failure surfaces as a DecodeError before
analysis starts.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import librosa
import numpy as np

from chromesthesia.errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass
class DecodedAudio:
    """Container for a decoded PCM buffer."""

    samples: np.ndarray     # (channels, n_samples), float32 in [-1, 1]
    sample_rate: int
    duration: float

    @property
    def n_channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def n_samples(self) -> int:
        """Number of samples per channel."""
        return int(self.samples.shape[-1])

    @property
    def channel0(self) -> np.ndarray:
        """The first channel, the only one the estimator reads."""
        return self.samples[0]


class AudioDecoder:
    """Loads audio files into :class:`DecodedAudio` buffers."""

    def __init__(self, sr: int | None = None):
        """
        Initialize the decoder.

        Args:
            sr: Target sample rate. None preserves the file's own rate.
        """
        self.sr = sr

    def from_array(self, y: np.ndarray, sr: int) -> DecodedAudio:
        """
        Wrap an in-memory signal.

        Args:
            y: Mono samples or a ``(channels, n_samples)`` array.
            sr: Sample rate.

        Returns:
            DecodedAudio with a channel axis.
        """
        samples = np.atleast_2d(np.asarray(y, dtype=np.float32))
        duration = samples.shape[-1] / sr if sr else 0.0
        return DecodedAudio(samples=samples, sample_rate=int(sr), duration=duration)

    def load(
        self,
        audio_path: Union[str, Path],
        sr: int | None = None,
    ) -> DecodedAudio:
        """
        Decode an audio file (wav, flac, ogg, mp3 where supported).

        Args:
            audio_path: Path to the audio file.
            sr: Target sample rate, overriding the decoder default.

        Returns:
            DecodedAudio with every channel preserved.

        Raises:
            DecodeError: If the file cannot be decoded or holds no samples.
        """
        target_sr = sr if sr is not None else self.sr
        try:
            y, sr_out = librosa.load(audio_path, sr=target_sr, mono=False)
        except Exception as exc:
            raise DecodeError(f"Could not decode {audio_path}: {exc}") from exc

        decoded = self.from_array(y, sr_out)
        if decoded.n_samples == 0:
            raise DecodeError(f"Decoded {audio_path} to an empty buffer")

        logger.debug(
            "Decoded %s: %d channel(s), %d Hz, %.2fs",
            audio_path,
            decoded.n_channels,
            decoded.sample_rate,
            decoded.duration,
        )
        return decoded
