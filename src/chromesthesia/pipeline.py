"""
End-to-end offline analysis: decode a file, then estimate its features.

The pipeline tracks a small state machine so callers (UI, CLI) can report
progress and failures::

    IDLE -> DECODING -> ANALYZING -> COMPLETE
                 \\            \\
                  +-> FAILED    +-> FAILED
"""

import enum
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np

from chromesthesia.core.analyzer import AudioAnalysisResult, AudioFeatureEstimator
from chromesthesia.core.decoder import AudioDecoder, DecodedAudio
from chromesthesia.errors import ChromesthesiaError

logger = logging.getLogger(__name__)


class AnalysisState(enum.Enum):
    IDLE = "idle"
    DECODING = "decoding"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    FAILED = "failed"


class AudioPipeline:
    """
    Decodes audio and runs the offline feature estimator once per input.

    A pipeline can be reused; each call starts again from ``IDLE``.
    """

    def __init__(
        self,
        estimator: Optional[AudioFeatureEstimator] = None,
        decoder: Optional[AudioDecoder] = None,
    ):
        self.estimator = estimator or AudioFeatureEstimator()
        self.decoder = decoder or AudioDecoder()

        self.state = AnalysisState.IDLE
        self.error: Optional[Exception] = None
        self.result: Optional[AudioAnalysisResult] = None
        self.decoded: Optional[DecodedAudio] = None

    def _transition(self, state: AnalysisState) -> None:
        logger.info("Analysis state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _reset(self) -> None:
        self.state = AnalysisState.IDLE
        self.error = None
        self.result = None
        self.decoded = None

    def _fail(self, exc: Exception) -> None:
        self.error = exc
        self._transition(AnalysisState.FAILED)

    def _analyze(self, decoded: DecodedAudio) -> AudioAnalysisResult:
        self.decoded = decoded
        self._transition(AnalysisState.ANALYZING)
        try:
            result = self.estimator.analyze(
                decoded.samples,
                decoded.sample_rate,
                duration=decoded.duration,
            )
        except ChromesthesiaError as exc:
            self._fail(exc)
            raise

        self.result = result
        self._transition(AnalysisState.COMPLETE)
        return result

    def process(
        self,
        audio_path: Union[str, Path],
        sr: Optional[int] = None,
    ) -> AudioAnalysisResult:
        """
        Decode and analyse an audio file.

        Args:
            audio_path: Path to the audio file.
            sr: Optional resampling rate for decoding.

        Returns:
            AudioAnalysisResult for the file.

        Raises:
            DecodeError: If decoding fails; the pipeline ends in ``FAILED``.
        """
        self._reset()
        self._transition(AnalysisState.DECODING)
        try:
            decoded = self.decoder.load(audio_path, sr=sr)
        except ChromesthesiaError as exc:
            logger.error("Decoding failed: %s", exc)
            self._fail(exc)
            raise

        return self._analyze(decoded)

    def process_buffer(
        self,
        samples: np.ndarray,
        sample_rate: int,
    ) -> AudioAnalysisResult:
        """
        Analyse an already-decoded buffer (e.g. a finished recording).

        Args:
            samples: Mono samples or a ``(channels, n_samples)`` array.
            sample_rate: Sample rate in Hz.

        Returns:
            AudioAnalysisResult for the buffer.
        """
        self._reset()
        return self._analyze(self.decoder.from_array(samples, sample_rate))
