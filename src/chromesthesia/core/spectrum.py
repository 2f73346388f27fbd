"""
Byte frequency spectra in the style of a browser AnalyserNode.

The band extractor expects snapshots of unsigned byte magnitudes.  This
module produces them from PCM: a Blackman-windowed FFT over the most
recent ``fft_size`` samples, exponential smoothing between frames, and a
linear mapping of decibels onto 0-255.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import librosa
import numpy as np
from scipy import signal as scipy_signal

logger = logging.getLogger(__name__)

# Magnitudes below this are treated as silence when converting to dB
_MIN_MAGNITUDE = 1e-20


@dataclass
class AnalyserConfig:
    """FFT analyser settings (browser defaults except the smoothing)."""

    fft_size: int = 2048
    smoothing_time_constant: float = 0.8
    min_decibels: float = -100.0
    max_decibels: float = -30.0

    def __post_init__(self):
        if self.fft_size < 32 or self.fft_size & (self.fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {self.fft_size}")
        if not 0.0 <= self.smoothing_time_constant < 1.0:
            raise ValueError("smoothing_time_constant must be in [0, 1)")
        if self.min_decibels >= self.max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2


def magnitudes_to_decibels(magnitudes: np.ndarray) -> np.ndarray:
    """Convert linear magnitudes to dB, mapping zeros to a very low level."""
    return 20.0 * np.log10(np.maximum(magnitudes, _MIN_MAGNITUDE))


def decibels_to_bytes(
    decibels: np.ndarray,
    min_decibels: float = -100.0,
    max_decibels: float = -30.0,
) -> np.ndarray:
    """
    Map decibels linearly onto 0-255.

    ``min_decibels`` maps to 0 and ``max_decibels`` to 255; values outside
    the range are clamped.
    """
    scaled = 255.0 / (max_decibels - min_decibels) * (decibels - min_decibels)
    return np.clip(np.floor(scaled), 0, 255).astype(np.uint8)


class SpectrumAnalyser:
    """
    Streaming FFT analyser producing smoothed byte spectra.

    PCM is pushed in arbitrary chunk sizes; each call to one of the
    ``get_*`` methods analyses the most recent ``fft_size`` samples and
    blends the result with the previous frame.
    """

    def __init__(self, config: Optional[AnalyserConfig] = None):
        """
        Initialize the analyser.

        Args:
            config: FFT size, smoothing and dB range. Defaults to a
                2048-point FFT with 0.8 smoothing.
        """
        self.config = config or AnalyserConfig()
        self._window = scipy_signal.get_window(
            "blackman", self.config.fft_size, fftbins=False
        )
        self._buffer = np.zeros(self.config.fft_size, dtype=np.float64)
        self._previous = np.zeros(self.config.frequency_bin_count, dtype=np.float64)

    @property
    def fft_size(self) -> int:
        return self.config.fft_size

    @property
    def frequency_bin_count(self) -> int:
        return self.config.frequency_bin_count

    def reset(self) -> None:
        """Clear buffered samples and smoothing history."""
        self._buffer[:] = 0.0
        self._previous[:] = 0.0

    def push(self, samples: np.ndarray) -> None:
        """
        Append PCM samples to the analysis ring buffer.

        Args:
            samples: 1-D float samples in [-1, 1].
        """
        samples = np.asarray(samples, dtype=np.float64).ravel()
        n = self.fft_size
        if samples.size >= n:
            self._buffer[:] = samples[-n:]
        elif samples.size:
            self._buffer = np.roll(self._buffer, -samples.size)
            self._buffer[-samples.size:] = samples

    def _smoothed_magnitudes(self) -> np.ndarray:
        spectrum = np.fft.rfft(self._buffer * self._window)[: self.frequency_bin_count]
        current = np.abs(spectrum) / self.fft_size

        tau = self.config.smoothing_time_constant
        smoothed = tau * self._previous + (1.0 - tau) * current
        smoothed = np.nan_to_num(smoothed, nan=0.0, posinf=0.0, neginf=0.0)
        self._previous = smoothed
        return smoothed

    def get_float_frequency_data(self) -> np.ndarray:
        """Smoothed spectrum of the current buffer in decibels."""
        return magnitudes_to_decibels(self._smoothed_magnitudes())

    def get_byte_frequency_data(self) -> np.ndarray:
        """Smoothed spectrum of the current buffer as 0-255 bytes."""
        return decibels_to_bytes(
            self.get_float_frequency_data(),
            self.config.min_decibels,
            self.config.max_decibels,
        )


def average_byte_spectrum(
    y: np.ndarray,
    fft_size: int = 2048,
    min_decibels: float = -100.0,
    max_decibels: float = -30.0,
) -> np.ndarray:
    """
    Byte spectrum of a whole buffer in one pass.

    The buffer is cut into non-overlapping ``fft_size`` frames, each frame
    is Blackman-windowed, and the magnitude spectra are averaged before
    the dB/byte mapping.  No inter-frame smoothing is applied.

    Args:
        y: Mono samples.
        fft_size: FFT length; also the frame and hop length.
        min_decibels: Level mapped to byte 0.
        max_decibels: Level mapped to byte 255.

    Returns:
        uint8 array of ``fft_size // 2`` magnitudes.
    """
    n_bins = fft_size // 2
    y = np.asarray(y, dtype=np.float32)
    if y.size < fft_size:
        y = librosa.util.fix_length(y, size=fft_size)

    stft = librosa.stft(
        y,
        n_fft=fft_size,
        hop_length=fft_size,
        window="blackman",
        center=False,
    )
    magnitudes = np.abs(stft[:n_bins]).mean(axis=1) / fft_size
    logger.debug("Averaged %d spectral frames of %d bins", stft.shape[1], n_bins)

    return decibels_to_bytes(
        magnitudes_to_decibels(magnitudes),
        min_decibels,
        max_decibels,
    )
