"""
Offline feature estimation for a decoded audio buffer.

Computes the descriptors used to seed lyric generation from an uploaded
or recorded track: tempo, coarse spectral balance, energy/dynamics and
a prose summary of the energy contour.

All estimators are lightweight heuristics (amplitude envelopes, FFT bin
averages, windowed RMS).  Degenerate input such as silence or an empty
buffer never raises; each sub-analysis falls back to a conservative
default so the result is always complete.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from scipy import signal as scipy_signal

from chromesthesia.core.bands import level_from_average, round_half_up
from chromesthesia.core.spectrum import average_byte_spectrum
from chromesthesia.errors import BadInputError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class EstimatorConfig:
    """Constants for every offline sub-analysis."""

    # Tempo
    downsample: int = 10            # keep every Nth sample for the envelope
    attack: float = 0.1             # envelope blend when rising
    release: float = 0.01           # envelope blend when falling
    peak_floor: float = 0.1         # minimum envelope height for a peak
    default_bpm: int = 120
    min_bpm: int = 60
    max_bpm: int = 180

    # Frequency content
    fft_size: int = 2048
    bass_bins: tuple[int, int] = (0, 10)
    mid_bins: tuple[int, int] = (10, 50)
    treble_bins: tuple[int, int] = (50, 100)
    bass_dominance: float = 0.5
    treble_dominance: float = 0.45
    mid_dominance: float = 0.45

    # Energy / dynamics
    energy_window_sec: float = 0.1
    low_energy: float = 0.1
    high_energy: float = 0.3
    wide_dynamics: float = 3.0
    compressed_dynamics: float = 1.5

    # Structure
    structure_window_sec: float = 2.0
    quiet_ratio: float = 0.7
    loud_ratio: float = 1.2
    peak_ratio: float = 1.5

    def __post_init__(self):
        if self.downsample < 1:
            raise ValueError("downsample must be at least 1")
        if not 0 < self.min_bpm < self.max_bpm:
            raise ValueError("min_bpm must be positive and below max_bpm")
        if self.energy_window_sec <= 0 or self.structure_window_sec <= 0:
            raise ValueError("window lengths must be positive")


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------

DOMINANT_FREQ_LABELS = ("bass-heavy", "treble-heavy", "mid-focused", "balanced")
ENERGY_LABELS = ("low", "medium", "high")
DYNAMICS_LABELS = ("wide dynamic range", "moderate", "compressed/consistent")
CONSISTENT_STRUCTURE = "Consistent energy throughout"


@dataclass(frozen=True)
class FrequencyProfile:
    """Coarse spectral balance of the whole buffer."""

    bass_level: int         # 0-100
    mid_level: int          # 0-100
    treble_level: int       # 0-100
    dominant_freq: str      # one of DOMINANT_FREQ_LABELS


@dataclass(frozen=True)
class EnergyProfile:
    """Windowed RMS statistics."""

    energy_level: str       # "low" | "medium" | "high"
    dynamics: str           # one of DYNAMICS_LABELS
    avg_energy: int         # mean window RMS * 100, rounded
    dynamic_range: str      # max/mean window RMS, one decimal place
    raw_avg_energy: float = 0.0
    raw_dynamic_range: float = 1.0


@dataclass(frozen=True)
class AudioAnalysisResult:
    """Complete per-file analysis, immutable once produced."""

    bpm: int
    duration: float
    bass_level: int
    mid_level: int
    treble_level: int
    dominant_freq: str
    energy_level: str
    dynamics: str
    avg_energy: int
    dynamic_range: str
    structure: str

    def to_dict(self) -> dict[str, Any]:
        """Downstream shape with the camelCase keys the UI and prompts use."""
        return {
            "bpm": self.bpm,
            "duration": self.duration,
            "bassLevel": self.bass_level,
            "midLevel": self.mid_level,
            "trebleLevel": self.treble_level,
            "dominantFreq": self.dominant_freq,
            "energyLevel": self.energy_level,
            "dynamics": self.dynamics,
            "avgEnergy": self.avg_energy,
            "dynamicRange": self.dynamic_range,
            "structure": self.structure,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def fold_tempo(bpm: float, min_bpm: int = 60, max_bpm: int = 180, default: int = 120) -> int:
    """
    Fold a tempo estimate into ``[min_bpm, max_bpm]`` by octaves.

    Slow estimates are doubled and fast ones halved (and rounded) until the
    value lands in range, which undoes peak detection locking onto a sub- or
    super-harmonic of the beat.

    Args:
        bpm: Raw tempo estimate.
        min_bpm: Lower bound of the plausible range.
        max_bpm: Upper bound of the plausible range.
        default: Returned for non-positive or non-finite estimates.

    Returns:
        Tempo in beats per minute.
    """
    if not math.isfinite(bpm) or bpm <= 0:
        return default
    bpm = round_half_up(bpm)
    if bpm <= 0:
        return default
    while bpm < min_bpm:
        bpm *= 2
    while bpm > max_bpm:
        bpm = round_half_up(bpm / 2)
    return bpm


def window_rms(y: np.ndarray, window_size: int) -> np.ndarray:
    """
    RMS of contiguous, non-overlapping windows.

    The final window may be shorter than ``window_size``.

    Args:
        y: Mono samples.
        window_size: Samples per window (at least 1).

    Returns:
        One RMS value per window; empty for an empty signal.
    """
    window_size = max(1, int(window_size))
    n = len(y)
    if n == 0:
        return np.zeros(0, dtype=np.float64)

    n_full = n // window_size
    squares = np.square(y.astype(np.float64))
    rms = []
    if n_full:
        full = squares[: n_full * window_size].reshape(n_full, window_size)
        rms.append(np.sqrt(full.mean(axis=1)))
    if n % window_size:
        rms.append(np.sqrt([squares[n_full * window_size:].mean()]))
    return np.concatenate(rms)


def _mean_or_none(values: np.ndarray) -> Optional[float]:
    return float(values.mean()) if len(values) else None


def _format_timestamp(seconds: float) -> str:
    total = round_half_up(seconds)
    return f"{total // 60}:{total % 60:02d}"


# ---------------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------------

class AudioFeatureEstimator:
    """
    One-shot estimator from ``(samples, sample_rate)`` to an analysis result.

    The instance holds only configuration; every method is a pure function
    of its arguments, so one estimator can be shared freely.
    """

    def __init__(self, config: Optional[EstimatorConfig] = None):
        """
        Initialize the estimator.

        Args:
            config: Analysis constants. Defaults to ``EstimatorConfig()``.
        """
        self.config = config or EstimatorConfig()

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------

    @staticmethod
    def select_channel(samples: np.ndarray) -> np.ndarray:
        """
        Return channel 0 of a mono or ``(channels, samples)`` buffer.

        Raises:
            BadInputError: If the buffer is missing or has more than two axes.
        """
        if samples is None:
            raise BadInputError("No sample buffer supplied")
        y = np.asarray(samples, dtype=np.float32)
        if y.ndim == 1:
            return y
        if y.ndim == 2:
            if y.shape[0] == 0:
                return np.zeros(0, dtype=np.float32)
            return y[0]
        raise BadInputError(f"Sample buffer must be 1-D or 2-D, got shape {y.shape}")

    @staticmethod
    def _check_sample_rate(sample_rate: int) -> int:
        try:
            sr = int(sample_rate)
        except (TypeError, ValueError):
            raise BadInputError(f"Invalid sample rate: {sample_rate!r}") from None
        if sr <= 0:
            raise BadInputError(f"Sample rate must be positive, got {sample_rate}")
        return sr

    # ------------------------------------------------------------------
    # Tempo
    # ------------------------------------------------------------------

    def envelope(self, y: np.ndarray) -> np.ndarray:
        """
        Asymmetric envelope of the downsampled absolute signal.

        Rises towards louder samples with the ``attack`` blend and decays
        towards quieter ones with the ``release`` blend.
        """
        cfg = self.config
        data = np.abs(y[:: cfg.downsample]).astype(np.float64)

        output = np.zeros_like(data)
        current = 0.0
        for i, target in enumerate(data.tolist()):
            if target > current:
                current = current * (1.0 - cfg.attack) + target * cfg.attack
            else:
                current = current * (1.0 - cfg.release) + target * cfg.release
            output[i] = current
        return output

    def find_envelope_peaks(self, envelope: np.ndarray) -> np.ndarray:
        """
        Indices where the envelope exceeds both neighbours and the floor.

        The first and last points are never peaks.
        """
        if len(envelope) < 3:
            return np.zeros(0, dtype=int)
        (candidates,) = scipy_signal.argrelmax(envelope, order=1, mode="clip")
        return candidates[envelope[candidates] > self.config.peak_floor]

    def detect_bpm(self, y: np.ndarray, sr: int) -> int:
        """
        Estimate tempo from the mean spacing of envelope peaks.

        Args:
            y: Mono samples.
            sr: Sample rate.

        Returns:
            Tempo folded into the configured range, or the default tempo
            when fewer than two peaks are found.
        """
        cfg = self.config
        peaks = self.find_envelope_peaks(self.envelope(y))
        logger.debug("Found %d envelope peaks", len(peaks))

        if len(peaks) < 2:
            return cfg.default_bpm

        avg_interval = float(np.diff(peaks).mean())
        seconds_per_beat = avg_interval * cfg.downsample / sr
        raw_bpm = 60.0 / seconds_per_beat
        bpm = fold_tempo(raw_bpm, cfg.min_bpm, cfg.max_bpm, cfg.default_bpm)
        logger.debug("Raw tempo %.2f BPM folded to %d BPM", raw_bpm, bpm)
        return bpm

    # ------------------------------------------------------------------
    # Frequency content
    # ------------------------------------------------------------------

    def classify_balance(self, bass: float, mid: float, treble: float) -> str:
        """Label the spectral balance from three band averages."""
        cfg = self.config
        total = bass + mid + treble
        if total <= 0 or not math.isfinite(total):
            return "balanced"
        if bass / total > cfg.bass_dominance:
            return "bass-heavy"
        if treble / total > cfg.treble_dominance:
            return "treble-heavy"
        if mid / total > cfg.mid_dominance:
            return "mid-focused"
        return "balanced"

    def analyze_frequencies(self, y: np.ndarray, sr: int) -> FrequencyProfile:
        """
        Average three fixed low bin ranges of the whole-buffer spectrum.

        The ranges are absolute bin counts (0-10, 10-50, 50-100 of a
        2048-point FFT), so this looks at the low end of the spectrum only.
        """
        cfg = self.config
        spectrum = average_byte_spectrum(y, fft_size=cfg.fft_size).astype(np.float64)

        def band_average(bins: tuple[int, int]) -> float:
            start, stop = bins
            width = stop - start
            if width <= 0:
                return 0.0
            # Bins past the end of the spectrum count as silent
            return float(spectrum[start:stop].sum()) / width

        bass = band_average(cfg.bass_bins)
        mid = band_average(cfg.mid_bins)
        treble = band_average(cfg.treble_bins)

        return FrequencyProfile(
            bass_level=level_from_average(bass),
            mid_level=level_from_average(mid),
            treble_level=level_from_average(treble),
            dominant_freq=self.classify_balance(bass, mid, treble),
        )

    # ------------------------------------------------------------------
    # Energy / dynamics
    # ------------------------------------------------------------------

    def analyze_energy(self, y: np.ndarray, sr: int) -> EnergyProfile:
        """
        Windowed RMS loudness and peak-to-average dynamic range.

        Args:
            y: Mono samples.
            sr: Sample rate.

        Returns:
            EnergyProfile. Silence or an empty buffer reads as low energy
            with a dynamic range of 1.0.
        """
        cfg = self.config
        levels = window_rms(y, round_half_up(sr * cfg.energy_window_sec))

        avg_energy = _mean_or_none(levels) or 0.0
        if avg_energy > 0:
            dynamic_range = float(levels.max()) / avg_energy
        else:
            dynamic_range = 1.0

        if avg_energy < cfg.low_energy:
            energy_level = "low"
        elif avg_energy > cfg.high_energy:
            energy_level = "high"
        else:
            energy_level = "medium"

        if dynamic_range > cfg.wide_dynamics:
            dynamics = "wide dynamic range"
        elif dynamic_range < cfg.compressed_dynamics:
            dynamics = "compressed/consistent"
        else:
            dynamics = "moderate"

        return EnergyProfile(
            energy_level=energy_level,
            dynamics=dynamics,
            avg_energy=round_half_up(avg_energy * 100),
            dynamic_range=f"{dynamic_range:.1f}",
            raw_avg_energy=avg_energy,
            raw_dynamic_range=dynamic_range,
        )

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def analyze_structure(self, y: np.ndarray, sr: int) -> str:
        """
        Describe the energy contour in a short phrase.

        Compares the first and last thirds of 2-second RMS windows against
        the overall average and names the loudest window when it stands out.

        Args:
            y: Mono samples.
            sr: Sample rate.

        Returns:
            Comma-separated descriptors, or "Consistent energy throughout".
        """
        cfg = self.config
        window_size = max(1, round_half_up(sr * cfg.structure_window_sec))
        energies = window_rms(y, window_size)
        n = len(energies)
        if n == 0:
            return CONSISTENT_STRUCTURE

        times = np.arange(n) * window_size / sr
        average = float(energies.mean())

        start_energy = _mean_or_none(energies[: n // 3])
        end_energy = _mean_or_none(energies[(n * 2) // 3:])

        description = []
        if start_energy is not None:
            if start_energy < average * cfg.quiet_ratio:
                description.append("Starts quiet")
            elif start_energy > average * cfg.loud_ratio:
                description.append("Starts energetic")

        peak = int(np.argmax(energies))
        if energies[peak] > average * cfg.peak_ratio:
            description.append(f"Builds to peak around {_format_timestamp(times[peak])}")

        if end_energy is not None and end_energy < average * cfg.quiet_ratio:
            description.append("Fades out")

        return ", ".join(description) or CONSISTENT_STRUCTURE

    # ------------------------------------------------------------------
    # Main analysis entry point
    # ------------------------------------------------------------------

    def analyze(
        self,
        samples: np.ndarray,
        sample_rate: int,
        duration: Optional[float] = None,
    ) -> AudioAnalysisResult:
        """
        Run every sub-analysis on a decoded buffer.

        Args:
            samples: Mono samples or a ``(channels, samples)`` array; only
                channel 0 is analysed.
            sample_rate: Sample rate in Hz.
            duration: Duration in seconds as reported by the decoder.
                Derived from the sample count when omitted.

        Returns:
            AudioAnalysisResult with every field populated.

        Raises:
            BadInputError: For a missing buffer, a buffer with more than
                two axes or a non-positive sample rate.
        """
        sr = self._check_sample_rate(sample_rate)
        y = self.select_channel(samples)
        y = np.nan_to_num(y, nan=0.0, posinf=0.0, neginf=0.0)
        if duration is None:
            duration = len(y) / sr

        if len(y) == 0:
            logger.warning("Analysing an empty buffer; using default features")

        bpm = self.detect_bpm(y, sr)
        frequencies = self.analyze_frequencies(y, sr)
        energy = self.analyze_energy(y, sr)
        structure = self.analyze_structure(y, sr)

        logger.debug(
            "Analysis: %d BPM, %s, %s energy, %s",
            bpm,
            frequencies.dominant_freq,
            energy.energy_level,
            structure,
        )

        return AudioAnalysisResult(
            bpm=bpm,
            duration=float(duration),
            bass_level=frequencies.bass_level,
            mid_level=frequencies.mid_level,
            treble_level=frequencies.treble_level,
            dominant_freq=frequencies.dominant_freq,
            energy_level=energy.energy_level,
            dynamics=energy.dynamics,
            avg_energy=energy.avg_energy,
            dynamic_range=energy.dynamic_range,
            structure=structure,
        )
