"""Tests for the offline audio feature estimator."""

import numpy as np
import pytest

from chromesthesia.core.analyzer import (
    CONSISTENT_STRUCTURE,
    AudioAnalysisResult,
    AudioFeatureEstimator,
    EstimatorConfig,
    fold_tempo,
    window_rms,
)
from chromesthesia.errors import BadInputError

TEST_SR = 22050


@pytest.fixture
def estimator():
    return AudioFeatureEstimator()


def _tone(freq, duration=2.0, amplitude=0.5, sr=TEST_SR):
    t = np.arange(int(sr * duration)) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def _segments(sr, *parts):
    """Concatenate constant-level segments given as (seconds, level) pairs."""
    return np.concatenate(
        [np.full(int(sr * seconds), level, dtype=np.float32) for seconds, level in parts]
    )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestEstimatorConfig:
    def test_defaults(self):
        cfg = EstimatorConfig()
        assert cfg.downsample == 10
        assert cfg.default_bpm == 120
        assert (cfg.min_bpm, cfg.max_bpm) == (60, 180)
        assert cfg.bass_bins == (0, 10)

    @pytest.mark.parametrize(
        "kwargs",
        [{"downsample": 0}, {"min_bpm": 200}, {"structure_window_sec": 0.0}],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            EstimatorConfig(**kwargs)


# ---------------------------------------------------------------------------
# Tempo
# ---------------------------------------------------------------------------

class TestFoldTempo:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (30, 60),
            (45, 90),
            (59, 118),
            (60, 60),
            (120, 120),
            (180, 180),
            (181, 91),
            (240, 120),
            (360, 180),
            (15, 60),
            (720, 180),
        ],
    )
    def test_octave_folding(self, raw, expected):
        assert fold_tempo(raw) == expected

    @pytest.mark.parametrize("raw", [0, -10, float("nan"), float("inf")])
    def test_degenerate_estimates_use_default(self, raw):
        assert fold_tempo(raw) == 120

    def test_always_in_range(self):
        for raw in range(1, 2000):
            assert 60 <= fold_tempo(raw) <= 180


class TestEnvelope:
    def test_attack_faster_than_release(self, estimator):
        y = np.concatenate([np.ones(1000), np.zeros(1000)]).astype(np.float32)
        env = estimator.envelope(y)
        assert len(env) == 200
        # 100 downsampled samples of attack reach ~1, release decays slowly
        assert env[99] > 0.99
        assert env[109] > 0.9
        assert np.all(np.diff(env[:100]) > 0)
        assert np.all(np.diff(env[100:]) < 0)

    def test_peaks_exclude_edges_plateaus_and_floor(self, estimator):
        env = np.array([0.5, 0.2, 0.3, 0.3, 0.2, 0.05, 0.08, 0.04, 0.6, 0.1, 0.9])
        peaks = estimator.find_envelope_peaks(env)
        assert peaks.tolist() == [8]

    def test_short_envelope_has_no_peaks(self, estimator):
        assert len(estimator.find_envelope_peaks(np.array([0.0, 1.0]))) == 0


class TestDetectBPM:
    @pytest.mark.parametrize("bpm", [90, 120, 150])
    def test_click_track_in_range(self, estimator, click_track, bpm):
        y = click_track(bpm)
        assert estimator.detect_bpm(y, TEST_SR) == bpm

    def test_slow_track_doubles(self, estimator, click_track):
        y = click_track(40, duration=12.0)
        assert estimator.detect_bpm(y, TEST_SR) == 80

    def test_fast_track_halves(self, estimator, click_track):
        y = click_track(240)
        assert estimator.detect_bpm(y, TEST_SR) == 120

    def test_silence_defaults(self, estimator):
        assert estimator.detect_bpm(np.zeros(TEST_SR * 3, dtype=np.float32), TEST_SR) == 120

    def test_quiet_noise_defaults(self, estimator):
        rng = np.random.default_rng(0)
        y = rng.uniform(-0.05, 0.05, TEST_SR * 3).astype(np.float32)
        assert estimator.detect_bpm(y, TEST_SR) == 120

    def test_single_click_defaults(self, estimator):
        y = np.zeros(TEST_SR * 3, dtype=np.float32)
        y[1000:1600] = 1.0
        assert estimator.detect_bpm(y, TEST_SR) == 120

    def test_custom_downsample(self, click_track):
        estimator = AudioFeatureEstimator(EstimatorConfig(downsample=5))
        assert estimator.detect_bpm(click_track(120), TEST_SR) == 120


# ---------------------------------------------------------------------------
# Frequency content
# ---------------------------------------------------------------------------

class TestFrequencyAnalysis:
    def test_silence_is_balanced(self, estimator):
        profile = estimator.analyze_frequencies(np.zeros(TEST_SR), TEST_SR)
        assert profile.dominant_freq == "balanced"
        assert (profile.bass_level, profile.mid_level, profile.treble_level) == (0, 0, 0)

    def test_low_tone_is_bass_heavy(self, estimator):
        profile = estimator.analyze_frequencies(_tone(50.0), TEST_SR)
        assert profile.dominant_freq == "bass-heavy"
        assert profile.bass_level > profile.mid_level

    def test_mid_tone_is_mid_focused(self, estimator):
        profile = estimator.analyze_frequencies(_tone(300.0), TEST_SR)
        assert profile.dominant_freq == "mid-focused"

    def test_upper_tone_is_treble_heavy(self, estimator):
        profile = estimator.analyze_frequencies(_tone(800.0), TEST_SR)
        assert profile.dominant_freq == "treble-heavy"
        assert profile.treble_level > profile.bass_level

    @pytest.mark.parametrize(
        "levels, expected",
        [
            ((100.0, 20.0, 20.0), "bass-heavy"),
            ((10.0, 20.0, 40.0), "treble-heavy"),
            ((10.0, 50.0, 10.0), "mid-focused"),
            ((30.0, 30.0, 30.0), "balanced"),
            ((0.0, 0.0, 0.0), "balanced"),
        ],
    )
    def test_classify_balance(self, estimator, levels, expected):
        assert estimator.classify_balance(*levels) == expected

    def test_levels_in_range(self, estimator, pure_sine):
        y, sr = pure_sine
        profile = estimator.analyze_frequencies(y, sr)
        for level in (profile.bass_level, profile.mid_level, profile.treble_level):
            assert 0 <= level <= 100


# ---------------------------------------------------------------------------
# Energy / dynamics
# ---------------------------------------------------------------------------

class TestWindowRMS:
    def test_partial_last_window(self):
        y = np.array([1.0, 1.0, 1.0, 0.0, 0.0], dtype=np.float32)
        rms = window_rms(y, 2)
        np.testing.assert_allclose(rms, [1.0, np.sqrt(0.5), 0.0])

    def test_empty(self):
        assert len(window_rms(np.zeros(0), 100)) == 0


class TestEnergyAnalysis:
    def test_silence(self, estimator):
        profile = estimator.analyze_energy(np.zeros(TEST_SR), TEST_SR)
        assert profile.energy_level == "low"
        assert profile.dynamics == "compressed/consistent"
        assert profile.avg_energy == 0
        assert profile.dynamic_range == "1.0"

    def test_empty_buffer(self, estimator):
        profile = estimator.analyze_energy(np.zeros(0), TEST_SR)
        assert profile.energy_level == "low"
        assert profile.dynamic_range == "1.0"

    def test_loud_constant_signal(self, estimator):
        profile = estimator.analyze_energy(_segments(TEST_SR, (2.0, 0.5)), TEST_SR)
        assert profile.energy_level == "high"
        assert profile.dynamics == "compressed/consistent"
        assert profile.avg_energy == 50

    def test_medium_energy(self, estimator):
        profile = estimator.analyze_energy(_segments(TEST_SR, (2.0, 0.2)), TEST_SR)
        assert profile.energy_level == "medium"
        assert profile.avg_energy == 20

    def test_wide_dynamic_range(self, estimator):
        y = _segments(TEST_SR, (1.0, 1.0), (9.0, 0.01))
        profile = estimator.analyze_energy(y, TEST_SR)
        assert profile.dynamics == "wide dynamic range"
        assert profile.dynamic_range == "9.2"
        assert profile.energy_level == "medium"

    def test_moderate_dynamics(self, estimator):
        y = _segments(TEST_SR, (1.0, 0.1), (1.0, 0.4))
        profile = estimator.analyze_energy(y, TEST_SR)
        assert profile.dynamics == "moderate"
        assert profile.dynamic_range == "1.6"

    def test_dynamic_range_at_least_one(self, estimator, pure_sine):
        y, sr = pure_sine
        assert estimator.analyze_energy(y, sr).raw_dynamic_range >= 1.0


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------

class TestStructure:
    def test_uniform_energy(self, estimator):
        y = _segments(TEST_SR, (10.0, 0.5))
        assert estimator.analyze_structure(y, TEST_SR) == CONSISTENT_STRUCTURE

    def test_silence(self, estimator):
        assert estimator.analyze_structure(np.zeros(TEST_SR * 5), TEST_SR) == CONSISTENT_STRUCTURE

    def test_empty(self, estimator):
        assert estimator.analyze_structure(np.zeros(0), TEST_SR) == CONSISTENT_STRUCTURE

    def test_swell(self, estimator, swell):
        y, sr = swell
        structure = estimator.analyze_structure(y, sr)
        assert structure == "Starts quiet, Builds to peak around 0:14, Fades out"

    def test_energetic_start(self, estimator):
        y = _segments(TEST_SR, (4.0, 1.0), (8.0, 0.3))
        structure = estimator.analyze_structure(y, TEST_SR)
        assert structure == "Starts energetic, Builds to peak around 0:00, Fades out"

    def test_peak_timestamp_minutes(self, estimator):
        sr = 8000
        y = _segments(sr, (64.0, 0.1), (2.0, 1.0), (24.0, 0.1))
        assert estimator.analyze_structure(y, sr) == "Builds to peak around 1:04"

    def test_too_short_for_thirds(self, estimator):
        y = _segments(TEST_SR, (3.0, 0.5))
        assert estimator.analyze_structure(y, TEST_SR) == CONSISTENT_STRUCTURE


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

class TestAnalyze:
    def test_silence_scenario(self, estimator, silence):
        y, sr = silence
        result = estimator.analyze(y, sr)
        assert isinstance(result, AudioAnalysisResult)
        assert result.bpm == 120
        assert result.energy_level == "low"
        assert result.dominant_freq == "balanced"
        assert result.dynamics == "compressed/consistent"
        assert result.structure == CONSISTENT_STRUCTURE
        assert (result.bass_level, result.mid_level, result.treble_level) == (0, 0, 0)
        assert result.duration == pytest.approx(5.0)

    def test_swell_scenario(self, estimator, swell):
        y, sr = swell
        result = estimator.analyze(y, sr)
        assert "quiet" in result.structure.lower()
        assert "fade" in result.structure.lower()
        assert 60 <= result.bpm <= 180

    def test_empty_buffer_gives_complete_result(self, estimator):
        result = estimator.analyze(np.zeros(0, dtype=np.float32), 44100)
        assert result.bpm == 120
        assert result.energy_level == "low"
        assert result.dominant_freq == "balanced"
        assert result.structure == CONSISTENT_STRUCTURE
        assert result.duration == 0.0

    def test_reads_channel_zero_only(self, estimator):
        loud = _segments(TEST_SR, (2.0, 0.9))
        stereo = np.stack([np.zeros_like(loud), loud])
        result = estimator.analyze(stereo, TEST_SR)
        assert result.energy_level == "low"
        assert result.avg_energy == 0

    def test_duration_passthrough(self, estimator, pure_sine):
        y, sr = pure_sine
        assert estimator.analyze(y, sr, duration=2.5).duration == 2.5

    @pytest.mark.parametrize(
        "samples, sr",
        [
            (None, 44100),
            (np.zeros((1, 2, 3)), 44100),
            (np.zeros(100), 0),
            (np.zeros(100), -44100),
            (np.zeros(100), "fast"),
        ],
    )
    def test_structurally_invalid_input(self, estimator, samples, sr):
        with pytest.raises(BadInputError):
            estimator.analyze(samples, sr)

    def test_pure(self, estimator, swell):
        y, sr = swell
        assert estimator.analyze(y, sr) == estimator.analyze(y, sr)

    def test_to_dict_keys(self, estimator, silence):
        y, sr = silence
        d = estimator.analyze(y, sr).to_dict()
        assert d == {
            "bpm": 120,
            "duration": 5.0,
            "bassLevel": 0,
            "midLevel": 0,
            "trebleLevel": 0,
            "dominantFreq": "balanced",
            "energyLevel": "low",
            "dynamics": "compressed/consistent",
            "avgEnergy": 0,
            "dynamicRange": "1.0",
            "structure": CONSISTENT_STRUCTURE,
        }
