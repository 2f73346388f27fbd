"""Shared synthetic signals for the test suite."""

import numpy as np
import pytest

TEST_SR = 22050


def make_click_track(
    bpm: float,
    duration: float = 8.0,
    sr: int = TEST_SR,
    burst_sec: float = 0.03,
    amplitude: float = 1.0,
) -> np.ndarray:
    """Rectangular bursts at a fixed tempo; one clean envelope peak per beat."""
    y = np.zeros(int(sr * duration), dtype=np.float32)
    period = 60.0 / bpm
    burst = max(1, int(sr * burst_sec))
    t = 0.0
    while t < duration:
        start = int(round(t * sr))
        y[start:start + burst] = amplitude
        t += period
    return y


@pytest.fixture
def sr():
    return TEST_SR


@pytest.fixture
def silence():
    """Five seconds of digital silence at 44.1 kHz."""
    sr = 44100
    return np.zeros(sr * 5, dtype=np.float32), sr


@pytest.fixture
def pure_sine():
    """Two seconds of a 440 Hz sine at half scale."""
    duration = 2.0
    t = np.linspace(0, duration, int(TEST_SR * duration), endpoint=False)
    y = (0.5 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
    return y, TEST_SR


@pytest.fixture
def click_track():
    return make_click_track


@pytest.fixture
def swell():
    """A 440 Hz tone that ramps from silence to full scale and back over 30s."""
    duration = 30.0
    t = np.linspace(0, duration, int(TEST_SR * duration), endpoint=False)
    envelope = 1.0 - np.abs(2.0 * t / duration - 1.0)
    y = (envelope * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
    return y, TEST_SR
