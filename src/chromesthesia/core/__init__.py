"""Core audio processing modules."""

from chromesthesia.core.analyzer import AudioFeatureEstimator, EstimatorConfig
from chromesthesia.core.bands import BandLayout, extract_bands
from chromesthesia.core.decoder import AudioDecoder
from chromesthesia.core.spectrum import SpectrumAnalyser
from chromesthesia.core.stream import LiveBandMonitor

__all__ = [
    "AudioDecoder",
    "AudioFeatureEstimator",
    "BandLayout",
    "EstimatorConfig",
    "LiveBandMonitor",
    "SpectrumAnalyser",
    "extract_bands",
]
