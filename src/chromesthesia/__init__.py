"""Frequency-band extraction and offline feature estimation for audio visualizers."""

from chromesthesia.core.analyzer import AudioAnalysisResult, AudioFeatureEstimator
from chromesthesia.core.bands import EIGHT_BAND, THREE_BAND, extract_bands
from chromesthesia.core.stream import LiveBandMonitor
from chromesthesia.io.exporter import ReportExporter
from chromesthesia.pipeline import AudioPipeline

__version__ = "0.1.0"
__all__ = [
    "AudioAnalysisResult",
    "AudioFeatureEstimator",
    "AudioPipeline",
    "EIGHT_BAND",
    "LiveBandMonitor",
    "ReportExporter",
    "THREE_BAND",
    "extract_bands",
]
