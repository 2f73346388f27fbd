"""
Live band monitoring for real-time visualization.

Architecture Overview
---------------------
::

    Audio source (file playback, microphone)
        │
        ▼  PCM chunks
    LiveBandMonitor.process_chunk(chunk)
        │
        ├─► SpectrumAnalyser (2048-point FFT, 0.8 smoothing)
        │        └─► byte frequency snapshot (1024 bins, 0-255)
        │
        └─► LiveBandMonitor.tick(snapshot)
                 └─► extract_bands(snapshot, layout)
                          └─► LiveFrame (returned to the renderer)

``tick`` is the periodic callback: the host calls it roughly 60 times a
second with whatever snapshot is current.  It never blocks and never
raises on empty input; a skipped tick is simply a lost frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from chromesthesia.core.bands import (
    THREE_BAND,
    BandIntensities,
    BandLayout,
    extract_bands,
)
from chromesthesia.core.spectrum import AnalyserConfig, SpectrumAnalyser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveFrame:
    """Band intensities for a single tick."""

    index: int
    time_sec: float
    bands: BandIntensities

    def as_dict(self) -> dict:
        frame = {"frame_index": self.index, "time": round(self.time_sec, 4)}
        frame.update(self.bands.as_dict())
        return frame


class LiveBandMonitor:
    """
    Owns the analyser for a live source and turns ticks into band frames.

    Parameters
    ----------
    layout:
        Band split applied on every tick (default: 3 bands).
    analyser_config:
        Settings for the owned :class:`SpectrumAnalyser`.
    sample_rate:
        Sample rate of the PCM fed to :meth:`process_chunk`.
    target_fps:
        Tick rate; used for timestamps and by :meth:`frames`.
    """

    def __init__(
        self,
        layout: BandLayout = THREE_BAND,
        analyser_config: Optional[AnalyserConfig] = None,
        sample_rate: int = 44100,
        target_fps: int = 60,
    ):
        if target_fps <= 0:
            raise ValueError("target_fps must be positive")
        self.layout = layout
        self.analyser = SpectrumAnalyser(analyser_config)
        self.sample_rate = sample_rate
        self.target_fps = target_fps

        self._frame_index: int = 0

    @property
    def frame_index(self) -> int:
        """Number of ticks since construction or the last :meth:`stop`."""
        return self._frame_index

    def tick(self, snapshot: Optional[np.ndarray]) -> LiveFrame:
        """
        Process one frequency snapshot.

        Parameters
        ----------
        snapshot:
            Byte frequency magnitudes from the analyser, or None when no
            data is available this frame.

        Returns
        -------
        LiveFrame
            Frame index, timestamp and freshly extracted bands.
        """
        frame = LiveFrame(
            index=self._frame_index,
            time_sec=self._frame_index / self.target_fps,
            bands=extract_bands(snapshot, self.layout),
        )
        self._frame_index += 1
        return frame

    def process_chunk(self, chunk: np.ndarray) -> LiveFrame:
        """
        Feed PCM to the analyser and tick with its current spectrum.

        Parameters
        ----------
        chunk:
            1-D float samples in [-1, 1], any length.
        """
        self.analyser.push(chunk)
        return self.tick(self.analyser.get_byte_frequency_data())

    def frames(self, y: np.ndarray, sr: Optional[int] = None) -> Iterator[LiveFrame]:
        """
        Simulate playback of a whole buffer at ``target_fps``.

        Yields one frame per ``round(sr / target_fps)`` samples.
        """
        sr = sr or self.sample_rate
        hop = max(1, int(round(sr / self.target_fps)))
        y = np.asarray(y, dtype=np.float32)
        logger.debug("Streaming %d samples in hops of %d", len(y), hop)
        for start in range(0, len(y), hop):
            yield self.process_chunk(y[start:start + hop])

    def stop(self) -> BandIntensities:
        """
        Stop monitoring: clear analyser history and the frame counter.

        Returns:
            An all-zero record, the value displayed while stopped.
        """
        self.analyser.reset()
        self._frame_index = 0
        return self.layout.record.zeros()
