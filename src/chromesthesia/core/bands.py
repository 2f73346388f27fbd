"""
Spectral band extraction for live visualization.

Reduces one frame of byte frequency magnitudes (0-255, lowest bin first)
to a handful of perceptual band intensities in [0, 100]. Extraction is
stateless: the upstream analyser owns smoothing, this module only
averages and scales.
"""

from __future__ import annotations

import math
from dataclasses import astuple, dataclass, fields
from typing import ClassVar, Optional, Sequence, Union

import numpy as np

from chromesthesia.errors import BadInputError


Snapshot = Union[np.ndarray, Sequence[float]]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Band records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BandIntensities:
    """Base record for per-band intensities (each an int in [0, 100])."""

    # Keys used by the renderer, in field order
    KEYS: ClassVar[tuple[str, ...]] = ()

    def values(self) -> tuple[int, ...]:
        """Band values in ascending frequency order."""
        return astuple(self)

    def as_dict(self) -> dict[str, int]:
        """Band values keyed by their renderer names."""
        return dict(zip(self.KEYS, self.values()))

    @classmethod
    def band_count(cls) -> int:
        return len(fields(cls))

    @classmethod
    def zeros(cls) -> "BandIntensities":
        """An all-zero record, used for missing or empty input."""
        return cls(*([0] * cls.band_count()))


@dataclass(frozen=True)
class ThreeBandIntensities(BandIntensities):
    """Bass / mids / treble intensities."""

    KEYS = ("bass", "mids", "treble")

    bass: int = 0
    mids: int = 0
    treble: int = 0


@dataclass(frozen=True)
class EightBandIntensities(BandIntensities):
    """Eight contiguous bands for the advanced visualizer."""

    KEYS = (
        "subBass",
        "bass",
        "lowMids",
        "mids",
        "highMids",
        "presence",
        "brilliance",
        "treble",
    )

    sub_bass: int = 0
    bass: int = 0
    low_mids: int = 0
    mids: int = 0
    high_mids: int = 0
    presence: int = 0
    brilliance: int = 0
    treble: int = 0


# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BandLayout:
    """
    Split of the bin array into contiguous bands.

    ``edges`` are cumulative fractions of the bin count, starting at 0 and
    ending at 1. Band ``k`` covers bins ``[floor(N*edges[k]), floor(N*edges[k+1]))``.
    """

    name: str
    edges: tuple[float, ...]
    record: type

    def __post_init__(self):
        if len(self.edges) != self.record.band_count() + 1:
            raise ValueError(
                f"Layout {self.name!r} needs {self.record.band_count() + 1} edges, "
                f"got {len(self.edges)}"
            )
        if self.edges[0] != 0 or self.edges[-1] != 1:
            raise ValueError("Layout edges must start at 0 and end at 1")
        if any(b < a for a, b in zip(self.edges[:-1], self.edges[1:])):
            raise ValueError("Layout edges must be non-decreasing")

    def bin_ranges(self, n_bins: int) -> list[tuple[int, int]]:
        """
        Resolve the layout against a concrete bin count.

        Args:
            n_bins: Number of frequency bins in the snapshot.

        Returns:
            One (start, stop) pair per band; ranges are contiguous and
            together cover ``[0, n_bins)``.
        """
        # Small epsilon so e.g. 6 * (1/6) resolves to 1, not 0
        bounds = [int(math.floor(n_bins * edge + 1e-9)) for edge in self.edges]
        bounds[-1] = n_bins
        return list(zip(bounds[:-1], bounds[1:]))


THREE_BAND = BandLayout(
    name="3-band",
    edges=(0.0, 1 / 6, 2 / 3, 1.0),
    record=ThreeBandIntensities,
)

# Nested inside THREE_BAND: the first three bands span bass, the next
# three span mids and the last two span treble.
EIGHT_BAND = BandLayout(
    name="8-band",
    edges=(0.0, 1 / 32, 1 / 12, 1 / 6, 1 / 3, 1 / 2, 2 / 3, 5 / 6, 1.0),
    record=EightBandIntensities,
)

LAYOUTS = {"3": THREE_BAND, "8": EIGHT_BAND}


def get_layout(name: Union[str, int]) -> BandLayout:
    """Look up a layout by band count ("3" or "8")."""
    try:
        return LAYOUTS[str(name)]
    except KeyError:
        raise ValueError(
            f"Unknown band layout {name!r}; expected one of {sorted(LAYOUTS)}"
        ) from None


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def level_from_average(average: float) -> int:
    """Scale a 0-255 magnitude average to an integer percentage."""
    if not math.isfinite(average):
        return 0
    return round_half_up(min(max(average / 255.0, 0.0), 1.0) * 100.0)


def extract_bands(
    snapshot: Optional[Snapshot],
    layout: BandLayout = THREE_BAND,
) -> BandIntensities:
    """
    Reduce one frequency snapshot to band intensities.

    Each band is the mean of its bin magnitudes divided by 255, clamped to
    [0, 1] and expressed as a rounded percentage. Empty bands read as 0.

    Args:
        snapshot: Byte frequency magnitudes, lowest frequency first.
            ``None`` or an empty array yields an all-zero record.
        layout: Band split to apply.

    Returns:
        A fresh record of ``layout.record`` type.

    Raises:
        BadInputError: If the snapshot is not one-dimensional.
    """
    if snapshot is None:
        return layout.record.zeros()

    data = np.asarray(snapshot, dtype=np.float64)
    if data.ndim != 1:
        raise BadInputError(
            f"Frequency snapshot must be one-dimensional, got shape {data.shape}"
        )
    if data.size == 0:
        return layout.record.zeros()

    data = np.nan_to_num(data, nan=0.0, posinf=0.0, neginf=0.0)

    levels = []
    for start, stop in layout.bin_ranges(data.size):
        if stop <= start:
            levels.append(0)
            continue
        levels.append(level_from_average(float(data[start:stop].mean())))

    return layout.record(*levels)
