"""Generation parameters inferred from an offline analysis."""

from dataclasses import asdict, dataclass

from chromesthesia.core.analyzer import AudioAnalysisResult


@dataclass
class GenerationParameters:
    """Seed values for lyric generation, editable by the user afterwards."""

    mood: str
    tempo: str
    energy: str
    instruments: str
    structure: str
    analysis_details: str
    genre: str = ""
    theme: str = ""
    from_audio_analysis: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


def infer_mood(result: AudioAnalysisResult) -> str:
    if result.energy_level == "low" and result.bass_level > 50:
        return "melancholic, introspective"
    if result.energy_level == "high" and result.treble_level > 50:
        return "energetic, bright"
    if result.dominant_freq == "bass-heavy":
        return "deep, heavy, grounded"
    if result.dominant_freq == "treble-heavy":
        return "ethereal, light, airy"
    return "balanced, flowing"


def infer_instruments(result: AudioAnalysisResult) -> str:
    if result.bass_level > 60:
        return "bass-heavy instruments (drums, bass guitar, synth bass)"
    if result.treble_level > 60:
        return "bright instruments (piano, guitar, high synths)"
    return "balanced mix of instruments"


def suggest_parameters(result: AudioAnalysisResult) -> GenerationParameters:
    """
    Seed generation parameters from an analysis.

    Genre and theme are left empty for the user (or the model) to fill.
    """
    return GenerationParameters(
        mood=infer_mood(result),
        tempo=str(result.bpm),
        energy=result.energy_level,
        instruments=infer_instruments(result),
        structure=result.structure,
        analysis_details=(
            f"Dominant frequencies: {result.dominant_freq}, "
            f"Dynamics: {result.dynamics}"
        ),
    )
