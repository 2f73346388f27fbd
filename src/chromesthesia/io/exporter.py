"""
Report serialization module.

Exports offline analysis results and live band frame sequences to JSON
for the UI and for prompt construction.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from chromesthesia.core.analyzer import AudioAnalysisResult
from chromesthesia.core.seeding import GenerationParameters
from chromesthesia.core.stream import LiveFrame


@dataclass
class ReportMetadata:
    """Metadata header shared by reports and band manifests."""

    source: Optional[str] = None
    schema_version: str = "1.0"


class ReportExporter:
    """Builds and writes JSON documents from analysis outputs."""

    def __init__(self, indent: int = 2):
        """
        Initialize the exporter.

        Args:
            indent: JSON indentation level.
        """
        self.indent = indent

    def _metadata(self, source: Optional[Union[str, Path]]) -> dict[str, Any]:
        meta = ReportMetadata(source=str(source) if source is not None else None)
        return {"source": meta.source, "schema_version": meta.schema_version}

    def _write(self, document: dict[str, Any], output_path: Union[str, Path]) -> Path:
        output_path = Path(output_path)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=self.indent)
        return output_path

    def build_report(
        self,
        result: AudioAnalysisResult,
        source: Optional[Union[str, Path]] = None,
        parameters: Optional[GenerationParameters] = None,
    ) -> dict[str, Any]:
        """
        Build the report dictionary for one analysed file.

        Args:
            result: Offline analysis result.
            source: Name or path of the analysed audio.
            parameters: Seeded generation parameters to include.

        Returns:
            Dictionary with ``metadata`` and ``analysis`` blocks, plus
            ``parameters`` when given.
        """
        analysis = result.to_dict()
        analysis["duration"] = round(analysis["duration"], 3)

        report: dict[str, Any] = {
            "metadata": self._metadata(source),
            "analysis": analysis,
        }
        if parameters is not None:
            report["parameters"] = parameters.to_dict()
        return report

    def export_json(
        self,
        result: AudioAnalysisResult,
        output_path: Union[str, Path],
        source: Optional[Union[str, Path]] = None,
        parameters: Optional[GenerationParameters] = None,
    ) -> Path:
        """
        Export an analysis report to a JSON file.

        Returns:
            Path to written file.
        """
        return self._write(self.build_report(result, source, parameters), output_path)

    def build_band_manifest(
        self,
        frames: Iterable[LiveFrame],
        fps: int,
        layout_name: str,
        source: Optional[Union[str, Path]] = None,
    ) -> dict[str, Any]:
        """
        Build a per-frame band manifest.

        Args:
            frames: Live frames in playback order.
            fps: Tick rate the frames were produced at.
            layout_name: Name of the band layout used.
            source: Name or path of the audio.

        Returns:
            Dictionary with ``metadata`` and ``frames`` blocks.
        """
        frame_dicts = [frame.as_dict() for frame in frames]
        metadata = self._metadata(source)
        metadata.update(
            {
                "fps": fps,
                "layout": layout_name,
                "n_frames": len(frame_dicts),
            }
        )
        return {"metadata": metadata, "frames": frame_dicts}

    def export_band_manifest(
        self,
        frames: Iterable[LiveFrame],
        fps: int,
        layout_name: str,
        output_path: Union[str, Path],
        source: Optional[Union[str, Path]] = None,
    ) -> Path:
        """Export a band manifest to a JSON file."""
        manifest = self.build_band_manifest(frames, fps, layout_name, source)
        return self._write(manifest, output_path)
