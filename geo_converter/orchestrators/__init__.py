"""Conversion orchestration: per-mode processing and the session state machine."""

from geo_converter.orchestrators.converter import Converter, DownloadArtifact
from geo_converter.orchestrators.modes import ModeInput, ModeOutput, process_input

__all__ = [
    "Converter",
    "DownloadArtifact",
    "ModeInput",
    "ModeOutput",
    "process_input",
]
