"""Video recorders for the supported output formats."""

from dataclasses import dataclass
from pathlib import Path

from .base import PillowSequenceRecorder, VideoRecorder
from .gif_recorder import GifRecorder
from .webm_recorder import WebmRecorder
from .webp_recorder import WebPRecorder


@dataclass(frozen=True)
class OutputFormatSpec:
    extension: str
    media_type: str
    recorder_class: type[VideoRecorder]


_OUTPUT_FORMATS: dict[str, OutputFormatSpec] = {
    "webm": OutputFormatSpec(
        extension=".webm",
        media_type="video/webm",
        recorder_class=WebmRecorder,
    ),
    "gif": OutputFormatSpec(
        extension=".gif",
        media_type="image/gif",
        recorder_class=GifRecorder,
    ),
    "webp": OutputFormatSpec(
        extension=".webp",
        media_type="image/webp",
        recorder_class=WebPRecorder,
    ),
}


def resolve_recorder(file_path: str) -> VideoRecorder:
    """
    Resolve the appropriate recorder based on file extension.

    Args:
        file_path: Output file path (extension determines format)

    Returns:
        A VideoRecorder instance writing to ``file_path``

    Raises:
        ValueError: If file extension is not supported
    """
    ext = Path(file_path).suffix.lower()
    spec = _output_spec_from_extension(ext)
    return spec.recorder_class(file_path)


def supported_output_formats() -> tuple[str, ...]:
    """Return supported output format names."""
    return tuple(_OUTPUT_FORMATS.keys())


def media_type_for_output_format(output_format: str) -> str:
    """Resolve media type for a supported output format."""
    spec = _OUTPUT_FORMATS.get(output_format.lower())
    if spec is None:
        supported = ", ".join(supported_output_formats())
        raise ValueError(f"Invalid format. Choose from: {supported}")
    return spec.media_type


def _output_spec_from_extension(ext: str) -> OutputFormatSpec:
    output_format = ext.removeprefix(".")
    spec = _OUTPUT_FORMATS.get(output_format)
    if spec is not None:
        return spec
    supported = ", ".join(spec.extension for spec in _OUTPUT_FORMATS.values())
    raise ValueError(f"Unsupported output format: {ext}. Supported formats: {supported}")


__all__ = [
    "OutputFormatSpec",
    "VideoRecorder",
    "PillowSequenceRecorder",
    "GifRecorder",
    "WebPRecorder",
    "WebmRecorder",
    "resolve_recorder",
    "supported_output_formats",
    "media_type_for_output_format",
]
