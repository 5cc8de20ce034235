"""WebP recorder."""

from .base import PillowSequenceRecorder


class WebPRecorder(PillowSequenceRecorder):
    """Recorder for animated WebP format."""

    @property
    def output_format(self) -> str:
        return "webp"

    @property
    def save_options(self) -> dict[str, object]:
        return {
            "lossless": True,
            "quality": 100,
            "method": 4,
        }
