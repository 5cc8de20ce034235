"""GIF recorder."""

from .base import PillowSequenceRecorder


class GifRecorder(PillowSequenceRecorder):
    """Recorder for GIF format. GIF stores delays in 10ms steps."""

    @property
    def output_format(self) -> str:
        return "gif"

    @property
    def duration_granularity_ms(self) -> int:
        return 10

    @property
    def save_options(self) -> dict[str, object]:
        return {"optimize": False}
