"""Base classes for video recorders."""

from abc import ABC, abstractmethod
from io import BytesIO

from PIL import Image

from ..errors import AssemblyError


class VideoRecorder(ABC):
    """
    Records a drawing surface into an encoded video.

    The surface is sampled at every ``draw``; a drawn image stays on screen
    until the next draw, and the last one until ``stop``.
    """

    def __init__(self, path: str = ""):
        """
        Initialize the recorder with an output file path.

        Args:
            path: Path the encoded video is written to
        """
        self.path = path
        self.width = 0
        self.height = 0
        self.frame_interval_ms = 0.0
        self.recording = False

    def start(self, width: int, height: int, frame_interval_ms: float) -> None:
        """
        Begin recording a surface of the given size.

        Args:
            width: Surface width in pixels
            height: Surface height in pixels
            frame_interval_ms: Nominal spacing between draws in milliseconds
        """
        if self.recording:
            raise AssemblyError("Recorder is already recording")
        self.width = width
        self.height = height
        self.frame_interval_ms = frame_interval_ms
        self._open()
        self.recording = True

    def draw(self, image: Image.Image, timestamp_ms: float) -> None:
        """Record the surface contents shown from ``timestamp_ms`` onwards."""
        if not self.recording:
            raise AssemblyError("Recorder is not recording")
        self._draw(image, timestamp_ms)

    def stop(self, timestamp_ms: float) -> bytes:
        """Finish recording at ``timestamp_ms`` and return the encoded video."""
        if not self.recording:
            raise AssemblyError("Recorder is not recording")
        self.recording = False
        return self._finish(timestamp_ms)

    def write(self, data: bytes) -> None:
        """
        Write encoded data to a file.

        Args:
            data: Encoded data to write
        """
        if not self.path:
            raise ValueError("Output path not set")
        with open(self.path, "wb") as f:
            f.write(data)

    def abort(self) -> None:
        """Discard the recording in progress."""
        if self.recording:
            self.recording = False
            self._abort()

    def _abort(self) -> None:
        return None

    def _open(self) -> None:
        """Acquire encoder resources. Raise ``RecorderUnavailableError`` if none exist."""
        return None

    @abstractmethod
    def _draw(self, image: Image.Image, timestamp_ms: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def _finish(self, timestamp_ms: float) -> bytes:
        raise NotImplementedError


class PillowSequenceRecorder(VideoRecorder, ABC):
    """Template recorder for Pillow-supported animated image formats."""

    def _open(self) -> None:
        self._frames: list[tuple[Image.Image, float]] = []

    def _abort(self) -> None:
        self._frames = []

    def _draw(self, image: Image.Image, timestamp_ms: float) -> None:
        self._frames.append((image.copy(), timestamp_ms))

    def _finish(self, timestamp_ms: float) -> bytes:
        frames, self._frames = self._frames, []
        if not frames:
            return b""

        images, durations = self._timeline(frames, timestamp_ms)

        buffer = BytesIO()
        try:
            images[0].save(
                buffer,
                format=self.output_format,
                save_all=True,
                append_images=images[1:],
                duration=durations,
                loop=0,
                **self.save_options,
            )
        except (OSError, ValueError) as e:
            raise AssemblyError(f"Failed to encode {self.output_format.upper()}: {e}") from e
        return buffer.getvalue()

    def _timeline(
        self,
        frames: list[tuple[Image.Image, float]],
        timestamp_ms: float,
    ) -> tuple[list[Image.Image], list[int]]:
        """
        Snap draw times to the format's delay grid.

        Frame boundaries are rounded on the cumulative timeline, so the
        durations always add up to the recorded length. A frame whose
        display time rounds away is dropped.
        """
        step = self.duration_granularity_ms
        origin = frames[0][1]
        ticks = [round((start - origin) / step) for _, start in frames]
        ticks.append(round((timestamp_ms - origin) / step))

        images, durations = [], []
        for (image, _), start, end in zip(frames, ticks, ticks[1:]):
            if end > start:
                images.append(image)
                durations.append((end - start) * step)
        if not images:
            images, durations = [frames[-1][0]], [step]
        return images, durations

    @property
    def duration_granularity_ms(self) -> int:
        """Smallest frame delay step the format can store."""
        return 1

    @property
    @abstractmethod
    def output_format(self) -> str:
        """Pillow format identifier (for example, ``gif`` or ``webp``)."""
        raise NotImplementedError

    @property
    def save_options(self) -> dict[str, object]:
        """Additional Pillow ``save`` kwargs for this format."""
        return {}
