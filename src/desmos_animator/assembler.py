"""Assemble captured stills into a fixed-cadence video."""

import base64
import binascii
import logging
from io import BytesIO
from typing import Sequence

from PIL import Image, UnidentifiedImageError

from .config import RenderSettings
from .errors import AssemblyError
from .output.base import VideoRecorder
from .scheduling import DrawAction, FrameScheduler, VirtualClockScheduler

logger = logging.getLogger(__name__)

SURFACE_COLOR = (0, 0, 0, 255)


def decode_data_url(data_url: str) -> Image.Image:
    """Decode a base64 image data URL into a fully loaded RGBA image."""
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:image/") or not header.endswith(";base64"):
        raise AssemblyError(f"Not a base64 image data URL: {data_url[:40]!r}")
    try:
        image = Image.open(BytesIO(base64.b64decode(payload, validate=True)))
        image.load()
    except (binascii.Error, UnidentifiedImageError, OSError) as e:
        raise AssemblyError(f"Failed to decode frame: {e}") from e
    return image.convert("RGBA")


def decode_frames(frames: Sequence[str]) -> list[Image.Image]:
    """Decode every frame up front; any failure aborts the whole assembly."""
    images = []
    for index, frame in enumerate(frames):
        try:
            images.append(decode_data_url(frame))
        except AssemblyError as e:
            raise AssemblyError(f"Frame {index}: {e}") from e
    return images


class DrawingSurface:
    """Opaque canvas that stills are composited onto."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.image = Image.new("RGBA", (width, height), SURFACE_COLOR)

    def draw(self, image: Image.Image) -> None:
        """Composite ``image`` at the top-left corner, like ``drawImage(image, 0, 0)``."""
        if image.size != (self.width, self.height):
            image = image.crop((0, 0, self.width, self.height))
        self.image.alpha_composite(image)

    def snapshot(self) -> Image.Image:
        return self.image.convert("RGB")


async def assemble_video(
    frames: Sequence[str],
    width: int,
    height: int,
    settings: RenderSettings,
    recorder: VideoRecorder,
    scheduler: FrameScheduler | None = None,
) -> bytes:
    """
    Play ``frames`` onto a recorded surface at an even cadence.

    Frame ``i`` is drawn at ``i * delay`` and the recorder is stopped at
    ``len(frames) * delay``, where ``delay = duration / frames``.

    Args:
        frames: Encoded stills in playback order
        width: Surface width in pixels
        height: Surface height in pixels
        settings: Render settings providing duration and frame count
        recorder: Recorder capturing the surface
        scheduler: Timing driver; defaults to ``VirtualClockScheduler``

    Returns:
        The encoded video

    Raises:
        AssemblyError: If any frame fails to decode or the encoder fails
        RecorderUnavailableError: If the recorder has no encoder
    """
    if not frames:
        raise AssemblyError("No frames to assemble")
    scheduler = scheduler or VirtualClockScheduler()
    images = decode_frames(frames)
    surface = DrawingSurface(width, height)
    delay_ms = settings.frame_delay_ms

    def _draw_action(image: Image.Image) -> DrawAction:
        def _draw(timestamp_ms: float) -> None:
            surface.draw(image)
            recorder.draw(surface.snapshot(), timestamp_ms)
        return _draw

    recorder.start(width, height, delay_ms)
    try:
        data = await scheduler.run(
            [_draw_action(image) for image in images],
            delay_ms,
            recorder.stop,
        )
    except BaseException as e:
        recorder.abort()
        if isinstance(e, Exception) and not isinstance(e, AssemblyError):
            raise AssemblyError(f"Recording failed: {e}") from e
        raise

    logger.info(
        "Assembled %d frames into %d bytes (%.1fms per frame)",
        len(images), len(data), delay_ms,
    )
    return data
