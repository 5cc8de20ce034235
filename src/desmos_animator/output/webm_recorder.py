"""WebM recorder backed by FFmpeg through imageio."""

import logging
import os
import tempfile
from fractions import Fraction

import imageio.v2 as imageio
import numpy as np
from PIL import Image

from ..errors import AssemblyError, RecorderUnavailableError
from .base import VideoRecorder

logger = logging.getLogger(__name__)


def frame_rate(frame_interval_ms: float) -> Fraction:
    """Frames per second for a slot length, as a fraction with a small denominator."""
    return Fraction(1000 / frame_interval_ms).limit_denominator(1001)


class WebmRecorder(VideoRecorder):
    """
    Constant-frame-rate VP9 recorder.

    The surface is sampled once per ``frame_interval_ms`` slot: each drawn
    image fills every slot up to the next draw, so frames keep the display
    time the schedule gave them. The rate is handed to FFmpeg as an exact
    fraction; imageio only formats ``fps`` to two decimals.
    """

    codec = "libvpx-vp9"
    output_params = ["-b:v", "2M"]

    def _open(self) -> None:
        self._rate = frame_rate(self.frame_interval_ms)
        self._tmpdir = tempfile.TemporaryDirectory(prefix="desmos-animator-")
        self._file = os.path.join(self._tmpdir.name, "recording.webm")
        try:
            self._writer = imageio.get_writer(
                self._file,
                format="FFMPEG",
                fps=float(self._rate),
                codec=self.codec,
                macro_block_size=2,
                input_params=["-r", f"{self._rate.numerator}/{self._rate.denominator}"],
                output_params=self.output_params,
            )
        except Exception as e:
            self._tmpdir.cleanup()
            raise RecorderUnavailableError(f"FFmpeg WebM encoder unavailable: {e}") from e

        self._pending = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        self._written = 0

    def _slot(self, timestamp_ms: float) -> int:
        return round(timestamp_ms * self._rate / 1000)

    def _fill_until(self, slot: int) -> None:
        while self._written < slot:
            self._writer.append_data(self._pending)
            self._written += 1

    def _draw(self, image: Image.Image, timestamp_ms: float) -> None:
        try:
            self._fill_until(self._slot(timestamp_ms))
        except Exception as e:
            self._abort()
            raise AssemblyError(f"FFmpeg rejected a frame: {e}") from e
        self._pending = np.asarray(image.convert("RGB"))

    def _finish(self, timestamp_ms: float) -> bytes:
        try:
            self._fill_until(self._slot(timestamp_ms))
            if self._written == 0:
                raise AssemblyError("No frames were recorded")
            self._writer.close()
            with open(self._file, "rb") as f:
                data = f.read()
        except AssemblyError:
            self._abort()
            raise
        except Exception as e:
            self._abort()
            raise AssemblyError(f"FFmpeg failed to finalize the video: {e}") from e

        self._tmpdir.cleanup()
        logger.debug("Encoded %d WebM frames (%d bytes)", self._written, len(data))
        return data

    def _abort(self) -> None:
        try:
            self._writer.close()
        except Exception:
            logger.debug("Ignoring error while closing aborted writer", exc_info=True)
        self._tmpdir.cleanup()
