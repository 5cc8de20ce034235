"""Render time-parameterized Desmos graphs to video."""

from .animation_pipeline import RenderController, RenderState, render_animation
from .assembler import assemble_video, decode_frames
from .config import AppConfig, RenderSettings
from .sampler import capture_frames, hidden_chrome, sample_times
from .session import Session, bootstrap
from .viewport import CaptureOptions, Viewport, resolve_viewport

__all__ = [
    "AppConfig",
    "CaptureOptions",
    "RenderController",
    "RenderSettings",
    "RenderState",
    "Session",
    "Viewport",
    "assemble_video",
    "bootstrap",
    "capture_frames",
    "decode_frames",
    "hidden_chrome",
    "render_animation",
    "resolve_viewport",
    "sample_times",
]
