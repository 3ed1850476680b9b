"""Frame capture: grab webcam frames with PyAV and encode them as JPEG for the vision endpoint."""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Iterator
from fractions import Fraction
from typing import Any, Protocol

import av
from av import VideoFrame

logger = logging.getLogger(__name__)

# Frames are downscaled before upload to keep requests small.
CAPTURE_WIDTH = 768
CAPTURE_HEIGHT = 576
JPEG_PIX_FMT = "yuvj420p"   # mjpeg encoder expects full-range yuv


class CameraError(RuntimeError):
    pass


class FrameSource(Protocol):
    async def open(self) -> None: ...

    async def capture(self) -> Any: ...

    async def close(self) -> None: ...


class FrameEncoder:
    """
    Encodes av.VideoFrame instances to standalone JPEG images.
    Each call uses a fresh mjpeg encoder so output never depends on prior frames.
    """

    def __init__(self, *, width: int = CAPTURE_WIDTH, height: int = CAPTURE_HEIGHT) -> None:
        self._width = width
        self._height = height

    def encode(self, frame: VideoFrame) -> bytes:
        """Scale one frame to the capture size and return JPEG bytes."""
        if frame.width <= 0 or frame.height <= 0:
            raise CameraError("empty frame")
        scaled = frame.reformat(width=self._width, height=self._height, format=JPEG_PIX_FMT)
        scaled.pts = 0
        codec = av.CodecContext.create("mjpeg", "w")
        codec.width = self._width
        codec.height = self._height
        codec.pix_fmt = JPEG_PIX_FMT
        codec.time_base = Fraction(1, 30)
        packets = list(codec.encode(scaled))
        packets.extend(codec.encode(None))
        return b"".join(bytes(p) for p in packets)

    def encode_base64(self, frame: VideoFrame) -> str:
        return base64.b64encode(self.encode(frame)).decode("ascii")


class CameraSource:
    """
    Webcam (or any PyAV-readable input) as an on-demand frame source.

    `device` is anything av.open() accepts, e.g. "/dev/video0" with
    input_format="v4l2", "0" with input_format="avfoundation", or a video file.
    Blocking reads run in a worker thread so the event loop stays responsive.
    """

    def __init__(
        self,
        device: str,
        *,
        input_format: str | None = None,
        options: dict[str, str] | None = None,
    ) -> None:
        self._device = device
        self._input_format = input_format
        self._options = options if options is not None else {"video_size": "1280x720"}
        self._container: Any | None = None
        self._frames: Iterator[VideoFrame] | None = None

    async def open(self) -> None:
        if self._container is not None:
            return
        try:
            self._container = await asyncio.to_thread(
                av.open, self._device, format=self._input_format, options=self._options
            )
        except (av.FFmpegError, OSError) as exc:
            raise CameraError(f"Could not open camera {self._device!r}: {exc}") from exc
        self._frames = self._container.decode(video=0)
        logger.info("[frame_capture] Opened camera %s", self._device)

    def _read_frame(self) -> VideoFrame:
        if self._frames is None:
            raise CameraError("camera is not open")
        for frame in self._frames:
            return frame
        raise CameraError("camera stream ended")

    async def capture(self) -> VideoFrame:
        return await asyncio.to_thread(self._read_frame)

    async def close(self) -> None:
        if self._container is None:
            return
        container = self._container
        self._container = None
        self._frames = None
        await asyncio.to_thread(container.close)
        logger.info("[frame_capture] Released camera %s", self._device)
