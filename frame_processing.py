"""Pixel buffer to JPEG conversion for captured frames."""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

import numpy as np
from PIL import Image

from models import RawFrame

logger = logging.getLogger(__name__)

MAX_EDGE = 1920


def frame_to_image(frame: RawFrame) -> Image.Image:
    """Convert a raw BGRA/RGBA buffer to an RGB image.

    Rows may carry alignment padding (``row_stride > width * pixel_stride``);
    the padding is cropped away. The last row is allowed to be unpadded.
    """
    if frame.width <= 0 or frame.height <= 0:
        raise ValueError(f"invalid frame size {frame.width}x{frame.height}")
    if frame.pixel_stride < 3:
        raise ValueError(f"unsupported pixel stride {frame.pixel_stride}")
    row_bytes = frame.width * frame.pixel_stride
    if frame.row_stride < row_bytes:
        raise ValueError(f"row stride {frame.row_stride} smaller than row size {row_bytes}")

    needed = frame.row_stride * (frame.height - 1) + row_bytes
    buf = np.frombuffer(frame.data, dtype=np.uint8)
    if buf.size < needed:
        raise ValueError(f"buffer holds {buf.size} bytes, expected at least {needed}")

    full = frame.row_stride * frame.height
    if buf.size < full:
        buf = np.concatenate([buf, np.zeros(full - buf.size, dtype=np.uint8)])
    rows = buf[:full].reshape(frame.height, frame.row_stride)
    pixels = rows[:, :row_bytes].reshape(frame.height, frame.width, frame.pixel_stride)

    fmt = frame.pixel_format.upper()
    if fmt == "BGRA":
        rgb = pixels[:, :, 2::-1]
    elif fmt == "RGBA":
        rgb = pixels[:, :, :3]
    else:
        raise ValueError(f"unsupported pixel format {frame.pixel_format!r}")
    return Image.fromarray(np.ascontiguousarray(rgb), "RGB")


def scaled_size(width: int, height: int, max_edge: int = MAX_EDGE) -> tuple[int, int]:
    """Size with the longer edge clamped to ``max_edge``, aspect ratio kept."""
    longer = max(width, height)
    if longer <= max_edge:
        return width, height
    scale = max_edge / longer
    if width >= height:
        return max_edge, max(1, round(height * scale))
    return max(1, round(width * scale)), max_edge


def downsample(image: Image.Image, max_edge: int = MAX_EDGE) -> Image.Image:
    size = scaled_size(image.width, image.height, max_edge)
    if size == image.size:
        return image
    logger.debug("Resize: %dx%d => %dx%d", image.width, image.height, size[0], size[1])
    return image.resize(size, Image.Resampling.LANCZOS)


def ensure_private_dir(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    try:
        os.chmod(directory, 0o700)
    except OSError as exc:
        logger.warning("Could not restrict permissions on %s: %s", directory, exc)
    return directory


def write_frame(image: Image.Image, directory: Path, quality: int = 90) -> Path:
    """Encode ``image`` as JPEG under ``directory`` with a unique name."""
    ensure_private_dir(directory)
    path = directory / f"frame_{uuid.uuid4().hex}.jpg"
    try:
        image.save(path, format="JPEG", quality=quality)
    except Exception:
        remove_quietly(path)
        raise
    return path


def remove_quietly(path: Path | str) -> bool:
    """Best-effort delete. Returns True if the file is gone afterwards."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return True
    except OSError as exc:
        logger.warning("Failed to remove %s: %s", path, exc)
        return False
    return True
