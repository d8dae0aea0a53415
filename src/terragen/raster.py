"""Pixel buffer helpers: parallel row-band fill and the texture handoff type.

Every rasterizer computes each output pixel independently from immutable
generator state. The fill below fans row bands out to a thread pool (numpy
releases the GIL inside its array kernels) and writes each band into a
disjoint slice of one preallocated buffer.
"""

import os
from concurrent import futures
from dataclasses import dataclass
from typing import Callable

import numpy as np
from numpy.typing import NDArray

from .exceptions import ConfigurationError

RGBA_CHANNELS = 4

# Fill callback: (row_start, row_stop) -> array of shape (row_stop - row_start, width, ...)
BandFn = Callable[[int, int], NDArray]


def default_workers() -> int:
    """Number of worker threads used when none is requested."""
    return min(32, os.cpu_count() or 1)


def row_bands(height: int, band_count: int) -> list[tuple[int, int]]:
    """Split ``range(height)`` into contiguous, non-overlapping bands.

    Args:
        height: Number of rows.
        band_count: Desired number of bands (clamped to [1, height]).

    Returns:
        List of (start, stop) pairs covering every row exactly once.
    """
    band_count = max(1, min(band_count, height))
    edges = np.linspace(0, height, band_count + 1).astype(int)
    return [(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]


def parallel_fill(
    height: int,
    width: int,
    fill_band: BandFn,
    channels: int | None = None,
    dtype: type = np.float64,
    max_workers: int | None = None,
) -> NDArray:
    """Fill a (height, width[, channels]) buffer band by band in parallel.

    Args:
        height: Output rows.
        width: Output columns.
        fill_band: Computes the rows [start, stop) of the output.
        channels: Trailing channel count, or None for a 2D buffer.
        dtype: Output dtype.
        max_workers: Thread count (defaults to the CPU count).

    Returns:
        The filled buffer.

    Raises:
        ConfigurationError: If the dimensions are not positive.
    """
    if height < 1 or width < 1:
        raise ConfigurationError(
            f"Raster dimensions must be positive, got {width}x{height}"
        )

    shape = (height, width) if channels is None else (height, width, channels)
    out = np.empty(shape, dtype=dtype)

    workers = max_workers or default_workers()
    bands = row_bands(height, workers * 4)

    if workers == 1 or len(bands) == 1:
        for start, stop in bands:
            out[start:stop] = fill_band(start, stop)
        return out

    with futures.ThreadPoolExecutor(max_workers=workers) as pool:
        pending = {
            pool.submit(fill_band, start, stop): (start, stop) for start, stop in bands
        }
        for future in futures.as_completed(pending):
            start, stop = pending[future]
            # result() re-raises worker errors; no partial buffer escapes
            out[start:stop] = future.result()

    return out


def to_u8(values: NDArray) -> NDArray[np.uint8]:
    """Truncate float channel values in [0, 255] to uint8."""
    return np.clip(values, 0.0, 255.0).astype(np.uint8)


def pack_rgba(
    red: NDArray | int = 0,
    green: NDArray | int = 0,
    blue: NDArray | int = 0,
    alpha: NDArray | int = 255,
    shape: tuple[int, int] | None = None,
) -> NDArray[np.uint8]:
    """Stack per-channel values into an RGBA uint8 array."""
    if shape is None:
        for channel in (red, green, blue, alpha):
            if isinstance(channel, np.ndarray):
                shape = channel.shape
                break
    if shape is None:
        raise ValueError("pack_rgba needs at least one array channel or a shape")

    out = np.empty((*shape, RGBA_CHANNELS), dtype=np.uint8)
    for i, channel in enumerate((red, green, blue, alpha)):
        out[..., i] = channel
    return out


@dataclass(frozen=True)
class TextureBuffer:
    """A rasterized RGBA texture handed to the rendering side.

    ``pixels`` is row-major with shape (height, width, 4). ``padding`` is the
    number of extra texels on every side of the meaningful area; consumers
    must crop it (see ``interior``) or offset their sampling.
    """

    label: str
    pixels: NDArray[np.uint8]
    padding: int = 0

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def interior(self) -> NDArray[np.uint8]:
        """Pixels with the padding border removed."""
        if self.padding == 0:
            return self.pixels
        p = self.padding
        return self.pixels[p:-p, p:-p]

    def to_bytes(self) -> bytes:
        """Raw RGBA bytes, row-major."""
        return np.ascontiguousarray(self.pixels).tobytes()
