"""Texture persistence: save and load generated content, export PNGs."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

import numpy as np
import structlog
from PIL import Image

from .config import TerrainContentConfig
from .raster import RGBA_CHANNELS, TextureBuffer

logger = structlog.get_logger()

FORMAT_VERSION = 1


def save_textures(
    path: Path,
    textures: Mapping[str, TextureBuffer],
    config: TerrainContentConfig,
) -> None:
    """Save textures to disk.

    Uses numpy's compressed .npz format: one uint8 array per texture plus a
    JSON metadata blob recording padding and the generating config.

    Args:
        path: Output path (should end with .npz).
        textures: Textures keyed by label.
        config: Generation configuration used.
    """
    metadata = {
        "version": FORMAT_VERSION,
        "seed": config.seed,
        "textures": {
            name: {
                "width": texture.width,
                "height": texture.height,
                "padding": texture.padding,
            }
            for name, texture in textures.items()
        },
        "config": config.model_dump(),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }

    arrays = {f"texture_{name}": texture.pixels for name, texture in textures.items()}
    np.savez_compressed(
        path,
        metadata=np.frombuffer(json.dumps(metadata).encode("utf-8"), dtype=np.uint8),
        **arrays,
    )

    file_size = path.stat().st_size / 1024
    logger.info("textures_saved", path=str(path), size_kb=round(file_size, 1))


def load_textures(path: Path) -> tuple[dict[str, TextureBuffer], dict]:
    """Load textures from disk.

    Args:
        path: Path to .npz file.

    Returns:
        Tuple of (textures keyed by label, metadata dict).

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If file format is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Texture archive not found: {path}")

    with np.load(path) as data:
        if "metadata" not in data:
            raise ValueError("Invalid texture archive: missing 'metadata'")
        metadata = json.loads(data["metadata"].tobytes().decode("utf-8"))

        if metadata.get("version") != FORMAT_VERSION:
            raise ValueError(
                f"Unsupported texture archive version: {metadata.get('version')}"
            )

        textures: dict[str, TextureBuffer] = {}
        for name, info in metadata.get("textures", {}).items():
            key = f"texture_{name}"
            if key not in data:
                raise ValueError(f"Invalid texture archive: missing '{key}'")
            pixels = data[key]
            if pixels.ndim != 3 or pixels.shape[2] != RGBA_CHANNELS:
                raise ValueError(
                    f"Invalid texture '{name}': expected RGBA, got shape {pixels.shape}"
                )
            textures[name] = TextureBuffer(name, pixels, padding=int(info["padding"]))

    logger.info("textures_loaded", path=str(path), textures=sorted(textures))
    return textures, metadata


def export_png(texture: TextureBuffer, path: Path) -> None:
    """Write a texture as an RGBA PNG (padding included)."""
    # (H, W, 4) uint8 arrays map to RGBA
    image = Image.fromarray(np.ascontiguousarray(texture.pixels))
    image.save(path)
    logger.debug("png_exported", path=str(path), label=texture.label)
