"""Procedural terrain content generation.

Three independent generators produce RGBA textures for a terrain shader:
tileable gradient noise for the heightmap, a smooth-minimum resource mask,
and a Bezier river distance field.
"""

from .config import TerrainContentConfig, find_config, load_config
from .exceptions import ConfigurationError, OutOfBoundsError, TerrainContentError
from .generator import GenerationResult, generate_and_save, generate_content
from .noise import GradientNoiseField
from .persistence import export_png, load_textures, save_textures
from .raster import TextureBuffer
from .resources import SmoothMinResourceField
from .river import CurveRiverField
from .validation import ValidationResult, validate_content

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "CurveRiverField",
    "GenerationResult",
    "GradientNoiseField",
    "OutOfBoundsError",
    "SmoothMinResourceField",
    "TerrainContentConfig",
    "TerrainContentError",
    "TextureBuffer",
    "ValidationResult",
    "export_png",
    "find_config",
    "generate_and_save",
    "generate_content",
    "load_config",
    "load_textures",
    "save_textures",
    "validate_content",
]
