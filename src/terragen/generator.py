"""Main terrain content generation orchestration."""

import time
from pathlib import Path

import structlog

from .config import TerrainContentConfig
from .noise import GradientNoiseField
from .persistence import export_png, save_textures
from .raster import TextureBuffer
from .resources import SmoothMinResourceField
from .river import RIVER_PADDING, CurveRiverField

logger = structlog.get_logger()

HEIGHTMAP = "heightmap"
RESOURCES = "resources"
RIVER = "river"


class GenerationResult:
    """Rasterized textures plus the generators that produced them."""

    def __init__(
        self,
        heightmap: TextureBuffer,
        resources: TextureBuffer,
        river: TextureBuffer,
        config: TerrainContentConfig,
        noise_field: GradientNoiseField,
        resource_field: SmoothMinResourceField,
        river_field: CurveRiverField,
    ):
        self.heightmap = heightmap
        self.resources = resources
        self.river = river
        self.config = config
        self.noise_field = noise_field
        self.resource_field = resource_field
        self.river_field = river_field

    @property
    def textures(self) -> dict[str, TextureBuffer]:
        return {
            HEIGHTMAP: self.heightmap,
            RESOURCES: self.resources,
            RIVER: self.river,
        }


def build_noise_field(config: TerrainContentConfig) -> GradientNoiseField:
    """Construct the heightmap noise generator from configuration."""
    return GradientNoiseField(
        size=config.heightmap.lattice_size,
        octaves=config.heightmap.octaves,
        persistence=config.heightmap.persistence,
        seed=config.heightmap_seed,
    )


def build_resource_field(config: TerrainContentConfig) -> SmoothMinResourceField:
    """Construct the resource deposit generator from configuration."""
    rc = config.resources
    return SmoothMinResourceField(
        splat_count=rc.splat_count,
        splat_spread=rc.splat_spread,
        min_splat_separation=rc.min_splat_separation,
        points_per_splat=rc.points_per_splat,
        magnitude=rc.magnitude,
        falloff_spread=rc.falloff_spread,
        texture_size=rc.texture_size,
        seed=config.resources_seed,
        max_placement_attempts=rc.max_placement_attempts,
    )


def build_river_field(config: TerrainContentConfig) -> CurveRiverField:
    """Construct and shift the river generator from configuration."""
    river = CurveRiverField(
        terrain_size=config.river.terrain_size,
        size=config.river.size,
        seed=config.river_seed,
    )
    river.random_shift(config.river.shift_iterations)
    return river


def generate_content(config: TerrainContentConfig) -> GenerationResult:
    """Generate heightmap, resource and river textures from configuration.

    Generators are built sequentially (each consumes its own random source
    in a fixed order); each rasterization fans out over worker threads.

    Args:
        config: Terrain content configuration.

    Returns:
        GenerationResult with the three textures.
    """
    logger.info("generation_started", seed=config.seed)
    start_time = time.time()

    # Stage A: heightmap
    noise_field = build_noise_field(config)
    size = config.heightmap.texture_size
    heightmap = TextureBuffer(
        HEIGHTMAP,
        noise_field.rasterize(size, size, max_workers=config.max_workers),
    )
    logger.info("heightmap_done", width=heightmap.width, height=heightmap.height)

    # Stage B: resource deposits
    resource_field = build_resource_field(config)
    size = config.resources.texture_size
    resources = TextureBuffer(
        RESOURCES,
        resource_field.rasterize(size, size, max_workers=config.max_workers),
    )
    logger.info(
        "resources_done",
        clusters=len(resource_field.cluster_centers),
        width=resources.width,
        height=resources.height,
    )

    # Stage C: river
    river_field = build_river_field(config)
    river = TextureBuffer(
        RIVER,
        river_field.rasterize(
            config.river.terrain_size,
            config.river.resolution,
            max_workers=config.max_workers,
        ),
        padding=RIVER_PADDING,
    )
    logger.info(
        "river_done",
        starting_side=river_field.starting_side.name,
        ending_side=river_field.ending_side.name,
        width=river.width,
        height=river.height,
        padding=river.padding,
    )

    result = GenerationResult(
        heightmap=heightmap,
        resources=resources,
        river=river,
        config=config,
        noise_field=noise_field,
        resource_field=resource_field,
        river_field=river_field,
    )

    if config.debug_output_dir:
        _dump_debug_images(Path(config.debug_output_dir), result)

    logger.info("generation_complete", seconds=round(time.time() - start_time, 2))
    return result


def generate_and_save(config: TerrainContentConfig, save_path: Path) -> GenerationResult:
    """Generate all textures and save them to an archive.

    Args:
        config: Terrain content configuration.
        save_path: Path of the .npz archive to write.

    Returns:
        The GenerationResult that was saved.
    """
    result = generate_content(config)

    save_path.parent.mkdir(parents=True, exist_ok=True)
    save_textures(save_path, result.textures, config)

    return result


def _dump_debug_images(output_dir: Path, result: GenerationResult) -> None:
    """Save every texture as a PNG for inspection."""
    output_dir.mkdir(parents=True, exist_ok=True)
    for name, texture in result.textures.items():
        export_png(texture, output_dir / f"{name}.png")
    logger.info("debug_images_saved", output_dir=str(output_dir))
