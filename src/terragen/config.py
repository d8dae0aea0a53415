"""Terrain content configuration models and TOML loading."""

import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from .resources import DEFAULT_MAX_PLACEMENT_ATTEMPTS

# Seed offsets so one root seed drives every generator independently
HEIGHTMAP_SEED_OFFSET = 0
RESOURCES_SEED_OFFSET = 100
RIVER_SEED_OFFSET = 200

CONFIGS_DIR = Path(__file__).parent.parent.parent / "configs"


class NoiseFieldConfig(BaseModel):
    """Heightmap noise parameters."""

    lattice_size: int = Field(default=5, description="Gradient lattice cells per axis")
    octaves: int = Field(default=4, description="Number of noise octaves")
    persistence: float = Field(default=0.5, description="Amplitude ratio per octave")
    texture_size: int = Field(default=256, description="Heightmap texture side in texels")


class ResourceFieldConfig(BaseModel):
    """Resource deposit parameters."""

    splat_count: int = Field(default=6, description="Number of deposit clusters")
    splat_spread: float = Field(
        default=12.0, description="Jitter radius of points around a cluster center"
    )
    min_splat_separation: float = Field(
        default=48.0, description="Minimum distance between cluster centers"
    )
    points_per_splat: int = Field(
        default=8, description="Jittered points added around each center"
    )
    magnitude: float = Field(
        default=10.0, description="Smooth-min blend radius and deposit radius"
    )
    falloff_spread: float = Field(
        default=6.0, description="Distance over which intensity ramps to full"
    )
    texture_size: int = Field(default=256, description="Resource texture side in texels")
    max_placement_attempts: int = Field(
        default=DEFAULT_MAX_PLACEMENT_ATTEMPTS,
        description="Rejection-sampling draws allowed per cluster",
    )


class RiverFieldConfig(BaseModel):
    """River curve parameters."""

    terrain_size: float = Field(default=20.0, description="Side of the terrain domain")
    size: float = Field(default=0.6, description="River radius in terrain units")
    shift_iterations: int = Field(
        default=40, description="Rounds of outward control point perturbation"
    )
    resolution: int = Field(
        default=256, description="Texels per side (buffer gets one texel of padding)"
    )


class TerrainContentConfig(BaseModel):
    """Complete terrain content configuration."""

    seed: int = Field(default=0, description="Root random seed")
    heightmap: NoiseFieldConfig = Field(default_factory=NoiseFieldConfig)
    resources: ResourceFieldConfig = Field(default_factory=ResourceFieldConfig)
    river: RiverFieldConfig = Field(default_factory=RiverFieldConfig)
    max_workers: int | None = Field(
        default=None, description="Rasterization threads (None = CPU count)"
    )

    # Debug options
    debug_output_dir: str | None = Field(
        default=None, description="Directory for PNG debug images (None = disabled)"
    )

    @property
    def heightmap_seed(self) -> int:
        return self.seed + HEIGHTMAP_SEED_OFFSET

    @property
    def resources_seed(self) -> int:
        return self.seed + RESOURCES_SEED_OFFSET

    @property
    def river_seed(self) -> int:
        return self.seed + RIVER_SEED_OFFSET


def load_config(config_path: Path) -> TerrainContentConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed TerrainContentConfig.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        tomllib.TOMLDecodeError: If TOML is malformed.
        pydantic.ValidationError: If values have the wrong types.
    """
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return TerrainContentConfig.model_validate(data)


def find_config(name: str) -> Path:
    """Find a config file by name.

    Searches in the following order:
    1. Exact path if name contains path separator or ends with .toml
    2. configs/{name}.toml
    3. configs/{name}

    Raises:
        FileNotFoundError: If config file is not found.
    """
    if "/" in name or name.endswith(".toml"):
        path = Path(name)
        if path.exists():
            return path
        raise FileNotFoundError(f"Config file not found: {name}")

    config_path = CONFIGS_DIR / f"{name}.toml"
    if config_path.exists():
        return config_path

    config_path = CONFIGS_DIR / name
    if config_path.exists():
        return config_path

    raise FileNotFoundError(
        f"Config '{name}' not found in {CONFIGS_DIR}. "
        f"Available configs: {list_configs()}"
    )


def list_configs() -> list[str]:
    """List available config names."""
    if not CONFIGS_DIR.exists():
        return []
    return sorted(p.stem for p in CONFIGS_DIR.glob("*.toml"))
