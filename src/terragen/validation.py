"""Post-generation checks on generated terrain content."""

import numpy as np
import structlog

from .generator import GenerationResult
from .river import RIVER_PADDING, Side

logger = structlog.get_logger()

# Sample count per edge for the tileability check
TILE_CHECK_SAMPLES = 17


class ValidationResult:
    """Result of content validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_content(result: GenerationResult) -> ValidationResult:
    """Validate generated content against its invariants.

    Args:
        result: Output of ``generate_content``.

    Returns:
        ValidationResult with any errors/warnings.
    """
    validation = ValidationResult()

    # Check 1: Buffer shapes and padding
    _check_shapes(result, validation)

    # Check 2: Heightmap noise tiles seamlessly
    _check_tileability(result, validation)

    # Check 3: Cluster centers keep their separation
    _check_cluster_separation(result, validation)

    # Check 4: River endpoints on two distinct sides
    _check_river_endpoints(result, validation)

    # Check 5: Content is not empty
    _check_coverage(result, validation)

    if validation.passed:
        logger.info("validation_passed", warnings=len(validation.warnings))
    else:
        logger.warning("validation_failed", errors=len(validation.errors))
        for error in validation.errors:
            logger.error("validation_error", detail=error)

    for warning in validation.warnings:
        logger.warning("validation_warning", detail=warning)

    return validation


def _check_shapes(result: GenerationResult, validation: ValidationResult) -> None:
    config = result.config
    expected = {
        "heightmap": (config.heightmap.texture_size, config.heightmap.texture_size, 0),
        "resources": (config.resources.texture_size, config.resources.texture_size, 0),
        "river": (
            config.river.resolution + 2 * RIVER_PADDING,
            config.river.resolution + 2 * RIVER_PADDING,
            RIVER_PADDING,
        ),
    }
    for name, texture in result.textures.items():
        height, width, padding = expected[name]
        if texture.pixels.shape != (height, width, 4):
            validation.add_error(
                f"{name} has shape {texture.pixels.shape}, expected {(height, width, 4)}"
            )
        if texture.pixels.dtype != np.uint8:
            validation.add_error(f"{name} has dtype {texture.pixels.dtype}, expected uint8")
        if texture.padding != padding:
            validation.add_error(
                f"{name} declares padding {texture.padding}, expected {padding}"
            )


def _check_tileability(result: GenerationResult, validation: ValidationResult) -> None:
    field = result.noise_field
    edge = np.linspace(0.0, field.size, TILE_CHECK_SAMPLES)
    zeros = np.zeros_like(edge)
    fulls = np.full_like(edge, float(field.size))

    for octave in range(field.octaves):
        left = field.evaluate(zeros, edge, octave)
        right = field.evaluate(fulls, edge, octave)
        top = field.evaluate(edge, zeros, octave)
        bottom = field.evaluate(edge, fulls, octave)
        if not (np.array_equal(left, right) and np.array_equal(top, bottom)):
            validation.add_error(f"Noise octave {octave} does not tile seamlessly")


def _check_cluster_separation(
    result: GenerationResult, validation: ValidationResult
) -> None:
    centers = result.resource_field.cluster_centers
    min_separation = result.config.resources.min_splat_separation
    if len(centers) < 2:
        return

    diffs = centers[:, None, :] - centers[None, :, :]
    dists = np.hypot(diffs[..., 0], diffs[..., 1])
    np.fill_diagonal(dists, np.inf)
    closest = float(dists.min())
    if closest < min_separation:
        validation.add_error(
            f"Cluster centers {closest:.2f} apart, minimum is {min_separation}"
        )


def _check_river_endpoints(result: GenerationResult, validation: ValidationResult) -> None:
    river = result.river_field
    if river.starting_side == river.ending_side:
        validation.add_error(f"River starts and ends on side {river.starting_side.name}")

    for label, side, point in (
        ("start", river.starting_side, river.starting_point),
        ("end", river.ending_side, river.ending_point),
    ):
        axis_value = point[1] if side in (Side.TOP, Side.BOTTOM) else point[0]
        expected = 0.0 if side in (Side.TOP, Side.LEFT) else river.terrain_size
        if axis_value != expected:
            validation.add_error(
                f"River {label} point {tuple(point)} is not on side {side.name}"
            )


def _check_coverage(result: GenerationResult, validation: ValidationResult) -> None:
    if not np.any(result.resources.pixels[..., 0]):
        validation.add_warning("Resource map has no deposits")
    if not np.any(result.river.interior()[..., 0]):
        validation.add_warning("River texture has no river texels")
    heights = result.heightmap.pixels[..., 1]
    if heights.min() == heights.max():
        validation.add_warning("Heightmap is flat")
