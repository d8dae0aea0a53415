"""Command-line interface for terrain content generation."""

import argparse
import logging
import sys
import time
import tomllib
from pathlib import Path

import pydantic
import structlog


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog console output."""
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate heightmap, resource and river textures"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path or name of a TOML config in configs/ (default: built-in defaults)",
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="Root random seed (overrides config)"
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="textures.npz",
        help="Output archive path (default: textures.npz)",
    )
    parser.add_argument(
        "--png-dir",
        type=str,
        default=None,
        help="Directory to also write one PNG per texture (optional)",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Check generated content and exit non-zero on failure",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Verbose logging"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for terrain content generation."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    logger = structlog.get_logger()

    # Import here to avoid slow startup for --help
    from .config import TerrainContentConfig, find_config, load_config
    from .exceptions import ConfigurationError
    from .generator import generate_and_save
    from .validation import validate_content

    if args.config:
        try:
            config_path = find_config(args.config)
        except FileNotFoundError as e:
            logger.error("config_not_found", name=args.config, detail=str(e))
            return 1
        try:
            config = load_config(config_path)
        except (tomllib.TOMLDecodeError, pydantic.ValidationError) as e:
            logger.error("invalid_config", path=str(config_path), detail=str(e))
            return 1
        logger.info("config_loaded", path=str(config_path))
    else:
        config = TerrainContentConfig()
        logger.info("using_default_config")

    # Apply CLI overrides
    if args.seed is not None:
        config.seed = args.seed
    if args.png_dir:
        config.debug_output_dir = args.png_dir

    output_path = Path(args.output)

    start_time = time.time()
    try:
        result = generate_and_save(config, output_path)
    except ConfigurationError as e:
        logger.error("invalid_configuration", detail=str(e))
        return 2
    gen_time = time.time() - start_time

    print(f"Generated {len(result.textures)} textures in {gen_time:.1f}s")
    for name, texture in result.textures.items():
        print(f"  {name}: {texture.width}x{texture.height} (padding {texture.padding})")
    print(f"Saved to {output_path}")

    if args.validate:
        validation = validate_content(result)
        if not validation.passed:
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
