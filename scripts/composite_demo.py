#!/usr/bin/env python3
"""Collage demo: one image, a shared half-size copy, and a mirrored strip.

Builds the classic composition with the fluent API:

    squished = image.scale(0.5)
    canvas = transparent ∘ image ∘ squished ∘ squished+100 ∘ squished+200
             ∘ squished+300 ∘ (squished reflected, moved to the bottom edge)

where ∘ is "join on top". The half-size node is built once and shared by
every layer that uses it.

Usage:
    python -m scripts.composite_demo tree.png
    python -m scripts.composite_demo tree.png --output outputs/tree2.png --size 512 512

Window size, workers and output default to the render config
(configs/render.v1.yaml).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from src.image_algebra import BufferSource, ImageSource, Pixel, Uniform
from src.utils import validators
from src.utils.logging_config import setup_logging

DEFAULT_CONFIG = Path("configs/render.v1.yaml")

logger = logging.getLogger(__name__)


def build_collage(image: ImageSource, height: int, step: float = 100.0) -> ImageSource:
    """Compose the collage tree over a transparent canvas.

    Parameters
    ----------
    image : ImageSource
        Base image, drawn at full size at the origin
    height : int
        Window height; the mirrored copy hangs from the bottom edge
    step : float
        Horizontal offset between the half-size copies, px

    Returns
    -------
    ImageSource
        Root of the collage
    """
    squished = image.scale(0.5)
    canvas = Uniform(Pixel.TRANSPARENT).join(image).join(squished)
    for i in range(1, 4):
        canvas = canvas.join(squished.translate(step * i, 0.0))
    return canvas.join(squished.reflect("x").translate(0.0, float(height)))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render the collage demo from one input image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("image", type=Path, help="Input image (any format Pillow decodes)")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Destination image")
    parser.add_argument(
        "--size",
        type=int,
        nargs=2,
        metavar=("WIDTH", "HEIGHT"),
        default=None,
        help="Window size in px"
    )
    parser.add_argument("--workers", type=int, default=None, help="Row-band threads")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="Render config YAML")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint; returns the process exit code."""
    args = parse_args(argv)

    try:
        cfg = validators.load_render_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        log_level="DEBUG" if args.verbose else cfg.logging.log_level,
        log_file=cfg.logging.log_file,
        json=cfg.logging.json_format,
        color=cfg.logging.color,
        context={"app": "composite_demo"},
    )

    width, height = args.size if args.size else (cfg.render.width, cfg.render.height)
    output = args.output or cfg.render.output
    if output is None:
        logger.error("No output given and render.output is unset")
        return 1

    try:
        image = BufferSource.open(args.image)
        collage = build_collage(image, height)
        collage.write_to(
            output,
            width,
            height,
            fmt=cfg.render.format,
            workers=cfg.render.workers if args.workers is None else args.workers,
        )
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error(f"Collage failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
