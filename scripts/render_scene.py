#!/usr/bin/env python3
"""Render a scene document to an image file.

Loads a scene YAML (see src.image_algebra.scene), builds its image tree
and writes the render window through the codec. Logging is configured
from the render config (render.v1 schema).

Usage:
    python -m scripts.render_scene configs/scenes/veil.yaml
    python -m scripts.render_scene configs/scenes/veil.yaml --output outputs/veil.png --workers 8
    python -m scripts.render_scene scene.yaml --config configs/render.v1.yaml -v

Exit codes:
    0: image written
    1: scene, config or image error (message logged)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from src.image_algebra.scene import render_scene
from src.utils import validators
from src.utils.logging_config import push_context, setup_logging

DEFAULT_CONFIG = Path("configs/render.v1.yaml")

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a scene document to an image file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("scene", type=Path, help="Scene YAML file")
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Destination image (default: render.output from the scene)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Row-band threads (default: render.workers from the scene)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Render config for logging settings (default: {DEFAULT_CONFIG}, skipped if absent)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint; returns the process exit code."""
    args = parse_args(argv)

    log_cfg = validators.LoggingV1()
    if args.config.exists():
        log_cfg = validators.load_render_config(args.config).logging

    setup_logging(
        log_level="DEBUG" if args.verbose else log_cfg.log_level,
        log_file=log_cfg.log_file,
        json=log_cfg.json_format,
        color=log_cfg.color,
        context={"app": "render_scene", "scene": args.scene.name},
    )

    if args.workers is not None and args.workers < 1:
        logger.error(f"--workers must be >= 1, got {args.workers}")
        return 1

    try:
        written = render_scene(args.scene, output=args.output, workers=args.workers)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error(f"Render failed: {e}")
        return 1

    push_context(output=str(written))
    logger.info("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
