"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Raster decode/encode (codec)
    - Channel conversions & render partitioning (compute)
    - Atomic I/O and YAML loading (fs)
    - Config and scene validation (validators)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (image_algebra).

Convenience imports:
    from src.utils import codec, compute, fs, validators
    from src.utils.logging_config import setup_logging, push_context
"""

# Re-export commonly used modules for convenience
from . import codec
from . import compute
from . import fs
from . import logging_config
from . import validators

# Common functions for direct import
from .logging_config import push_context, setup_logging

__all__ = [
    # Modules
    'codec',
    'compute',
    'fs',
    'logging_config',
    'validators',
    # Direct exports
    'setup_logging',
    'push_context',
]
