"""Pixel: the four-channel color value flowing through every image node.

Channels are straight (non-premultiplied) floats, nominally in [0, 1].
Nothing clamps them during blend math; clamping happens once, when a
pixel is converted to 8-bit at the codec boundary.
"""

import math
from dataclasses import dataclass
from typing import Tuple


def _channel_to_u8(v: float) -> int:
    if math.isnan(v):
        return 0
    return int(math.floor(min(max(v, 0.0), 1.0) * 255.0 + 0.5))


@dataclass(frozen=True)
class Pixel:
    """Immutable RGBA color, channels in [0, 1].

    Fields:
        r, g, b: Color channels.
        a: Alpha (0 = fully transparent, 1 = fully opaque).
    """
    r: float
    g: float
    b: float
    a: float

    @classmethod
    def from_rgba8(cls, r: int, g: int, b: int, a: int = 255) -> "Pixel":
        """Build a Pixel from 8-bit channels."""
        return cls(r / 255.0, g / 255.0, b / 255.0, a / 255.0)

    def to_rgba8(self) -> Tuple[int, int, int, int]:
        """8-bit channels; clamps to [0, 1] and rounds half-up."""
        return (
            _channel_to_u8(self.r),
            _channel_to_u8(self.g),
            _channel_to_u8(self.b),
            _channel_to_u8(self.a),
        )

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.r, self.g, self.b, self.a)

    @property
    def is_transparent(self) -> bool:
        return self.a == 0.0


TRANSPARENT = Pixel(0.0, 0.0, 0.0, 0.0)
Pixel.TRANSPARENT = TRANSPARENT
