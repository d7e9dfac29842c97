"""Deterministic raster synthesis for marker pins and cluster badges

Every image is a pure function of (palette, glyph, size): shapes are sampled
on a fixed supersampling grid with numpy, composited source-over on a float
canvas and quantized once to 8-bit RGBA. No canvas object or graphics context
is involved, so identical inputs always produce identical bytes.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union
import numpy as np

from config import Config
from utils.color_scheme import MarkerColorScheme, hex_to_rgb

logger = logging.getLogger(__name__)

SUPERSAMPLE = 4
SHADOW_RGBA = (0, 0, 0, 0.18)
WHITE = '#FFFFFF'
PIN_TAIL_HEIGHT = 10

Color = Union[str, Tuple[int, int, int], Tuple[int, int, int, float]]


@dataclass(frozen=True)
class MarkerImage:
    """Tightly packed RGBA pixels, row-major from the top-left corner"""
    width: int
    height: int
    data: bytes

    def digest(self) -> str:
        h = hashlib.sha256()
        h.update(f"{self.width}x{self.height}:".encode('ascii'))
        h.update(self.data)
        return h.hexdigest()

    def to_array(self) -> np.ndarray:
        return np.frombuffer(self.data, dtype=np.uint8).reshape(self.height, self.width, 4)


def _rgba(color: Color) -> Tuple[float, float, float, float]:
    """Normalize a color to floats in [0, 1]"""
    if isinstance(color, str):
        r, g, b = hex_to_rgb(color)
        return r / 255.0, g / 255.0, b / 255.0, 1.0
    if len(color) == 3:
        r, g, b = color
        return r / 255.0, g / 255.0, b / 255.0, 1.0
    r, g, b, a = color
    return r / 255.0, g / 255.0, b / 255.0, float(a)


class Raster:
    """Float RGBA canvas with coverage-based shape filling"""

    def __init__(self, width: int, height: int, supersample: int = SUPERSAMPLE):
        self.width = int(width)
        self.height = int(height)
        self.ss = int(supersample)
        self.rgb = np.zeros((self.height, self.width, 3), dtype=np.float64)
        self.alpha = np.zeros((self.height, self.width), dtype=np.float64)

        # Sample positions (sub-pixel centers) and pixel centers
        sx = (np.arange(self.width * self.ss) + 0.5) / self.ss
        sy = (np.arange(self.height * self.ss) + 0.5) / self.ss
        self._sx, self._sy = np.meshgrid(sx, sy)
        px = np.arange(self.width) + 0.5
        py = np.arange(self.height) + 0.5
        self._px, self._py = np.meshgrid(px, py)

    # --- coverage masks -------------------------------------------------

    def _coverage(self, mask: np.ndarray) -> np.ndarray:
        h, w, s = self.height, self.width, self.ss
        return mask.reshape(h, s, w, s).mean(axis=(1, 3))

    def circle(self, cx: float, cy: float, r: float) -> np.ndarray:
        d2 = (self._sx - cx) ** 2 + (self._sy - cy) ** 2
        return self._coverage(d2 <= r * r)

    def ring(self, cx: float, cy: float, r: float, width: float) -> np.ndarray:
        # Stroke centered on the circle outline
        d = np.hypot(self._sx - cx, self._sy - cy)
        return self._coverage(np.abs(d - r) <= width / 2.0)

    def rect(self, x: float, y: float, w: float, h: float) -> np.ndarray:
        mask = ((self._sx >= x) & (self._sx < x + w) &
                (self._sy >= y) & (self._sy < y + h))
        return self._coverage(mask)

    def triangle(self, p0: Sequence[float], p1: Sequence[float], p2: Sequence[float]) -> np.ndarray:
        def edge(a, b):
            return (b[0] - a[0]) * (self._sy - a[1]) - (b[1] - a[1]) * (self._sx - a[0])

        e0 = edge(p0, p1)
        e1 = edge(p1, p2)
        e2 = edge(p2, p0)
        # Either winding order
        inside = ((e0 >= 0) & (e1 >= 0) & (e2 >= 0)) | ((e0 <= 0) & (e1 <= 0) & (e2 <= 0))
        return self._coverage(inside)

    # --- paints ---------------------------------------------------------

    def linear_gradient(self, start: Tuple[float, float], end: Tuple[float, float],
                        stops: Iterable[Tuple[float, Color]]) -> np.ndarray:
        """Per-pixel RGBA of a linear gradient evaluated at pixel centers"""
        x0, y0 = start
        x1, y1 = end
        dx, dy = x1 - x0, y1 - y0
        length2 = dx * dx + dy * dy
        if length2 == 0:
            t = np.zeros_like(self._px)
        else:
            t = ((self._px - x0) * dx + (self._py - y0) * dy) / length2
        t = np.clip(t, 0.0, 1.0)

        stops = sorted(stops, key=lambda s: s[0])
        offsets = np.array([s[0] for s in stops], dtype=np.float64)
        colors = np.array([_rgba(s[1]) for s in stops], dtype=np.float64)
        channels = [np.interp(t, offsets, colors[:, c]) for c in range(4)]
        return np.stack(channels, axis=-1)

    def fill(self, coverage: np.ndarray, paint) -> None:
        """Source-over composite of `paint` (a color or per-pixel RGBA) through `coverage`"""
        if isinstance(paint, np.ndarray):
            src_rgb = paint[..., :3]
            src_a = paint[..., 3] * coverage
        else:
            r, g, b, a = _rgba(paint)
            src_rgb = np.array([r, g, b], dtype=np.float64)
            src_a = a * coverage

        dst_a = self.alpha
        out_a = src_a + dst_a * (1.0 - src_a)
        weighted = (src_rgb * src_a[..., None]
                    + self.rgb * (dst_a * (1.0 - src_a))[..., None])
        safe = np.where(out_a > 0, out_a, 1.0)
        self.rgb = np.where(out_a[..., None] > 0, weighted / safe[..., None], 0.0)
        self.alpha = out_a

    def to_image(self) -> MarkerImage:
        pixels = np.concatenate([self.rgb, self.alpha[..., None]], axis=-1)
        quantized = np.clip(np.rint(pixels * 255.0), 0, 255).astype(np.uint8)
        return MarkerImage(self.width, self.height, quantized.tobytes())


def _draw_school_glyph(canvas: Raster, cx: float, cy: float, r: float, dark: str) -> None:
    """Simplified building: body, roof, door and two windows, scaled from r"""
    s = r * 0.55
    bx = cx - s * 0.65
    by = cy - s * 0.15
    bw = s * 1.3
    bh = s * 0.75

    canvas.fill(canvas.rect(bx, by, bw, bh), WHITE)
    canvas.fill(canvas.triangle((cx, cy - s * 0.7),
                                (bx - s * 0.1, by + 1),
                                (bx + bw + s * 0.1, by + 1)), WHITE)

    canvas.fill(canvas.rect(cx - s * 0.12, by + bh * 0.4, s * 0.24, bh * 0.6), dark)

    win = s * 0.17
    canvas.fill(canvas.rect(bx + s * 0.15, by + bh * 0.2, win, win), dark)
    canvas.fill(canvas.rect(bx + bw - s * 0.15 - win, by + bh * 0.2, win, win), dark)


def render_marker(color: str, dark_color: str, icon_type: str = 'moniteur', size: int = 40) -> MarkerImage:
    """Map pin: gradient disc, white border, downward tail, optional school glyph"""
    w = int(size)
    h = w + PIN_TAIL_HEIGHT
    canvas = Raster(w, h)

    cx = w / 2.0
    cy = w / 2.0
    r = w * 0.42

    canvas.fill(canvas.circle(cx, cy + 2, r + 1), SHADOW_RGBA)

    gradient = canvas.linear_gradient((cx - r, cy - r), (cx + r, cy + r),
                                      [(0.0, color), (1.0, dark_color)])
    canvas.fill(canvas.circle(cx, cy, r), gradient)
    canvas.fill(canvas.ring(cx, cy, r, 2.5), WHITE)

    arrow_y = cy + r - 1
    canvas.fill(canvas.triangle((cx - 6, arrow_y), (cx, arrow_y + 8), (cx + 6, arrow_y)), dark_color)

    if icon_type == 'ecole':
        _draw_school_glyph(canvas, cx, cy, r, dark_color)

    return canvas.to_image()


def render_cluster_badge(palette: str, diameter: int, scheme: Optional[MarkerColorScheme] = None) -> MarkerImage:
    """Round cluster bubble in the gold or blue palette"""
    scheme = scheme or MarkerColorScheme()
    d = int(diameter)
    canvas = Raster(d, d)
    cx = d / 2.0
    cy = d / 2.0
    r = d / 2.0 - 2

    canvas.fill(canvas.circle(cx + 1, cy + 1.5, r), SHADOW_RGBA)

    stops = scheme.cluster_stops(palette)
    offsets = np.linspace(0.0, 1.0, len(stops))
    gradient = canvas.linear_gradient((cx - r, cy - r), (cx + r, cy + r),
                                      list(zip(offsets.tolist(), stops)))
    canvas.fill(canvas.circle(cx, cy, r), gradient)

    border, border_width = scheme.cluster_border(palette)
    canvas.fill(canvas.ring(cx, cy, r, border_width), border)

    return canvas.to_image()


def cluster_image_key(palette: str, tier: str) -> str:
    return f"cluster-{palette}-{tier}"


def build_marker_images(config=Config) -> Dict[str, MarkerImage]:
    """All images the map needs, keyed by their engine registry name"""
    scheme = MarkerColorScheme()
    images = {}

    light, dark = scheme.category_pair('ecole')
    images['icon-ecole'] = render_marker(light, dark, 'ecole', config.ECOLE_MARKER_SIZE)
    light, dark = scheme.category_pair('moniteur')
    images['icon-moniteur'] = render_marker(light, dark, 'moniteur', config.MONITEUR_MARKER_SIZE)

    for tier, diameter in config.CLUSTER_TIERS:
        for palette in ('gold', 'blue'):
            images[cluster_image_key(palette, tier)] = render_cluster_badge(palette, diameter, scheme)

    logger.info(f"Synthesized {len(images)} marker images")
    return images


def register_marker_images(engine, images: Optional[Dict[str, MarkerImage]] = None) -> Dict[str, MarkerImage]:
    images = images if images is not None else build_marker_images()
    for key, image in images.items():
        engine.add_image(key, image)
    return images
