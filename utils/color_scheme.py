"""Marker and cluster color scheme for the directory map"""

import logging
from typing import Dict, List, Tuple

from config import Config

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]


def hex_to_rgb(hex_color: str) -> RGB:
    """'#D4AF37' -> (212, 175, 55); accepts the 3-digit short form"""
    value = hex_color.lstrip('#')
    if len(value) == 3:
        value = ''.join(ch * 2 for ch in value)
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {hex_color}")
    return tuple(int(value[i:i+2], 16) for i in (0, 2, 4))


class MarkerColorScheme:
    """Category palettes: a light/dark pair per category plus cluster badge palettes"""

    def __init__(self):
        self.category_colors = {
            'ecole': (Config.COLOR_ECOLE, Config.COLOR_ECOLE_DARK),
            'moniteur': (Config.COLOR_MONITEUR, Config.COLOR_MONITEUR_DARK),
        }
        self.cluster_palettes = Config.CLUSTER_PALETTES

    def category_pair(self, category: str) -> Tuple[str, str]:
        if category not in self.category_colors:
            logger.warning(f"Unknown category {category}, using instructor colors")
            category = 'moniteur'
        return self.category_colors[category]

    def cluster_stops(self, palette: str) -> List[str]:
        return list(self.cluster_palettes[palette]['stops'])

    def cluster_border(self, palette: str) -> Tuple[str, float]:
        p = self.cluster_palettes[palette]
        return p['border'], p['border_width']

    def export_color_scheme(self) -> Dict:
        return {
            'categories': {k: list(v) for k, v in self.category_colors.items()},
            'clusters': {k: dict(v) for k, v in self.cluster_palettes.items()},
        }
