"""Boundary to the map rendering/clustering engine

The engine itself (tiling, projection, clustering, compositing) lives in the
browser; this module only names the calls the directory makes on it.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

ScreenPoint = Tuple[float, float]
LngLat = Tuple[float, float]


class MapEngine(Protocol):
    def add_image(self, key: str, image: Any) -> None: ...

    def add_source(self, source_id: str, spec: Dict) -> None: ...

    def add_layer(self, spec: Dict) -> None: ...

    def has_source(self, source_id: str) -> bool: ...

    def set_source_data(self, source_id: str, geojson: Dict) -> None: ...

    def query_rendered_features(self, point: ScreenPoint, layers: Sequence[str]) -> List[Dict]:
        """Features drawn at `point` on the given layers, topmost first"""
        ...

    def get_cluster_expansion_zoom(self, cluster_id: int) -> float:
        """Zoom at which the cluster splits; raises on engine error"""
        ...

    def ease_to(self, center: LngLat, zoom: float) -> None: ...

    def get_zoom(self) -> float: ...

    def show_tooltip(self, position: LngLat, text: str) -> Any:
        """Open a tooltip and return a handle accepted by remove_tooltip"""
        ...

    def remove_tooltip(self, handle: Any) -> None: ...


class ParentChannel(Protocol):
    def post_message(self, message: Dict, target_origin: str) -> None: ...


class Locator(Protocol):
    def current_position(self) -> Optional[LngLat]: ...
