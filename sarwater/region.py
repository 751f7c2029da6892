"""Region of interest polygon in lon/lat."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from pyproj import CRS, Transformer
from shapely import wkt
from shapely.errors import ShapelyError
from shapely.geometry import Polygon, mapping
from shapely.ops import transform as shapely_transform

from sarwater.errors import MalformedRegionError

Vertex = Tuple[float, float]


@dataclass(frozen=True)
class Region:
    """Closed, simple polygon ring of (longitude, latitude) vertices."""

    vertices: Tuple[Vertex, ...]

    def __post_init__(self):
        verts = tuple((float(x), float(y)) for x, y in self.vertices)
        object.__setattr__(self, "vertices", verts)

        if len(verts) < 4:
            raise MalformedRegionError(
                f"Region needs at least 4 vertices (closed triangle), got {len(verts)}"
            )
        if verts[0] != verts[-1]:
            raise MalformedRegionError(
                f"Region ring is not closed: first vertex {verts[0]} != last vertex {verts[-1]}"
            )
        poly = Polygon(verts)
        if not poly.is_valid:
            raise MalformedRegionError("Region ring is self-intersecting")
        if poly.area == 0:
            raise MalformedRegionError("Region ring has zero area")

    @classmethod
    def from_wkt(cls, wkt_string: str) -> "Region":
        """Parse a WKT POLYGON (exterior ring only)."""
        try:
            geom = wkt.loads(wkt_string)
        except (ShapelyError, TypeError, AttributeError) as exc:
            raise MalformedRegionError(f"Could not parse region WKT: {exc}") from exc
        if geom.geom_type != "Polygon":
            raise MalformedRegionError(f"Region WKT must be a POLYGON, got {geom.geom_type}")
        return cls(tuple(geom.exterior.coords))

    @classmethod
    def from_bounds(cls, minx: float, miny: float, maxx: float, maxy: float) -> "Region":
        return cls((
            (minx, miny),
            (maxx, miny),
            (maxx, maxy),
            (minx, maxy),
            (minx, miny),
        ))

    @classmethod
    def coerce(cls, value) -> "Region":
        """Accept a Region, a WKT string or a vertex sequence."""
        if isinstance(value, Region):
            return value
        if isinstance(value, str):
            return cls.from_wkt(value)
        return cls(tuple(tuple(v) for v in value))

    @property
    def polygon(self) -> Polygon:
        return Polygon(self.vertices)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return self.polygon.bounds

    @property
    def centroid(self) -> Vertex:
        c = self.polygon.centroid
        return c.x, c.y

    @property
    def __geo_interface__(self):
        return mapping(self.polygon)

    def to_crs(self, crs) -> Polygon:
        """Return the polygon reprojected from EPSG:4326 into ``crs``."""
        dst = CRS.from_user_input(crs)
        if dst == CRS.from_epsg(4326):
            return self.polygon
        transformer = Transformer.from_crs("EPSG:4326", dst, always_xy=True)
        return shapely_transform(transformer.transform, self.polygon)

    def intersects_bounds(self, bounds: Sequence[float]) -> bool:
        """True when the lon/lat box ``(left, bottom, right, top)`` touches the region."""
        left, bottom, right, top = bounds
        box = Polygon([(left, bottom), (right, bottom), (right, top), (left, top)])
        return self.polygon.intersects(box)

    def to_wkt(self) -> str:
        return self.polygon.wkt

