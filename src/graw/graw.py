"""In-memory mxGraph model and its XML encoding."""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
import xml.etree.ElementTree as ET
from typing import Iterable, List, Mapping, Optional, Tuple

TOP_CELL_ID = "0"
LAYER_ID = "1"

DEFAULT_DX = 640
DEFAULT_DY = 480

# (field name, wire attribute) for the optional canvas strings on <mxGraphModel>.
_CANVAS_ATTRS: Tuple[Tuple[str, str], ...] = (
    ("grid", "grid"),
    ("grid_size", "gridSize"),
    ("guides", "guides"),
    ("tooltips", "tooltips"),
    ("connect", "connect"),
    ("arrows", "arrows"),
    ("fold", "fold"),
    ("page", "page"),
    ("page_scale", "pageScale"),
    ("page_width", "pageWidth"),
    ("page_height", "pageHeight"),
    ("background", "background"),
    ("math", "math"),
    ("shadow", "shadow"),
)

_CELL_ATTRS: Tuple[Tuple[str, str], ...] = (
    ("value", "value"),
    ("parent_id", "parent"),
    ("vertex", "vertex"),
    ("edge", "edge"),
    ("source", "source"),
    ("target", "target"),
)


class GrawDecodeError(ValueError):
    """Raised when XML input cannot be turned into a graph model."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        return self.message


class Style(dict):
    """Key/value style properties of a cell.

    On the wire a style is a single ``key=value;flag;`` string. Neither ``=``
    nor ``;`` is escaped, so keys and values containing them do not survive a
    decode.
    """

    def encode(self) -> str:
        return encode_style(self)

    @classmethod
    def decode(cls, text: str) -> "Style":
        return cls(decode_style(text))

    def merged(self, other: Mapping[str, str]) -> "Style":
        result = Style(self)
        result.update(other)
        return result

    def __repr__(self) -> str:
        return f"Style({dict.__repr__(self)})"


def encode_style(mapping: Mapping[str, str]) -> str:
    text = ""
    for key, value in mapping.items():
        text += key
        if value != "":
            text += "=" + value
        text += ";"
    return text


def decode_style(text: str) -> Style:
    """Parse a ``key=value;flag;`` string.

    Never raises: a fragment without ``=`` becomes a flag with an empty value
    and empty fragments are skipped. Skipping the fragment after the trailing
    ``;`` differs from editors that store it as an empty key; it keeps
    ``decode_style(encode_style(m)) == m``.
    """
    style = Style()
    for pair in text.split(";"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        style[key] = value
    return style


@dataclass
class Point:
    x: int = 0
    y: int = 0
    as_: str = ""

    def to_element(self) -> ET.Element:
        elem = ET.Element("mxPoint")
        _set_int(elem, "x", self.x)
        _set_int(elem, "y", self.y)
        elem.set("as", self.as_)
        return elem

    @classmethod
    def from_element(cls, elem: ET.Element) -> "Point":
        return cls(
            x=_get_int(elem, "x"),
            y=_get_int(elem, "y"),
            as_=elem.get("as", ""),
        )


@dataclass
class Geometry:
    """Position and size of a vertex, or the endpoint description of an edge."""

    x: int = 0
    y: int = 0
    width: str = ""
    height: str = ""
    relative: str = ""
    as_: str = "geometry"
    point: Optional[Point] = None

    def to_element(self) -> ET.Element:
        elem = ET.Element("mxGeometry")
        _set_int(elem, "x", self.x)
        _set_int(elem, "y", self.y)
        _set_str(elem, "width", self.width)
        _set_str(elem, "height", self.height)
        _set_str(elem, "relative", self.relative)
        elem.set("as", self.as_)
        if self.point is not None:
            elem.append(self.point.to_element())
        return elem

    @classmethod
    def from_element(cls, elem: ET.Element) -> "Geometry":
        point_elem = elem.find("mxPoint")
        return cls(
            x=_get_int(elem, "x"),
            y=_get_int(elem, "y"),
            width=elem.get("width", ""),
            height=elem.get("height", ""),
            relative=elem.get("relative", ""),
            as_=elem.get("as", ""),
            point=Point.from_element(point_elem) if point_elem is not None else None,
        )


@dataclass
class Cell:
    """A vertex (``vertex="1"``) or an edge (``edge="1"``) of the diagram.

    ``parent_id``, ``source`` and ``target`` are plain ids; nothing checks that
    they point at cells of the same model.
    """

    id: str
    value: str = ""
    style: Style = field(default_factory=Style)
    parent_id: str = ""
    vertex: str = ""
    edge: str = ""
    source: str = ""
    target: str = ""
    geometry: Optional[Geometry] = None

    def __post_init__(self) -> None:
        if not isinstance(self.style, Style):
            self.style = Style(self.style)

    @property
    def is_vertex(self) -> bool:
        return self.vertex == "1"

    @property
    def is_edge(self) -> bool:
        return self.edge == "1"

    def to_element(self) -> ET.Element:
        elem = ET.Element("mxCell")
        elem.set("id", self.id)
        _set_str(elem, "value", self.value)
        elem.set("style", encode_style(self.style))
        for name, attr in _CELL_ATTRS[1:]:
            _set_str(elem, attr, getattr(self, name))
        if self.geometry is not None:
            elem.append(self.geometry.to_element())
        return elem

    @classmethod
    def from_element(cls, elem: ET.Element) -> "Cell":
        geometry_elem = elem.find("mxGeometry")
        kwargs = {name: elem.get(attr, "") for name, attr in _CELL_ATTRS}
        return cls(
            id=elem.get("id", ""),
            style=decode_style(elem.get("style", "")),
            geometry=Geometry.from_element(geometry_elem) if geometry_elem is not None else None,
            **kwargs,
        )


@dataclass
class GraphModel:
    """Document root: canvas settings plus the ordered cell list.

    A document the editor accepts starts with the canvas root cell ``"0"`` and
    the default layer ``"1"`` (see :func:`new_graph`).
    """

    dx: int = 0
    dy: int = 0
    grid: str = ""
    grid_size: str = ""
    guides: str = ""
    tooltips: str = ""
    connect: str = ""
    arrows: str = ""
    fold: str = ""
    page: str = ""
    page_scale: str = ""
    page_width: str = ""
    page_height: str = ""
    background: str = ""
    math: str = ""
    shadow: str = ""
    cells: List[Cell] = field(default_factory=list)

    def add(self, cell: Cell) -> "GraphModel":
        """Append a snapshot of ``cell``; later changes to ``cell`` are not seen."""
        self.cells.append(deepcopy(cell))
        return self

    def extend(self, cells: Iterable[Cell]) -> "GraphModel":
        for cell in cells:
            self.add(cell)
        return self

    def find(self, cell_id: str) -> Optional[Cell]:
        for cell in self.cells:
            if cell.id == cell_id:
                return cell
        return None

    def vertices(self) -> List[Cell]:
        return [cell for cell in self.cells if cell.is_vertex]

    def edges(self) -> List[Cell]:
        return [cell for cell in self.cells if cell.is_edge]

    def to_element(self) -> ET.Element:
        elem = ET.Element("mxGraphModel")
        elem.set("dx", str(self.dx))
        elem.set("dy", str(self.dy))
        for name, attr in _CANVAS_ATTRS:
            _set_str(elem, attr, getattr(self, name))
        root = ET.SubElement(elem, "root")
        for cell in self.cells:
            root.append(cell.to_element())
        return elem

    @classmethod
    def from_element(cls, elem: ET.Element) -> "GraphModel":
        if elem.tag != "mxGraphModel":
            raise GrawDecodeError(
                "E_DECODE_ROOT",
                f"expected <mxGraphModel> element, found <{elem.tag}>",
            )
        kwargs = {name: elem.get(attr, "") for name, attr in _CANVAS_ATTRS}
        cells: List[Cell] = []
        root = elem.find("root")
        if root is not None:
            cells = [Cell.from_element(child) for child in root.findall("mxCell")]
        return cls(dx=_get_int(elem, "dx"), dy=_get_int(elem, "dy"), cells=cells, **kwargs)


def new_graph() -> GraphModel:
    """Return a model seeded with the canvas root cell and one default layer."""
    return GraphModel(
        dx=DEFAULT_DX,
        dy=DEFAULT_DY,
        cells=[
            Cell(id=TOP_CELL_ID, style=Style(html="1")),
            Cell(id=LAYER_ID, parent_id=TOP_CELL_ID, style=Style(html="1")),
        ],
    )


def new_shape(cell_id: str, parent_id: str) -> Cell:
    """Return a vertex with a default 10,10 geometry you will usually resize."""
    shape = _new_cell(cell_id, parent_id)
    shape.vertex = "1"
    shape.geometry = _new_geometry()
    return shape


def new_image(cell_id: str, parent_id: str, url: str) -> Cell:
    """Return a vertex drawn as the image at ``url``.

    The style is replaced, not merged: anything set on the shape before is gone.
    """
    image = new_shape(cell_id, parent_id)
    image.style = Style(shape="image", imageAspect="0", image=url)
    return image


def new_image_xy(cell_id: str, parent_id: str, url: str, x: int, y: int) -> Cell:
    """Image vertex positioned the way existing documents expect.

    Both arguments land on ``geometry.x`` (``y`` last) and ``geometry.y`` keeps
    its default. Use :func:`new_image_at` for a correctly placed image.
    """
    image = new_image(cell_id, parent_id, url)
    image.geometry.x = x
    image.geometry.x = y
    return image


def new_image_at(cell_id: str, parent_id: str, url: str, x: int, y: int) -> Cell:
    image = new_image(cell_id, parent_id, url)
    image.geometry.x = x
    image.geometry.y = y
    return image


def new_edge(cell_id: str, parent_id: str, source: str = "", target: str = "") -> Cell:
    edge = _new_cell(cell_id, parent_id)
    edge.edge = "1"
    edge.source = source
    edge.target = target
    edge.geometry = Geometry(relative="1")
    return edge


def to_xml(model: GraphModel, *, pretty: bool = True) -> str:
    """Serialize ``model`` as an ``<mxGraphModel>`` document."""
    elem = model.to_element()
    if pretty:
        return _pretty_xml(elem)
    return ET.tostring(elem, encoding="unicode")


def parse_xml(text: str) -> ET.Element:
    try:
        return ET.fromstring(text)
    except ET.ParseError as exc:
        line, column = getattr(exc, "position", (None, None))
        location = (
            f" at line {line}, column {column}" if line is not None and column is not None else ""
        )
        raise GrawDecodeError(
            "E_PARSE_XML",
            f"failed to parse diagram XML{location}",
            line=line,
            column=column,
        ) from exc


def _new_cell(cell_id: str, parent_id: str) -> Cell:
    return Cell(id=cell_id, parent_id=parent_id)


def _new_geometry() -> Geometry:
    return Geometry(x=10, y=10, as_="geometry")


def _set_int(elem: ET.Element, name: str, value: int) -> None:
    # Absent numeric attributes read as 0 in the editor.
    if value != 0:
        elem.set(name, str(value))


def _set_str(elem: ET.Element, name: str, value: str) -> None:
    if value:
        elem.set(name, value)


def _get_int(elem: ET.Element, name: str) -> int:
    raw = elem.get(name)
    if raw is None or raw == "":
        return 0
    try:
        return int(raw)
    except ValueError:
        raise GrawDecodeError(
            "E_DECODE_INT",
            f'<{elem.tag}> attribute {name}="{raw}" is not an integer',
        ) from None


def _pretty_xml(element: ET.Element) -> str:
    ET.indent(element, space="  ")
    return ET.tostring(element, encoding="unicode")


__all__ = [
    "Cell",
    "DEFAULT_DX",
    "DEFAULT_DY",
    "Geometry",
    "GraphModel",
    "GrawDecodeError",
    "LAYER_ID",
    "Point",
    "Style",
    "TOP_CELL_ID",
    "decode_style",
    "encode_style",
    "new_edge",
    "new_graph",
    "new_image",
    "new_image_at",
    "new_image_xy",
    "new_shape",
    "parse_xml",
    "to_xml",
]
