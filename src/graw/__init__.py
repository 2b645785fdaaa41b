"""Public API for graw."""
from .graw import (
    DEFAULT_DX,
    DEFAULT_DY,
    LAYER_ID,
    TOP_CELL_ID,
    Cell,
    Geometry,
    GraphModel,
    GrawDecodeError,
    Point,
    Style,
    decode_style,
    encode_style,
    new_edge,
    new_graph,
    new_image,
    new_image_at,
    new_image_xy,
    new_shape,
    to_xml,
)
from .mxfile import from_xml, pages_from_xml, read_file, to_mxfile, write_file
from .validation import Issue, check_references

__all__ = [
    "Cell",
    "DEFAULT_DX",
    "DEFAULT_DY",
    "Geometry",
    "GraphModel",
    "GrawDecodeError",
    "Issue",
    "LAYER_ID",
    "Point",
    "Style",
    "TOP_CELL_ID",
    "check_references",
    "decode_style",
    "encode_style",
    "from_xml",
    "new_edge",
    "new_graph",
    "new_image",
    "new_image_at",
    "new_image_xy",
    "new_shape",
    "pages_from_xml",
    "read_file",
    "to_mxfile",
    "to_xml",
    "write_file",
]
