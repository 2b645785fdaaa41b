"""The ``<mxfile>`` container the diagram editor saves, and file helpers."""
from __future__ import annotations

import base64
import binascii
import logging
import xml.etree.ElementTree as ET
import zlib
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union
from urllib.parse import quote, unquote

from .graw import GraphModel, GrawDecodeError, parse_xml, to_xml, _pretty_xml

logger = logging.getLogger(__name__)

DEFAULT_HOST = "graw"

# Characters encodeURIComponent leaves alone; the editor quotes pages that way.
_URI_SAFE = "-_.!~*'()"


def compress_diagram(xml: str) -> str:
    """Encode a page the way the editor stores compressed diagrams."""
    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    deflated = compressor.compress(quote(xml, safe=_URI_SAFE).encode("utf-8")) + compressor.flush()
    return base64.b64encode(deflated).decode("ascii")


def decompress_diagram(text: str) -> str:
    try:
        deflated = base64.b64decode(text.strip(), validate=True)
        inflated = zlib.decompress(deflated, -zlib.MAX_WBITS)
        return unquote(inflated.decode("utf-8"), errors="strict")
    except (binascii.Error, zlib.error, UnicodeDecodeError) as exc:
        raise GrawDecodeError(
            "E_DECODE_PAYLOAD",
            f"diagram payload is not base64-encoded deflate data of UTF-8 text: {exc}",
        ) from exc


def to_mxfile(
    models: Union[GraphModel, Iterable[GraphModel]],
    *,
    names: Optional[Sequence[str]] = None,
    compressed: bool = False,
    host: str = DEFAULT_HOST,
) -> str:
    """Wrap one or more models as the pages of an ``<mxfile>`` document."""
    if isinstance(models, GraphModel):
        models = [models]
    mxfile = ET.Element("mxfile", {"host": host})
    if compressed:
        mxfile.set("compressed", "true")
    for index, model in enumerate(models):
        name = names[index] if names is not None and index < len(names) else f"Page-{index + 1}"
        diagram = ET.SubElement(mxfile, "diagram", {"id": f"page-{index + 1}", "name": name})
        if compressed:
            diagram.text = compress_diagram(to_xml(model, pretty=False))
        else:
            diagram.append(model.to_element())
    return _pretty_xml(mxfile)


def pages_from_element(root: ET.Element) -> List[GraphModel]:
    if root.tag == "mxGraphModel":
        return [GraphModel.from_element(root)]
    if root.tag != "mxfile":
        raise GrawDecodeError(
            "E_DECODE_ROOT",
            f"expected <mxGraphModel> or <mxfile> document, found <{root.tag}>",
        )

    pages: List[GraphModel] = []
    for diagram in root.findall("diagram"):
        model_elem = diagram.find("mxGraphModel")
        if model_elem is not None:
            pages.append(GraphModel.from_element(model_elem))
            continue
        payload = (diagram.text or "").strip()
        if not payload:
            logger.debug("skipping empty diagram page %r", diagram.get("name"))
            continue
        pages.append(GraphModel.from_element(parse_xml(decompress_diagram(payload))))
    logger.debug("decoded %d page(s) from <mxfile>", len(pages))
    return pages


def pages_from_xml(text: str) -> List[GraphModel]:
    """Decode every page of an ``<mxfile>``, or the single bare model."""
    return pages_from_element(parse_xml(text))


def from_xml(text: str, *, page: int = 0) -> GraphModel:
    """Decode an ``<mxGraphModel>`` document or one page of an ``<mxfile>``."""
    pages = pages_from_xml(text)
    if not pages:
        raise GrawDecodeError("E_DECODE_ROOT", "document contains no diagram pages")
    if not 0 <= page < len(pages):
        raise GrawDecodeError(
            "E_DECODE_PAGE",
            f"page {page} out of range; document has {len(pages)} page(s)",
        )
    return pages[page]


def dumps(model: GraphModel, *, mxfile: bool = False, compressed: bool = False) -> str:
    if mxfile or compressed:
        return to_mxfile(model, compressed=compressed)
    return to_xml(model)


def write_file(
    path: Union[str, Path],
    model: GraphModel,
    *,
    mxfile: bool = False,
    compressed: bool = False,
) -> Path:
    path = Path(path)
    text = dumps(model, mxfile=mxfile, compressed=compressed)
    path.write_text(text + "\n", encoding="utf-8")
    logger.debug("wrote %d cell(s) to %s", len(model.cells), path)
    return path


def read_file(path: Union[str, Path], *, page: int = 0) -> GraphModel:
    path = Path(path)
    model = from_xml(path.read_text(encoding="utf-8"), page=page)
    logger.debug("read %d cell(s) from %s", len(model.cells), path)
    return model


__all__ = [
    "DEFAULT_HOST",
    "compress_diagram",
    "decompress_diagram",
    "dumps",
    "from_xml",
    "pages_from_xml",
    "read_file",
    "to_mxfile",
    "write_file",
]
