from __future__ import annotations

import struct
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from camera_tuning_tool.filters import MANUAL_KEYS, FilterParams, ManualAdjustments

SOI = b"\xff\xd8"
APP0 = 0xE0
APP1 = 0xE1
SOS = 0xDA
EOI = 0xD9

XMP_ID = b"http://ns.adobe.com/xap/1.0/\x00"

DEFAULT_PROCESS_TOOL = "camera-tuning"

_NS = {
    "x": "adobe:ns:meta/",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "dc": "http://purl.org/dc/elements/1.1/",
    "ctune": "http://ns.camera-tuning.dev/filters/1.0/",
}
for _prefix, _uri in _NS.items():
    ET.register_namespace(_prefix, _uri)

_FILTER_TAGS = {
    "brightness": "Brightness",
    "contrast": "Contrast",
    "saturate": "Saturate",
    "warmth": "Warmth",
}
_MANUAL_TAGS = {k: "Manual" + k.capitalize() for k in MANUAL_KEYS}

FilterTags = Tuple[FilterParams, ManualAdjustments, Optional[str]]


def _tag(prefix: str, name: str) -> str:
    return f"{{{_NS[prefix]}}}{name}"


def _minimal_root() -> ET.Element:
    xmpmeta = ET.Element(_tag("x", "xmpmeta"))
    rdf = ET.SubElement(xmpmeta, _tag("rdf", "RDF"))
    ET.SubElement(rdf, _tag("rdf", "Description"))
    return xmpmeta


def _description(root: ET.Element) -> ET.Element:
    rdf = root.find(_tag("rdf", "RDF"))
    if rdf is None:
        rdf = ET.SubElement(root, _tag("rdf", "RDF"))
    desc = rdf.find(_tag("rdf", "Description"))
    if desc is None:
        desc = ET.SubElement(rdf, _tag("rdf", "Description"))
    return desc


def _parse_root(packet: Optional[bytes]) -> ET.Element:
    if packet:
        try:
            root = ET.fromstring(packet)
        except ET.ParseError:
            return _minimal_root()
        if root.tag == _tag("x", "xmpmeta"):
            return root
        for el in root.iter(_tag("x", "xmpmeta")):
            return el
    return _minimal_root()


def _ensure_keyword(desc: ET.Element, keyword: str) -> None:
    subject = desc.find(_tag("dc", "subject"))
    if subject is None:
        subject = ET.SubElement(desc, _tag("dc", "subject"))
    bag = subject.find(_tag("rdf", "Bag"))
    if bag is None:
        bag = ET.SubElement(subject, _tag("rdf", "Bag"))
    for li in bag.findall(_tag("rdf", "li")):
        if (li.text or "").strip() == keyword:
            return
    ET.SubElement(bag, _tag("rdf", "li")).text = keyword


def _set_value(desc: ET.Element, name: str, value: str) -> None:
    el = desc.find(_tag("ctune", name))
    if el is None:
        el = ET.SubElement(desc, _tag("ctune", name))
    el.text = value


def _updated_packet(
    existing: Optional[bytes],
    filters: FilterParams,
    manual: ManualAdjustments,
    mode: Optional[str],
    tool: str,
) -> bytes:
    root = _parse_root(existing)
    desc = _description(root)
    _ensure_keyword(desc, f"ProcessedWith:{tool}")

    for key, name in _FILTER_TAGS.items():
        _set_value(desc, name, f"{getattr(filters, key):.4f}")
    for key, name in _MANUAL_TAGS.items():
        _set_value(desc, name, f"{getattr(manual, key):.4f}")
    if mode:
        _set_value(desc, "Mode", mode)

    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def _read_values(packet: Optional[bytes]) -> Optional[FilterTags]:
    if not packet:
        return None
    desc = _description(_parse_root(packet))

    def values(tags: Dict[str, str]) -> Optional[Dict[str, float]]:
        out = {}
        for key, name in tags.items():
            el = desc.find(_tag("ctune", name))
            if el is None or not (el.text or "").strip():
                return None
            out[key] = float(el.text)
        return out

    f = values(_FILTER_TAGS)
    if f is None:
        return None
    m = values(_MANUAL_TAGS) or {}
    mode_el = desc.find(_tag("ctune", "Mode"))
    mode = None
    if mode_el is not None:
        mode = (mode_el.text or "").strip() or None
    return FilterParams.from_dict(f), ManualAdjustments.from_dict(m), mode


def sidecar_path(image_path: Path) -> Path:
    return image_path.with_name(image_path.name + ".xmp")


def iter_jpeg_segments(data: bytes) -> Iterator[Tuple[int, int, int, int]]:
    if not data.startswith(SOI):
        return

    i = 2
    n = len(data)
    while i < n:
        if data[i] != 0xFF:
            i += 1
            continue

        start = i
        while i < n and data[i] == 0xFF:
            i += 1
        if i >= n:
            return
        marker = data[i]
        i += 1

        if marker in (SOS, EOI):
            yield marker, start, start + 2, start + 2
            return
        if i + 2 > n:
            return

        seglen = struct.unpack(">H", data[i : i + 2])[0]
        yield marker, start, i + seglen, i + 2
        i += seglen


def extract_xmp(data: bytes) -> Optional[bytes]:
    for marker, _, end, payload_start in iter_jpeg_segments(data):
        if marker == APP1 and data[payload_start:end].startswith(XMP_ID):
            return data[payload_start + len(XMP_ID) : end]
    return None


def _app1_segment(packet: bytes) -> bytes:
    payload = XMP_ID + packet
    return b"\xff\xe1" + struct.pack(">H", len(payload) + 2) + payload


def embed_filter_tags_jpeg(
    jpeg_path: Union[str, Path],
    filters: FilterParams,
    manual: ManualAdjustments,
    mode: Optional[str] = None,
    *,
    tool: str = DEFAULT_PROCESS_TOOL,
) -> bool:
    p = Path(jpeg_path)
    try:
        data = p.read_bytes()
    except OSError as e:
        print(f"[WARN] Could not read {p} for tagging: {e}")
        return False
    if not data.startswith(SOI):
        return False

    segment = _app1_segment(_updated_packet(extract_xmp(data), filters, manual, mode, tool))

    replace_at = None
    insert_at = 2
    for marker, start, end, payload_start in iter_jpeg_segments(data):
        if marker == SOS:
            break
        if marker == APP1 and data[payload_start:end].startswith(XMP_ID):
            replace_at = (start, end)
            break
        if start == insert_at and marker == APP0:
            insert_at = end

    if replace_at is not None:
        new_data = data[: replace_at[0]] + segment + data[replace_at[1] :]
    else:
        new_data = data[:insert_at] + segment + data[insert_at:]

    tmp = p.with_suffix(p.suffix + ".tmp")
    try:
        tmp.write_bytes(new_data)
        tmp.replace(p)
        return True
    except OSError as e:
        print(f"[WARN] Could not tag {p}: {e}")
        if tmp.exists():
            tmp.unlink()
        return False


def write_filter_sidecar(
    image_path: Union[str, Path],
    filters: FilterParams,
    manual: ManualAdjustments,
    mode: Optional[str] = None,
    *,
    tool: str = DEFAULT_PROCESS_TOOL,
) -> bool:
    sidecar = sidecar_path(Path(image_path))
    existing = sidecar.read_bytes() if sidecar.exists() else None
    try:
        sidecar.parent.mkdir(parents=True, exist_ok=True)
        sidecar.write_bytes(_updated_packet(existing, filters, manual, mode, tool))
        return True
    except OSError as e:
        print(f"[WARN] Could not write sidecar {sidecar}: {e}")
        return False


def write_filter_tags(
    image_path: Union[str, Path],
    filters: FilterParams,
    manual: ManualAdjustments,
    mode: Optional[str] = None,
    *,
    tool: str = DEFAULT_PROCESS_TOOL,
) -> bool:
    p = Path(image_path)
    if p.suffix.lower() in (".jpg", ".jpeg"):
        return embed_filter_tags_jpeg(p, filters, manual, mode, tool=tool)
    return write_filter_sidecar(p, filters, manual, mode, tool=tool)


def read_filter_tags(image_path: Union[str, Path]) -> Optional[FilterTags]:
    p = Path(image_path)
    packet = None
    if p.suffix.lower() in (".jpg", ".jpeg") and p.exists():
        packet = extract_xmp(p.read_bytes())
    if packet is None and sidecar_path(p).exists():
        packet = sidecar_path(p).read_bytes()
    return _read_values(packet)
