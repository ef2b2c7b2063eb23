"""Save and load form layout snapshots as JSON or PNG (with embedded JSON).

JSON is the plain export: exactly the snapshot dict produced by
``engine.snapshot``. The PNG format is a shareable wireframe thumbnail of
the layout with the full snapshot JSON embedded in a PNG tEXt chunk (key:
``formlayout_layout``), so a saved image can be loaded straight back.

``load_snapshot``/``save_snapshot`` are the typed entry points used by
``cli.py``; they validate the dict through ``engine.snapshot`` so a file
with a malformed record fails with ValueError at load time.
"""

import json

from PIL import Image, ImageDraw
from PIL.PngImagePlugin import PngInfo

from ..engine.snapshot import snapshot_from_dict
from ..engine.types import LayoutSnapshot

METADATA_KEY = "formlayout_layout"

CANVAS_BG = "#ffffff"
THUMBNAIL_MARGIN = 16
MIN_THUMBNAIL_SIZE = (320, 240)

KIND_OUTLINES = {
    "text": "#1f6feb",
    "textarea": "#8250df",
    "picklist": "#bf8700",
    "checkbox": "#1a7f37",
    "section": "#57606a",
}
SECTION_FILL = "#f6f8fa"
DEFAULT_OUTLINE = "#000000"


def _absolute_rects(layout: dict) -> list[tuple[dict, tuple]]:
    """(record, (x0, y0, x1, y1)) for every component, parents first."""
    by_id = {c["id"]: c for c in layout.get("components", [])}

    def origin(c: dict, seen: set) -> tuple[float, float]:
        parent = by_id.get(c.get("parentSectionId"))
        if parent is None or parent["id"] in seen:
            return c["x"], c["y"]
        px, py = origin(parent, seen | {parent["id"]})
        return px + c["x"], py + c["y"]

    result = []
    for c in layout.get("components", []):
        x, y = origin(c, {c["id"]})
        result.append((c, (x, y, x + c["width"], y + c["height"])))
    result.sort(key=lambda item: item[0].get("parentSectionId") is not None)
    return result


def render_thumbnail(layout: dict) -> Image.Image:
    """Draw a wireframe of the layout: one outlined box per component."""
    rects = _absolute_rects(layout)
    width = max([r[2] for _, r in rects], default=0) + THUMBNAIL_MARGIN
    height = max([r[3] for _, r in rects], default=0) + THUMBNAIL_MARGIN
    size = (
        int(max(width, MIN_THUMBNAIL_SIZE[0])),
        int(max(height, MIN_THUMBNAIL_SIZE[1])),
    )
    img = Image.new("RGB", size, CANVAS_BG)
    draw = ImageDraw.Draw(img)
    for record, (x0, y0, x1, y1) in rects:
        outline = KIND_OUTLINES.get(record.get("type"), DEFAULT_OUTLINE)
        fill = SECTION_FILL if record.get("type") == "section" else None
        draw.rectangle((x0, y0, x1 - 1, y1 - 1), fill=fill, outline=outline)
        text = record.get("name") or record.get("label") or ""
        if text:
            draw.text((x0 + 4, y0 + 2), text, fill=outline)
    return img


def save_layout_png(layout: dict, path: str) -> None:
    """Save a wireframe thumbnail with the layout JSON as a PNG tEXt chunk."""
    info = PngInfo()
    info.add_text(METADATA_KEY, json.dumps(layout))
    render_thumbnail(layout).save(path, pnginfo=info)


def save_layout_json(layout: dict, path: str) -> None:
    with open(path, "w") as f:
        json.dump(layout, f, indent=2)
        f.write("\n")


_FORMATS = (".png", ".json")


def _format_of(path: str) -> str:
    """'.png' or '.json' for path; ValueError for anything else."""
    lower = path.lower()
    for ext in _FORMATS:
        if lower.endswith(ext):
            return ext
    raise ValueError(f"Unsupported file extension: {path}")


def save_layout(layout: dict, path: str) -> None:
    """Save a layout, choosing the format by extension (.png or .json).

    Raises ValueError for unsupported extensions.
    """
    if _format_of(path) == ".png":
        save_layout_png(layout, path)
    else:
        save_layout_json(layout, path)


def load_layout_png(path: str) -> dict:
    """Load a layout dict from a PNG file's tEXt metadata.

    Raises ValueError if the PNG does not contain layout metadata.
    """
    with Image.open(path) as img:
        text = getattr(img, "text", None) or {}
    if METADATA_KEY not in text:
        raise ValueError(
            f"PNG file {path} has no layout metadata "
            f"(missing '{METADATA_KEY}' chunk)"
        )
    return json.loads(text[METADATA_KEY])


def load_layout_json(path: str) -> dict:
    with open(path) as f:
        return json.load(f)


def load_layout(path: str) -> dict:
    """Load a raw layout dict, dispatching by extension."""
    if _format_of(path) == ".png":
        return load_layout_png(path)
    return load_layout_json(path)


def load_snapshot(path: str) -> LayoutSnapshot:
    """Load and validate a snapshot from a .png or .json file.

    Raises ValueError for unsupported extensions, missing PNG metadata or
    malformed component records.
    """
    return snapshot_from_dict(load_layout(path))


def save_snapshot(snapshot: LayoutSnapshot, path: str) -> None:
    save_layout(snapshot.to_dict(), path)
