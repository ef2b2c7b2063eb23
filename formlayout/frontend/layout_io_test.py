"""Tests for layout_io save/load helpers."""

import json

import pytest
from PIL import Image

from .layout_io import (
    MIN_THUMBNAIL_SIZE,
    load_layout,
    load_layout_json,
    load_layout_png,
    load_snapshot,
    render_thumbnail,
    save_layout,
    save_layout_png,
    save_snapshot,
)

SAMPLE_LAYOUT = {
    "components": [
        {
            "id": 1,
            "type": "section",
            "label": "Section",
            "x": 400,
            "y": 300,
            "width": 300,
            "height": 200,
            "options": [],
            "parentSectionId": None,
            "children": [2],
            "name": "contact",
            "properties": {"title": "Contact", "description": ""},
        },
        {
            "id": 2,
            "type": "text",
            "label": "Email",
            "x": 32,
            "y": 32,
            "width": 200,
            "height": 80,
            "options": [],
            "parentSectionId": 1,
            "children": None,
            "name": "",
            "properties": {"placeholder": "", "defaultValue": ""},
        },
    ],
    "allowOverlap": True,
    "timestamp": "2024-01-01T00:00:00.000+00:00",
    "schemaVersion": 1,
}


def test_save_and_load_png_roundtrip(tmp_path):
    """Save a layout in a PNG, load it back, and verify equality."""
    path = str(tmp_path / "layout.png")

    save_layout_png(SAMPLE_LAYOUT, path)
    loaded = load_layout_png(path)

    assert loaded == SAMPLE_LAYOUT


def test_load_png_missing_chunk(tmp_path):
    """A plain PNG without metadata raises ValueError."""
    img = Image.new("RGB", (100, 100), "red")
    path = str(tmp_path / "plain.png")
    img.save(path)

    with pytest.raises(ValueError, match="formlayout_layout"):
        load_layout_png(path)


def test_load_json_roundtrip(tmp_path):
    """Write a JSON file and load it back."""
    path = str(tmp_path / "layout.json")
    with open(path, "w") as f:
        json.dump(SAMPLE_LAYOUT, f)

    loaded = load_layout_json(path)
    assert loaded == SAMPLE_LAYOUT


def test_load_layout_dispatches_by_extension(tmp_path):
    """save_layout/load_layout pick PNG or JSON by extension."""
    png_path = str(tmp_path / "test.PNG")
    save_layout(SAMPLE_LAYOUT, png_path)
    assert load_layout(png_path) == SAMPLE_LAYOUT

    json_path = str(tmp_path / "test.json")
    save_layout(SAMPLE_LAYOUT, json_path)
    assert load_layout(json_path) == SAMPLE_LAYOUT
    with open(json_path) as f:
        assert f.read().startswith('{\n  "components"')


def test_unsupported_extension(tmp_path):
    """Anything other than .png/.json raises ValueError."""
    path = str(tmp_path / "test.txt")
    with pytest.raises(ValueError, match="Unsupported file extension"):
        load_layout(path)
    with pytest.raises(ValueError, match="Unsupported file extension"):
        save_layout(SAMPLE_LAYOUT, path)


def test_thumbnail_covers_nested_components():
    """Child boxes are drawn at absolute positions inside the canvas."""
    img = render_thumbnail(SAMPLE_LAYOUT)
    assert img.size == (716, 516)
    # Child outline starts at section origin + child offset.
    assert img.getpixel((432, 340)) != img.getpixel((420, 340))


def test_thumbnail_of_empty_layout():
    img = render_thumbnail({"components": []})
    assert img.size == MIN_THUMBNAIL_SIZE


def test_snapshot_roundtrip_through_png(tmp_path):
    """load_snapshot returns typed components, nesting intact."""
    path = str(tmp_path / "layout.png")
    save_layout_png(SAMPLE_LAYOUT, path)

    snapshot = load_snapshot(path)
    section, child = snapshot.components
    assert section.is_section
    assert section.children == [2]
    assert child.parent_section_id == 1
    assert child.label == "Email"

    json_path = str(tmp_path / "copy.json")
    save_snapshot(snapshot, json_path)
    assert load_layout(json_path) == SAMPLE_LAYOUT


def test_load_snapshot_rejects_malformed_records(tmp_path):
    """A bad geometry value fails at load time with ValueError."""
    broken = json.loads(json.dumps(SAMPLE_LAYOUT))
    broken["components"][1]["x"] = "left"
    path = str(tmp_path / "broken.json")
    save_layout(broken, path)

    assert load_layout(path) == broken
    with pytest.raises(ValueError, match="'x' must be a number"):
        load_snapshot(path)
