"""Tests for the editor session: event handlers, selection, notifications."""

import json
import random

import pytest

from formlayout.engine.interaction import IDLE, MOVING
from formlayout.engine.placement import find_overlapping_pairs
from formlayout.engine.session import (
    CLEARED,
    CREATED,
    MOVED,
    RELOCATED,
    REMOVED,
    RESIZED,
    SELECTED,
    SETTINGS,
    UPDATED,
    EditorSession,
    LayoutChange,
)
from formlayout.engine.types import EditorSettings


def _recording_session(**settings):
    session = EditorSession(EditorSettings(**settings))
    changes = []
    session.subscribe(changes.append)
    return session, changes


class TestCreateRequest:
    def test_top_level_create_is_selected(self):
        session, changes = _recording_session()
        c = session.on_create_request("text", 37, 70)
        assert (c.x, c.y) == (32, 64)
        assert session.selected is c
        assert changes == [
            LayoutChange(CREATED, [c.id]),
            LayoutChange(SELECTED, [c.id]),
        ]

    def test_drop_into_section(self):
        session, _ = _recording_session()
        section = session.on_create_request("section", 0, 0)
        child = session.on_create_request("text", 250, 150)
        assert child.parent_section_id == section.id
        assert (child.x, child.y) == (100, 120)
        assert section.children == [child.id]

    def test_drop_targets_deepest_section(self):
        session, _ = _recording_session()
        session.on_create_request("section", 0, 0)
        second = session.on_create_request("section", 400, 0)
        child = session.on_create_request("checkbox", 432, 32)
        assert child.parent_section_id == second.id

    def test_section_dropped_on_section_stays_top_level(self):
        session, _ = _recording_session()
        session.on_create_request("section", 0, 0)
        inner = session.on_create_request("section", 32, 32)
        assert inner.parent_section_id is None

    def test_avoidance_slides_new_component(self):
        session, _ = _recording_session(allow_overlap=False)
        session.on_create_request("text", 0, 0)
        b = session.on_create_request("text", 0, 0)
        assert (b.x, b.y) == (208, 0)
        assert find_overlapping_pairs(session.layout) == []

    def test_overlap_kept_when_allowed(self):
        session, _ = _recording_session()
        a = session.on_create_request("text", 0, 0)
        b = session.on_create_request("text", 0, 0)
        assert find_overlapping_pairs(session.layout) == [(a.id, b.id)]

    def test_unknown_kind(self):
        session, changes = _recording_session()
        with pytest.raises(ValueError):
            session.on_create_request("slider", 0, 0)
        assert changes == []
        assert session.components == []


class TestRemoveRequest:
    def test_remove_selected_section(self):
        session, changes = _recording_session()
        section = session.on_create_request("section", 0, 0)
        child = session.on_create_request("text", 32, 32)
        session.select(section.id)
        changes.clear()
        removed = session.on_remove_request(section.id)
        assert set(removed) == {section.id, child.id}
        assert session.components == []
        assert session.selected is None
        assert changes == [
            LayoutChange(SELECTED, []),
            LayoutChange(REMOVED, removed),
        ]

    def test_remove_unselected_keeps_selection(self):
        session, _ = _recording_session()
        a = session.on_create_request("text", 0, 0)
        b = session.on_create_request("text", 0, 160)
        session.on_remove_request(a.id)
        assert session.selected is b

    def test_stale_id_is_noop(self):
        session, changes = _recording_session()
        session.on_create_request("text", 0, 0)
        changes.clear()
        assert session.on_remove_request(99) == []
        assert changes == []

    def test_delete_key_removes_selection(self):
        session, _ = _recording_session()
        c = session.on_create_request("checkbox", 0, 0)
        session.on_key_down("Backspace")
        assert session.layout.get(c.id) is c
        session.on_key_down("Delete")
        assert session.components == []
        session.on_key_down("Delete")

    def test_removing_gesture_target_ends_gesture(self):
        session, _ = _recording_session()
        c = session.on_create_request("text", 0, 0)
        session.on_gesture_start(c.id, "move", None, 0, 0)
        session.on_remove_request(c.id)
        assert session.gesture_mode == IDLE


class TestSelection:
    def test_select_and_deselect(self):
        session, changes = _recording_session()
        a = session.on_create_request("text", 0, 0)
        b = session.on_create_request("text", 0, 160)
        changes.clear()
        session.select(a.id)
        session.select(a.id)
        session.select(None)
        assert changes == [
            LayoutChange(SELECTED, [a.id]),
            LayoutChange(SELECTED, []),
        ]
        assert session.selected is None
        assert b.id != a.id

    def test_select_stale_id_clears(self):
        session, _ = _recording_session()
        session.on_create_request("text", 0, 0)
        session.select(99)
        assert session.selected_id is None


class TestOverlapPolicy:
    def test_turning_avoidance_on_resolves(self):
        session, changes = _recording_session()
        a = session.on_create_request("text", 0, 0)
        b = session.on_create_request("text", 0, 0)
        changes.clear()
        moved = session.on_overlap_policy_changed(False)
        assert moved == [b.id]
        assert (a.x, a.y) == (0, 0)
        assert find_overlapping_pairs(session.layout) == []
        assert changes == [
            LayoutChange(SETTINGS, []),
            LayoutChange(RELOCATED, [b.id]),
        ]

    def test_relocated_section_reports_children(self):
        session, changes = _recording_session()
        session.on_create_request("text", 0, 0)
        section = session.on_create_request("section", 0, 0)
        child = session.on_create_request("checkbox", 32, 32)
        assert child.parent_section_id == section.id
        changes.clear()
        assert session.on_overlap_policy_changed(False) == [section.id]
        assert (section.x, section.y) == (208, 0)
        assert changes[-1] == LayoutChange(
            RELOCATED, [section.id, child.id]
        )
        assert find_overlapping_pairs(session.layout) == []

    def test_only_the_transition_resolves(self):
        session, _ = _recording_session(allow_overlap=False)
        session.layout.create("text", 0, 0, 16)
        session.layout.create("text", 0, 0, 16)
        assert session.on_overlap_policy_changed(False) == []
        assert session.on_overlap_policy_changed(True) == []
        assert len(find_overlapping_pairs(session.layout)) == 1

    def test_settings_flag_follows(self):
        session, _ = _recording_session()
        session.on_overlap_policy_changed(False)
        assert session.settings.allow_overlap is False
        assert session.snapshot().allow_overlap is False


class TestGridSize:
    def test_change_grid(self):
        session, changes = _recording_session()
        session.on_grid_size_changed(10)
        c = session.on_create_request("text", 14, 26)
        assert (c.x, c.y) == (10, 30)
        assert changes[0] == LayoutChange(SETTINGS, [])

    def test_integral_float_grid(self):
        session, _ = _recording_session(grid_size=8.0)
        assert session.settings.grid_size == 8
        assert isinstance(session.settings.grid_size, int)
        session.on_grid_size_changed(16.0)
        assert session.settings.grid_size == 16
        c = session.on_create_request("text", 37, 70)
        assert (c.x, c.y) == (32, 64)

    @pytest.mark.parametrize("bad", [0, -16, 2.5, True])
    def test_invalid_grid(self, bad):
        session, _ = _recording_session()
        with pytest.raises(ValueError):
            session.on_grid_size_changed(bad)
        assert session.settings.grid_size == 16


class TestGestures:
    def test_move_notifies_with_descendants(self):
        session, changes = _recording_session()
        section = session.on_create_request("section", 0, 0)
        child = session.on_create_request("text", 32, 32)
        assert session.on_gesture_start(section.id, "move", None, 10, 10)
        assert session.selected is section
        assert session.gesture_mode == MOVING
        changes.clear()
        assert session.on_gesture_move(74, 10)
        assert changes == [LayoutChange(MOVED, [section.id, child.id])]
        session.on_gesture_end()
        assert session.gesture_mode == IDLE

    def test_resize_notifies(self):
        session, changes = _recording_session()
        c = session.on_create_request("text", 0, 0)
        session.on_gesture_start(c.id, "resize", "se", 200, 80)
        changes.clear()
        assert session.on_gesture_move(230, 100)
        assert (c.width, c.height) == (224, 96)
        assert changes == [LayoutChange(RESIZED, [c.id])]

    def test_move_without_gesture(self):
        session, changes = _recording_session()
        session.on_create_request("text", 0, 0)
        changes.clear()
        assert not session.on_gesture_move(50, 50)
        session.on_gesture_end()
        assert changes == []

    def test_start_on_missing_component(self):
        session, _ = _recording_session()
        assert not session.on_gesture_start(5, "move", None, 0, 0)
        assert session.selected is None


class TestUpdateProperties:
    def test_label_and_name(self):
        session, changes = _recording_session()
        c = session.on_create_request("text", 0, 0)
        changes.clear()
        assert session.update_properties(c.id, label="Email", name="email")
        assert (c.label, c.name) == ("Email", "email")
        assert c.display_text == "email"
        assert changes == [LayoutChange(UPDATED, [c.id])]

    def test_picklist_options_are_cleaned(self):
        session, _ = _recording_session()
        c = session.on_create_request("picklist", 0, 0)
        session.update_properties(c.id, options=[" Red ", "", "Blue", "  "])
        assert c.options == ["Red", "Blue"]

    def test_kind_specific_fields(self):
        session, _ = _recording_session()
        box = session.on_create_request("checkbox", 0, 0)
        section = session.on_create_request("section", 400, 0)
        session.update_properties(box.id, checked=True)
        session.update_properties(section.id, title="Contact")
        assert box.attributes.checked is True
        assert section.attributes.title == "Contact"

    def test_unknown_field(self):
        session, _ = _recording_session()
        c = session.on_create_request("checkbox", 0, 0)
        with pytest.raises(ValueError, match="placeholder"):
            session.update_properties(c.id, placeholder="x")
        with pytest.raises(ValueError, match="x"):
            session.update_properties(c.id, x=100)

    def test_stale_id(self):
        session, _ = _recording_session()
        assert not session.update_properties(7, label="gone")


class TestSnapshotRoundTrip:
    def test_snapshot_json_matches_layout(self):
        session, _ = _recording_session(allow_overlap=False)
        section = session.on_create_request("section", 0, 0)
        session.on_create_request("text", 32, 32)
        data = json.loads(session.snapshot_json())
        assert data["allowOverlap"] is False
        records = data["components"]
        assert [r["id"] for r in records] == [1, 2]
        assert records[1]["parentSectionId"] == section.id
        assert records[0]["children"] == [2]

    def test_load_snapshot(self):
        source, _ = _recording_session()
        section = source.on_create_request("section", 0, 0)
        source.on_create_request("text", 32, 32)
        snapshot = source.snapshot()

        session, changes = _recording_session()
        session.on_create_request("text", 500, 500)
        changes.clear()
        session.load_snapshot(snapshot)
        assert [c.id for c in session.components] == [1, 2]
        assert session.selected is None
        assert changes == [
            LayoutChange(CLEARED, []),
            LayoutChange(CREATED, [1, 2]),
        ]
        assert session.on_create_request("checkbox", 600, 0).id == 3

        # Edits after loading do not leak back into the snapshot.
        session.layout.get(section.id).x = 64
        assert snapshot.components[0].x == 0

    def test_clear(self):
        session, changes = _recording_session()
        session.on_create_request("text", 0, 0)
        changes.clear()
        session.clear()
        assert session.components == []
        assert session.selected is None
        assert changes == [LayoutChange(CLEARED, [])]


class TestListeners:
    def test_unsubscribe(self):
        session = EditorSession()
        seen = []
        unsubscribe = session.subscribe(seen.append)
        session.on_create_request("text", 0, 0)
        unsubscribe()
        unsubscribe()
        session.on_create_request("text", 0, 160)
        assert len(seen) == 2


class TestNoOverlapWithAvoidance:
    HANDLES = ["n", "s", "e", "w", "ne", "nw", "se", "sw"]

    def _drag_randomly(self, session, rng, gestures):
        for _ in range(gestures):
            c = rng.choice(session.components)
            if rng.random() < 0.5:
                session.on_gesture_start(c.id, "move", None, 0, 0)
            else:
                handle = rng.choice(self.HANDLES)
                session.on_gesture_start(c.id, "resize", handle, 0, 0)
            for _ in range(3):
                session.on_gesture_move(
                    rng.randrange(-200, 200), rng.randrange(-200, 200)
                )
                assert find_overlapping_pairs(session.layout) == []
            session.on_gesture_end()

    def test_random_edits_never_overlap(self):
        """With avoidance on, no sequence of edits leaves an overlap."""
        rng = random.Random(20240607)
        session = EditorSession(EditorSettings(allow_overlap=False))
        for _ in range(6):
            kind = rng.choice(["text", "textarea", "picklist", "checkbox"])
            session.on_create_request(
                kind, rng.randrange(0, 600), rng.randrange(0, 400)
            )
            assert find_overlapping_pairs(session.layout) == []

        self._drag_randomly(session, rng, 40)

    @pytest.mark.parametrize("seed", [7, 20240607, 31337])
    def test_random_edits_with_sections_never_overlap(self, seed):
        """Sections carry their children through moves and resizes."""
        rng = random.Random(seed)
        session = EditorSession(EditorSettings(allow_overlap=False))
        sections = [
            session.on_create_request("section", 0, 0),
            session.on_create_request("section", 400, 304),
        ]
        children = [
            session.on_create_request("text", s.x + 32, s.y + 32)
            for s in sections
        ]
        for _ in range(4):
            kind = rng.choice(["text", "textarea", "picklist", "checkbox"])
            session.on_create_request(
                kind, rng.randrange(0, 800), rng.randrange(600, 900)
            )
        assert [c.parent_section_id for c in children] == [
            s.id for s in sections
        ]
        assert find_overlapping_pairs(session.layout) == []

        self._drag_randomly(session, rng, 60)

        layout = session.layout
        assert layout.check_invariants() == []
        for section, child in zip(sections, children):
            assert child.parent_section_id == section.id
            assert 0 <= child.x <= section.width - child.width
            assert 0 <= child.y <= section.height - child.height
