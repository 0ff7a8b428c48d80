"""Tests for overlay state, bracket rendering and the overlay view."""

import threading

import numpy as np
import pytest

from facebound.config import PipelineConfig
from facebound.overlay import (
    ClearRequest,
    FacesUpdate,
    OverlayChannel,
    OverlayMode,
    OverlayPhase,
    OverlayRenderer,
    OverlaySnapshot,
    OverlayState,
    OverlayView,
    Segment,
    bracket_length,
    bracket_segments,
    stroke_width_for,
)
from facebound.types import FaceRecord, ViewRect

RECT = ViewRect(100.0, 100.0, 180.0, 180.0)


class TestOverlayState:
    def test_starts_empty(self):
        state = OverlayState()
        assert state.phase == OverlayPhase.EMPTY
        assert state.consume() == OverlaySnapshot(rects=(), clear=False)

    def test_show_makes_active(self):
        state = OverlayState()
        state.show([RECT])
        assert state.phase == OverlayPhase.ACTIVE
        assert state.consume().rects == (RECT,)

    def test_active_persists_across_redraws(self):
        state = OverlayState()
        state.show([RECT])
        state.consume()
        assert state.consume().rects == (RECT,)

    @pytest.mark.parametrize("prior", ["empty", "active", "pending"])
    def test_no_faces_always_pending_clear(self, prior):
        state = OverlayState()
        if prior == "active":
            state.show([RECT])
        elif prior == "pending":
            state.request_clear()
        state.show([])
        assert state.phase == OverlayPhase.PENDING_CLEAR
        assert state.rects == ()

    def test_clear_consumed_exactly_once(self):
        state = OverlayState()
        state.show([RECT])
        state.request_clear()

        first = state.consume()
        second = state.consume()

        assert first.clear is True
        assert first.rects == ()
        assert second.clear is False
        assert state.phase == OverlayPhase.EMPTY

    def test_repeated_requests_collapse(self):
        state = OverlayState()
        state.request_clear()
        state.request_clear()
        assert state.consume().clear is True
        assert state.consume().clear is False

    def test_show_after_clear_request_wins(self):
        state = OverlayState()
        state.request_clear()
        state.show([RECT])
        snapshot = state.consume()
        assert snapshot.clear is False
        assert snapshot.rects == (RECT,)


class TestBracketGeometry:
    def test_length_and_stroke(self):
        rect = ViewRect(80.0, 80.0, 120.0, 120.0)
        assert bracket_length(rect) == 10.0
        assert stroke_width_for(rect) == 2.0

    def test_stroke_scales_for_large_rect(self):
        rect = ViewRect(0.0, 0.0, 480.0, 480.0)
        # len = 120, 120 / 12 = 10
        assert stroke_width_for(rect) == 10.0

    def test_eight_segments(self):
        rect = ViewRect(80.0, 80.0, 120.0, 120.0)
        # len = 10, stroke = 2, outer box (70, 70, 130, 130), pad = 1
        assert bracket_segments(rect) == [
            Segment(70.0, 130.0, 70.0, 120.0),
            Segment(69.0, 130.0, 80.0, 130.0),
            Segment(130.0, 130.0, 130.0, 120.0),
            Segment(131.0, 130.0, 120.0, 130.0),
            Segment(70.0, 70.0, 70.0, 80.0),
            Segment(69.0, 70.0, 80.0, 70.0),
            Segment(130.0, 70.0, 130.0, 80.0),
            Segment(131.0, 70.0, 120.0, 70.0),
        ]

    def test_segments_follow_rect(self):
        rect = ViewRect(10.0, 20.0, 50.0, 100.0)
        length = bracket_length(rect)
        segments = bracket_segments(rect)
        xs = {s.x1 for s in segments if s.x1 == s.x2}
        ys = {s.y1 for s in segments if s.y1 == s.y2}
        assert xs == {rect.left - length, rect.right + length}
        assert ys == {rect.top - length, rect.bottom + length}
        assert all(
            abs(s.y2 - s.y1) == length for s in segments if s.x1 == s.x2
        )


class TestOverlayRenderer:
    def test_brackets_drawn_outside_corners(self, blank_canvas):
        OverlayRenderer().draw_rects(blank_canvas, [RECT])
        # len = 20: bottom-left bracket corner at (80, 200)
        assert blank_canvas[200, 80].any()
        # Middle of the top edge and the face itself stay untouched
        assert not blank_canvas[80, 140].any()
        assert not blank_canvas[140, 140].any()

    def test_rect_mode(self, blank_canvas):
        OverlayRenderer(mode="rect").draw_rects(blank_canvas, [RECT])
        assert blank_canvas[100, 140].any()
        assert not blank_canvas[80, 80].any()

    def test_color(self, blank_canvas):
        OverlayRenderer(mode=OverlayMode.RECT, color=(0, 0, 255)).draw_rects(blank_canvas, [RECT])
        b, g, r = blank_canvas[100, 140].tolist()
        assert r > 0 and b == 0 and g == 0

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            OverlayRenderer(mode="circle")

    def test_render_clear_blanks_layer(self):
        layer = np.full((50, 50, 3), 7, dtype=np.uint8)
        OverlayRenderer().render(layer, OverlaySnapshot(clear=True))
        assert not layer.any()

    def test_render_empty_leaves_layer(self):
        layer = np.full((50, 50, 3), 7, dtype=np.uint8)
        OverlayRenderer().render(layer, OverlaySnapshot())
        assert (layer == 7).all()

    def test_render_active_redraws_from_blank(self, blank_canvas):
        blank_canvas[0, 0] = 9
        OverlayRenderer().render(blank_canvas, OverlaySnapshot(rects=(RECT,)))
        assert not blank_canvas[0, 0].any()
        assert blank_canvas[200, 80].any()

    def test_bracket_pixels_deterministic(self, blank_canvas):
        renderer = OverlayRenderer()
        a = renderer.draw_rects(blank_canvas.copy(), [RECT])
        b = renderer.draw_rects(blank_canvas.copy(), [RECT])
        assert np.array_equal(a, b)


class TestOverlayChannel:
    def test_drain_in_order(self):
        channel = OverlayChannel()
        first = FacesUpdate(rects=(RECT,), frame_id=1)
        second = ClearRequest()
        channel.post(first)
        channel.post(second)
        assert channel.drain() == [first, second]
        assert channel.drain() == []

    def test_post_from_other_thread(self):
        channel = OverlayChannel()
        thread = threading.Thread(target=channel.post, args=(ClearRequest(),))
        thread.start()
        thread.join()
        assert channel.drain() == [ClearRequest()]


class TestOverlayView:
    def test_update_then_redraw(self, blank_canvas):
        view = OverlayView(300, 300, front_facing=False)
        view.update_faces([FaceRecord(140.0, 140.0, 40.0)], 1.0, 1.0)

        # Nothing applied until the rendering thread redraws
        assert view.state.phase == OverlayPhase.EMPTY
        snapshot = view.redraw(blank_canvas)

        assert snapshot.rects == (RECT,)
        assert blank_canvas[200, 80].any()

    def test_front_facing_mirrors_with_view_width(self, blank_canvas):
        view = OverlayView(300, 300, front_facing=True)
        view.update_faces([FaceRecord(100.0, 100.0, 20.0)], 1.0, 1.0)
        snapshot = view.redraw(blank_canvas)
        assert snapshot.rects[0].as_tuple() == (180.0, 80.0, 220.0, 120.0)

    def test_empty_update_clears(self, blank_canvas):
        view = OverlayView(300, 300)
        view.update_faces([FaceRecord(140.0, 140.0, 40.0)], 1.0, 1.0)
        view.redraw(blank_canvas)
        view.update_faces([], 1.0, 1.0)

        snapshot = view.redraw(blank_canvas)

        assert snapshot.clear is True
        assert not blank_canvas.any()
        assert view.redraw(blank_canvas).clear is False

    @pytest.mark.parametrize("transition", ["pause", "resume"])
    def test_lifecycle_requests_clear(self, blank_canvas, transition):
        view = OverlayView(300, 300)
        view.show_rects([RECT])
        view.redraw(blank_canvas)
        getattr(view, transition)()
        assert view.redraw(blank_canvas).clear is True
        assert view.state.phase == OverlayPhase.EMPTY

    def test_messages_applied_in_order(self, blank_canvas):
        view = OverlayView(300, 300)
        view.clear()
        view.show_rects([RECT])
        snapshot = view.redraw(blank_canvas)
        assert snapshot.rects == (RECT,)
        assert snapshot.clear is False

    def test_detached_view_ignores_updates(self, blank_canvas):
        view = OverlayView(300, 300)
        view.show_rects([RECT])
        view.detach()
        view.show_rects([RECT])

        assert view.detached
        assert view.redraw(blank_canvas) is None
        assert not blank_canvas.any()
        assert view.apply_pending() == 0

    def test_from_config_yaml_rect_mode(self, blank_canvas, tmp_path):
        pytest.importorskip("yaml")
        path = tmp_path / "facebound.yaml"
        path.write_text(
            "overlay_mode: rect\n"
            "overlay_color: [0, 0, 255]\n"
            "front_facing: false\n"
        )
        view = OverlayView.from_config(PipelineConfig.from_yaml(str(path)), 300, 300)

        assert view.renderer.mode == OverlayMode.RECT
        assert view.front_facing is False

        view.update_faces([FaceRecord(140.0, 140.0, 40.0)], 1.0, 1.0)
        snapshot = view.redraw(blank_canvas)

        # Not mirrored, drawn as a stroked red rectangle without brackets
        assert snapshot.rects == (RECT,)
        b, g, r = blank_canvas[100, 140].tolist()
        assert r > 0 and b == 0 and g == 0
        assert not blank_canvas[200, 80].any()

    def test_from_config_mirrors_by_default(self, blank_canvas):
        view = OverlayView.from_config(PipelineConfig(), 300, 300)
        view.update_faces([FaceRecord(100.0, 100.0, 20.0)], 1.0, 1.0)
        snapshot = view.redraw(blank_canvas)
        assert view.renderer.mode == OverlayMode.BRACKETS
        assert snapshot.rects[0].as_tuple() == (180.0, 80.0, 220.0, 120.0)
