"""Face overlay state, rendering and the worker → UI handoff.

Three pieces:

- :class:`OverlayState`: the redraw/clear state machine. Only the
  rendering thread touches it.
- :class:`OverlayRenderer`: turns an immutable :class:`OverlaySnapshot`
  into pixels, either as stroked rectangles or as corner brackets.
- :class:`OverlayView`: the draw boundary. Detection workers call
  ``update_faces()`` / ``clear()`` from any thread; the messages travel
  through an :class:`OverlayChannel` and are applied on the next
  ``redraw()``.

Example:
    >>> view = OverlayView(width=640, height=480)
    >>> view.update_faces(records, scale_x=1.0, scale_y=1.0)   # worker thread
    >>> layer = np.zeros((480, 640, 3), dtype=np.uint8)
    >>> view.redraw(layer)                                      # UI thread
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Union

import cv2
import numpy as np

from facebound.geometry import map_faces
from facebound.types import FaceRecord, ViewRect

if TYPE_CHECKING:
    from facebound.config import PipelineConfig

logger = logging.getLogger(__name__)

MIN_STROKE_WIDTH = 2.0


class OverlayPhase(Enum):
    """Overlay state machine phases."""

    EMPTY = "empty"
    ACTIVE = "active"
    PENDING_CLEAR = "pending_clear"


class OverlayMode(Enum):
    """How each face rectangle is drawn."""

    BRACKETS = "brackets"
    RECT = "rect"


@dataclass(frozen=True)
class OverlaySnapshot:
    """What a single redraw should show.

    Attributes:
        rects: View-space rectangles to draw.
        clear: Blank the surface (and draw nothing).
    """

    rects: tuple[ViewRect, ...] = ()
    clear: bool = False


class OverlayState:
    """Holds the current overlay rectangles and the pending-clear flag.

    ``show()`` with rectangles makes the state ACTIVE; with none it
    requests a clear. ``request_clear()`` drops the rectangles and arms a
    single clear that the next ``consume()`` hands out exactly once.
    """

    def __init__(self) -> None:
        self._rects: tuple[ViewRect, ...] = ()
        self._pending_clear = False

    @property
    def phase(self) -> OverlayPhase:
        if self._pending_clear:
            return OverlayPhase.PENDING_CLEAR
        if self._rects:
            return OverlayPhase.ACTIVE
        return OverlayPhase.EMPTY

    @property
    def rects(self) -> tuple[ViewRect, ...]:
        return self._rects

    def show(self, rects: Iterable[ViewRect]) -> None:
        """Replace the rectangles with the latest detection result."""
        rects = tuple(rects)
        if not rects:
            self.request_clear()
            return
        self._rects = rects
        self._pending_clear = False

    def request_clear(self) -> None:
        """Drop the rectangles and blank the surface on the next redraw."""
        self._rects = ()
        self._pending_clear = True

    def consume(self) -> OverlaySnapshot:
        """Take the snapshot for one redraw, settling a pending clear."""
        if self._pending_clear:
            self._pending_clear = False
            return OverlaySnapshot(rects=(), clear=True)
        return OverlaySnapshot(rects=self._rects, clear=False)


@dataclass(frozen=True)
class Segment:
    """Line segment in view space."""

    x1: float
    y1: float
    x2: float
    y2: float


def bracket_length(rect: ViewRect) -> float:
    """Bracket arm length: a quarter of the rectangle height."""
    return rect.height / 4.0


def stroke_width_for(rect: ViewRect) -> float:
    """Stroke width for a rectangle: ``max(len / 12, 2)``."""
    return max(bracket_length(rect) / 12.0, MIN_STROKE_WIDTH)


def bracket_segments(rect: ViewRect, stroke_width: Optional[float] = None) -> List[Segment]:
    """Eight segments forming four corner brackets around ``rect``.

    The brackets sit ``len = rect.height / 4`` outside each corner.
    Horizontal arms are extended outward by half the stroke width so
    that they cover the end of the vertical arm. Order: bottom-left,
    bottom-right, top-left, top-right; vertical arm before horizontal.
    """
    length = bracket_length(rect)
    if stroke_width is None:
        stroke_width = stroke_width_for(rect)
    pad = stroke_width / 2.0

    left = rect.left - length
    top = rect.top - length
    right = rect.right + length
    bottom = rect.bottom + length

    return [
        Segment(left, bottom, left, bottom - length),
        Segment(left - pad, bottom, left + length, bottom),
        Segment(right, bottom, right, bottom - length),
        Segment(right + pad, bottom, right - length, bottom),
        Segment(left, top, left, top + length),
        Segment(left - pad, top, left + length, top),
        Segment(right, top, right, top + length),
        Segment(right + pad, top, right - length, top),
    ]


def _pt(x: float, y: float) -> tuple[int, int]:
    return int(round(x)), int(round(y))


class OverlayRenderer:
    """Draws face rectangles onto a BGR canvas.

    Rectangles must already be in view space with any mirroring applied.

    Args:
        mode: ``"brackets"`` (default) or ``"rect"``.
        color: BGR stroke color.
    """

    def __init__(
        self,
        mode: Union[OverlayMode, str] = OverlayMode.BRACKETS,
        color: tuple[int, int, int] = (255, 255, 255),
    ):
        self._mode = OverlayMode(mode) if isinstance(mode, str) else mode
        self._color = tuple(int(c) for c in color)

    @property
    def mode(self) -> OverlayMode:
        return self._mode

    def render(self, canvas: np.ndarray, snapshot: OverlaySnapshot) -> np.ndarray:
        """Redraw an overlay layer from a snapshot.

        A clear snapshot blanks the layer. A snapshot with rectangles
        blanks it and draws them. An empty snapshot leaves it untouched.
        """
        if snapshot.clear:
            canvas[...] = 0
            return canvas
        if snapshot.rects:
            canvas[...] = 0
            self.draw_rects(canvas, snapshot.rects)
        return canvas

    def draw_rects(self, canvas: np.ndarray, rects: Sequence[ViewRect]) -> np.ndarray:
        """Draw rectangles on top of the canvas contents (in place)."""
        for rect in rects:
            stroke = stroke_width_for(rect)
            thickness = max(1, int(round(stroke)))
            if self._mode == OverlayMode.RECT:
                cv2.rectangle(
                    canvas,
                    _pt(rect.left, rect.top),
                    _pt(rect.right, rect.bottom),
                    self._color,
                    thickness,
                    cv2.LINE_AA,
                )
                continue
            for seg in bracket_segments(rect, stroke):
                cv2.line(
                    canvas,
                    _pt(seg.x1, seg.y1),
                    _pt(seg.x2, seg.y2),
                    self._color,
                    thickness,
                    cv2.LINE_AA,
                )
        return canvas


@dataclass(frozen=True)
class FacesUpdate:
    """Worker → UI message carrying finished view rectangles."""

    rects: tuple[ViewRect, ...]
    frame_id: int = 0


@dataclass(frozen=True)
class ClearRequest:
    """Worker/lifecycle → UI message asking for one blank redraw."""

    reason: str = "no_face"


OverlayMessage = Union[FacesUpdate, ClearRequest]


class OverlayChannel:
    """Single-producer / single-consumer mailbox into the rendering thread.

    ``post()`` never blocks. ``drain()`` returns every pending message in
    arrival order.
    """

    def __init__(self) -> None:
        self._queue: "queue.SimpleQueue[OverlayMessage]" = queue.SimpleQueue()

    def post(self, message: OverlayMessage) -> None:
        self._queue.put_nowait(message)

    def drain(self) -> List[OverlayMessage]:
        messages: List[OverlayMessage] = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                return messages


class OverlayView:
    """Face border view: the draw boundary of the pipeline.

    ``update_faces()`` and ``clear()`` may be called from any thread and
    return immediately; their effect shows up on the next ``redraw()``,
    which must run on the rendering thread.

    Args:
        width: View width (canvas width used for mirroring).
        height: View height.
        front_facing: Mirror rectangles horizontally.
        renderer: Renderer used by ``redraw()``.
    """

    def __init__(
        self,
        width: int,
        height: int,
        front_facing: bool = True,
        renderer: Optional[OverlayRenderer] = None,
    ):
        self._width = width
        self._height = height
        self._front_facing = front_facing
        self._renderer = renderer if renderer is not None else OverlayRenderer()
        self._state = OverlayState()
        self._channel = OverlayChannel()
        self._detached = threading.Event()

    @classmethod
    def from_config(cls, config: PipelineConfig, width: int, height: int) -> "OverlayView":
        """Build a view using the config's mirroring, overlay mode and color."""
        return cls(
            width=width,
            height=height,
            front_facing=config.front_facing,
            renderer=OverlayRenderer(mode=config.overlay_mode, color=config.overlay_color),
        )

    @property
    def size(self) -> tuple[int, int]:
        return self._width, self._height

    @property
    def front_facing(self) -> bool:
        return self._front_facing

    @property
    def renderer(self) -> OverlayRenderer:
        return self._renderer

    @property
    def state(self) -> OverlayState:
        return self._state

    @property
    def detached(self) -> bool:
        return self._detached.is_set()

    # --- producer side (any thread) ---

    def update_faces(
        self,
        records: Sequence[FaceRecord],
        scale_x: float,
        scale_y: float,
        frame_id: int = 0,
    ) -> None:
        """Map detector records to view space and post them for drawing."""
        rects = map_faces(
            records, scale_x, scale_y,
            mirror=self._front_facing, canvas_width=self._width,
        )
        self.show_rects(rects, frame_id=frame_id)

    def show_rects(self, rects: Iterable[ViewRect], frame_id: int = 0) -> None:
        """Post already-mapped view rectangles. Empty means clear."""
        rects = tuple(rects)
        if not rects:
            self.clear()
            return
        self._post(FacesUpdate(rects=rects, frame_id=frame_id))

    def clear(self, reason: str = "no_face") -> None:
        """Ask the next redraw to blank the surface."""
        self._post(ClearRequest(reason=reason))

    def pause(self) -> None:
        self.clear(reason="pause")

    def resume(self) -> None:
        self.clear(reason="resume")

    def detach(self) -> None:
        """Tear down: later posts and redraws become no-ops."""
        self._detached.set()
        self._channel.drain()

    def _post(self, message: OverlayMessage) -> None:
        if self._detached.is_set():
            logger.debug("Overlay detached, dropping %s", type(message).__name__)
            return
        self._channel.post(message)

    # --- consumer side (rendering thread) ---

    def apply_pending(self) -> int:
        """Apply queued messages to the state. Returns how many were applied."""
        messages = self._channel.drain()
        for message in messages:
            if isinstance(message, FacesUpdate):
                self._state.show(message.rects)
            else:
                self._state.request_clear()
        return len(messages)

    def redraw(self, canvas: np.ndarray) -> Optional[OverlaySnapshot]:
        """Apply pending messages and render one snapshot onto ``canvas``.

        Returns:
            The snapshot drawn, or None when the view is detached.
        """
        if self._detached.is_set():
            return None
        self.apply_pending()
        snapshot = self._state.consume()
        self._renderer.render(canvas, snapshot)
        return snapshot


__all__ = [
    "MIN_STROKE_WIDTH",
    "OverlayPhase",
    "OverlayMode",
    "OverlaySnapshot",
    "OverlayState",
    "Segment",
    "bracket_length",
    "stroke_width_for",
    "bracket_segments",
    "OverlayRenderer",
    "FacesUpdate",
    "ClearRequest",
    "OverlayMessage",
    "OverlayChannel",
    "OverlayView",
]
