from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Mapping, NamedTuple, Optional, Protocol, Sequence

import numpy as np

from contour import extract_contour, stitch_segments
from errors import ExpressionError, InvalidSamplingError
from lexer import Token
from parser import compile_expression
from runtime import evaluate_array, uses_variable

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


# SETTINGS

MIN_SCALE = 1.0           # pixels per world unit
MAX_SCALE = 4000.0
MIN_STEP = 0.001          # world units between 1-D samples
GRID_MAX_RESOLUTION = 300 # grid points per axis for implicit curves
ZOOM_FACTOR = 1.12        # one mouse-wheel notch
SAMPLE_CHUNK = 2048       # 1-D samples evaluated between cancellation checks
DEFAULT_COLOR = "cyan"
NO_GEOMETRY = "no plottable geometry"

Color = Any  # whatever the renderer understands ("cyan", (0, 255, 255), ...)
Environment = Mapping[str, float]


class CancelFlag(Protocol):
    def is_set(self) -> bool: ...


def clamp_scale(scale: float) -> float:
    """Clamp *scale* into ``[MIN_SCALE, MAX_SCALE]``; ``nan`` and infinities raise ``ValueError``."""
    scale = float(scale)
    if not np.isfinite(scale):
        raise ValueError(f"Viewport scale must be finite, got {scale}")
    return min(max(scale, MIN_SCALE), MAX_SCALE)


@dataclass(frozen=True)
class Viewport:
    """Affine mapping between world coordinates and screen pixels.

    ``screen = (center_x + wx * scale, center_y - wy * scale)``; the screen
    y axis points down.  ``scale`` is clamped to ``[MIN_SCALE, MAX_SCALE]``
    on construction.

    Parameters
    ----------
    center_x, center_y : float
        Pixel position of the world origin.
    scale : float
        Pixels per world unit.
    width, height : int
        Size of the drawing area in pixels.

    Examples
    --------
    >>> from grapher import Viewport
    >>> vp = Viewport(400.0, 300.0, 50.0, 800, 600)
    >>> vp.to_screen(1.0, 1.0)
    (450.0, 250.0)
    >>> vp.world_bounds()
    (-8.0, 8.0, -6.0, 6.0)
    >>> Viewport(0.0, 0.0, 1e6, 10, 10).scale
    4000.0
    """

    center_x: float
    center_y: float
    scale: float
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Viewport size must be positive, got {self.width}x{self.height}")
        object.__setattr__(self, "scale", clamp_scale(self.scale))

    @classmethod
    def centered(cls, width: int, height: int, scale: float = 50.0) -> "Viewport":
        """Viewport with the world origin in the middle of the screen."""
        return cls(width / 2.0, height / 2.0, scale, width, height)

    def to_screen(self, wx, wy):
        return self.center_x + wx * self.scale, self.center_y - wy * self.scale

    def to_world(self, sx, sy):
        return (sx - self.center_x) / self.scale, (self.center_y - sy) / self.scale

    def to_screen_points(self, points: np.ndarray) -> np.ndarray:
        """Map an ``(n, 2)`` array of world points to screen points."""
        points = np.asarray(points, dtype=np.float64)
        sx, sy = self.to_screen(points[:, 0], points[:, 1])
        return np.column_stack((sx, sy))

    def world_bounds(self) -> tuple[float, float, float, float]:
        """Return ``(x_min, x_max, y_min, y_max)`` of the visible rectangle."""
        x_min, y_max = self.to_world(0.0, 0.0)
        x_max, y_min = self.to_world(float(self.width), float(self.height))
        return x_min, x_max, y_min, y_max

    def panned(self, dx: float, dy: float) -> "Viewport":
        """Move the picture by ``(dx, dy)`` pixels."""
        return replace(self, center_x=self.center_x + dx, center_y=self.center_y + dy)

    def zoomed(self, factor: float, anchor: Optional[tuple[float, float]] = None) -> "Viewport":
        """Multiply the scale by *factor*, keeping the world point under *anchor* fixed.

        *anchor* is a pixel position and defaults to the world origin.  The
        resulting scale is clamped, so zooming past a limit is a no-op.
        """
        new_scale = clamp_scale(self.scale * factor)
        if anchor is None:
            return replace(self, scale=new_scale)
        ax, ay = anchor
        wx, wy = self.to_world(ax, ay)
        return replace(
            self,
            center_x=ax - wx * new_scale,
            center_y=ay + wy * new_scale,
            scale=new_scale,
        )


class Segment(NamedTuple):
    """One connected polyline in screen coordinates."""

    points: np.ndarray  # shape (n, 2), n >= 2
    color: Color


# SAMPLING PARAMETERS

def adaptive_step(scale: float) -> float:
    """Distance between 1-D samples: finer when zoomed in, never below ``MIN_STEP``."""
    return max(MIN_STEP, 0.5 / scale)


def jump_threshold(scale: float) -> float:
    """Largest ``|y - prev_y|`` (world units) still drawn as connected."""
    return max(10.0, 10.0 / (scale / 5.0))


def grid_resolution(pixels: int) -> int:
    """Grid points along one axis of the implicit-curve grid."""
    return max(2, min(GRID_MAX_RESOLUTION, int(pixels) // 2))


def _is_cancelled(cancel: Optional[CancelFlag]) -> bool:
    return cancel is not None and cancel.is_set()


# 1-D SAMPLING

def sample_positions(x_min: float, x_max: float, step: float) -> np.ndarray:
    """Return ``x_min, x_min + step, ...`` up to and including ``x_max``.

    Examples
    --------
    >>> from grapher import sample_positions
    >>> sample_positions(0.0, 1.0, 0.25).tolist()
    [0.0, 0.25, 0.5, 0.75, 1.0]
    """
    if step <= 0:
        raise ValueError(f"Sampling step must be positive, got {step}")
    if x_max < x_min:
        return np.empty(0)
    count = int(np.floor((x_max - x_min) / step + 1e-9)) + 1
    return x_min + np.arange(count) * step


def sample_line(
    rpn: Sequence[Token],
    xs: np.ndarray,
    env: Optional[Environment] = None,
    cancel: Optional[CancelFlag] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Evaluate *rpn* at every position in *xs*.

    ``x`` is bound in a copy of *env*; the caller's mapping is never
    touched.  Work proceeds in chunks of ``SAMPLE_CHUNK`` samples and the
    cancellation flag is checked before each chunk.

    Returns
    -------
    tuple[numpy.ndarray, numpy.ndarray]
        ``(xs, ys)`` truncated to the chunks that completed.  ``ys`` may
        contain non-finite values.
    """
    local = dict(env or {})
    ys = np.empty(len(xs))
    done = 0
    for start in range(0, len(xs), SAMPLE_CHUNK):
        if _is_cancelled(cancel):
            logger.debug("1-D sampling cancelled after %d of %d samples", done, len(xs))
            break
        chunk = xs[start:start + SAMPLE_CHUNK]
        local["x"] = chunk
        ys[start:start + len(chunk)] = evaluate_array(rpn, local)
        done = start + len(chunk)
    return xs[:done], ys[:done]


def compute_world_samples(
    rpn: Sequence[Token],
    x_min: float,
    x_max: float,
    step: float,
    env: Optional[Environment] = None,
) -> np.ndarray:
    """Sample ``y = f(x)`` and keep only the finite points.

    Returns
    -------
    numpy.ndarray
        World points of shape ``(n, 2)``.

    Examples
    --------
    >>> from parser import compile_expression
    >>> from grapher import compute_world_samples
    >>> compute_world_samples(compile_expression("1/x"), -1.0, 1.0, 1.0).tolist()
    [[-1.0, -1.0], [1.0, 1.0]]
    """
    if not rpn:
        return np.empty((0, 2))
    xs, ys = sample_line(rpn, sample_positions(x_min, x_max, step), env)
    finite = np.isfinite(ys)
    return np.column_stack((xs[finite], ys[finite]))


def split_segments(xs: np.ndarray, ys: np.ndarray, threshold: float) -> list[np.ndarray]:
    """Cut a sampled curve into runs that can be drawn as connected lines.

    A run ends at every non-finite sample and wherever two consecutive
    finite samples differ by more than *threshold*.  Runs with fewer than
    two points are dropped.

    Parameters
    ----------
    xs, ys : numpy.ndarray
        Sample positions and values (``ys`` may hold ``nan``/``inf``).
    threshold : float
        Largest jump in ``y`` that is still drawn connected.

    Returns
    -------
    list[numpy.ndarray]
        World-space runs of shape ``(k, 2)``, ``k >= 2``, left to right.

    Examples
    --------
    >>> import numpy as np
    >>> from grapher import split_segments
    >>> xs = np.arange(6.0)
    >>> ys = np.array([0.0, 1.0, np.nan, 2.0, 50.0, 51.0])
    >>> [run[:, 0].tolist() for run in split_segments(xs, ys, 10.0)]
    [[0.0, 1.0], [4.0, 5.0]]
    """
    finite = np.flatnonzero(np.isfinite(ys))
    if finite.size == 0:
        return []
    gaps = np.diff(finite) > 1
    jumps = np.abs(np.diff(ys[finite])) > threshold
    runs = np.split(finite, np.flatnonzero(gaps | jumps) + 1)
    return [np.column_stack((xs[run], ys[run])) for run in runs if run.size >= 2]


def decimate_columns(points: np.ndarray) -> np.ndarray:
    """Thin a screen-space polyline to at most four points per pixel column.

    Consecutive points falling into the same pixel column are reduced to the
    first, lowest, highest and last of them, kept in their original order,
    so the drawn shape is unchanged at pixel resolution.
    """
    points = np.asarray(points, dtype=np.float64)
    if len(points) <= 2:
        return points
    cols = np.floor(points[:, 0]).astype(np.int64)
    starts = np.flatnonzero(np.r_[True, cols[1:] != cols[:-1]])
    ends = np.r_[starts[1:], len(points)]
    keep: list[int] = []
    for start, end in zip(starts, ends):
        run = points[start:end, 1]
        picks = {start, start + int(np.argmin(run)), start + int(np.argmax(run)), end - 1}
        keep.extend(sorted(picks))
    return points[keep]


# 2-D SAMPLING

def sample_grid(
    rpn: Sequence[Token],
    bounds: tuple[float, float, float, float],
    nx: int,
    ny: int,
    env: Optional[Environment] = None,
    cancel: Optional[CancelFlag] = None,
) -> np.ndarray:
    """Sample ``F(x, y)`` on a regular ``ny`` by ``nx`` lattice.

    Row ``j`` holds ``y = y_min + j * dy`` and column ``i`` holds
    ``x = x_min + i * dx``, with the lattice spanning *bounds* exactly.
    Each row is evaluated in one vectorized pass; the cancellation flag is
    checked before every row.

    Parameters
    ----------
    rpn : Sequence[Token]
        Postfix tokens of ``F``.
    bounds : tuple[float, float, float, float]
        ``(x_min, x_max, y_min, y_max)`` in world units.
    nx, ny : int
        Number of lattice points along x and y (each at least 2).
    env : Mapping[str, float] or None
        Parameter values; ``x`` and ``y`` are bound in a copy.
    cancel : object with ``is_set()`` or None
        Cancellation flag.

    Returns
    -------
    numpy.ndarray
        Grid of shape ``(rows_done, nx)``; ``rows_done < ny`` only when the
        pass was cancelled.
    """
    x_min, x_max, y_min, y_max = bounds
    local = dict(env or {})
    local["x"] = np.linspace(x_min, x_max, nx)
    rows: list[np.ndarray] = []
    for y in np.linspace(y_min, y_max, ny):
        if _is_cancelled(cancel):
            logger.debug("Grid sampling cancelled after %d of %d rows", len(rows), ny)
            break
        local["y"] = y
        rows.append(evaluate_array(rpn, local))
    return np.array(rows, dtype=np.float64).reshape(len(rows), nx)


# GRAPH

def compute_graph(
    rpn: Sequence[Token],
    viewport: Viewport,
    x_range: Optional[tuple[float, float]] = None,
    step: Optional[float] = None,
    env: Optional[Environment] = None,
    cancel: Optional[CancelFlag] = None,
    color: Color = DEFAULT_COLOR,
    decimate: bool = False,
    stitch: bool = False,
) -> list[Segment]:
    """Turn a compiled expression into screen-space polyline segments.

    Expressions that read ``y`` are implicit relations ``F(x, y) = 0``: the
    visible world rectangle is sampled on a grid of at most
    ``GRID_MAX_RESOLUTION`` points per axis (half a point per pixel) and the
    zero isoline is extracted with marching squares.  Every other
    expression is an explicit curve ``y = f(x)`` sampled along x, broken at
    non-finite samples and at jumps larger than :func:`jump_threshold`.

    Parameters
    ----------
    rpn : Sequence[Token]
        Postfix tokens, usually cached by the caller per graph slot.
    viewport : Viewport
        Current world-to-screen mapping.
    x_range : tuple[float, float] or None
        World x interval for explicit curves.  Defaults to the visible
        range.  Ignored for implicit curves.
    step : float or None
        Sample spacing for explicit curves.  Defaults to
        :func:`adaptive_step` of the viewport scale.
    env : Mapping[str, float] or None
        Parameter values.  Snapshot-copied; never modified.
    cancel : object with ``is_set()`` or None
        Checked between chunks/rows.  A cancelled pass returns the segments
        built from the work already done.
    color : Color
        Attached to every returned segment.
    decimate : bool, default False
        Thin explicit curves to a few points per pixel column.
    stitch : bool, default False
        Chain implicit-curve cell segments into longer polylines.  By
        default each crossed cell yields its own two-point segment.

    Returns
    -------
    list[Segment]
        Possibly empty.  An empty list means "nothing to draw"; callers keep
        their previous geometry in that case.

    Raises
    ------
    InvalidExpressionError
        If *rpn* is malformed.
    InvalidSamplingError
        If *step* is given and is not a positive finite number.

    Examples
    --------
    >>> from parser import compile_expression
    >>> from grapher import Viewport, compute_graph
    >>> vp = Viewport.centered(800, 600)
    >>> len(compute_graph(compile_expression("x^2"), vp))
    1
    >>> len(compute_graph(compile_expression("1/x"), vp)) >= 2
    True
    """
    if not rpn:
        return []

    if uses_variable(rpn, "y"):
        return _implicit_graph(rpn, viewport, env, cancel, color, stitch)

    scale = viewport.scale
    if step is None:
        step = adaptive_step(scale)
    elif not (np.isfinite(step) and step > 0):
        raise InvalidSamplingError(f"Sampling step must be a positive number, got {step}")
    if x_range is None:
        x_range = viewport.world_bounds()[:2]

    xs, ys = sample_line(rpn, sample_positions(x_range[0], x_range[1], step), env, cancel)
    runs = split_segments(xs, ys, jump_threshold(scale))

    segments = []
    for run in runs:
        points = viewport.to_screen_points(run)
        if decimate:
            points = decimate_columns(points)
        segments.append(Segment(points, color))
    logger.debug("Explicit curve: %d samples, %d segments", len(xs), len(segments))
    return segments


def _implicit_graph(
    rpn: Sequence[Token],
    viewport: Viewport,
    env: Optional[Environment],
    cancel: Optional[CancelFlag],
    color: Color,
    stitch: bool,
) -> list[Segment]:
    bounds = viewport.world_bounds()
    x_min, x_max, y_min, y_max = bounds
    nx = grid_resolution(viewport.width)
    ny = grid_resolution(viewport.height)

    grid = sample_grid(rpn, bounds, nx, ny, env, cancel)
    dx = (x_max - x_min) / (nx - 1)
    dy = (y_max - y_min) / (ny - 1)
    cells = extract_contour(grid, (x_min, y_min), dx, dy)
    pieces = stitch_segments(cells) if stitch else list(cells)

    logger.debug("Implicit curve: %dx%d grid, %d crossed cells", nx, len(grid), len(cells))
    return [Segment(viewport.to_screen_points(piece), color) for piece in pieces]


class GraphSlot:
    """One graphed expression with its cached RPN and last good geometry.

    A slot never blanks itself on failure: a commit that does not compile,
    fails to evaluate, or produces no geometry leaves the previous RPN and
    segments in place and records the reason in :attr:`error`.

    Examples
    --------
    >>> from grapher import GraphSlot, Viewport
    >>> vp = Viewport.centered(800, 600)
    >>> slot = GraphSlot(color="red")
    >>> slot.commit("sin(x)", vp)
    True
    >>> slot.commit("sin(x", vp)
    False
    >>> slot.text, len(slot.segments)
    ('sin(x)', 1)
    """

    def __init__(self, color: Color = DEFAULT_COLOR, **options: Any) -> None:
        self.color = color
        self.options = options
        self.text = ""
        self.rpn: list[Token] = []
        self.segments: list[Segment] = []
        self.error: Optional[str] = None

    def commit(
        self,
        text: str,
        viewport: Viewport,
        env: Optional[Environment] = None,
        cancel: Optional[CancelFlag] = None,
    ) -> bool:
        """Compile and graph *text*; keep it only if it produced geometry."""
        try:
            rpn = compile_expression(text)
            segments = compute_graph(rpn, viewport, env=env, cancel=cancel, color=self.color, **self.options)
        except ExpressionError as exc:
            self.error = str(exc)
            logger.warning("Expression %r rejected: %s", text, exc)
            return False
        if not segments:
            self.error = NO_GEOMETRY
            return False
        self.text, self.rpn, self.segments, self.error = text, rpn, segments, None
        return True

    def redraw(
        self,
        viewport: Viewport,
        env: Optional[Environment] = None,
        cancel: Optional[CancelFlag] = None,
    ) -> list[Segment]:
        """Re-sample the cached RPN for a new viewport or parameter set."""
        if not self.rpn:
            return self.segments
        try:
            segments = compute_graph(self.rpn, viewport, env=env, cancel=cancel, color=self.color, **self.options)
        except ExpressionError as exc:
            self.error = str(exc)
            logger.warning("Redraw of %r failed: %s", self.text, exc)
            return self.segments
        if segments:
            self.segments = segments
            self.error = None
        return self.segments

    def clear(self) -> None:
        self.text = ""
        self.rpn = []
        self.segments = []
        self.error = None
