"""Marching-squares extraction of the zero isoline of a sampled scalar field.

Each crossed grid cell yields one independent two-point segment.  Segments
are not chained; :func:`stitch_segments` can join them afterwards when a
caller wants continuous polylines.
"""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Sequence

import numpy as np

# Corner order: 0 top-left, 1 top-right, 2 bottom-right, 3 bottom-left.
# Edge order:   0 top (0-1), 1 right (1-2), 2 bottom (3-2), 3 left (0-3).
# A corner is "inside" when its value >= iso; bit k of the mask is corner k.
EDGE_PAIRS = {
    1: (0, 3),  14: (0, 3),
    2: (0, 1),  13: (0, 1),
    3: (1, 3),  12: (1, 3),
    4: (2, 1),  11: (2, 1),
    5: (0, 2),  10: (0, 2),   # saddles: fixed choice, not disambiguated
    6: (0, 2),   9: (0, 2),
    7: (3, 2),   8: (3, 2),
}

_FIRST_EDGE = np.full(16, -1, dtype=np.intp)
_SECOND_EDGE = np.full(16, -1, dtype=np.intp)
for _mask, (_a, _b) in EDGE_PAIRS.items():
    _FIRST_EDGE[_mask] = _a
    _SECOND_EDGE[_mask] = _b


def edge_parameter(va: np.ndarray, vb: np.ndarray, iso: float = 0.0) -> np.ndarray:
    """Linear interpolation parameter ``t = (iso - va) / (vb - va)``.

    ``t`` is 0 where ``va == vb`` or where either endpoint is non-finite.

    Examples
    --------
    >>> import numpy as np
    >>> from contour import edge_parameter
    >>> edge_parameter(np.array([-1.0, 2.0, np.nan]), np.array([1.0, 2.0, 1.0]))
    array([0.5, 0. , 0. ])
    """
    va = np.asarray(va, dtype=np.float64)
    vb = np.asarray(vb, dtype=np.float64)
    with np.errstate(all="ignore"):
        t = (iso - va) / (vb - va)
    degenerate = (va == vb) | ~np.isfinite(va) | ~np.isfinite(vb)
    return np.where(degenerate, 0.0, t)


def cell_masks(grid: np.ndarray, iso_level: float = 0.0) -> np.ndarray:
    """Return the 4-bit inside/outside mask of every cell of *grid*."""
    with np.errstate(invalid="ignore"):
        inside = (np.asarray(grid, dtype=np.float64) >= iso_level).astype(np.intp)
    return (
        inside[:-1, :-1]
        | inside[:-1, 1:] << 1
        | inside[1:, 1:] << 2
        | inside[1:, :-1] << 3
    )


def extract_contour(
    grid: np.ndarray,
    origin: tuple[float, float],
    cell_width: float,
    cell_height: float,
    iso_level: float = 0.0,
) -> np.ndarray:
    """Extract the ``iso_level`` isoline of a scalar grid as cell segments.

    Builds a 4-bit mask per cell from its corners, skips cells that are
    entirely inside (mask 15) or outside (mask 0), and for every other cell
    emits exactly two points, linearly interpolated along the two crossed
    edges.  Saddle cells (masks 5 and 10) always use the top and bottom
    edges.

    Every edge is interpolated once for the whole grid, so two cells sharing
    an edge emit bit-identical endpoints.

    Parameters
    ----------
    grid : numpy.ndarray
        Scalar field of shape ``(rows, cols)``.  Row ``j`` lies at
        ``y = origin[1] + j * cell_height`` and column ``i`` at
        ``x = origin[0] + i * cell_width``.  Non-finite values count as
        outside.
    origin : tuple[float, float]
        World coordinates of ``grid[0, 0]``.
    cell_width, cell_height : float
        World spacing between neighbouring columns and rows.
    iso_level : float, default 0.0
        Contour level.

    Returns
    -------
    numpy.ndarray
        Array of shape ``(n, 2, 2)``: ``n`` segments of two ``(x, y)``
        world points, in row-major cell order.

    Examples
    --------
    >>> import numpy as np
    >>> from contour import extract_contour
    >>> grid = np.array([[-1.0, 1.0], [-1.0, 1.0]])
    >>> extract_contour(grid, (0.0, 0.0), 1.0, 1.0).tolist()
    [[[0.5, 0.0], [0.5, 1.0]]]
    """
    grid = np.asarray(grid, dtype=np.float64)
    rows, cols = grid.shape if grid.ndim == 2 else (0, 0)
    if rows < 2 or cols < 2:
        return np.empty((0, 2, 2))

    x0, y0 = origin
    ii = np.arange(cols, dtype=np.float64)
    jj = np.arange(rows, dtype=np.float64)

    # horizontal edges, shape (rows, cols - 1)
    t_h = edge_parameter(grid[:, :-1], grid[:, 1:], iso_level)
    h_pts = np.stack(
        [x0 + (ii[None, :-1] + t_h) * cell_width,
         np.broadcast_to(y0 + jj[:, None] * cell_height, t_h.shape)],
        axis=-1,
    )
    # vertical edges, shape (rows - 1, cols)
    t_v = edge_parameter(grid[:-1, :], grid[1:, :], iso_level)
    v_pts = np.stack(
        [np.broadcast_to(x0 + ii[None, :] * cell_width, t_v.shape),
         y0 + (jj[:-1, None] + t_v) * cell_height],
        axis=-1,
    )

    edges = np.stack([h_pts[:-1], v_pts[:, 1:], h_pts[1:], v_pts[:, :-1]])

    masks = cell_masks(grid, iso_level)
    r, c = np.nonzero((masks != 0) & (masks != 15))
    cell_mask = masks[r, c]
    first = edges[_FIRST_EDGE[cell_mask], r, c]
    second = edges[_SECOND_EDGE[cell_mask], r, c]
    return np.stack([first, second], axis=1)


def stitch_segments(segments: Sequence[np.ndarray] | np.ndarray) -> list[np.ndarray]:
    """Chain two-point segments that share endpoints into polylines.

    Endpoints are matched exactly, which is reliable for the output of
    :func:`extract_contour` because shared edges are interpolated once.
    Closed contours come back with their first point repeated at the end.

    Parameters
    ----------
    segments : array-like
        Segments of shape ``(n, 2, 2)``.

    Returns
    -------
    list[numpy.ndarray]
        Polylines of shape ``(k, 2)`` with ``k >= 2``.

    Examples
    --------
    >>> import numpy as np
    >>> from contour import stitch_segments
    >>> segs = np.array([[[0, 0], [1, 0]], [[1, 1], [1, 0]]], dtype=float)
    >>> [p.tolist() for p in stitch_segments(segs)]
    [[[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]]]
    """
    segments = np.asarray(segments, dtype=np.float64).reshape(-1, 2, 2)
    at_point: dict[tuple[float, float], list[int]] = defaultdict(list)
    for idx, (p, q) in enumerate(segments):
        at_point[(p[0], p[1])].append(idx)
        at_point[(q[0], q[1])].append(idx)

    used = np.zeros(len(segments), dtype=bool)

    def other_end(idx: int, key: tuple[float, float]) -> tuple[float, float]:
        p, q = segments[idx]
        return (q[0], q[1]) if (p[0], p[1]) == key else (p[0], p[1])

    def walk(key: tuple[float, float]):
        while True:
            nxt = next((s for s in at_point[key] if not used[s]), None)
            if nxt is None:
                return
            used[nxt] = True
            key = other_end(nxt, key)
            yield key

    polylines: list[np.ndarray] = []
    for idx in range(len(segments)):
        if used[idx]:
            continue
        used[idx] = True
        p, q = segments[idx]
        chain = deque([(p[0], p[1]), (q[0], q[1])])
        chain.extend(walk(chain[-1]))
        chain.extendleft(walk(chain[0]))
        polylines.append(np.array(chain, dtype=np.float64))
    return polylines
