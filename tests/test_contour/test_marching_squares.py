import numpy as np
import pytest

from contour import EDGE_PAIRS, cell_masks, edge_parameter, extract_contour, stitch_segments


def circle_grid(n: int = 40, radius: float = 1.0, half_width: float = 2.0):
    axis = np.linspace(-half_width, half_width, n)
    xx, yy = np.meshgrid(axis, axis)
    step = axis[1] - axis[0]
    return xx ** 2 + yy ** 2 - radius ** 2, (-half_width, -half_width), step


class TestCellMasks:
    def test_bit_order(self):
        # corners: 0 -> grid[0, 0], 1 -> grid[0, 1], 2 -> grid[1, 1], 3 -> grid[1, 0]
        for corner, (r, c) in enumerate([(0, 0), (0, 1), (1, 1), (1, 0)]):
            grid = -np.ones((2, 2))
            grid[r, c] = 1.0
            assert cell_masks(grid).tolist() == [[1 << corner]]

    def test_nan_is_outside(self):
        assert cell_masks(np.array([[np.nan, 1.0], [1.0, 1.0]])).tolist() == [[14]]

    def test_every_mixed_mask_has_edges(self):
        assert sorted(EDGE_PAIRS) == list(range(1, 15))


class TestEdgeParameter:
    def test_midpoint(self):
        assert edge_parameter(np.array(-2.0), np.array(2.0)) == 0.5

    def test_iso_level(self):
        assert edge_parameter(np.array(0.0), np.array(4.0), 1.0) == 0.25

    def test_degenerate_and_non_finite(self):
        t = edge_parameter(np.array([3.0, np.inf, 1.0]), np.array([3.0, 1.0, np.nan]))
        assert t.tolist() == [0.0, 0.0, 0.0]


class TestExtractContour:
    @pytest.mark.parametrize("value", [-1.0, 1.0])
    def test_uniform_grid_has_no_segments(self, value):
        assert extract_contour(np.full((5, 5), value), (0.0, 0.0), 1.0, 1.0).shape == (0, 2, 2)

    def test_too_small_grid(self):
        assert extract_contour(np.zeros((1, 5)), (0.0, 0.0), 1.0, 1.0).shape == (0, 2, 2)
        assert extract_contour(np.empty((0, 3)), (0.0, 0.0), 1.0, 1.0).shape == (0, 2, 2)

    def test_origin_and_cell_size(self):
        grid = np.array([[-1.0, 1.0], [-1.0, 1.0]])
        segs = extract_contour(grid, (10.0, 20.0), 2.0, 4.0)
        assert segs.tolist() == [[[11.0, 20.0], [11.0, 24.0]]]

    def test_saddle_uses_top_and_bottom_edges(self):
        grid = np.array([[1.0, -1.0], [-1.0, 1.0]])
        segs = extract_contour(grid, (0.0, 0.0), 1.0, 1.0)
        assert segs.tolist() == [[[0.5, 0.0], [0.5, 1.0]]]

    @pytest.mark.parametrize("corner", range(4))
    def test_single_corner_cuts_adjacent_edges(self, corner):
        grid = -np.ones((2, 2))
        r, c = [(0, 0), (0, 1), (1, 1), (1, 0)][corner]
        grid[r, c] = 1.0
        (p, q), = extract_contour(grid, (0.0, 0.0), 1.0, 1.0)
        # both endpoints half a cell away from the inside corner
        for point in (p, q):
            assert np.abs(point - [c, r]).sum() == pytest.approx(0.5)
        assert not np.array_equal(p, q)

    def test_iso_level(self):
        grid = np.array([[0.0, 2.0], [0.0, 2.0]])
        segs = extract_contour(grid, (0.0, 0.0), 1.0, 1.0, iso_level=1.0)
        assert segs.tolist() == [[[0.5, 0.0], [0.5, 1.0]]]

    def test_unit_circle(self):
        grid, origin, step = circle_grid()
        segs = extract_contour(grid, origin, step, step)
        assert len(segs) > 20
        radii = np.hypot(segs[..., 0], segs[..., 1])
        np.testing.assert_allclose(radii, 1.0, atol=step / 2)

    def test_shared_edges_give_identical_endpoints(self):
        grid, origin, step = circle_grid()
        segs = extract_contour(grid, origin, step, step)
        endpoints = [tuple(p) for p in segs.reshape(-1, 2)]
        counts = {}
        for key in endpoints:
            counts[key] = counts.get(key, 0) + 1
        # closed curve fully inside the grid: every endpoint is shared by two cells
        assert set(counts.values()) == {2}

    def test_non_finite_values_stay_finite(self):
        grid = np.array([[np.nan, 1.0, -1.0], [1.0, 1.0, -1.0], [np.inf, -1.0, -1.0]])
        segs = extract_contour(grid, (0.0, 0.0), 1.0, 1.0)
        assert np.isfinite(segs).all()


class TestStitchSegments:
    def test_closed_circle_becomes_one_loop(self):
        grid, origin, step = circle_grid()
        segs = extract_contour(grid, origin, step, step)
        loops = stitch_segments(segs)
        assert len(loops) == 1
        loop = loops[0]
        assert len(loop) == len(segs) + 1
        np.testing.assert_array_equal(loop[0], loop[-1])

    def test_two_circles(self):
        axis = np.linspace(-4.0, 4.0, 80)
        xx, yy = np.meshgrid(axis, axis)
        grid = np.minimum((xx - 2) ** 2 + yy ** 2, (xx + 2) ** 2 + yy ** 2) - 1.0
        segs = extract_contour(grid, (-4.0, -4.0), axis[1] - axis[0], axis[1] - axis[0])
        assert len(stitch_segments(segs)) == 2

    def test_open_chain(self):
        segs = np.array([
            [[1.0, 0.0], [2.0, 0.0]],
            [[0.0, 0.0], [1.0, 0.0]],
            [[2.0, 0.0], [3.0, 0.0]],
        ])
        line, = stitch_segments(segs)
        assert line[:, 0].tolist() == [0.0, 1.0, 2.0, 3.0]

    def test_empty(self):
        assert stitch_segments(np.empty((0, 2, 2))) == []
