"""
Unit tests for geometric_validator module.
"""

import numpy as np
import pytest

from src.common.types import Quadrilateral
from src.rectification.exceptions import InvalidDimensionsError
from src.rectification.geometric_validator import (
    calculate_edge_lengths,
    calculate_output_size,
    clamp_corners,
    default_corners,
    find_collinear_triplet,
    is_convex_quadrilateral,
    order_points,
)
from src.rectification.types import ScanMode


class TestCalculateEdgeLengths:
    """Tests for calculate_edge_lengths function."""

    def test_rectangle(self):
        """Axis-aligned rectangle has equal opposite edges."""
        points = np.array([[100, 100], [400, 100], [400, 200], [100, 200]])

        top, right, bottom, left = calculate_edge_lengths(points)

        assert top == pytest.approx(300.0)
        assert bottom == pytest.approx(300.0)
        assert right == pytest.approx(100.0)
        assert left == pytest.approx(100.0)

    def test_quadrilateral_input(self):
        """Quadrilateral objects are accepted."""
        quad = Quadrilateral.from_list([[0, 0], [3, 4], [3, 10], [0, 6]])

        top, right, bottom, left = calculate_edge_lengths(quad)

        assert top == pytest.approx(5.0)
        assert right == pytest.approx(6.0)
        assert bottom == pytest.approx(5.0)
        assert left == pytest.approx(6.0)


class TestCalculateOutputSize:
    """Tests for calculate_output_size function."""

    def test_landscape(self):
        """Wider selections scale the width to the maximum."""
        size = calculate_output_size([[0, 0], [300, 0], [300, 200], [0, 200]])

        assert size == (2400, 1600)

    def test_portrait(self):
        """Taller selections scale the height to the maximum."""
        size = calculate_output_size([[0, 0], [200, 0], [200, 300], [0, 300]])

        assert size == (1600, 2400)

    def test_square(self):
        """Equal averages give a square output."""
        size = calculate_output_size([[0, 0], [50, 0], [50, 50], [0, 50]])

        assert size == (2400, 2400)

    def test_averages_opposite_edges(self, skewed_quadrilateral):
        """Aspect ratio uses the mean of opposite edges."""
        top, right, bottom, left = calculate_edge_lengths(skewed_quadrilateral)
        expected_ratio = ((left + right) / 2) / ((top + bottom) / 2)

        width, height = calculate_output_size(skewed_quadrilateral, max_dimension=1000)

        assert max(width, height) == 1000
        assert height / width == pytest.approx(expected_ratio, abs=1e-3)

    def test_custom_max_dimension(self):
        """Shorter side is rounded to the nearest pixel."""
        size = calculate_output_size(
            [[0, 0], [300, 0], [300, 200], [0, 200]], max_dimension=100
        )

        assert size == (100, 67)

    def test_shorter_side_at_least_one(self):
        """Extreme aspect ratios never produce a zero dimension."""
        size = calculate_output_size(
            [[0, 0], [5000, 0], [5000, 10], [0, 10]], max_dimension=100
        )

        assert size == (100, 1)

    def test_too_small(self):
        """Selections below the minimum edge length are rejected."""
        with pytest.raises(InvalidDimensionsError, match="too small"):
            calculate_output_size([[0, 0], [5, 0], [5, 100], [0, 100]])

    def test_custom_min_edge(self):
        """The minimum edge length is configurable."""
        size = calculate_output_size(
            [[0, 0], [5, 0], [5, 100], [0, 100]], min_edge_length=2.0
        )

        assert size == (120, 2400)

    def test_invalid_max_dimension(self):
        """A zero maximum dimension is rejected."""
        with pytest.raises(InvalidDimensionsError):
            calculate_output_size(
                [[0, 0], [300, 0], [300, 200], [0, 200]], max_dimension=0
            )


class TestFindCollinearTriplet:
    """Tests for find_collinear_triplet function."""

    def test_rectangle_has_none(self):
        """A proper rectangle has no collinear corners."""
        assert find_collinear_triplet([[0, 0], [10, 0], [10, 5], [0, 5]]) is None

    def test_collinear(self):
        """Three points on a diagonal are detected."""
        assert find_collinear_triplet([[0, 0], [1, 1], [2, 2], [0, 5]]) == (0, 1, 2)

    def test_coincident(self):
        """Two identical points form a degenerate triplet with any third."""
        triplet = find_collinear_triplet([[5, 5], [5, 5], [10, 0], [0, 10]])

        assert triplet is not None
        assert 0 in triplet and 1 in triplet

    def test_scale_independent(self):
        """Scaling the points does not change the verdict."""
        nearly = np.array([[0, 0], [1, 1e-12], [2, 0], [1, 3]])

        assert find_collinear_triplet(nearly) is not None
        assert find_collinear_triplet(nearly * 1000) is not None

    def test_small_but_proper_quad(self):
        """Small quads are not degenerate just because they are small."""
        assert find_collinear_triplet([[0, 0], [0.01, 0], [0.01, 0.02], [0, 0.02]]) is None


class TestIsConvexQuadrilateral:
    """Tests for is_convex_quadrilateral function."""

    def test_convex_clockwise(self):
        """Image-space TL, TR, BR, BL order is convex."""
        assert is_convex_quadrilateral([[0, 0], [100, 0], [100, 100], [0, 100]])

    def test_convex_counter_clockwise(self):
        """The opposite winding is convex too."""
        assert is_convex_quadrilateral([[0, 0], [0, 100], [100, 100], [100, 0]])

    def test_bow_tie(self):
        """Crossed corners form a self-intersecting shape."""
        assert not is_convex_quadrilateral([[0, 0], [100, 100], [100, 0], [0, 100]])

    def test_concave(self):
        """A corner pushed inside makes the shape concave."""
        assert not is_convex_quadrilateral([[0, 0], [100, 0], [30, 30], [0, 100]])

    def test_straight_angle(self):
        """Three collinear corners are not strictly convex."""
        assert not is_convex_quadrilateral([[0, 0], [50, 0], [100, 0], [0, 100]])


class TestClampCorners:
    """Tests for clamp_corners function."""

    def test_clamps_to_frame(self):
        """Points outside the image are pulled onto its border."""
        corners = [[-10, -5], [700, 20], [650, 500], [30, 490]]

        clamped = clamp_corners(corners, 640, 480)

        assert isinstance(clamped, Quadrilateral)
        np.testing.assert_array_equal(
            clamped.to_numpy(), [[0, 0], [640, 20], [640, 480], [30, 480]]
        )

    def test_input_not_modified(self):
        """The caller's array is left untouched."""
        corners = np.array([[-10.0, -5.0], [700.0, 20.0], [650.0, 500.0], [30.0, 490.0]])
        before = corners.copy()

        clamp_corners(corners, 640, 480)

        np.testing.assert_array_equal(corners, before)


class TestDefaultCorners:
    """Tests for default_corners function."""

    def test_document_is_default(self):
        """Documents are inset 2% from every border."""
        quad = default_corners(1000, 500)

        np.testing.assert_allclose(
            quad.to_numpy(), [[20, 10], [980, 10], [980, 490], [20, 490]]
        )

    def test_book(self):
        """Books are inset 5% from every border."""
        quad = default_corners(1000, 500, ScanMode.BOOK)

        np.testing.assert_allclose(
            quad.to_numpy(), [[50, 25], [950, 25], [950, 475], [50, 475]]
        )

    def test_id_card(self):
        """ID cards sit in the middle: 20% in from the sides, 30% from top and bottom."""
        quad = default_corners(1000, 500, ScanMode.ID_CARD)

        np.testing.assert_allclose(
            quad.to_numpy(), [[200, 150], [800, 150], [800, 350], [200, 350]]
        )

    def test_mode_by_name(self):
        """Scan modes may be given by name, case-insensitively."""
        quad = default_corners(1000, 500, "ID_Card")

        assert quad == default_corners(1000, 500, ScanMode.ID_CARD)

    def test_unknown_mode(self):
        """Unknown scan modes are rejected."""
        with pytest.raises(ValueError, match="Invalid scan_mode"):
            default_corners(640, 480, "receipt")

    def test_zero_inset(self):
        """Zero inset selects the full frame."""
        quad = default_corners(640, 480, inset=0.0)

        assert quad == Quadrilateral.canonical_rectangle(640, 480)

    def test_inset_pair_overrides_mode(self):
        """An (x, y) inset pair replaces the preset."""
        quad = default_corners(1000, 500, ScanMode.BOOK, inset=(0.1, 0.2))

        np.testing.assert_allclose(
            quad.to_numpy(), [[100, 100], [900, 100], [900, 400], [100, 400]]
        )

    @pytest.mark.parametrize("inset", [-0.1, 0.5, 0.9, (0.1, 0.5), (-0.01, 0.1)])
    def test_invalid_inset(self, inset):
        """Ratios that collapse or invert the quad are rejected."""
        with pytest.raises(ValueError, match="inset ratio"):
            default_corners(640, 480, inset=inset)


class TestOrderPoints:
    """Tests for order_points function."""

    def test_shuffled(self, skewed_quadrilateral):
        """Shuffled corners are restored to TL, TR, BR, BL."""
        shuffled = skewed_quadrilateral[[2, 0, 3, 1]]

        ordered = order_points(shuffled)

        np.testing.assert_array_equal(ordered.to_numpy(), skewed_quadrilateral)

    def test_already_ordered(self):
        """Ordered input keeps its order."""
        pts = [[100, 100], [400, 100], [400, 300], [100, 300]]

        ordered = order_points(pts)

        assert ordered.to_list() == [[100.0, 100.0], [400.0, 100.0], [400.0, 300.0], [100.0, 300.0]]

    def test_ambiguous(self):
        """A square rotated by 45 degrees cannot be ordered by the heuristic."""
        with pytest.raises(ValueError, match="unambiguously"):
            order_points([[50, 0], [100, 50], [50, 100], [0, 50]])

    def test_invalid_count(self):
        """Wrong number of points is rejected."""
        with pytest.raises(ValueError, match="Expected exactly 4 points"):
            order_points(np.array([[100, 200], [300, 150]]))
