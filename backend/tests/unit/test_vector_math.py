"""Unit tests for cosine similarity helpers"""

import numpy as np
import pytest

from domain.similarity.vector_math import cosine_similarity, cosine_distance


class TestCosineSimilarity:

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    @pytest.mark.parametrize("vector", [
        [0.1, 0.2, 0.3],
        [0.3, -1.7, 2.9, 0.05],
        [1e-3, 7.0, -0.25, 3.3, 0.1],
    ])
    def test_self_similarity_is_exactly_one(self, vector):
        assert cosine_similarity(vector, vector) == 1.0

    @pytest.mark.parametrize("a,b", [
        ([0.1, 0.2, 0.3], [0.3, 0.2, 0.1]),
        ([0.3, -1.7, 2.9, 0.05], [1.1, 0.4, -0.6, 2.0]),
        ([1e-3, 7.0, -0.25], [5.0, -2.5, 0.75]),
    ])
    def test_symmetric(self, a, b):
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 1.0], [5.0, 5.0]) == pytest.approx(1.0)

    def test_numpy_input(self):
        assert cosine_similarity(np.array([3.0, 4.0]), [3.0, 4.0]) == pytest.approx(1.0)

    def test_zero_vector(self):
        """Test zero magnitude yields 0.0 instead of NaN"""
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_length_mismatch(self):
        assert cosine_similarity([1.0, 0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_empty_and_none(self):
        assert cosine_similarity([], []) == 0.0
        assert cosine_similarity(None, [1.0]) == 0.0


class TestCosineDistance:

    def test_distance_is_one_minus_similarity(self):
        assert cosine_distance([1.0, 0.0], [1.0, 0.0]) == pytest.approx(0.0)
        assert cosine_distance([1.0, 0.0], [0.0, 1.0]) == pytest.approx(1.0)
