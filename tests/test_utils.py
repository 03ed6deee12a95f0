#!/usr/bin/env python3
# tests/test_utils.py
"""
Tests for interleaving, LLR helpers and the QAM modulator.
"""

import numpy as np
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from utils import (random_interleaver, interleave, deinterleave, threshold, hard_decision,
                   count_errors, bits_to_int, int_to_bits, QAM_Modulator)


class TestInterleaver:

    def test_permutation_and_inverse(self):
        rng = np.random.default_rng(3)
        perm, inv_perm = random_interleaver(64, rng)
        assert sorted(perm) == list(range(64))
        np.testing.assert_array_equal(inv_perm[perm], np.arange(64))

    def test_deinterleave_restores_order(self):
        rng = np.random.default_rng(4)
        perm, inv_perm = random_interleaver(32, rng)
        data = rng.standard_normal(32)
        np.testing.assert_array_equal(deinterleave(interleave(data, perm), inv_perm), data)

    def test_same_seed_same_interleaver(self):
        perm_a, _ = random_interleaver(100, np.random.default_rng(7))
        perm_b, _ = random_interleaver(100, np.random.default_rng(7))
        np.testing.assert_array_equal(perm_a, perm_b)


class TestLLRHelpers:

    def test_threshold_saturates(self):
        llrs = np.array([-120.0, -50.0, -3.0, 0.0, 7.5, 50.0, 80.0])
        np.testing.assert_array_equal(threshold(llrs, 50.0),
                                      [-50.0, -50.0, -3.0, 0.0, 7.5, 50.0, 50.0])

    def test_threshold_properties(self):
        """Saturation keeps signs, bounds magnitudes and is idempotent."""
        llrs = np.random.default_rng(0).normal(0, 100, 1000)
        clamped = threshold(llrs, 50.0)
        assert np.all(np.abs(clamped) <= 50.0)
        assert np.all(np.sign(clamped) == np.sign(llrs))
        np.testing.assert_array_equal(threshold(clamped, 50.0), clamped)

    def test_hard_decision(self):
        """Negative values decide bit 1."""
        np.testing.assert_array_equal(hard_decision([-2.0, 0.0, 3.0, -1e-9]), [1, 0, 0, 1])

    def test_count_errors(self):
        assert count_errors(np.array([0, 1, 1, 0]), np.array([1, 1, 0, 0])) == 2

    def test_count_errors_length_mismatch(self):
        with pytest.raises(ValueError):
            count_errors(np.zeros(3), np.zeros(4))

    def test_bit_conversions(self):
        np.testing.assert_array_equal(int_to_bits(np.array([0, 5, 6]), 3),
                                      [[0, 0, 0], [1, 0, 1], [1, 1, 0]])
        np.testing.assert_array_equal(bits_to_int([[1, 0, 1], [0, 1, 1]]), [5, 3])


class TestQAMModulator:

    @pytest.mark.parametrize("const_size", [4, 16, 64])
    def test_unit_energy(self, const_size):
        mod = QAM_Modulator(const_size)
        assert mod.bits_per_symbol() == int(np.log2(const_size))
        assert np.isclose(np.mean(np.abs(mod.symbols) ** 2), 1.0)
        assert np.isclose(np.mean(mod.symbols), 0.0)

    def test_qpsk_points(self):
        mod = QAM_Modulator(4)
        symbols = mod.modulate_bits([0, 0, 1, 1, 1, 0])
        np.testing.assert_allclose(symbols, np.array([-1 - 1j, 1 + 1j, 1 - 1j]) / np.sqrt(2))

    @pytest.mark.parametrize("const_size", [16, 64])
    def test_gray_mapping(self, const_size):
        """Nearest neighbours differ by exactly one bit."""
        mod = QAM_Modulator(const_size)
        distances = np.abs(mod.symbols[:, None] - mod.symbols[None, :])
        d_min = np.min(distances[distances > 1e-9])
        for i, j in zip(*np.where(np.isclose(distances, d_min))):
            assert np.sum(mod.bit_labels[i] != mod.bit_labels[j]) == 1

    def test_labels_address_symbols(self):
        """Modulating the label table returns the constellation in label order."""
        mod = QAM_Modulator(16)
        np.testing.assert_array_equal(mod.modulate_bits(mod.bit_labels.reshape(-1)), mod.symbols)

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            QAM_Modulator(8)
        with pytest.raises(ValueError):
            QAM_Modulator(2)
        with pytest.raises(ValueError):
            QAM_Modulator(4).modulate_bits([0, 1, 1])
