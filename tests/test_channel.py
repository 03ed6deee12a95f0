#!/usr/bin/env python3
# tests/test_channel.py
"""
Tests for the block fading MIMO channel.
"""

import numpy as np
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from channel import BlockFadingChannel, ebn0_to_sigma2


class TestNoiseVariance:

    def test_reference_value(self):
        """Rate 1/2, 4-QAM, Golden code: R = 2 bits/channel use."""
        sigma2 = ebn0_to_sigma2(0.0, 0.5, 2, 4, 2)
        assert np.isclose(sigma2, 0.5 / (2 * 2))

    def test_ten_db_step(self):
        sigma2 = ebn0_to_sigma2(np.array([0.0, 10.0, 20.0]), 0.5, 2, 4, 2)
        np.testing.assert_allclose(sigma2[1:] / sigma2[:-1], [0.1, 0.1])

    def test_symbol_energy_scaling(self):
        assert np.isclose(ebn0_to_sigma2(3.0, 0.5, 4, 2, 2, Es=2.0),
                          2.0 * ebn0_to_sigma2(3.0, 0.5, 4, 2, 2))


class TestBlockFadingChannel:

    def setup_method(self):
        self.channel = BlockFadingChannel(em_antennas=2, rec_antennas=3, channel_uses=2,
                                          coherence_time=8, tx_duration=32)

    def test_dimensions(self):
        assert self.channel.nb_intervals == 4
        assert self.channel.subblocks_per_interval == 4
        ch = self.channel.draw_realization(np.random.default_rng(0))
        assert ch.shape == (4, 2, 3)
        assert self.channel.expand(ch).shape == (16, 2, 3)

    def test_constant_over_coherence_time(self):
        ch = self.channel.expand(self.channel.draw_realization(np.random.default_rng(1)))
        for interval in range(4):
            group = ch[4 * interval:4 * (interval + 1)]
            assert np.all(group == group[0])
        assert not np.allclose(ch[0], ch[4])

    def test_rayleigh_statistics(self):
        channel = BlockFadingChannel(2, 2, 1, 1, 20000)
        ch = channel.draw_realization(np.random.default_rng(2))
        assert abs(np.mean(np.abs(ch) ** 2) - 1.0) < 0.03
        assert abs(np.mean(ch)) < 0.02

    def test_propagate_block_products(self):
        rng = np.random.default_rng(3)
        S = rng.standard_normal((32, 2)) + 1j * rng.standard_normal((32, 2))
        ch = self.channel.expand(self.channel.draw_realization(rng))
        rec = self.channel.propagate(S, ch)
        assert rec.shape == (32, 3)
        for b in range(16):
            np.testing.assert_allclose(rec[2 * b:2 * b + 2], S[2 * b:2 * b + 2] @ ch[b])

    def test_noise_variance_per_dimension(self):
        rng = np.random.default_rng(4)
        noisy = self.channel.add_noise(np.zeros((20000, 3), dtype=complex), 0.25, rng)
        assert abs(np.var(noisy.real) - 0.25) < 0.01
        assert abs(np.var(noisy.imag) - 0.25) < 0.01

    def test_transmit_without_noise(self):
        rng = np.random.default_rng(5)
        S = np.ones((32, 2), dtype=complex)
        rec, ch = self.channel.transmit(S, 0.0, rng)
        np.testing.assert_allclose(rec, self.channel.propagate(S, ch))

    def test_invalid_coherence_time(self):
        with pytest.raises(ValueError):
            BlockFadingChannel(2, 2, 2, 3, 12)
        with pytest.raises(ValueError):
            BlockFadingChannel(2, 2, 2, 8, 12)
