#!/usr/bin/env python3
# tests/test_ber_accumulator.py
"""
Tests for the bit error accumulator and its stopping rule.
"""

import numpy as np
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from ber_accumulator import BERAccumulator


class TestBERAccumulator:

    def test_initial_state(self):
        acc = BERAccumulator(nb_iter=3, snr_len=4)
        assert acc.ber.shape == (3, 4)
        assert np.all(acc.ber == 0)
        assert not acc.should_stop(0, 10, 1000)

    def test_block_rates_are_summed(self):
        acc = BERAccumulator(3, 2)
        acc.add_block(1, [10, 5, 2], 100)
        acc.add_block(1, [20, 10, 0], 100)
        np.testing.assert_allclose(acc.ber[:, 1], [0.3, 0.15, 0.02])
        np.testing.assert_array_equal(acc.ber[:, 0], [0, 0, 0])
        assert acc.nb_blocks[1] == 2
        assert acc.nb_bits[1] == 200

    def test_only_last_iteration_counts_for_stopping(self):
        acc = BERAccumulator(2, 1)
        acc.add_block(0, [500, 3], 1000)
        assert acc.nb_errors[0] == 3
        assert not acc.should_stop(0, 100, 10 ** 6)

        acc.add_block(0, [400, 97], 1000)
        assert acc.should_stop(0, 100, 10 ** 6)

    def test_bit_limit(self):
        acc = BERAccumulator(1, 1)
        for _ in range(7):
            acc.add_block(0, [0], 128)
        assert not acc.should_stop(0, 10, 1000)
        acc.add_block(0, [0], 128)
        assert acc.should_stop(0, 10, 1000)

    def test_normalize(self):
        acc = BERAccumulator(2, 1)
        acc.add_block(0, [10, 4], 100)
        acc.add_block(0, [30, 0], 100)
        acc.normalize(0)
        np.testing.assert_allclose(acc.ber[:, 0], [0.2, 0.02])

    def test_normalize_without_blocks(self):
        acc = BERAccumulator(2, 2)
        acc.normalize(1)
        assert np.all(acc.ber == 0)

    def test_reset(self):
        acc = BERAccumulator(2, 2)
        acc.add_block(0, [1, 1], 10)
        acc.reset(0)
        assert acc.nb_blocks[0] == 0 and acc.nb_errors[0] == 0
        assert np.all(acc.ber[:, 0] == 0)

    def test_wrong_number_of_rounds(self):
        acc = BERAccumulator(3, 1)
        with pytest.raises(ValueError):
            acc.add_block(0, [1, 2], 100)

    def test_merge(self):
        target, worker = BERAccumulator(2, 3), BERAccumulator(2, 3)
        worker.add_block(2, [8, 4], 64)
        worker.normalize(2)
        target.merge(2, worker)
        np.testing.assert_allclose(target.ber[:, 2], [0.125, 0.0625])
        assert target.nb_errors[2] == 4
        assert target.nb_blocks[2] == 1
        with pytest.raises(ValueError):
            target.merge(0, BERAccumulator(3, 3))

    def test_dataframe(self):
        acc = BERAccumulator(2, 3)
        acc.add_block(1, [6, 2], 100)
        df = acc.to_dataframe([0.0, 5.0, 10.0])
        assert len(df) == 6
        assert list(df.columns) == ['snr', 'iteration', 'ber', 'errors', 'bits', 'blocks']
        row = df[(df['snr'] == 5.0) & (df['iteration'] == 2)].iloc[0]
        assert row['ber'] == pytest.approx(0.02)
        assert row['errors'] == 2
