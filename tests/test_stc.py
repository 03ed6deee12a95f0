#!/usr/bin/env python3
# tests/test_stc.py
"""
Tests for the linear dispersion space-time codes.
"""

import numpy as np
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from demapper import is_orthogonal_design
from stc import SpaceTimeCode, _golden, _damen


def random_symbols(n, seed=0):
    rng = np.random.default_rng(seed)
    return rng.standard_normal(n) + 1j * rng.standard_normal(n)


class TestSetup:

    @pytest.mark.parametrize("code_name, M, T, Q", [
        ('Golden_2x2', 2, 2, 4),
        ('Damen_2x2', 2, 2, 4),
        ('Alamouti_2xN', 2, 2, 2),
        ('V-BLAST_MxN', 3, 1, 3),
    ])
    def test_dimensions(self, code_name, M, T, Q):
        stc = SpaceTimeCode().setup(3, 5, code_name)
        assert (stc.em_antennas, stc.channel_uses, stc.nb_symbols_per_block) == (M, T, Q)
        assert stc.gen_A.shape == (Q, T, M)
        assert stc.gen_B.shape == (Q, T, M)

    def test_unknown_code(self):
        with pytest.raises(ValueError):
            SpaceTimeCode().setup(2, 2, 'Silver_2x2')

    def test_unsupported_constellation(self):
        with pytest.raises(ValueError):
            SpaceTimeCode().setup(2, 2, 'Golden_2x2', const_size=6)

    def test_encode_before_setup(self):
        with pytest.raises(RuntimeError):
            SpaceTimeCode().encode(np.zeros(4))

    def test_orthogonality(self):
        alamouti = SpaceTimeCode().setup(2, 2, 'Alamouti_2xN')
        golden = SpaceTimeCode().setup(2, 2, 'Golden_2x2')
        assert alamouti.is_orthogonal and not golden.is_orthogonal
        assert is_orthogonal_design(alamouti.gen_A, alamouti.gen_B)
        assert not is_orthogonal_design(golden.gen_A, golden.gen_B)


class TestEncode:

    def test_alamouti(self):
        stc = SpaceTimeCode().setup(2, 2, 'Alamouti_2xN')
        s = random_symbols(2)
        expected = np.array([[s[0], s[1]], [-np.conj(s[1]), np.conj(s[0])]])
        np.testing.assert_allclose(stc.encode(s), expected)

    def test_vblast_is_spatial_multiplexing(self):
        stc = SpaceTimeCode().setup(4, 1, 'V-BLAST_MxN')
        s = random_symbols(12)
        np.testing.assert_allclose(stc.encode(s), s.reshape(3, 4))

    @pytest.mark.parametrize("code_name, dispersion", [('Golden_2x2', _golden), ('Damen_2x2', _damen)])
    def test_linear_dispersion_matches_code(self, code_name, dispersion):
        stc = SpaceTimeCode().setup(2, 2, code_name)
        s = random_symbols(8, seed=1)
        S = stc.encode(s)
        assert S.shape == (4, 2)
        np.testing.assert_allclose(S[:2], dispersion(s[:4]), atol=1e-12)
        np.testing.assert_allclose(S[2:], dispersion(s[4:]), atol=1e-12)

    def test_golden_energy(self):
        """Unit energy symbols keep unit energy on every antenna and channel use."""
        stc = SpaceTimeCode().setup(2, 2, 'Golden_2x2')
        s = random_symbols(40000, seed=2) / np.sqrt(2)
        S = stc.encode(s)
        assert abs(np.mean(np.abs(S) ** 2) - 1.0) < 0.05

    def test_length_check(self):
        stc = SpaceTimeCode().setup(2, 2, 'Golden_2x2')
        with pytest.raises(ValueError):
            stc.encode(np.zeros(6))
