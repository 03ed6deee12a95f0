#!/usr/bin/env python3
# tests/test_frame_params.py
"""
Tests for the frame dimensioning of the ST-BICM simulation.
"""

import warnings
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from frame_params import FrameConfig, derive_frame_config


class TestDeriveFrameConfig:
    """Dimensions derived from the requested parameters."""

    def test_default_parameters(self):
        """Golden code, 4-QAM, rate 1/2, 2**14 interleaver."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            frame = derive_frame_config(512, 2, 0.5, 2 ** 14, 2, 4)

        assert frame == FrameConfig(block_len=8192, perm_len=16384, nb_symb=8192,
                                    nb_subblocks=2048, tx_duration=4096, coherence_time=512)

    def test_small_frame(self):
        frame = derive_frame_config(2, 2, 0.5, 256, 2, 4)
        assert frame.block_len == 128
        assert frame.nb_subblocks == 32
        assert frame.tx_duration == 64

    def test_interleaver_rounded_down(self):
        """perm_len is a multiple of coherence_time*bits_per_symbol*symb_block."""
        frame = derive_frame_config(4, 2, 0.5, 1000, 2, 4)
        G = 4 * 2 * 4
        assert frame.perm_len == G * (1000 // G)
        assert frame.perm_len % G == 0

    def test_coherence_time_rounded_with_warning(self):
        with pytest.warns(UserWarning, match="multiple of T"):
            frame = derive_frame_config(5, 2, 0.5, 1024, 2, 4)
        assert frame.coherence_time == 4
        assert frame.tx_duration % frame.coherence_time == 0

    def test_coherence_time_never_exceeds_duration(self):
        # perm_len is a multiple of coherence_time*bits_per_symbol*symb_block, so
        # tx_duration >= coherence_time and the clamp branch is unreachable
        for coherence_time in (2, 6, 16, 64):
            frame = derive_frame_config(coherence_time, 2, 0.5, 4096, 4, 4)
            assert frame.coherence_time <= frame.tx_duration
            assert frame.tx_duration % frame.coherence_time == 0


class TestDegenerateFrames:
    """Parameters that cannot produce a frame."""

    def test_coherence_time_shorter_than_code(self):
        with pytest.raises(ValueError):
            derive_frame_config(1, 2, 0.5, 1024, 2, 4)

    def test_interleaver_too_short(self):
        with pytest.raises(ValueError, match="interleaver length"):
            derive_frame_config(512, 2, 0.5, 1000, 2, 4)

    @pytest.mark.parametrize("coding_rate", [0.0, -0.5, 1.5])
    def test_invalid_coding_rate(self, coding_rate):
        with pytest.raises(ValueError):
            derive_frame_config(2, 2, coding_rate, 256, 2, 4)

    def test_non_positive_parameters(self):
        with pytest.raises(ValueError):
            derive_frame_config(2, 0, 0.5, 256, 2, 4)
