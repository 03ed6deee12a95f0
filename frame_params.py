#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Frame dimensioning for the ST-BICM simulation
"""

import math
import warnings
from dataclasses import dataclass


@dataclass(frozen=True)
class FrameConfig:
    """Consistent frame/block dimensions derived once per run"""
    block_len: int       # informational block length
    perm_len: int        # interleaver length (coded bits per block)
    nb_symb: int         # symbols at the modulator output
    nb_subblocks: int    # ST code blocks emitted in an interleaver period
    tx_duration: int     # transmission duration in symbol periods
    coherence_time: int  # in symbol periods, multiple of channel_uses


def derive_frame_config(coherence_time, channel_uses, coding_rate, perm_len,
                        bits_per_symbol, symb_block):
    """
    Derive the frame dimensions from the requested parameters

    Parameters:
    ----------
    coherence_time : int
        Requested coherence time in symbol periods
    channel_uses : int
        Duration of the space-time code (T)
    coding_rate : float
        Rate of the channel code
    perm_len : int
        Target interleaver length
    bits_per_symbol : int
        Bits carried by one constellation symbol
    symb_block : int
        Symbols per space-time code block

    Returns:
    -------
    FrameConfig
        Derived frame dimensions
    """
    if min(coherence_time, channel_uses, perm_len, bits_per_symbol, symb_block) <= 0:
        raise ValueError("Frame parameters must be positive integers")
    if not 0.0 < coding_rate <= 1.0:
        raise ValueError(f"Coding rate must be in (0, 1], got {coding_rate}")

    # The coherence time must hold an integer number of ST code blocks
    if coherence_time % channel_uses:
        coherence_time = channel_uses * (coherence_time // channel_uses)
        if coherence_time == 0:
            raise ValueError("The coherence time must be at least one ST code duration")
        warnings.warn("The coherence time must be a multiple of T. Choosing "
                      f"coherence_time=channel_uses*floor(coherence_time/channel_uses) = {coherence_time}")

    # Recompute interleaver length
    G = coherence_time * bits_per_symbol * symb_block
    perm_len = G * (perm_len // G)
    if perm_len == 0:
        raise ValueError(f"The interleaver length must be at least {G} "
                         "(coherence_time*bits_per_symbol*symb_block)")

    block_len = int(math.floor(coding_rate * perm_len))
    nb_symb = perm_len // bits_per_symbol
    nb_subblocks = nb_symb // symb_block
    tx_duration = channel_uses * nb_subblocks

    if coherence_time > tx_duration:
        coherence_time = channel_uses * (tx_duration // channel_uses)
        warnings.warn("The coherence time must be <= tx_duration. Choosing "
                      f"coherence_time = channel_uses*floor(tx_duration/channel_uses) = {coherence_time}")

    return FrameConfig(block_len=block_len,
                       perm_len=perm_len,
                       nb_symb=nb_symb,
                       nb_subblocks=nb_subblocks,
                       tx_duration=tx_duration,
                       coherence_time=coherence_time)
