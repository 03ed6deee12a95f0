#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Bit error accumulation across turbo iterations and SNR points
"""

import numpy as np
import pandas as pd


class BERAccumulator:
    """
    Per iteration, per SNR sums of block error rates and the per SNR
    counters driving the stopping rule
    """
    def __init__(self, nb_iter, snr_len):
        """
        Parameters:
        ----------
        nb_iter : int
            Number of turbo iterations
        snr_len : int
            Number of SNR points
        """
        self.nb_iter = nb_iter
        self.snr_len = snr_len
        self.ber = np.zeros((nb_iter, snr_len))
        self.nb_errors = np.zeros(snr_len, dtype=np.int64)  # errors at the last iteration
        self.nb_bits = np.zeros(snr_len, dtype=np.int64)
        self.nb_blocks = np.zeros(snr_len, dtype=np.int64)

    def reset(self, en):
        """Clear the column and counters of SNR point en"""
        self.ber[:, en] = 0.0
        self.nb_errors[en] = 0
        self.nb_bits[en] = 0
        self.nb_blocks[en] = 0

    def add_block(self, en, round_errors, block_len):
        """
        Fold the errors of one block into SNR point en

        Every iteration contributes to the BER sums, only the last one to
        the error counter of the stopping rule.

        Parameters:
        ----------
        en : int
            SNR index
        round_errors : ndarray
            Bit errors after each iteration
        block_len : int
            Number of information bits in the block
        """
        round_errors = np.asarray(round_errors)
        if round_errors.size != self.nb_iter:
            raise ValueError(f"Expected {self.nb_iter} error counts, got {round_errors.size}")
        self.ber[:, en] += round_errors / block_len
        self.nb_errors[en] += int(round_errors[-1])
        self.nb_bits[en] += block_len
        self.nb_blocks[en] += 1

    def should_stop(self, en, nb_errors_lim, nb_bits_lim):
        """True once enough errors or enough transmitted bits are reached"""
        return bool(self.nb_errors[en] >= nb_errors_lim or self.nb_bits[en] >= nb_bits_lim)

    def normalize(self, en):
        """Compute BER over all transmitted blocks of SNR point en"""
        if self.nb_blocks[en] > 0:
            self.ber[:, en] /= self.nb_blocks[en]

    def merge(self, en, other):
        """Copy SNR point en from another accumulator"""
        if other.nb_iter != self.nb_iter:
            raise ValueError("Accumulators have different numbers of iterations")
        self.ber[:, en] = other.ber[:, en]
        self.nb_errors[en] = other.nb_errors[en]
        self.nb_bits[en] = other.nb_bits[en]
        self.nb_blocks[en] = other.nb_blocks[en]

    def to_dataframe(self, ebn0_db):
        """
        Long format table of the BER matrix

        Returns:
        -------
        pd.DataFrame
            Columns: snr, iteration, ber, errors, bits, blocks
        """
        rows = []
        for en, snr in enumerate(ebn0_db):
            for n in range(self.nb_iter):
                rows.append({
                    'snr': float(snr),
                    'iteration': n + 1,
                    'ber': self.ber[n, en],
                    'errors': int(self.nb_errors[en]),
                    'bits': int(self.nb_bits[en]),
                    'blocks': int(self.nb_blocks[en]),
                })
        return pd.DataFrame(rows)
