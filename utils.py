#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Utility functions for the ST-BICM turbo receiver simulation
"""

import numpy as np


def random_interleaver(perm_len, rng):
    """
    Draw a uniformly random interleaver and its inverse

    Parameters:
    ----------
    perm_len : int
        Interleaver length
    rng : numpy.random.Generator
        Random source of the current block

    Returns:
    -------
    perm : ndarray
        Interleaver indices
    inv_perm : ndarray
        Deinterleaver indices, inv_perm[perm[i]] == i
    """
    perm = rng.permutation(perm_len)
    inv_perm = np.argsort(perm)
    return perm, inv_perm


def interleave(data, indices):
    """
    Interleave data using given indices

    Parameters:
    ----------
    data : ndarray
        Input data
    indices : ndarray
        Interleaver indices

    Returns:
    -------
    ndarray
        Interleaved data
    """
    return data[indices]


def deinterleave(data, inverse_indices):
    """
    Deinterleave data using the inverse interleaver indices

    Parameters:
    ----------
    data : ndarray
        Interleaved data
    inverse_indices : ndarray
        Inverse of the interleaver indices

    Returns:
    -------
    ndarray
        Deinterleaved data
    """
    return data[inverse_indices]


def threshold(llrs, threshold_value):
    """Saturate LLRs to [-threshold_value, threshold_value]"""
    return np.clip(llrs, -threshold_value, threshold_value)


def hard_decision(llrs):
    """BPSK decision: a negative value gives bit 1"""
    return (np.asarray(llrs) < 0).astype(int)


def count_errors(transmitted_bits, received_bits):
    """Number of positions where the two bit sequences differ"""
    if len(transmitted_bits) != len(received_bits):
        raise ValueError("Transmitted and received bit arrays must have same length")
    return int(np.sum(transmitted_bits != received_bits))


def bits_to_int(bits):
    """Convert rows of bits (MSB first) to integers"""
    bits = np.asarray(bits, dtype=int)
    weights = 1 << np.arange(bits.shape[-1] - 1, -1, -1)
    return bits @ weights


def int_to_bits(values, nb_bits):
    """Convert integers to rows of nb_bits bits (MSB first)"""
    values = np.asarray(values, dtype=int)
    return (values[..., None] >> np.arange(nb_bits - 1, -1, -1)) & 1


class QAM_Modulator:
    """
    Gray mapped square QAM modulator with unit average symbol energy
    """

    def __init__(self, const_size=4):
        """
        Build the constellation

        Parameters:
        ----------
        const_size : int
            Constellation size (4, 16, 64, ...)
        """
        k = int(round(np.log2(const_size))) if const_size > 1 else 0
        if k < 2 or k % 2 or 2 ** k != const_size:
            raise ValueError(f"Constellation size {const_size} is not a square QAM size")

        self.const_size = const_size
        self.k = k

        # Label bits: first half selects the I level, second half the Q level
        self.bit_labels = int_to_bits(np.arange(const_size), k)
        half = k // 2
        levels = 2 * np.arange(2 ** half) - (2 ** half - 1)
        i_level = levels[self._gray_to_binary(bits_to_int(self.bit_labels[:, :half]))]
        q_level = levels[self._gray_to_binary(bits_to_int(self.bit_labels[:, half:]))]
        symbols = i_level + 1j * q_level
        self.symbols = symbols / np.sqrt(np.mean(np.abs(symbols) ** 2))

    @staticmethod
    def _gray_to_binary(gray):
        binary = np.array(gray, dtype=int)
        shift = binary >> 1
        while np.any(shift):
            binary ^= shift
            shift >>= 1
        return binary

    def bits_per_symbol(self):
        return self.k

    def modulate_bits(self, bits):
        """
        Map groups of bits_per_symbol bits to constellation points

        Parameters:
        ----------
        bits : ndarray
            Input bits, length multiple of bits_per_symbol

        Returns:
        -------
        ndarray
            Complex symbols
        """
        bits = np.asarray(bits, dtype=int)
        if bits.size % self.k:
            raise ValueError(f"Number of bits must be a multiple of {self.k}")
        labels = bits_to_int(bits.reshape(-1, self.k))
        return self.symbols[labels]
