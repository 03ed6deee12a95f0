#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Non-recursive (feed-forward) convolutional encoder and its trellis
"""

import numpy as np


def build_trellis(generators, constraint_length):
    """
    Pre-compute state transitions and outputs of a feed-forward convolutional code

    The shift register holds the constraint_length-1 previous input bits.
    The current input enters at the MSB of a constraint_length-bit register,
    so the MSB of each generator polynomial taps the current input.

    Parameters:
    ----------
    generators : sequence of int
        Generator polynomials, e.g. (0o133, 0o171)
    constraint_length : int
        Constraint length of the code

    Returns:
    -------
    next_state : ndarray, shape (num_states, 2)
        Next state for each state and input bit
    outputs : ndarray, shape (num_states, 2, n)
        Coded bits for each state and input bit
    """
    memory_length = constraint_length - 1
    num_states = 2 ** memory_length
    n = len(generators)

    next_state = np.zeros((num_states, 2), dtype=int)
    outputs = np.zeros((num_states, 2, n), dtype=int)
    for state in range(num_states):
        for input_bit in range(2):
            register = (input_bit << memory_length) | state
            next_state[state, input_bit] = register >> 1
            for j, gen in enumerate(generators):
                outputs[state, input_bit, j] = bin(register & gen).count("1") & 1
    return next_state, outputs


class NSCEncoder:
    """
    Rate 1/n non-systematic convolutional encoder, no tail bits
    """
    def __init__(self, generators=(0o133, 0o171), constraint_length=7):
        """
        Initialize NSC encoder

        Parameters:
        ----------
        generators : sequence of int
            Generator polynomials in octal
            Default: (133, 171) in octal with constraint length 7
        constraint_length : int
            Constraint length of the code
        """
        if any(gen >= 2 ** constraint_length or gen <= 0 for gen in generators):
            raise ValueError("Generator polynomials do not match the constraint length")
        self.generators = tuple(int(gen) for gen in generators)
        self.constraint_length = constraint_length
        self.n = len(self.generators)

        # Tap i multiplies the input delayed by i symbols
        self.taps = np.array([[(gen >> (constraint_length - 1 - i)) & 1
                               for i in range(constraint_length)]
                              for gen in self.generators], dtype=int)

    @property
    def rate(self):
        return 1.0 / self.n

    def encode(self, bits):
        """
        Encode a sequence of bits starting from the all-zero state

        Parameters:
        ----------
        bits : ndarray
            Input bits to encode

        Returns:
        -------
        encoded : ndarray
            Coded bits, the n outputs of each input bit are consecutive
        """
        bits = np.asarray(bits, dtype=int)
        n_bits = bits.size
        encoded = np.zeros(self.n * n_bits, dtype=int)
        for j in range(self.n):
            encoded[j::self.n] = np.convolve(bits, self.taps[j])[:n_bits] % 2
        return encoded
