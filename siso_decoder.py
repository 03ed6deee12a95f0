#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SISO decoders (BCJR) for non-recursive convolutional codes: Log-MAP and Max-Log-MAP.

LLRs follow the convention L = log(P(bit=1)/P(bit=0)), so a branch metric
adds the LLR of every bit that equals 1 on that branch.
"""

import numpy as np
from abc import ABC, abstractmethod

from nsc_encoder import build_trellis

# Constants
NEG_INF = -1e10  # metric of unreachable trellis states


def max_log(values, axis=-1):
    """max*(x, y) ~ max(x, y)"""
    return np.max(values, axis=axis)


def log_sum_exp(values, axis=-1):
    """
    Jacobian logarithm over an axis:
    max*(x, y) = log(exp(x) + exp(y)) = max(x, y) + log(1 + exp(-|x-y|))
    """
    return np.logaddexp.reduce(values, axis=axis)


class SISODecoderBase(ABC):
    """
    Abstract base class for the SISO convolutional decoders.
    The trellis starts in the all-zero state and is not terminated.
    """
    def __init__(self, generators=(0o133, 0o171), constraint_length=7):
        """
        Initialize decoder with generator polynomials.

        Parameters:
        ----------
        generators : sequence of int
            Generator polynomials in octal
        constraint_length : int
            Constraint length of the code
        """
        self.generators = tuple(generators)
        self.constraint_length = constraint_length
        self.n = len(self.generators)

        # Pre-compute state transitions for efficiency
        self.next_state, self.outputs = build_trellis(self.generators, constraint_length)
        self.num_states = self.next_state.shape[0]
        self._precompute_predecessors()

    def _precompute_predecessors(self):
        """For each state, the (state, input) pairs leading to it"""
        incoming = [[] for _ in range(self.num_states)]
        for state in range(self.num_states):
            for input_bit in range(2):
                incoming[self.next_state[state, input_bit]].append((state, input_bit))
        if any(len(branches) != 2 for branches in incoming):
            raise ValueError("Unexpected trellis structure")
        self.prev_state = np.array([[s for s, _ in branches] for branches in incoming])
        self.prev_input = np.array([[u for _, u in branches] for branches in incoming])

    @abstractmethod
    def _max_star(self, values, axis=-1):
        """Max-star operator of the decoding metric"""
        pass

    def _compute_branch_metrics(self, coded_llrs, apriori_llrs):
        """Branch metrics gamma[k, state, input_bit]"""
        gamma = np.einsum('kn,sun->ksu', coded_llrs, self.outputs)
        gamma[:, :, 1] += apriori_llrs[:, np.newaxis]
        return gamma

    def _forward_recursion(self, gamma):
        """Compute forward metrics"""
        num_symbols = gamma.shape[0]
        alpha = np.full((num_symbols + 1, self.num_states), NEG_INF)

        # Initialize alpha (start in state 0)
        alpha[0, 0] = 0.0

        for k in range(num_symbols):
            candidates = alpha[k, self.prev_state] + gamma[k, self.prev_state, self.prev_input]
            alpha[k+1] = self._max_star(candidates, axis=1)
            alpha[k+1] -= np.max(alpha[k+1])

        return alpha

    def _backward_recursion(self, gamma):
        """Compute backward metrics"""
        num_symbols = gamma.shape[0]
        beta = np.zeros((num_symbols + 1, self.num_states))

        # beta[num_symbols] = 0: no tail, any final state is equally likely
        for k in range(num_symbols - 1, -1, -1):
            candidates = beta[k+1, self.next_state] + gamma[k]
            beta[k] = self._max_star(candidates, axis=1)
            beta[k] -= np.max(beta[k])

        return beta

    def decode(self, intrinsic_coded, apriori_data=None):
        """
        Soft-in soft-out decoding of one block.

        Parameters:
        ----------
        intrinsic_coded : ndarray
            LLRs of the coded bits (n consecutive values per information bit)
        apriori_data : ndarray, optional
            A priori LLRs of the information bits

        Returns:
        -------
        extrinsic_coded : ndarray
            Extrinsic LLRs of the coded bits
        extrinsic_data : ndarray
            Extrinsic LLRs of the information bits
        """
        intrinsic_coded = np.asarray(intrinsic_coded, dtype=float)
        if intrinsic_coded.size % self.n:
            raise ValueError(f"Number of coded LLRs must be a multiple of {self.n}")
        num_symbols = intrinsic_coded.size // self.n
        coded_llrs = intrinsic_coded.reshape(num_symbols, self.n)

        if apriori_data is None:
            apriori_data = np.zeros(num_symbols)
        apriori_data = np.asarray(apriori_data, dtype=float)
        if apriori_data.size != num_symbols:
            raise ValueError("A priori and coded LLR lengths do not match")

        gamma = self._compute_branch_metrics(coded_llrs, apriori_data)
        alpha = self._forward_recursion(gamma)
        beta = self._backward_recursion(gamma)

        # Metric of every branch at every trellis section
        metrics = alpha[:-1, :, np.newaxis] + gamma + beta[1:][:, self.next_state]

        # Extrinsic = a posteriori - a priori (the a priori term is common to all
        # branches sharing the bit value)
        extrinsic_data = (self._max_star(metrics[:, :, 1], axis=1)
                          - self._max_star(metrics[:, :, 0], axis=1)
                          - apriori_data)

        flat_metrics = metrics.reshape(num_symbols, -1)
        extrinsic_coded = np.zeros((num_symbols, self.n))
        for j in range(self.n):
            ones = self.outputs[:, :, j].reshape(-1) == 1
            extrinsic_coded[:, j] = (self._max_star(flat_metrics[:, ones], axis=1)
                                     - self._max_star(flat_metrics[:, ~ones], axis=1)
                                     - coded_llrs[:, j])

        return extrinsic_coded.reshape(-1), extrinsic_data


class LogMAPDecoder(SISODecoderBase):
    """
    Log-MAP Decoder Implementation using log domain computations
    """
    def _max_star(self, values, axis=-1):
        return log_sum_exp(values, axis=axis)


class MaxLogMAPDecoder(SISODecoderBase):
    """
    Max-Log-MAP Decoder Implementation using max approximation
    """
    def _max_star(self, values, axis=-1):
        return max_log(values, axis=axis)
