#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Soft-In Soft-Out modules used by the turbo receiver: a MIMO demapper and a
SISO decoder for the non-recursive convolutional code.

Strategies are selected by name when the module is configured.
"""

import numpy as np

from demapper import DEMAPPERS
from siso_decoder import LogMAPDecoder, MaxLogMAPDecoder, log_sum_exp, max_log

MAP_METRICS = {
    'logMAP': (LogMAPDecoder, log_sum_exp),
    'maxlogMAP': (MaxLogMAPDecoder, max_log),
}


class SISO:
    """
    SISO demapper and SISO NSC decoder sharing one MAP metric
    """
    def __init__(self):
        self.map_metric = None
        self.generators = None
        self.constraint_length = None
        self.demapper_method = None
        self.bits_per_symbol = None
        self.symbols = None
        self.bit_labels = None
        self.symb_block = None
        self.gen_A = None
        self.gen_B = None
        self.rec_antennas = None
        self.sigma2 = None
        self._decoder = None
        self._demapper = None

    def set_map_metric(self, map_metric):
        if map_metric not in MAP_METRICS:
            raise ValueError(f"Unknown MAP metric {map_metric}, expected one of {list(MAP_METRICS)}")
        self.map_metric = map_metric
        self._decoder = None
        self._demapper = None

    def set_generators(self, generators, constraint_length):
        self.generators = tuple(generators)
        self.constraint_length = constraint_length
        self._decoder = None

    def set_demapper_method(self, demapper_method):
        if demapper_method not in DEMAPPERS:
            raise ValueError(f"Unknown demapper method {demapper_method}, expected one of {list(DEMAPPERS)}")
        self.demapper_method = demapper_method
        self._demapper = None

    def set_constellation(self, bits_per_symbol, symbols, bit_labels):
        """
        Parameters:
        ----------
        bits_per_symbol : int
            Bits carried by each symbol
        symbols : ndarray
            Constellation points as emitted
        bit_labels : ndarray, shape (len(symbols), bits_per_symbol)
            Bits carried by each constellation point
        """
        bit_labels = np.asarray(bit_labels, dtype=int)
        if bit_labels.shape != (len(symbols), bits_per_symbol):
            raise ValueError("Bit labels do not match the constellation")
        self.bits_per_symbol = bits_per_symbol
        self.symbols = np.asarray(symbols, dtype=complex)
        self.bit_labels = bit_labels
        self._demapper = None

    def set_st_block_code(self, symb_block, gen_A, gen_B, rec_antennas):
        """
        Parameters:
        ----------
        symb_block : int
            Symbols per ST code block
        gen_A, gen_B : ndarray, shape (symb_block, T, M)
            Dispersion matrices applied to the real and imaginary parts
        rec_antennas : int
            Number of reception antennas
        """
        if gen_A.shape[0] != symb_block or gen_A.shape != gen_B.shape:
            raise ValueError("Dispersion matrices do not match the ST code")
        self.symb_block = symb_block
        self.gen_A = gen_A
        self.gen_B = gen_B
        self.rec_antennas = rec_antennas
        self._demapper = None

    def set_noise(self, sigma2):
        """Noise variance on each real dimension"""
        self.sigma2 = float(sigma2)
        if self._demapper is not None:
            self._demapper.set_noise(self.sigma2)

    def set_impulse_response(self, ch_attenuations):
        """Channel matrix of each ST code block, shape (nb_subblocks, M, N)"""
        self._get_demapper().set_impulse_response(ch_attenuations)

    def _get_decoder(self):
        if self._decoder is None:
            if self.map_metric is None or self.generators is None:
                raise RuntimeError("MAP metric and generators must be set before decoding")
            decoder_class, _ = MAP_METRICS[self.map_metric]
            self._decoder = decoder_class(self.generators, self.constraint_length)
        return self._decoder

    def _get_demapper(self):
        if self._demapper is None:
            required = (self.map_metric, self.demapper_method, self.symbols, self.gen_A)
            if any(value is None for value in required):
                raise RuntimeError("MAP metric, demapper method, constellation and ST code "
                                   "must be set before demapping")
            _, max_star = MAP_METRICS[self.map_metric]
            demapper_class = DEMAPPERS[self.demapper_method]
            self._demapper = demapper_class(self.symbols, self.bit_labels, self.gen_A, self.gen_B,
                                            self.rec_antennas, max_star)
            if self.sigma2 is not None:
                self._demapper.set_noise(self.sigma2)
        return self._demapper

    def demapper(self, rec, apriori):
        """
        SISO demapper

        Parameters:
        ----------
        rec : ndarray, shape (tx_duration, N)
            Received signal
        apriori : ndarray
            A priori LLRs of the emitted (interleaved) coded bits

        Returns:
        -------
        ndarray
            Extrinsic LLRs of the emitted coded bits
        """
        return self._get_demapper().demap(rec, apriori)

    def nsc(self, intrinsic_coded, apriori_data):
        """
        SISO NSC decoder

        Parameters:
        ----------
        intrinsic_coded : ndarray
            LLRs of the coded bits (deinterleaved)
        apriori_data : ndarray
            A priori LLRs of the information bits

        Returns:
        -------
        extrinsic_coded : ndarray
        extrinsic_data : ndarray
        """
        return self._get_decoder().decode(intrinsic_coded, apriori_data)
