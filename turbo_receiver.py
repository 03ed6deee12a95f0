#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Turbo receiver for ST-BICM: iterative exchange of extrinsic information
between the SISO demapper and the SISO NSC decoder
"""

import numpy as np

from utils import interleave, deinterleave, threshold, hard_decision, count_errors


class TurboReceiver:
    """
    Joint demapping and decoding of one block over a fixed number of iterations
    """
    def __init__(self, siso, nb_iter, threshold_value=50.0):
        """
        Parameters:
        ----------
        siso : SISO
            Configured demapper/decoder modules
        nb_iter : int
            Number of iterations in the turbo receiver
        threshold_value : float
            Saturation of the demapper extrinsic LLRs fed to the decoder
        """
        if nb_iter < 1:
            raise ValueError("The turbo receiver needs at least one iteration")
        if threshold_value <= 0:
            raise ValueError("The LLR threshold must be positive")
        self.siso = siso
        self.nb_iter = nb_iter
        self.threshold_value = threshold_value

    def run(self, block):
        """
        Run all turbo iterations on one block

        Parameters:
        ----------
        block : Block
            Transmitted bits, interleaver, channel and received signal

        Returns:
        -------
        ndarray
            Number of bit errors after each iteration
        """
        block_len = block.bits.size
        perm_len = block.perm.size

        self.siso.set_impulse_response(block.ch_attenuations)
        demapper_apriori_data = np.zeros(perm_len)  # a priori information of emitted bits
        nsc_apriori_data = np.zeros(block_len)      # always zero

        errors = np.zeros(self.nb_iter, dtype=int)
        for n in range(self.nb_iter):
            # first decoder
            demapper_extrinsic_data = self.siso.demapper(block.rec, demapper_apriori_data)

            # deinterleave+threshold
            nsc_intrinsic_coded = threshold(deinterleave(demapper_extrinsic_data, block.inv_perm),
                                            self.threshold_value)

            # second decoder
            nsc_extrinsic_coded, nsc_extrinsic_data = self.siso.nsc(nsc_intrinsic_coded, nsc_apriori_data)

            # decision, the a priori info on data bits is zero
            rec_bits = hard_decision(-nsc_extrinsic_data)
            errors[n] = count_errors(block.bits, rec_bits)

            # interleave
            demapper_apriori_data = interleave(nsc_extrinsic_coded, block.perm)

        return errors
