#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Space-Time block codes written as linear dispersion (LD) codes

Each code maps a block of Q complex symbols s_q onto a T x M matrix
(T channel uses, M emission antennas):

    S = sum_q Re(s_q) * A_q + Im(s_q) * B_q

following Hassibi's linear dispersion formulation.
"""

import numpy as np

CODE_NAMES = ('V-BLAST_MxN', 'Golden_2x2', 'Damen_2x2', 'Alamouti_2xN')


def _vblast(s):
    return s[np.newaxis, :]


def _alamouti(s):
    return np.array([[s[0], s[1]],
                     [-np.conj(s[1]), np.conj(s[0])]])


def _golden(s):
    theta = (1 + np.sqrt(5)) / 2
    theta_bar = (1 - np.sqrt(5)) / 2
    alpha = 1 + 1j * (1 - theta)
    alpha_bar = 1 + 1j * (1 - theta_bar)
    return np.array([[alpha * (s[0] + theta * s[1]), alpha * (s[2] + theta * s[3])],
                     [1j * alpha_bar * (s[2] + theta_bar * s[3]), alpha_bar * (s[0] + theta_bar * s[1])]]) / np.sqrt(5)


def _damen(s, lam=0.5):
    phi = np.exp(1j * lam)
    theta = np.exp(1j * lam / 2)
    u = np.array([s[0] + phi * s[1], s[0] - phi * s[1]]) / np.sqrt(2)
    v = np.array([s[2] + phi * s[3], s[2] - phi * s[3]]) / np.sqrt(2)
    return np.array([[u[0], theta * v[0]],
                     [theta * v[1], u[1]]])


class SpaceTimeCode:
    """
    Space-Time block code
    """
    def __init__(self):
        self.code_name = None
        self.em_antennas = None
        self.channel_uses = None
        self.nb_symbols_per_block = None
        self.const_size = None
        self.gen_A = None
        self.gen_B = None

    def setup(self, em_antennas, channel_uses, code_name, const_size=4):
        """
        Generate the dispersion matrices of the selected code

        The published em_antennas, channel_uses and nb_symbols_per_block are
        fixed by the code and may differ from the requested values.

        Parameters:
        ----------
        em_antennas : int
            Requested number of emission antennas (used by V-BLAST only)
        channel_uses : int
            Requested ST code duration
        code_name : str
            One of 'V-BLAST_MxN', 'Golden_2x2', 'Damen_2x2', 'Alamouti_2xN'
        const_size : int
            Constellation size the code is used with
        """
        if const_size < 4 or const_size & (const_size - 1):
            raise ValueError(f"Unsupported constellation size {const_size}")

        if code_name == 'V-BLAST_MxN':
            if em_antennas < 1:
                raise ValueError("V-BLAST needs at least one emission antenna")
            dispersion, M, T, Q = _vblast, em_antennas, 1, em_antennas
        elif code_name == 'Golden_2x2':
            dispersion, M, T, Q = _golden, 2, 2, 4
        elif code_name == 'Damen_2x2':
            dispersion, M, T, Q = _damen, 2, 2, 4
        elif code_name == 'Alamouti_2xN':
            dispersion, M, T, Q = _alamouti, 2, 2, 2
        else:
            raise ValueError(f"Unknown ST code {code_name}, expected one of {CODE_NAMES}")

        # The dispersion maps are real-linear in (Re(s), Im(s))
        eye = np.eye(Q, dtype=complex)
        self.gen_A = np.array([dispersion(eye[q]) for q in range(Q)], dtype=complex)
        self.gen_B = np.array([dispersion(1j * eye[q]) for q in range(Q)], dtype=complex)

        self.code_name = code_name
        self.em_antennas = M
        self.channel_uses = T
        self.nb_symbols_per_block = Q
        self.const_size = const_size
        return self

    @property
    def is_orthogonal(self):
        return self.code_name == 'Alamouti_2xN'

    def encode(self, symbols):
        """
        Space-Time encoding of a symbol sequence

        Parameters:
        ----------
        symbols : ndarray
            Complex symbols, length multiple of nb_symbols_per_block

        Returns:
        -------
        ndarray
            Emitted matrix, shape (nb_subblocks*channel_uses, em_antennas)
        """
        if self.gen_A is None:
            raise RuntimeError("SpaceTimeCode.setup() must be called before encode()")
        symbols = np.asarray(symbols)
        if symbols.size % self.nb_symbols_per_block:
            raise ValueError(f"Number of symbols must be a multiple of {self.nb_symbols_per_block}")
        blocks = symbols.reshape(-1, self.nb_symbols_per_block)
        S = (np.einsum('bq,qtm->btm', blocks.real, self.gen_A)
             + np.einsum('bq,qtm->btm', blocks.imag, self.gen_B))
        return S.reshape(-1, self.em_antennas)
