#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SISO demappers for space-time coded MIMO transmissions.

The linear dispersion code and the flat fading channel are written as a real
valued model, one per ST code block:

    y = H_r x + n,   x = [Re(s_1) .. Re(s_Q), Im(s_1) .. Im(s_Q)]

where y stacks the real then imaginary parts of the T x N received block and
n has variance sigma2 on each entry. All demappers return extrinsic LLRs
(a posteriori minus a priori) with L = log(P(bit=1)/P(bit=0)), in the
order of the emitted (interleaved) coded bits.
"""

import itertools

import numpy as np
from abc import ABC, abstractmethod

MAX_CANDIDATES = 2 ** 20  # Largest list handled by the exhaustive demapper
CHUNK_SIZE = 2 ** 22      # Floats per chunk of the exhaustive search
COV_FLOOR = 1e-10         # Diagonal loading of the covariances that get inverted


class DemapperBase(ABC):
    """
    Abstract base class for all demapper implementations.
    """
    def __init__(self, symbols, bit_labels, gen_A, gen_B, rec_antennas, max_star):
        """
        Parameters:
        ----------
        symbols : ndarray
            Constellation points as emitted (including power normalization)
        bit_labels : ndarray, shape (const_size, bits_per_symbol)
            Bits carried by each constellation point
        gen_A, gen_B : ndarray, shape (Q, T, M)
            Dispersion matrices of the ST code
        rec_antennas : int
            Number of reception antennas
        max_star : callable
            Max-star operator (max-log or Jacobian logarithm)
        """
        self.symbols = np.asarray(symbols, dtype=complex)
        self.bit_labels = np.asarray(bit_labels, dtype=int)
        self.points = np.stack([self.symbols.real, self.symbols.imag], axis=1)
        self.gen_A = np.asarray(gen_A, dtype=complex)
        self.gen_B = np.asarray(gen_B, dtype=complex)
        self.Q, self.T, self.em_antennas = self.gen_A.shape
        self.rec_antennas = rec_antennas
        self.k = self.bit_labels.shape[1]
        self.max_star = max_star

        # Per real dimension variance of a symbol without a priori information
        self.prior_var = np.mean(self.points ** 2, axis=0) - np.mean(self.points, axis=0) ** 2

        self.sigma2 = None
        self.Hr = None

    def set_noise(self, sigma2):
        self.sigma2 = float(sigma2)

    def set_impulse_response(self, ch_attenuations):
        """
        Build the real valued channel of every ST code block

        Parameters:
        ----------
        ch_attenuations : ndarray, shape (nb_subblocks, M, N)
            Channel matrix seen by each ST code block
        """
        nb_subblocks = ch_attenuations.shape[0]

        def real_columns(gen):
            cols = np.einsum('qtm,bmn->bqtn', gen, ch_attenuations).reshape(nb_subblocks, self.Q, -1)
            return np.concatenate([cols.real, cols.imag], axis=-1)

        Hr = np.concatenate([real_columns(self.gen_A), real_columns(self.gen_B)], axis=1)
        self.Hr = np.transpose(Hr, (0, 2, 1))  # (nb_subblocks, 2TN, 2Q)

    def _real_observation(self, rec):
        blocks = np.asarray(rec).reshape(-1, self.T * self.rec_antennas)
        return np.concatenate([blocks.real, blocks.imag], axis=1)

    def _bit_llrs(self, metric, apriori, labels):
        """
        Extrinsic bit LLRs from candidate metrics

        Parameters:
        ----------
        metric : ndarray, shape (..., C)
            Log likelihood of each candidate
        apriori : ndarray, shape (..., nb_bits)
            A priori LLRs of the bits carried by a candidate
        labels : ndarray, shape (C, nb_bits)
            Bits carried by each candidate

        Returns:
        -------
        ndarray, shape (..., nb_bits)
        """
        total = metric + apriori @ labels.T
        extrinsic = np.zeros(apriori.shape)
        for j in range(labels.shape[1]):
            ones = labels[:, j] == 1
            extrinsic[..., j] = (self.max_star(total[..., ones], axis=-1)
                                 - self.max_star(total[..., ~ones], axis=-1)
                                 - apriori[..., j])
        return extrinsic

    def _soft_symbols(self, apriori):
        """
        Mean and per real dimension variance of each symbol given a priori LLRs

        Parameters:
        ----------
        apriori : ndarray, shape (nb_subblocks, Q, k)

        Returns:
        -------
        mean, var : ndarray, shape (nb_subblocks, 2Q)
            Real parts first, then imaginary parts
        """
        log_prob = apriori @ self.bit_labels.T
        log_prob -= np.max(log_prob, axis=-1, keepdims=True)
        prob = np.exp(log_prob)
        prob /= np.sum(prob, axis=-1, keepdims=True)

        mean = prob @ self.points
        var = np.maximum(prob @ self.points ** 2 - mean ** 2, 0.0)
        return (np.concatenate([mean[..., 0], mean[..., 1]], axis=-1),
                np.concatenate([var[..., 0], var[..., 1]], axis=-1))

    def _symbol_columns(self):
        """Columns of H_r carrying Re(s_q) and Im(s_q), shape (nb_subblocks, Q, 2TN, 2)"""
        q = np.arange(self.Q)
        cols = np.stack([self.Hr[:, :, q], self.Hr[:, :, q + self.Q]], axis=-1)
        return np.transpose(cols, (0, 2, 1, 3))

    def _interference_model(self, y, apriori):
        """
        Soft interference cancellation for every symbol

        Returns:
        -------
        z : ndarray, shape (nb_subblocks, Q, 2TN)
            Observation minus the soft estimate of the other symbols
        Hq : ndarray, shape (nb_subblocks, Q, 2TN, 2)
            Columns of the symbol of interest
        cov : ndarray, shape (nb_subblocks, Q, 2TN, 2TN)
            Covariance of residual interference plus noise
        """
        mean, var = self._soft_symbols(apriori)
        Hq = self._symbol_columns()
        q = np.arange(self.Q)
        mean_q = np.stack([mean[:, q], mean[:, q + self.Q]], axis=-1)
        var_q = np.stack([var[:, q], var[:, q + self.Q]], axis=-1)

        residual = y - np.einsum('bij,bj->bi', self.Hr, mean)
        z = residual[:, np.newaxis, :] + np.einsum('bqdi,bqi->bqd', Hq, mean_q)

        D = self.Hr.shape[1]
        cov_all = np.einsum('bik,bk,bjk->bij', self.Hr, var, self.Hr) + max(self.sigma2, COV_FLOOR) * np.eye(D)
        cov = cov_all[:, np.newaxis] - np.einsum('bqdi,bqi,bqei->bqde', Hq, var_q, Hq)
        return z, Hq, cov

    def _symbol_llrs(self, z, G, cov_inv, apriori):
        """
        Extrinsic LLRs of each symbol from the Gaussian model z = G x_q + w,
        w ~ N(0, cov), x_q the real 2-vector of symbol q.
        """
        diff = z[:, :, np.newaxis, :] - np.einsum('bqdi,mi->bqmd', G, self.points)
        metric = -0.5 * np.einsum('bqmd,bqde,bqme->bqm', diff, cov_inv, diff)
        return self._bit_llrs(metric, apriori, self.bit_labels)

    def _check_ready(self):
        if self.sigma2 is None or self.Hr is None:
            raise RuntimeError("Noise variance and channel must be set before demapping")

    def demap(self, rec, apriori):
        """
        Compute extrinsic LLRs of the emitted bits

        Parameters:
        ----------
        rec : ndarray, shape (tx_duration, N)
            Received signal
        apriori : ndarray
            A priori LLRs of the emitted bits (interleaved order)

        Returns:
        -------
        ndarray
            Extrinsic LLRs, same order as apriori
        """
        self._check_ready()
        y = self._real_observation(rec)
        apriori = np.asarray(apriori, dtype=float).reshape(y.shape[0], self.Q, self.k)
        return self._demap(y, apriori).reshape(-1)

    @abstractmethod
    def _demap(self, y, apriori):
        """Return extrinsic LLRs of shape (nb_subblocks, Q, k)"""
        pass


class HassibiDemapper(DemapperBase):
    """
    Exhaustive list demapper over all symbol combinations of an ST code block
    """
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        const_size = self.symbols.size
        nb_candidates = const_size ** self.Q
        if nb_candidates > MAX_CANDIDATES:
            raise ValueError(f"Exhaustive demapping over {nb_candidates} candidates is not supported")

        indices = np.array(list(itertools.product(range(const_size), repeat=self.Q)))
        self.cand_bits = self.bit_labels[indices].reshape(nb_candidates, self.Q * self.k)
        self.cand_x = np.concatenate([self.points[indices, 0], self.points[indices, 1]], axis=1)

    def _demap(self, y, apriori):
        nb_subblocks = y.shape[0]
        apriori = apriori.reshape(nb_subblocks, -1)
        extrinsic = np.zeros(apriori.shape)
        chunk = max(1, CHUNK_SIZE // (self.cand_x.shape[0] * y.shape[1]))
        for start in range(0, nb_subblocks, chunk):
            stop = min(start + chunk, nb_subblocks)
            Hx = np.einsum('bij,cj->bci', self.Hr[start:stop], self.cand_x)
            distances = np.sum((y[start:stop, np.newaxis, :] - Hx) ** 2, axis=-1)
            metric = -distances / (2 * self.sigma2)
            extrinsic[start:stop] = self._bit_llrs(metric, apriori[start:stop], self.cand_bits)
        return extrinsic.reshape(nb_subblocks, self.Q, self.k)


class GaussianApproxDemapper(DemapperBase):
    """
    Gaussian approximation (GA) of the residual interference, full covariance
    """
    def _cov_inverse(self, cov):
        return np.linalg.inv(cov)

    def _demap(self, y, apriori):
        z, Hq, cov = self._interference_model(y, apriori)
        return self._symbol_llrs(z, Hq, self._cov_inverse(cov), apriori)


class SimplifiedGADemapper(GaussianApproxDemapper):
    """
    Simplified GA (sGA): only the diagonal of the interference covariance is kept
    """
    def _cov_inverse(self, cov):
        diag = np.diagonal(cov, axis1=-2, axis2=-1)
        eye = np.eye(cov.shape[-1])
        return eye * (1.0 / diag)[..., np.newaxis, :]


class MMSEPICDemapper(DemapperBase):
    """
    Soft parallel interference cancellation followed by an MMSE filter
    """
    def _demap(self, y, apriori):
        z, Hq, cov = self._interference_model(y, apriori)
        # Unconditional symbol variance for the symbol of interest
        R = cov + np.einsum('bqdi,i,bqei->bqde', Hq, self.prior_var, Hq)
        W = np.linalg.solve(R, Hq)
        zf = np.einsum('bqdi,bqd->bqi', W, z)
        G = np.einsum('bqdi,bqdj->bqij', W, Hq)
        noise_cov = G - np.einsum('bqij,j,bqkj->bqik', G, self.prior_var, G) + COV_FLOOR * np.eye(2)
        return self._symbol_llrs(zf, G, np.linalg.inv(noise_cov), apriori)


class ZFPICDemapper(DemapperBase):
    """
    Soft parallel interference cancellation followed by a zero forcing filter
    """
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if 2 * self.T * self.rec_antennas < 2 * self.Q:
            raise ValueError("Zero forcing needs at least as many real observations as real symbols")

    def _demap(self, y, apriori):
        z, Hq, cov = self._interference_model(y, apriori)
        pinv = np.linalg.pinv(self.Hr)
        q = np.arange(self.Q)
        W = np.stack([pinv[:, q, :], pinv[:, q + self.Q, :]], axis=2)  # (b, Q, 2, 2TN)
        zf = np.einsum('bqid,bqd->bqi', W, z)
        G = np.einsum('bqid,bqdj->bqij', W, Hq)
        noise_cov = np.einsum('bqid,bqde,bqje->bqij', W, cov, W) + COV_FLOOR * np.eye(2)
        return self._symbol_llrs(zf, G, np.linalg.inv(noise_cov), apriori)


def is_orthogonal_design(gen_A, gen_B):
    """True if the dispersion matrices form an orthogonal design (X_i^H X_j + X_j^H X_i = 2 delta_ij I)"""
    gens = np.concatenate([gen_A, gen_B], axis=0)
    M = gens.shape[-1]
    for i, j in itertools.product(range(gens.shape[0]), repeat=2):
        prod = gens[i].conj().T @ gens[j] + gens[j].conj().T @ gens[i]
        target = 2 * np.eye(M) if i == j else np.zeros((M, M))
        if not np.allclose(prod, target):
            return False
    return True


class AlamoutiDemapper(DemapperBase):
    """
    Matched filter demapper for orthogonal designs (Alamouti code)
    """
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if not is_orthogonal_design(self.gen_A, self.gen_B):
            raise ValueError("Alamouti_maxlogMAP demapper requires an orthogonal ST code")

    def _demap(self, y, apriori):
        Hq = self._symbol_columns()
        z = np.einsum('bdi,bd->bi', self.Hr, y)
        q = np.arange(self.Q)
        zq = np.stack([z[:, q], z[:, q + self.Q]], axis=-1)
        G = np.einsum('bqdi,bqdj->bqij', Hq, Hq)
        return self._symbol_llrs(zq, G, np.linalg.inv(max(self.sigma2, COV_FLOOR) * G), apriori)


DEMAPPERS = {
    'Hassibi_maxlogMAP': HassibiDemapper,
    'GA': GaussianApproxDemapper,
    'sGA': SimplifiedGADemapper,
    'mmsePIC': MMSEPICDemapper,
    'zfPIC': ZFPICDemapper,
    'Alamouti_maxlogMAP': AlamoutiDemapper,
}
