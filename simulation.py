#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Space-Time Bit Interleaved Coded Modulation (ST-BICM) simulation
Turbo receiver with a SISO MIMO demapper and a SISO NSC decoder

Features:
- Block fading MIMO channel with configurable coherence time
- Several space-time codes and demapping methods
- BER after every turbo iteration, Monte-Carlo stopping rule per SNR point
- Parallel processing over SNR points with reproducible random streams
- Result files and plotting
"""

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from tqdm import tqdm
import multiprocessing as mp
from dataclasses import dataclass
import pickle
import os
import time

from ber_accumulator import BERAccumulator
from channel import BlockFadingChannel, ebn0_to_sigma2
from frame_params import derive_frame_config
from nsc_encoder import NSCEncoder
from siso import SISO
from stc import SpaceTimeCode
from turbo_receiver import TurboReceiver
from utils import QAM_Modulator, random_interleaver, interleave

DEFAULT_CONFIG = {
    'gen': (0o133, 0o171),              # convolutional code generator polynomials
    'constraint_length': 7,
    'coding_rate': None,                # None: rate of the convolutional code
    'const_size': 4,                    # constellation size
    'coherence_time': 512,              # in symbol durations, multiple of channel_uses
    'threshold_value': 50.0,
    'map_metric': 'maxlogMAP',          # logMAP or maxlogMAP
    'demapper_method': 'Hassibi_maxlogMAP',  # Hassibi_maxlogMAP, GA, sGA, mmsePIC, zfPIC, Alamouti_maxlogMAP
    'nb_errors_lim': 1500,
    'nb_bits_lim': int(1e6),
    'perm_len': 2 ** 14,                # interleaver length
    'nb_iter': 5,                       # number of iterations in the turbo receiver
    'rec_antennas': 2,
    'em_antennas': 2,
    'channel_uses': 2,                  # ST code duration
    'code_name': 'Golden_2x2',          # V-BLAST_MxN, Golden_2x2, Damen_2x2, Alamouti_2xN
    'EbN0_dB': np.arange(0, 21),
    'Es': 1.0,                          # mean symbol energy
    'seed': None,                       # None: fresh entropy
    'output_dir': 'results',
}


@dataclass
class Block:
    """One Monte-Carlo trial"""
    bits: np.ndarray            # information bits
    coded_bits: np.ndarray      # no tail
    perm: np.ndarray
    inv_perm: np.ndarray
    ch_attenuations: np.ndarray  # channel matrix of each ST code block
    rec: np.ndarray             # received signal


class STBICMSimulation:
    """
    ST-BICM simulation framework with a turbo receiver
    """
    def __init__(self, config):
        """
        Initialize simulation with configuration

        Parameters:
        ----------
        config : dict
            Simulation configuration, missing keys are taken from DEFAULT_CONFIG
        """
        self.config = {**DEFAULT_CONFIG, **config}
        cfg = self.config
        if cfg['nb_errors_lim'] <= 0 or cfg['nb_bits_lim'] <= 0:
            raise ValueError("Stopping limits must be positive")

        self.ebn0_db = np.atleast_1d(np.asarray(cfg['EbN0_dB'], dtype=float))

        # Convolutional code
        self.encoder = NSCEncoder(cfg['gen'], cfg['constraint_length'])
        self.coding_rate = self.encoder.rate if cfg['coding_rate'] is None else float(cfg['coding_rate'])
        if not np.isclose(self.coding_rate, self.encoder.rate):
            raise ValueError(f"Coding rate {self.coding_rate} does not match the code rate {self.encoder.rate}")

        # QAM modulator
        self.modulator = QAM_Modulator(cfg['const_size'])

        # Space-Time code, these parameters could be changed depending on the selected code
        self.st_code = SpaceTimeCode().setup(cfg['em_antennas'], cfg['channel_uses'],
                                             cfg['code_name'], cfg['const_size'])
        self.em_antennas = self.st_code.em_antennas
        self.channel_uses = self.st_code.channel_uses
        self.symb_block = self.st_code.nb_symbols_per_block
        if cfg['demapper_method'] == 'Alamouti_maxlogMAP' and not self.st_code.is_orthogonal:
            raise ValueError(f"Alamouti_maxlogMAP demapper cannot be used with {cfg['code_name']}")

        self.frame = derive_frame_config(cfg['coherence_time'], self.channel_uses, self.coding_rate,
                                         cfg['perm_len'], self.modulator.bits_per_symbol(), self.symb_block)
        if self.encoder.n * self.frame.block_len != self.frame.perm_len:
            raise ValueError("Interleaver length is not a whole number of coded blocks")

        # Rayleigh block fading
        self.channel = BlockFadingChannel(self.em_antennas, cfg['rec_antennas'], self.channel_uses,
                                          self.frame.coherence_time, self.frame.tx_duration)

        # N0/2 for every SNR point
        self.sigma2 = ebn0_to_sigma2(self.ebn0_db, self.coding_rate, self.modulator.bits_per_symbol(),
                                     self.symb_block, self.channel_uses, cfg['Es'])

        # SISO blocks, emitted symbols are normalized by sqrt(em_antennas)
        self.siso = SISO()
        self.siso.set_map_metric(cfg['map_metric'])
        self.siso.set_generators(cfg['gen'], cfg['constraint_length'])
        self.siso.set_demapper_method(cfg['demapper_method'])
        self.siso.set_constellation(self.modulator.bits_per_symbol(),
                                    self.modulator.symbols / np.sqrt(self.em_antennas),
                                    self.modulator.bit_labels)
        self.siso.set_st_block_code(self.symb_block, self.st_code.gen_A, self.st_code.gen_B,
                                    cfg['rec_antennas'])

        self.receiver = TurboReceiver(self.siso, cfg['nb_iter'], cfg['threshold_value'])

    def _snr_seeds(self):
        """Independent random stream for every SNR point"""
        return np.random.SeedSequence(self.config['seed']).spawn(len(self.ebn0_db))

    def new_accumulator(self):
        return BERAccumulator(self.config['nb_iter'], len(self.ebn0_db))

    def generate_block(self, sigma2, rng):
        """
        Generate one transmitted block and its received signal

        The random source is used in a fixed order: permutation, bits,
        channel, noise.

        Parameters:
        ----------
        sigma2 : float
            Noise variance per real dimension
        rng : numpy.random.Generator
            Random stream of the current SNR point

        Returns:
        -------
        Block
        """
        perm, inv_perm = random_interleaver(self.frame.perm_len, rng)

        bits = rng.integers(0, 2, self.frame.block_len)
        coded_bits = self.encoder.encode(bits)

        # permutation+QAM modulation, normalize emitted symbols
        em = self.modulator.modulate_bits(interleave(coded_bits, perm)) / np.sqrt(self.em_antennas)

        S = self.st_code.encode(em)
        rec, ch_attenuations = self.channel.transmit(S, sigma2, rng)
        return Block(bits, coded_bits, perm, inv_perm, ch_attenuations, rec)

    def run_snr_point(self, en, accumulator, rng):
        """
        Process blocks at SNR point en until the stopping rule fires

        Parameters:
        ----------
        en : int
            SNR index
        accumulator : BERAccumulator
            Receives the errors of every block
        rng : numpy.random.Generator
            Random stream of this SNR point
        """
        cfg = self.config
        accumulator.reset(en)
        self.siso.set_noise(self.sigma2[en])
        # if at the last iteration the nb. of errors is inferior to lim, then process another block
        while not accumulator.should_stop(en, cfg['nb_errors_lim'], cfg['nb_bits_lim']):
            block = self.generate_block(self.sigma2[en], rng)
            round_errors = self.receiver.run(block)
            accumulator.add_block(en, round_errors, self.frame.block_len)

        # compute BER over all tx blocks
        accumulator.normalize(en)
        return accumulator

    def run(self, accumulator=None):
        """
        Run the SNR sweep sequentially

        Parameters:
        ----------
        accumulator : BERAccumulator, optional
            Accumulator to fill, a new one is created if not provided

        Returns:
        -------
        BERAccumulator
        """
        if accumulator is None:
            accumulator = self.new_accumulator()
        print("Starting simulation...")
        start_time = time.time()

        seeds = self._snr_seeds()
        with tqdm(total=len(self.ebn0_db), desc="Progress") as pbar:
            for en, seed in enumerate(seeds):
                self.run_snr_point(en, accumulator, np.random.default_rng(seed))
                pbar.set_postfix(EbN0=f"{self.ebn0_db[en]:g} dB", BER=f"{accumulator.ber[-1, en]:.2e}")
                pbar.update(1)

        print(f"Simulation completed in {time.time() - start_time:.2f} seconds")
        return accumulator

    def _single_snr(self, params):
        """
        Run one SNR point in a worker process

        Parameters:
        ----------
        params : tuple
            (snr_index, seed_sequence)

        Returns:
        -------
        tuple
            (snr_index, accumulator holding that SNR point)
        """
        en, seed = params
        accumulator = self.run_snr_point(en, self.new_accumulator(), np.random.default_rng(seed))
        return en, accumulator

    def run_parallel(self, accumulator=None, processes=None):
        """
        Run the SNR sweep using parallel processing, one task per SNR point

        Returns the same BER matrix as run() for the same seed.

        Returns:
        -------
        BERAccumulator
        """
        if accumulator is None:
            accumulator = self.new_accumulator()
        print("Starting parallel simulation...")
        start_time = time.time()

        params = list(enumerate(self._snr_seeds()))
        with mp.Pool(processes) as pool:
            for en, column in tqdm(pool.imap_unordered(self._single_snr, params),
                                   total=len(params), desc="Progress"):
                accumulator.merge(en, column)

        print(f"Simulation completed in {time.time() - start_time:.2f} seconds")
        return accumulator

    def results_record(self, accumulator):
        cfg = self.config
        return {
            'BER': accumulator.ber.copy(),
            'EbN0_dB': self.ebn0_db.copy(),
            'gen': tuple(cfg['gen']),
            'coding_rate': self.coding_rate,
            'nb_iter': cfg['nb_iter'],
            'block_len': self.frame.block_len,
            'nb_errors_lim': cfg['nb_errors_lim'],
            'nb_bits_lim': cfg['nb_bits_lim'],
            'map_metric': cfg['map_metric'],
            'demapper_method': cfg['demapper_method'],
            'code_name': cfg['code_name'],
        }

    def save_results(self, accumulator):
        """
        Save results to file

        Returns:
        -------
        str
            Path of the saved files without extension
        """
        cfg = self.config
        os.makedirs(cfg['output_dir'], exist_ok=True)
        stem = os.path.join(cfg['output_dir'], f"STBICM_{cfg['map_metric']}_{cfg['demapper_method']}")

        with open(f"{stem}.pkl", 'wb') as f:
            pickle.dump(self.results_record(accumulator), f)
        accumulator.to_dataframe(self.ebn0_db).to_csv(f"{stem}.csv", index=False)
        return stem

    def plot_results(self, accumulator):
        """
        Plot BER vs Eb/N0 after each turbo iteration
        """
        cfg = self.config
        os.makedirs(cfg['output_dir'], exist_ok=True)

        plt.style.use('default')
        sns.set_palette("husl")
        plt.figure(figsize=(10, 6))

        for n in range(cfg['nb_iter']):
            ber = accumulator.ber[n]
            non_zero = ber > 0  # zero BER points cannot be shown on a log scale
            plt.semilogy(self.ebn0_db[non_zero], ber[non_zero], 'o-', label=f'iteration {n + 1}')

        plt.grid(True, which="both", ls="-", alpha=0.2)
        plt.xlabel('Eb/N0 (dB)')
        plt.ylabel('Bit Error Rate (BER)')
        plt.title(f"ST-BICM {cfg['code_name']}, {cfg['demapper_method']} demapper")
        plt.legend()
        plt.tight_layout()
        path = f"{cfg['output_dir']}/ber_STBICM_{cfg['map_metric']}_{cfg['demapper_method']}.png"
        plt.savefig(path, dpi=300)
        plt.close()
        return path


def load_results(path):
    """Load a result record saved by STBICMSimulation.save_results"""
    with open(path, 'rb') as f:
        return pickle.load(f)


def main():
    """Main function to run the simulation"""
    # Simulation configuration
    config = {
        'perm_len': 2 ** 12,
        'coherence_time': 128,
        'nb_errors_lim': 500,
        'nb_bits_lim': int(2e5),
        'EbN0_dB': np.arange(0, 11, 2),
        'seed': 42,
        'output_dir': 'results',
    }

    sim = STBICMSimulation(config)
    print(f"Block length: {sim.frame.block_len}, interleaver length: {sim.frame.perm_len}, "
          f"coherence time: {sim.frame.coherence_time}")
    accumulator = sim.run_parallel()

    stem = sim.save_results(accumulator)
    sim.plot_results(accumulator)

    print("\n=== Simulation Summary ===")
    summary = accumulator.to_dataframe(sim.ebn0_db).pivot(index='snr', columns='iteration', values='ber')
    print(summary)
    print(f"\nResults saved to {stem}.pkl")


if __name__ == "__main__":
    main()
