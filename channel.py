"""
Block fading MIMO channel model
"""
import numpy as np


def ebn0_to_sigma2(ebn0_db, coding_rate, bits_per_symbol, symb_block, channel_uses, Es=1.0):
    """
    Noise variance on each real dimension (N0/2) for the given Eb/N0.

    Args:
        ebn0_db: Eb/N0 in dB (scalar or array)
        coding_rate: Rate of the channel code
        bits_per_symbol: Bits per constellation symbol
        symb_block: Symbols per space-time code block
        channel_uses: Duration of the space-time code
        Es: Mean symbol energy

    Returns:
        Noise variance per real dimension
    """
    # ST code rate in (info.) bits/channel use
    R = coding_rate * bits_per_symbol * symb_block / channel_uses
    ebn0_linear = 10 ** (np.asarray(ebn0_db, dtype=float) / 10.0)
    return (0.5 * Es / (R * bits_per_symbol)) / ebn0_linear


class BlockFadingChannel:
    def __init__(self, em_antennas, rec_antennas, channel_uses, coherence_time, tx_duration):
        """
        Initialize a flat block fading Rayleigh channel.

        Args:
            em_antennas: Number of emission antennas (M)
            rec_antennas: Number of reception antennas (N)
            channel_uses: ST code duration (T), in symbol periods
            coherence_time: Channel coherence time, multiple of channel_uses
            tx_duration: Transmission duration of one block, in symbol periods
        """
        if coherence_time % channel_uses or tx_duration % coherence_time:
            raise ValueError("coherence_time must be a multiple of channel_uses "
                             "and divide tx_duration")
        self.em_antennas = em_antennas
        self.rec_antennas = rec_antennas
        self.channel_uses = channel_uses
        self.coherence_time = coherence_time
        self.tx_duration = tx_duration
        self.nb_intervals = tx_duration // coherence_time
        self.subblocks_per_interval = coherence_time // channel_uses

    def draw_realization(self, rng):
        """
        Draw one CN(0, 1) channel matrix per coherence interval.

        Returns:
            Array of shape (nb_intervals, M, N)
        """
        shape = (self.nb_intervals, self.em_antennas, self.rec_antennas)
        return (rng.standard_normal(shape) + 1j * rng.standard_normal(shape)) / np.sqrt(2.0)

    def expand(self, ch_realization):
        """
        Repeat each coherence interval matrix over all the ST code blocks
        it spans (the channel is constant over coherence_time symbol periods).

        Returns:
            Array of shape (tx_duration // channel_uses, M, N)
        """
        return np.repeat(ch_realization, self.subblocks_per_interval, axis=0)

    def propagate(self, S, ch_attenuations):
        """
        Noiseless flat fading MIMO channel.

        Args:
            S: Space-time coded signal, shape (tx_duration, M)
            ch_attenuations: Per ST block channel matrices, shape (nb_subblocks, M, N)

        Returns:
            Noiseless received signal, shape (tx_duration, N)
        """
        nb_subblocks = ch_attenuations.shape[0]
        S_blocks = S.reshape(nb_subblocks, self.channel_uses, self.em_antennas)
        rec = S_blocks @ ch_attenuations
        return rec.reshape(-1, self.rec_antennas)

    def add_noise(self, signal, sigma2, rng):
        """
        Add complex AWGN with variance sigma2 on each real dimension.
        """
        noise = rng.standard_normal(signal.shape) + 1j * rng.standard_normal(signal.shape)
        return signal + np.sqrt(sigma2) * noise

    def transmit(self, S, sigma2, rng):
        """
        Send the ST coded signal through a fresh channel realization.

        Args:
            S: Space-time coded signal, shape (tx_duration, M)
            sigma2: Noise variance per real dimension
            rng: Random source of the current block

        Returns:
            (received signal, per ST block channel matrices)
        """
        ch_attenuations = self.expand(self.draw_realization(rng))
        rec = self.add_noise(self.propagate(S, ch_attenuations), sigma2, rng)
        return rec, ch_attenuations
