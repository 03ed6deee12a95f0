#!/usr/bin/env python3
"""
Script comparing the SISO demapping methods of the ST-BICM turbo receiver
"""

import numpy as np
import pandas as pd
from simulation import STBICMSimulation
import matplotlib.pyplot as plt
import os

DEMAPPER_METHODS = ['Hassibi_maxlogMAP', 'GA', 'sGA', 'mmsePIC', 'zfPIC']


def run_demapper_comparison(config, methods=DEMAPPER_METHODS):
    """
    Run the same SNR sweep once per demapper method

    Parameters:
    ----------
    config : dict
        Base simulation configuration
    methods : list
        Demapper methods to compare

    Returns:
    -------
    pd.DataFrame
        Results of every method, with a 'demapper' column
    """
    print("=== ST-BICM Demapper Comparison ===")
    print(f"Space-time code: {config.get('code_name', 'Golden_2x2')}")
    print(f"SNR range: {config['EbN0_dB'][0]} to {config['EbN0_dB'][-1]} dB")

    os.makedirs(config['output_dir'], exist_ok=True)

    frames = []
    for method in methods:
        print(f"\nRunning {method} demapper...")
        sim = STBICMSimulation({**config, 'demapper_method': method})
        accumulator = sim.run_parallel()
        sim.save_results(accumulator)

        df = accumulator.to_dataframe(sim.ebn0_db)
        df['demapper'] = method
        frames.append(df)

    results_df = pd.concat(frames, ignore_index=True)
    results_df.to_csv(f"{config['output_dir']}/demapper_comparison.csv", index=False)

    create_detailed_analysis(results_df, config)
    return results_df


def create_detailed_analysis(df, config):
    """Create comparison plots and statistics at the last turbo iteration"""

    plt.style.use('default')
    plt.rcParams.update({
        'font.size': 12,
        'axes.labelsize': 14,
        'axes.titlesize': 16,
        'legend.fontsize': 12,
        'lines.linewidth': 2,
        'lines.markersize': 6
    })

    last_iter = df['iteration'].max()
    df_last = df[df['iteration'] == last_iter]
    methods = list(df_last['demapper'].unique())
    markers = dict(zip(methods, ['o', 's', '^', 'v', 'D', 'x']))

    # 1. BER at the last iteration
    plt.figure(figsize=(12, 8))
    for method in methods:
        data = df_last[df_last['demapper'] == method]
        non_zero = data[data['ber'] > 0]
        if len(non_zero) > 0:
            plt.semilogy(non_zero['snr'], non_zero['ber'], marker=markers[method],
                         label=method, linestyle='-', alpha=0.8)

    plt.grid(True, which="both", alpha=0.3)
    plt.xlabel('Eb/N0 (dB)')
    plt.ylabel('Bit Error Rate (BER)')
    plt.title(f'ST-BICM demappers after {last_iter} iterations')
    plt.legend()
    plt.tight_layout()
    plt.savefig(f"{config['output_dir']}/demapper_comparison.png", dpi=300, bbox_inches='tight')
    plt.close()

    # 2. Performance summary table
    print("\n=== Detailed Performance Analysis ===")
    print(f"\nBER Performance Summary ({last_iter} iterations):")
    print("-" * 60)
    for method in methods:
        print(f"\n{method}:")
        data = df_last[df_last['demapper'] == method]
        for _, row in data.iterrows():
            if row['ber'] > 0:
                print(f"  {row['snr']:4.1f} dB: {row['ber']:.2e} ({row['errors']} errors, {row['blocks']} blocks)")
            else:
                print(f"  {row['snr']:4.1f} dB: no errors detected in {row['bits']} bits")

    # 3. Iterative gain: first vs last iteration
    print("\n=== Turbo Gain Analysis ===")
    for method in methods:
        data = df[df['demapper'] == method].pivot(index='snr', columns='iteration', values='ber')
        first, last = data[1], data[last_iter]
        reached = last[last < 1e-3].index
        target = f"{reached[0]:.1f} dB" if len(reached) > 0 else "not reached"
        gain = np.mean(first[last > 0] / last[last > 0]) if (last > 0).any() else np.nan
        print(f"{method}: BER 1e-3 at {target}, mean iterative BER ratio {gain:.1f}")


if __name__ == "__main__":
    config = {
        'code_name': 'Golden_2x2',
        'perm_len': 2 ** 12,
        'coherence_time': 128,
        'nb_errors_lim': 500,
        'nb_bits_lim': int(2e5),
        'EbN0_dB': np.arange(0, 13, 2),
        'seed': 42,
        'output_dir': 'research_results'
    }
    results = run_demapper_comparison(config)
    print("\nDemapper comparison completed! Check the research_results directory for plots.")
