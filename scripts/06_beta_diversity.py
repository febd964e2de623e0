#!/usr/bin/env python3
"""
Bray-Curtis PCoA and PERMANOVA per microbial community.

This script:
1. Loads the merged genus-level table and shortens plant names
2. For each community, computes Bray-Curtis dissimilarities of relative genus profiles
3. Saves PCoA coordinates and an ordination plot
4. Tests LATITUDE, PLANT and SEASON with PERMANOVA

Usage:
    python scripts/06_beta_diversity.py [--config CONFIG_FILE]
"""

import os
import sys
import argparse
import logging
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd

# Add tools directory to Python path
project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root / 'tools'))

from wwtp_tools import bray_curtis_pcoa, load_config, rename_plants, run_permanova, setup_logger
from wwtp_tools.wwtp_stats import sample_fields
from wwtp_tools.wwtp_viz import plot_pcoa


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='PCoA and PERMANOVA per community')
    parser.add_argument('--config', type=str, default='config/analysis_parameters.yml',
                        help='Path to configuration file')
    parser.add_argument('--input', type=str,
                        default='results/filtered_combined_table_PR2_and_SILVA.csv',
                        help='Merged genus-level table')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Directory to save results (default: from config)')
    parser.add_argument('--permutations', type=int, default=None,
                        help='PERMANOVA permutations (default: from config)')
    parser.add_argument('--plant', type=str, default=None,
                        help='Restrict PERMANOVA to one plant')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Path to log file (default: log to console only)')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default: INFO)')
    return parser.parse_args()


def main():
    """Main function for beta diversity analysis."""
    args = parse_args()
    logger = setup_logger(name='wwtp_tools', log_file=args.log_file,
                          log_level=getattr(logging, args.log_level))

    config = load_config(project_root / args.config)
    analysis = config['analysis']
    permutations = args.permutations
    if permutations is None:
        permutations = analysis['permutations']

    output_dir = Path(args.output_dir or project_root / analysis['output_dir'])
    tables_dir = output_dir / 'tables'
    figures_dir = output_dir / 'figures'
    os.makedirs(tables_dir, exist_ok=True)
    os.makedirs(figures_dir, exist_ok=True)

    data = pd.read_csv(args.input, dtype={'AccessionID': str})
    data = rename_plants(data, config['plants']['renames'])

    permanova_results = []
    for community in analysis['communities']:
        subset = data[data['Microbial_Community'] == community]
        if subset['AccessionID'].nunique() < 3:
            logger.warning(f"Fewer than 3 samples for {community}; skipping")
            continue

        coordinates, variance = bray_curtis_pcoa(subset)
        coordinates.to_csv(tables_dir / f"PCoA_Coordinates_{community}.csv", index=False)

        fig = plot_pcoa(coordinates, variance, sample_fields(subset), community)
        fig.savefig(figures_dir / f"PCoA_{community}.svg")
        plt.close(fig)
        logger.info(f"PCoA for {community}: {variance[0]:.2f}% / {variance[1]:.2f}% explained")

        permanova_results.append(run_permanova(data, community, permutations=permutations,
                                               plant=args.plant, seed=analysis['seed']))

    if permanova_results:
        results = pd.concat(permanova_results, ignore_index=True)
        outfile = tables_dir / 'PERMANOVA_results.csv'
        results.to_csv(outfile, index=False)
        logger.info(f"PERMANOVA results saved to {outfile}")
        print(results.to_string(index=False))


if __name__ == "__main__":
    main()
