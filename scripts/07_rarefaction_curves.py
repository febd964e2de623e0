#!/usr/bin/env python3
"""
Rarefaction curves to check whether sequencing depth was enough to capture
genus richness.

This script:
1. Loads the merged genus-level table and shortens plant names
2. Subsamples every sample's genus counts at increasing read depth
3. Saves the curve points and a plot with one curve per sample, grouped by plant

Usage:
    python scripts/07_rarefaction_curves.py [--superdomain Prokaryote|Eukaryote]
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

from wwtp_tools import load_config, rarefaction_curves, rename_plants, setup_logger
from wwtp_tools.wwtp_viz import plot_rarefaction_curves


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Rarefaction curves per sample')
    parser.add_argument('--config', type=str, default='config/analysis_parameters.yml',
                        help='Path to configuration file')
    parser.add_argument('--input', type=str,
                        default='results/filtered_combined_table_PR2_and_SILVA.csv',
                        help='Merged genus-level table')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Directory to save results (default: from config)')
    parser.add_argument('--superdomain', type=str, default=None,
                        choices=['Prokaryote', 'Eukaryote'],
                        help='Only use prokaryotes or eukaryotes (default: all)')
    parser.add_argument('--step', type=int, default=100,
                        help='Read increment between subsample sizes (default: 100)')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Path to log file (default: log to console only)')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default: INFO)')
    return parser.parse_args()


def main():
    args = parse_args()
    logger = setup_logger(name='wwtp_tools', log_file=args.log_file,
                          log_level=getattr(logging, args.log_level))

    config = load_config(project_root / args.config)
    analysis = config['analysis']

    output_dir = Path(args.output_dir or project_root / analysis['output_dir'])
    tables_dir = output_dir / 'tables'
    figures_dir = output_dir / 'figures'
    os.makedirs(tables_dir, exist_ok=True)
    os.makedirs(figures_dir, exist_ok=True)

    data = pd.read_csv(args.input, dtype={'AccessionID': str})
    data = rename_plants(data, config['plants']['renames'])

    curves = rarefaction_curves(data, step=args.step, superdomain=args.superdomain,
                                seed=analysis['seed'])
    suffix = f"_{args.superdomain}" if args.superdomain else ''
    curves.to_csv(tables_dir / f"Rarefaction_Curves{suffix}.csv", index=False)

    fig = plot_rarefaction_curves(curves, config['plants']['order'])
    outfile = figures_dir / f"Rarefaction_Curves{suffix}.svg"
    fig.savefig(outfile)
    plt.close(fig)
    logger.info(f"Saved rarefaction curves: {outfile}")


if __name__ == "__main__":
    main()
