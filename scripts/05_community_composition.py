#!/usr/bin/env python3
"""
Describe the microbial community composition of every WWTP.

This script:
1. Loads the merged genus-level table and shortens plant names
2. Writes and plots compound tables (reads and genera per community, per plant and overall)
   and plots the sampling period of every plant
3. Calculates Shannon indices per sample for each community
4. Plots Shannon trends and top-genus relative abundance bars
5. Optionally reports one genus' mean relative abundance in one plant

Usage:
    python scripts/05_community_composition.py [--config CONFIG_FILE]
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

from wwtp_tools import (
    compound_tables_by_plant,
    genus_summary,
    load_config,
    rename_plants,
    setup_logger,
    shannon_by_community,
    top_genera_relative_abundance,
)
from wwtp_tools.wwtp_viz import (
    plot_compound_table,
    plot_relative_abundance_bars,
    plot_sampling_periods,
    plot_shannon_trends,
)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Community composition tables and plots')
    parser.add_argument('--config', type=str, default='config/analysis_parameters.yml',
                        help='Path to configuration file')
    parser.add_argument('--input', type=str,
                        default='results/filtered_combined_table_PR2_and_SILVA.csv',
                        help='Merged genus-level table')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Directory to save tables and figures (default: from config)')
    parser.add_argument('--genus', type=str, default=None,
                        help='Report the mean relative abundance of this genus')
    parser.add_argument('--community', type=str, default='Protists',
                        help='Community of --genus (default: Protists)')
    parser.add_argument('--plant', type=str, default=None,
                        help='Plant of --genus')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Path to log file (default: log to console only)')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default: INFO)')
    return parser.parse_args()


def main():
    """Main function to build community composition outputs."""
    args = parse_args()
    logger = setup_logger(name='wwtp_tools', log_file=args.log_file,
                          log_level=getattr(logging, args.log_level))

    config = load_config(project_root / args.config)
    plant_order = config['plants']['order']
    analysis = config['analysis']

    output_dir = Path(args.output_dir or project_root / analysis['output_dir'])
    tables_dir = output_dir / 'tables'
    figures_dir = output_dir / 'figures'
    os.makedirs(tables_dir, exist_ok=True)
    os.makedirs(figures_dir, exist_ok=True)

    data = pd.read_csv(args.input)
    data = rename_plants(data, config['plants']['renames'])
    logger.info(f"Loaded {len(data)} rows from {args.input}")

    # Compound tables
    tables = compound_tables_by_plant(data, plant_order)
    for name, table in tables.items():
        outfile = tables_dir / f"Compound_table_{name}.csv"
        table.to_csv(outfile)
        logger.info(f"Saved: {outfile}")
    print("\n--- Microbial Community Composition for overall data ---")
    print(tables['reads_counts'][['Overall']].join(tables['reads_percentage'][['Overall']],
                                                    rsuffix=' [%]'))

    fig = plot_compound_table(tables['reads_percentage'], tables['genera_percentage'], plant_order)
    fig.savefig(figures_dir / 'Compound_Table_Plot.svg')
    plt.close(fig)

    fig = plot_sampling_periods(data, plant_order)
    fig.savefig(figures_dir / 'Sampling_Periods_Plot.svg')
    plt.close(fig)

    # Shannon indices
    shannon = shannon_by_community(data, analysis['communities'])
    for community, community_df in shannon.groupby('Microbial_Community'):
        outfile = tables_dir / f"ShannonTable_{community}.csv"
        community_df.drop(columns='Microbial_Community').to_csv(outfile, index=False)
        logger.info(f"Saved: {outfile}")

    fig = plot_shannon_trends(shannon, plant_order)
    fig.savefig(figures_dir / 'Shannon_Facette_plot.svg')
    plt.close(fig)

    # Relative abundance bars
    for community in analysis['communities']:
        subset = data[data['Microbial_Community'] == community]
        if subset.empty:
            continue
        rel_df = top_genera_relative_abundance(subset, top_n=analysis['top_n'])
        rel_df.to_csv(tables_dir / f"RelAbund_{community}.csv", index=False)
        fig = plot_relative_abundance_bars(rel_df, community, plant_order)
        fig.savefig(figures_dir / f"RelAbund_Barplot_{community}.svg")
        plt.close(fig)
        logger.info(f"Saved relative abundance barplot for {community}")

    if args.genus and args.plant:
        stats = genus_summary(data, args.community, args.plant, args.genus)
        print(f"Microbial Community: {args.community}")
        print(f"Plant: {args.plant}")
        print(f"Taxon: {args.genus}")
        print(f"Times of Appearances: {stats['n']}")
        print(f"Average (%): {stats['mean']:.2f}")
        print(f"Std. deviation  : {stats['std']:.2f}")


if __name__ == "__main__":
    main()
