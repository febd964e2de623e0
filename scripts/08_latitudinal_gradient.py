#!/usr/bin/env python3
"""
Test whether the relative abundance of one genus follows a latitudinal
gradient, by linear regression on the north-to-south rank of the plants.

Usage:
    python scripts/08_latitudinal_gradient.py --community Bacteria --genus Trichococcus
"""

import sys
import argparse
import logging
from pathlib import Path

import pandas as pd

# Add tools directory to Python path
project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root / 'tools'))

from wwtp_tools import latitudinal_gradient, load_config, rename_plants, setup_logger


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Latitudinal gradient of one genus')
    parser.add_argument('--config', type=str, default='config/analysis_parameters.yml',
                        help='Path to configuration file')
    parser.add_argument('--input', type=str,
                        default='results/filtered_combined_table_PR2_and_SILVA.csv',
                        help='Merged genus-level table')
    parser.add_argument('--community', type=str, required=True,
                        help='Microbial community of the genus')
    parser.add_argument('--genus', type=str, required=True,
                        help='Genus to test')
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
    data = pd.read_csv(args.input, dtype={'AccessionID': str})
    data = rename_plants(data, config['plants']['renames'])

    try:
        result = latitudinal_gradient(data, args.community, args.genus, config['plants']['order'])
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"{args.genus} ({args.community}), {result['n']} samples")
    print(f"R² : {result['r_squared']}")
    print(f"p  : {result['p_value']}")


if __name__ == "__main__":
    main()
