#!/usr/bin/env python
# scripts/04_sort_out_replicates.py

"""
Remove replicate samples that were not used in the reference ARG study,
so every plant is represented by the same sample selection.

This script:
1. Builds sample ids (ENA_ALIAS + "_" + REPLICA) from the sample sheet
2. Splits the sheet into used and unused replicates
3. Saves both lists for checking
4. Removes the unused run accessions from the merged table

Usage:
    python scripts/04_sort_out_replicates.py --sample-sheet samples.csv --used-samples arg_samples.csv
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

# Add tools directory to Python path
project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root / 'tools'))

from wwtp_tools import remove_accessions, setup_logger, split_replicates


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Remove unused replicate samples')
    parser.add_argument('--sample-sheet', required=True,
                        help='CSV with ENA_SAMPLE_ACCESSION, ENA_ALIAS, ENA_RUN_ACCESSION, REPLICA')
    parser.add_argument('--used-samples', required=True,
                        help='CSV with a sample_id column of the samples used in the ARG study')
    parser.add_argument('--table', default='results/filtered_combined_table_PR2_and_SILVA.csv',
                        help='Merged genus-level table, overwritten unless --output is given')
    parser.add_argument('--output', default=None, help='Where to write the cleaned table')
    parser.add_argument('--output-dir', default='results', help='Directory for match lists')
    parser.add_argument('--log-file', default=None,
                        help='Path to log file (default: log to console only)')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    return parser.parse_args()


def main():
    args = parse_args()
    logger = setup_logger(name='wwtp_tools', log_file=args.log_file,
                          log_level=getattr(logging, args.log_level))

    sample_sheet = pd.read_csv(args.sample_sheet, dtype=str)
    used_ids = pd.read_csv(args.used_samples, dtype=str)['sample_id'].unique()

    matched, unmatched = split_replicates(sample_sheet, used_ids)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    matched[['sample_id', 'ENA_SAMPLE_ACCESSION', 'ENA_ALIAS', 'ENA_RUN_ACCESSION', 'REPLICA']].to_csv(
        output_dir / 'Matched_SampleID-AccessionIDs.csv', index=False)
    unmatched[['ENA_SAMPLE_ACCESSION', 'ENA_ALIAS', 'ENA_RUN_ACCESSION', 'REPLICA']].to_csv(
        output_dir / 'Unmatched_AccessionIDs.csv', index=False)

    table = pd.read_csv(args.table)
    removed_ids = unmatched['ENA_RUN_ACCESSION'].unique()
    cleaned = remove_accessions(table, removed_ids)
    logger.info(f"Deleted AccessionIDs: {' '.join(removed_ids)}")

    output = args.output or args.table
    cleaned.to_csv(output, index=False)
    logger.info(f"Saved table without unused replicates to {output}")


if __name__ == "__main__":
    main()
