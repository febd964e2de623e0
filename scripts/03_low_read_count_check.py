#!/usr/bin/env python
# scripts/03_low_read_count_check.py

"""
Summarise how many genera have low read totals, separately for
prokaryotes and eukaryotes. Used to choose the read-count filter of the merge.

Usage:
    python scripts/03_low_read_count_check.py --input results/filtered_combined_table_PR2_and_SILVA.csv
"""

import argparse
import sys
from pathlib import Path

import pandas as pd

# Add tools directory to Python path
project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root / 'tools'))

from wwtp_tools import read_count_distribution


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Genera per read count by superdomain')
    parser.add_argument('--input', type=str,
                        default='results/filtered_combined_table_PR2_and_SILVA.csv',
                        help='Merged genus-level table')
    parser.add_argument('--max-rows', type=int, default=20,
                        help='Number of read-count rows to show')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Also save the summaries as CSV here')
    return parser.parse_args()


def main():
    args = parse_args()
    data = pd.read_csv(args.input)

    # Tables written before annotation carry the pipe-prefixed Domain
    data['Domain'] = data['Domain'].str.replace(r'^.*\|', '', regex=True)
    data['Superdomain'] = data['Domain'].isin(['Archaea', 'Bacteria']).map(
        {True: 'Prokaryote', False: 'Eukaryote'})

    for superdomain in ['Eukaryote', 'Prokaryote']:
        summary, total = read_count_distribution(data, superdomain, max_rows=args.max_rows)
        print(f"\n{superdomain}s - Number of Genera per read")
        print(summary.to_string(index=False))
        print(f"{superdomain}s - total number of genera: {total}")

        if args.output_dir:
            output_dir = Path(args.output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            summary.to_csv(output_dir / f"low_read_counts_{superdomain}.csv", index=False)


if __name__ == "__main__":
    main()
