#!/usr/bin/env python
# scripts/02_merge_tables.py

"""
Merge the per-sample PR2 and SILVA classification tables into one
genus-level count table with sample metadata and community annotations.

This script:
1. Collects all *_rRNA_Blast_P2_filtered.csv and *_rRNA_Blast_SILVA_filtered.csv files
2. Removes duplicate reads and counts reads per sample and genus
3. Joins sample metadata and validates read counts per accession
4. Filters low-count genera and annotates microbial communities
5. Writes filtered_combined_table_PR2_and_SILVA.csv and a step log

Usage:
    python scripts/02_merge_tables.py [--config CONFIG_FILE]
"""

import argparse
import logging
import os
import sys
from pathlib import Path

# Add tools directory to Python path
project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root / 'tools'))

from wwtp_tools import (
    DiagnosticLogger,
    MissingInputError,
    TaxonomicCountMerger,
    collect_input_files,
    load_config,
    load_metadata,
)
from wwtp_tools.wwtp_config import resolve_path


def parse_arguments():
    parser = argparse.ArgumentParser(description="Merge PR2 and SILVA genus counts")
    parser.add_argument('--config', default='config/analysis_parameters.yml',
                        help='Path to configuration file (YAML)')
    parser.add_argument('--metadata', default=None,
                        help='Sample metadata file (default: from config)')
    parser.add_argument('--output-file', default=None,
                        help='Merged table to write (default: from config)')
    parser.add_argument('--log-file', default=None,
                        help='Step log, appended to (default: from config)')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default: INFO)')
    return parser.parse_args()


def main():
    args = parse_arguments()
    config = load_config(project_root / args.config)
    merge_config = config['merge']

    output_file = Path(args.output_file or resolve_path(merge_config['output_file'], project_root))
    log_file = Path(args.log_file or resolve_path(merge_config['log_file'], project_root))
    metadata_file = args.metadata or resolve_path(merge_config['metadata_file'], project_root)

    os.makedirs(output_file.parent, exist_ok=True)
    os.makedirs(log_file.parent, exist_ok=True)

    diagnostics = DiagnosticLogger.to_file(log_file, log_level=getattr(logging, args.log_level),
                                           name='wwtp_tools')
    diagnostics.info("Start script.")

    pr2_dirs = [resolve_path(d, project_root) for d in merge_config['pr2_dirs']]
    silva_dirs = [resolve_path(d, project_root) for d in merge_config['silva_dirs']]
    pr2_files = collect_input_files(pr2_dirs, merge_config['pr2_pattern'])
    silva_files = collect_input_files(silva_dirs, merge_config['silva_pattern'])

    try:
        metadata = load_metadata(metadata_file, sep=merge_config['metadata_sep'],
                                 key=merge_config['metadata_key'])
    except Exception as e:
        diagnostics.error(f"Error loading metadata {metadata_file}: {str(e)}")
        sys.exit(1)
    diagnostics.info(f"Loaded metadata for {len(metadata)} runs from {metadata_file}")

    merger = TaxonomicCountMerger(
        diagnostics,
        min_reads=merge_config['min_reads'],
        genus_renames=merge_config['genus_renames'],
        metadata_key=merge_config['metadata_key'],
    )

    try:
        result = merger.run(pr2_files, silva_files, metadata, output_file=output_file)
    except MissingInputError as e:
        diagnostics.error(str(e))
        sys.exit(1)

    if result.failed:
        diagnostics.warning(f"{len(result.failed)} accessions failed read-count validation; "
                            f"inspect {log_file}")
    diagnostics.info("Pipeline successfully completed.")


if __name__ == "__main__":
    main()
