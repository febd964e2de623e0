#!/usr/bin/env python
# scripts/01_clean_blast_output.py

"""
Convert BLASTN best-hit output into per-sample taxonomy tables.

This script:
1. Reads a list of ENA run accessions
2. Selects the PR2 or SILVA BLAST result files of those accessions
3. Splits, filters and cleans the taxonomy of every read
4. Writes one <name>_filtered.csv table per sample

Usage:
    python scripts/01_clean_blast_output.py --database PR2 [--config CONFIG_FILE]
"""

import argparse
import logging
import sys
from pathlib import Path

# Add tools directory to Python path
project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root / 'tools'))

from wwtp_tools import MissingInputError, load_accession_list, load_config, setup_logger
from wwtp_tools.blast_cleaner import clean_blast_files, find_blast_files
from wwtp_tools.wwtp_config import resolve_path


def parse_arguments():
    parser = argparse.ArgumentParser(description="Clean BLASTN output into taxonomy tables")
    parser.add_argument('--config', default='config/analysis_parameters.yml',
                        help='Path to configuration file (YAML)')
    parser.add_argument('--database', required=True, choices=['PR2', 'SILVA'],
                        help='Reference database the BLAST files were searched against')
    parser.add_argument('--input-dir', default=None,
                        help='Directory with BLAST result files (default: from config)')
    parser.add_argument('--output-dir', default=None,
                        help='Directory for cleaned tables (default: from config)')
    parser.add_argument('--accession-list', default=None,
                        help='File with one run accession per line (default: from config)')
    parser.add_argument('--selection', default='all', choices=['all', 'first-half', 'second-half'],
                        help='Which part of the accession list to process (default: all)')
    parser.add_argument('--accessions', nargs='+', default=None,
                        help='Process only these accessions (must also be in the list)')
    parser.add_argument('--log-file', default=None,
                        help='Path to log file (default: log to console only)')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default: INFO)')
    return parser.parse_args()


def select_accessions(accessions, selection, specific=None):
    half = len(accessions) // 2
    if selection == 'first-half':
        accessions = accessions[:half]
    elif selection == 'second-half':
        accessions = accessions[half:]
    if specific:
        accessions = [acc for acc in accessions if acc in set(specific)]
    return accessions


def main():
    args = parse_arguments()

    # Library modules log through their own loggers; route them to the same handlers
    logger = setup_logger(name='wwtp_tools', log_file=args.log_file,
                          log_level=getattr(logging, args.log_level))
    logger.info("Start script.")

    try:
        config = load_config(project_root / args.config)
        logger.info(f"Loaded configuration from {args.config}")
    except Exception as e:
        logger.error(f"Error loading configuration: {str(e)}")
        sys.exit(1)

    blast_config = config['blast']
    input_dir = args.input_dir or resolve_path(blast_config['input_dir'], project_root)
    output_dir = args.output_dir or resolve_path(blast_config['output_dir'], project_root)
    accession_list = args.accession_list or resolve_path(blast_config['accession_list'], project_root)

    if input_dir is None or output_dir is None or accession_list is None:
        logger.error("Input directory, output directory and accession list must be set")
        sys.exit(1)

    accessions = load_accession_list(accession_list)
    logger.info(f"Read: {accession_list} containing {len(accessions)} accessions.")
    selected = select_accessions(accessions, args.selection, args.accessions)
    logger.info(f"{args.database} database selected, {len(selected)} accessions to process.")

    try:
        written = clean_blast_files(find_blast_files(input_dir, args.database), output_dir,
                                    accessions=selected)
    except MissingInputError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"Finished processing for all selected accessions ({len(written)} files written).")


if __name__ == "__main__":
    main()
