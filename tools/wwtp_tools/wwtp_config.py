"""
Configuration loading for the WWTP community pipeline.
"""

import copy
from pathlib import Path

import yaml


DEFAULT_CONFIG = {
    'merge': {
        'pr2_dirs': [],
        'silva_dirs': [],
        'pr2_pattern': '*_rRNA_Blast_P2_filtered.csv',
        'silva_pattern': '*_rRNA_Blast_SILVA_filtered.csv',
        'metadata_file': 'DetailsSamples.csv',
        'metadata_sep': ';',
        'metadata_key': 'ENA_RUN_ACCESSION',
        'output_file': 'filtered_combined_table_PR2_and_SILVA.csv',
        'log_file': 'script_log.txt',
        'min_reads': 5,
        'genus_renames': {'Rhogostoma-lineage': 'Rhogostoma'},
    },
    'blast': {
        'input_dir': None,
        'output_dir': None,
        'accession_list': None,
    },
    'plants': {
        'renames': {
            'Rensningsanlaeg Damhusaaen': 'Copenhagen_RD',
            'Rensningsanlaeg Avedoere': 'Copenhagen_RA',
            'Rensningsanlaeg Lynetten': 'Copenhagen_RL',
            'Dokhaven': 'Rotterdam',
            'ATO2 Wastewater Treatment Plant': 'Rome',
            'Gruppo HERA': 'Bologna',
            'Budapesti Kozponti Szennyviztisztito Telep': 'Budapest',
        },
        'order': [
            'Copenhagen_RL', 'Copenhagen_RD', 'Copenhagen_RA',
            'Rotterdam', 'Budapest', 'Bologna', 'Rome',
        ],
    },
    'analysis': {
        'communities': ['Bacteria', 'Protists', 'Fungi', 'Metazoa'],
        'top_n': 10,
        'permutations': 999,
        'seed': 42,
        'output_dir': 'results',
    },
}


def _deep_update(base, overrides):
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path=None):
    """
    Load a YAML configuration file on top of the defaults.

    Parameters:
    -----------
    config_path : str or Path, optional
        Path to the YAML file. When None, the defaults are returned.

    Returns:
    --------
    dict
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path is None:
        return config

    with open(config_path, 'r') as f:
        user_config = yaml.safe_load(f) or {}

    if not isinstance(user_config, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")

    config = _deep_update(config, user_config)
    validate_config(config)
    return config


def validate_config(config):
    merge = config['merge']
    min_reads = merge['min_reads']
    if isinstance(min_reads, bool) or not isinstance(min_reads, int) or min_reads < 0:
        raise ValueError(f"merge.min_reads must be a non-negative integer, got {min_reads!r}")
    if not isinstance(merge['genus_renames'], dict):
        raise ValueError("merge.genus_renames must be a mapping of old name to new name")
    for key in ('pr2_dirs', 'silva_dirs'):
        if not isinstance(merge[key], list):
            raise ValueError(f"merge.{key} must be a list of directories")


def resolve_path(path, base_dir):
    """Resolve a config path relative to base_dir unless it is absolute."""
    if path is None:
        return None
    path = Path(path)
    return path if path.is_absolute() else Path(base_dir) / path
