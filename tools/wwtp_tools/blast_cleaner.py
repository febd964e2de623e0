"""
Turn BLASTN best-hit output into per-sample taxonomy tables.

Each input file is the tab-separated output of one sample searched against
PR2 or SILVA. The cleaned table has one row per read with a 7-rank taxonomy
in which missing or uninformative ranks are replaced by placeholders derived
from the nearest named higher rank.
"""

import logging
import os
import re
from pathlib import Path

import numpy as np
import pandas as pd

from .merger import PR2, SILVA, MissingInputError, collect_input_files
from .wwtp_utils import TAXONOMY_RANKS


logger = logging.getLogger(__name__)

BLAST_COLUMNS = ['ReadID', 'ReadLength', 'SubjectID_Taxonomy', 'Score',
                 'Evalue', 'AlignmentLength', 'Identities', 'PercentIdentity']
OUTPUT_COLUMNS = ['ReadID', 'ReadLength', 'SubjectID'] + TAXONOMY_RANKS

DATABASE_PATTERNS = {
    PR2: '*_rRNA_Blast_P2.txt',
    SILVA: '*_rRNA_Blast_SILVA.txt',
}

KEPT_METAZOA_CLASSES = ['Nematoda', 'Rotifera', 'Tardigrada']

# Ranks matching these are not informative and become '<parent>_X'
PLACEHOLDER_PATTERN = re.compile('|'.join([
    r'.*[Cc]lade.*', r'.*[Ll]ineage.*', r'.*[Gg]roup.*', r'.*[Ll]ike.*', r'.*[Nn]ovel-.*',
    r'.*CONT.*', r'OLIGO.*', r'.*PHYLL.*', r'.*MAST.*', r'.*NASSO.*', r'.*PLAGI1.*',
]))

# (column to set, new value, column to test, values that trigger), applied in order
TAXON_RENAMES = [
    ('Genus', 'Rhogostoma', 'Genus', ['Lecythium']),
    ('Family', 'Rhogostomidae', 'Genus', ['Lecythium', 'Rhogostoma']),
    ('Order', 'Cryomonadida', 'Genus', ['Lecythium', 'Rhogostoma']),
    ('Family', 'Tobrilidae', 'Genus', ['UnclassifiedTobrilidae']),
    ('Genus', 'Tobrilidae_X', 'Genus', ['UnclassifiedTobrilidae']),
    ('Order', 'Sainouridea', 'Genus', ['Rosculus']),
    ('Family', 'Euglyphida_X', 'Family', ['Euglyphica_X']),
    ('Family', 'Frontoniidae', 'Family', ['Peniculida']),
    ('Genus', 'Frontoniidae_X', 'Genus', ['Peniculida_X']),
    ('Family', 'Phagomyxida_X', 'Family', ['Phagomyxida_XX']),
]

RHOGOSTOMA_BIN = ['Rhogostoma', 'Rhogostomidae_X', 'Capsellina', 'Sacciforma']


def read_blast_output(filepath):
    """Read a headerless BLASTN tabular file. An empty file is an error."""
    raw_df = pd.read_csv(filepath, sep='\t', header=None, names=BLAST_COLUMNS,
                         dtype={'ReadID': str, 'SubjectID_Taxonomy': str})
    if raw_df.empty:
        raise ValueError(f"BLAST output {filepath} contains no hits")
    return raw_df


def split_taxonomy(df):
    """Split 'SubjectID_Dom;Phy;...' into SubjectID and seven rank columns."""
    df = df.copy()
    parts = df['SubjectID_Taxonomy'].str.split('_', n=1, expand=True).reindex(columns=[0, 1])
    df['SubjectID'] = parts[0]

    ranks = parts[1].astype(object).str.split(';', expand=True)
    ranks = ranks.reindex(columns=range(len(TAXONOMY_RANKS)))
    ranks.columns = TAXONOMY_RANKS
    ranks = ranks.replace('', np.nan)

    for rank in TAXONOMY_RANKS:
        df[rank] = ranks[rank].astype(object)
    return df[OUTPUT_COLUMNS]


def filter_taxa(df):
    """Drop land plants and metazoans other than nematodes, rotifers and tardigrades."""
    keep = df['Class'].notna() & (df['Class'] != 'Embryophyceae')
    keep &= ~((df['Phylum'] == 'Metazoa') & ~df['Class'].isin(KEPT_METAZOA_CLASSES))
    return df[keep].reset_index(drop=True)


def fill_missing_ranks(df):
    """
    Replace missing Order..Species with the nearest named higher rank plus
    one 'X' per skipped level, e.g. a missing Genus under a known Order
    becomes 'Order_XX'.
    """
    df = df.copy()
    original = df[TAXONOMY_RANKS].copy()
    class_idx = TAXONOMY_RANKS.index('Class')

    for idx in range(class_idx + 1, len(TAXONOMY_RANKS)):
        rank = TAXONOMY_RANKS[idx]
        filled = original[rank].copy()
        for parent_idx in range(idx - 1, class_idx - 1, -1):
            parent = TAXONOMY_RANKS[parent_idx]
            missing = filled.isna() & original[parent].notna()
            if not missing.any():
                continue
            filled[missing] = original.loc[missing, parent] + '_' + 'X' * (idx - parent_idx)
        df[rank] = filled
    return df


def strip_suffixes(df):
    df = df.copy()
    for rank in TAXONOMY_RANKS:
        column = df[rank].astype(object)
        notna = column.notna()
        column[notna] = (column[notna].astype(str)
                         .str.replace(r'_[1-9]|-[1-9]', '', regex=True)
                         .str.replace('Aquavolodina', 'Aquavolonida', regex=False))
        df[rank] = column
    return df


def apply_taxon_renames(df, renames=None):
    df = df.copy()
    for target, value, test_col, triggers in (TAXON_RENAMES if renames is None else renames):
        df.loc[df[test_col].isin(triggers), target] = value
    return df


def _placeholder(value, parent):
    if not isinstance(value, str):
        return value
    if PLACEHOLDER_PATTERN.search(value):
        return PLACEHOLDER_PATTERN.sub(lambda m: f'{parent}_X', value)
    if value == parent:
        return f'{parent}_X'
    return value


def replace_uninformative_names(df):
    """Walk Phylum..Species; each rank sees its parent's already-replaced value."""
    df = df.copy()
    for idx in range(1, len(TAXONOMY_RANKS)):
        rank = TAXONOMY_RANKS[idx]
        parent = TAXONOMY_RANKS[idx - 1]
        df[rank] = [_placeholder(value, higher) for value, higher in zip(df[rank], df[parent])]
    return df


def rename_uncultured(df):
    df = df.copy()
    genus = df['Genus'].astype(object)
    endosymbiont = genus.fillna('').str.contains('endosymbiont', regex=False)
    uncultured = genus == 'uncultured'
    uncultured_x = genus == 'unculturedX'
    uncultured_xx = genus == 'unculturedXX'

    df.loc[endosymbiont, 'Genus'] = 'endosymbiontic ' + df.loc[endosymbiont, 'Family'].astype(str)
    df.loc[uncultured, 'Genus'] = 'uncultured ' + df.loc[uncultured, 'Family'].astype(str)

    order_x = df.loc[uncultured_x, 'Order'].astype(str)
    df.loc[uncultured_x, 'Genus'] = 'uncultured ' + order_x + 'X'
    df.loc[uncultured_x, 'Family'] = 'uncultured ' + order_x

    class_xx = df.loc[uncultured_xx, 'Class'].astype(str)
    df.loc[uncultured_xx, 'Genus'] = 'uncultured ' + class_xx + 'XX'
    df.loc[uncultured_xx, 'Family'] = 'uncultured ' + class_xx + 'X'
    df.loc[uncultured_xx, 'Order'] = 'uncultured ' + class_xx
    return df


def bin_rhogostoma(df):
    df = df.copy()
    df.loc[df['Genus'].isin(RHOGOSTOMA_BIN), 'Genus'] = 'Rhogostoma'
    return df


def clean_blast_table(raw_df):
    """
    Apply all cleaning steps to a raw BLAST table.

    Parameters:
    -----------
    raw_df : pandas.DataFrame
        Table with the BLAST_COLUMNS columns

    Returns:
    --------
    pandas.DataFrame
        Classification table with OUTPUT_COLUMNS
    """
    df = split_taxonomy(raw_df)
    df = filter_taxa(df)
    df = fill_missing_ranks(df)
    df = strip_suffixes(df)
    df = apply_taxon_renames(df)
    df = replace_uninformative_names(df)
    df = rename_uncultured(df)
    df = bin_rhogostoma(df)
    return df


def clean_blast_file(filepath, output_dir):
    """Clean one BLAST file and write '<stem>_filtered.csv' into output_dir."""
    logger.info(f"Start processing for: {filepath}")
    cleaned = clean_blast_table(read_blast_output(filepath))
    output_file = Path(output_dir) / f"{Path(filepath).stem}_filtered.csv"
    cleaned.to_csv(output_file, index=False)
    logger.info(f"Data successfully processed and saved: {output_file} ({len(cleaned)} reads)")
    return output_file


def find_blast_files(input_dir, database):
    if database not in DATABASE_PATTERNS:
        raise ValueError(f"Unknown database '{database}'. Use one of: {', '.join(DATABASE_PATTERNS)}")
    return collect_input_files([input_dir], DATABASE_PATTERNS[database])


def clean_blast_files(files, output_dir, accessions=None):
    """
    Clean many BLAST files, optionally only those of selected accessions.

    A file that fails is logged and skipped.

    Returns:
    --------
    list of Path
        Files written
    """
    if accessions is not None:
        files = [f for f in files if any(acc in os.path.basename(str(f)) for acc in accessions)]
    if not files:
        raise MissingInputError("No BLAST output found for the selected accessions.")

    os.makedirs(output_dir, exist_ok=True)
    written = []
    for filepath in files:
        try:
            written.append(clean_blast_file(filepath, output_dir))
        except Exception as e:
            logger.error(f"Error during processing of: {filepath} Details: {e}")

    logger.info(f"Finished processing {len(written)} of {len(files)} files.")
    return written
