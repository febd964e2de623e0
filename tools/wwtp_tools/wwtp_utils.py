"""
Utility functions for WWTP genus-level count tables.
"""

import logging

import pandas as pd


logger = logging.getLogger(__name__)

TAXONOMY_RANKS = ['Domain', 'Phylum', 'Class', 'Order', 'Family', 'Genus', 'Species']

COMMUNITIES = ['Bacteria', 'Archaea', 'Protists', 'Fungi', 'Metazoa']

SEASONS = {
    12: 'Winter', 1: 'Winter', 2: 'Winter',
    3: 'Spring', 4: 'Spring', 5: 'Spring',
    6: 'Summer', 7: 'Summer', 8: 'Summer',
    9: 'Fall', 10: 'Fall', 11: 'Fall',
}


def load_metadata(filepath, sep=';', key='ENA_RUN_ACCESSION'):
    """
    Load sample metadata from a delimited file.

    Parameters:
    -----------
    filepath : str or Path
        Path to the metadata file
    sep : str
        Field delimiter
    key : str
        Column name for run accessions

    Returns:
    --------
    pandas.DataFrame
        Metadata DataFrame with one row per run accession
    """
    metadata_df = pd.read_csv(filepath, sep=sep, dtype={key: str})

    if key not in metadata_df.columns:
        raise ValueError(f"Run accession column '{key}' not found in metadata {filepath}")

    # A repeated key would duplicate count rows in the left join
    duplicated = metadata_df[key].duplicated(keep='first')
    if duplicated.any():
        logger.warning(f"Found {duplicated.sum()} duplicate run accessions in metadata; keeping first")
        metadata_df = metadata_df[~duplicated].reset_index(drop=True)

    return metadata_df


def load_accession_list(filepath):
    """Read accessions, one per line; blank lines and '#' comments are skipped."""
    with open(filepath, 'r') as f:
        return [line.strip() for line in f if line.strip() and not line.startswith('#')]


def rename_plants(table, renames, column='PLANT'):
    """Replace long facility names with short plant codes."""
    table = table.copy()
    table[column] = table[column].replace(renames)
    return table


def assign_season(dates):
    """
    Meteorological season of each collection date.

    Parameters:
    -----------
    dates : pandas.Series
        Collection dates (strings or datetimes)

    Returns:
    --------
    pandas.Series
        'Winter', 'Spring', 'Summer', 'Fall' or 'Unknown'
    """
    months = pd.to_datetime(dates, errors='coerce').dt.month
    return months.map(lambda month: SEASONS.get(month, 'Unknown'))


def genus_count_matrix(table, sample_col='AccessionID', taxon_col='Genus', value_col='NumberOfReads'):
    """
    Pivot a long count table into samples x genera.

    Returns:
    --------
    pandas.DataFrame
        Summed read counts with samples as index and genera as columns, zeros filled
    """
    matrix = table.pivot_table(index=sample_col, columns=taxon_col, values=value_col,
                               aggfunc='sum', fill_value=0)
    matrix.columns.name = None
    return matrix.astype(int)


def relative_abundance(matrix):
    """Scale each sample (row) to proportions; empty samples stay zero."""
    totals = matrix.sum(axis=1)
    return matrix.div(totals.where(totals > 0), axis=0).fillna(0.0)


def read_count_distribution(table, superdomain, max_rows=None):
    """
    Number of genera per total read count within one superdomain.

    Reads are summed per genus across all samples first.

    Parameters:
    -----------
    table : pandas.DataFrame
        Merged genus-level table
    superdomain : str
        'Prokaryote' or 'Eukaryote'
    max_rows : int, optional
        Only return the first rows (lowest read counts)

    Returns:
    --------
    tuple of (pandas.DataFrame, int)
        Table with NumberOfReads and NumberOfGenera columns, and total genera
    """
    subset = table[table['Superdomain'] == superdomain]
    genus_reads = subset.groupby('Genus')['NumberOfReads'].sum()
    summary = (genus_reads.value_counts()
               .rename_axis('NumberOfReads')
               .reset_index(name='NumberOfGenera')
               .sort_values('NumberOfReads')
               .reset_index(drop=True))
    total = int(summary['NumberOfGenera'].sum())
    if max_rows is not None:
        summary = summary.head(max_rows)
    return summary, total


def split_replicates(sample_sheet, used_sample_ids, alias_col='ENA_ALIAS', replica_col='REPLICA'):
    """
    Split a sample sheet into replicates that were used and those that were not.

    A sample id is built as '<ENA_ALIAS>_<REPLICA>'.

    Returns:
    --------
    tuple of (pandas.DataFrame, pandas.DataFrame)
        matched and unmatched rows of the sample sheet
    """
    sheet = sample_sheet.copy()
    sheet['sample_id'] = sheet[alias_col].astype(str) + '_' + sheet[replica_col].astype(str)
    used = set(used_sample_ids)
    is_used = sheet['sample_id'].isin(used)
    matched = sheet[is_used].reset_index(drop=True)
    unmatched = sheet[~is_used].reset_index(drop=True)
    logger.info(f"Matched: {len(matched)} rows, unmatched: {len(unmatched)} rows")
    return matched, unmatched


def remove_accessions(table, accessions, column='AccessionID'):
    """Drop every row belonging to one of the given accessions."""
    accessions = set(accessions)
    kept = table[~table[column].isin(accessions)].reset_index(drop=True)
    removed = set(table[column]) & accessions
    logger.info(f"Removed {len(removed)} accessions ({len(table) - len(kept)} rows)")
    return kept
