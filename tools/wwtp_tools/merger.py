"""
Genus-level merging of PR2 and SILVA classification tables.

The merger reads the per-sample tables written by the BLAST cleaner, counts
reads per sample and genus, attaches sample metadata, checks that no reads
were lost or duplicated along the way, and annotates every row with its
superdomain and microbial community.

Steps run once, in order, over the full input set:

1. ingest            read all PR2 and SILVA tables, derive AccessionID
2. deduplicate       drop repeated ReadIDs within each database
3. aggregate         count reads per accession and taxonomic path
4. join_metadata     left join of sample metadata on AccessionID
5. combine           stack PR2 and SILVA aggregates
6. validate          per-accession read-count conservation check
7. rename_genera     fixed genus corrections
8. filter_low_abundance
9. clean_domain      strip pipe-delimited Domain prefixes
10. annotate         Superdomain, Database, Microbial_Community
11. emit             column order and CSV output
"""

import glob
import os
from dataclasses import dataclass, field
from typing import List

import numpy as np
import pandas as pd

from .wwtp_logger import DiagnosticLogger
from .wwtp_utils import TAXONOMY_RANKS


PR2 = 'PR2'
SILVA = 'SILVA'

GENUS_KEY = ['Source', 'AccessionID'] + TAXONOMY_RANKS[:6]
LEADING_COLUMNS = ['AccessionID', 'Database', 'Superdomain', 'Microbial_Community', 'Domain', 'Phylum']

MIN_READS = 5
GENUS_RENAMES = {'Rhogostoma-lineage': 'Rhogostoma'}

PROKARYOTE_DOMAINS = ['Archaea', 'Bacteria']


class MissingInputError(FileNotFoundError):
    """No classification tables were found for a reference database."""


@dataclass(frozen=True)
class ValidationResult:
    accession: str
    expected: int
    actual: int
    passed: bool


@dataclass
class MergeResult:
    table: pd.DataFrame
    validation: List[ValidationResult] = field(default_factory=list)

    @property
    def failed(self):
        return [result for result in self.validation if not result.passed]


def collect_input_files(directories, pattern):
    """
    Collect classification tables matching a glob pattern.

    Parameters:
    -----------
    directories : list of str or Path
        Directories to search (not recursive)
    pattern : str
        Glob pattern, e.g. '*_rRNA_Blast_P2_filtered.csv'

    Returns:
    --------
    list of str
        Sorted, de-duplicated file paths
    """
    files = set()
    for directory in directories:
        files.update(glob.glob(os.path.join(str(directory), pattern)))
    return sorted(files)


def extract_accession(read_ids):
    """Accession of each read: everything before the first '.'."""
    return read_ids.astype(str).str.split('.', n=1).str[0]


def read_classification_file(filepath, source):
    """Read one per-sample classification table and tag it with its database."""
    try:
        df = pd.read_csv(filepath, dtype={'ReadID': str})
    except pd.errors.EmptyDataError:
        df = pd.DataFrame(columns=['ReadID'] + TAXONOMY_RANKS)

    missing = [col for col in ['ReadID'] + TAXONOMY_RANKS[:6] if col not in df.columns]
    if missing:
        raise ValueError(f"Classification table {filepath} is missing columns: {', '.join(missing)}")

    df['Source'] = source
    df['AccessionID'] = extract_accession(df['ReadID'])
    return df


class TaxonomicCountMerger:
    """
    Merge per-sample PR2 and SILVA classification tables into one
    annotated genus-level count table.

    Parameters:
    -----------
    logger : DiagnosticLogger
        Receives one line per completed step and per validated accession
    min_reads : int
        Rows with NumberOfReads <= min_reads are dropped
    genus_renames : dict, optional
        Genus corrections applied before filtering
    metadata_key : str
        Run accession column of the metadata table
    """

    def __init__(self, logger=None, min_reads=MIN_READS, genus_renames=None,
                 metadata_key='ENA_RUN_ACCESSION'):
        self.logger = logger if logger is not None else DiagnosticLogger()
        self.min_reads = min_reads
        self.genus_renames = dict(GENUS_RENAMES if genus_renames is None else genus_renames)
        self.metadata_key = metadata_key

    def _read_all(self, files, source):
        frames = [read_classification_file(f, source) for f in files]
        records = pd.concat(frames, ignore_index=True)
        self.logger.info(f"Loaded {len(records)} {source} records from {len(files)} files.")
        return records

    def ingest(self, pr2_files, silva_files):
        """Load all PR2 and SILVA tables. Both file lists must be non-empty."""
        if not pr2_files:
            self.logger.error("Error: No PR2 data found.")
            raise MissingInputError("No PR2 data found in defined directories.")
        if not silva_files:
            self.logger.error("Error: No SILVA data found.")
            raise MissingInputError("No SILVA data found in defined directories.")

        self.logger.info(f"Found {len(pr2_files)} PR2 and {len(silva_files)} SILVA files.")
        pr2_records = self._read_all(pr2_files, PR2)
        silva_records = self._read_all(silva_files, SILVA)
        return pr2_records, silva_records

    def deduplicate(self, records):
        deduplicated = records.drop_duplicates(subset='ReadID', keep='first')
        removed = len(records) - len(deduplicated)
        self.logger.info(f"Deleted {removed} duplicate records based on ReadID.")
        return deduplicated.reset_index(drop=True)

    def aggregate(self, records):
        """Count reads per accession and taxonomic path."""
        counts = (records
                  .groupby(GENUS_KEY, dropna=False, sort=True)
                  .size()
                  .reset_index(name='NumberOfReads'))
        counts['NumberOfReads'] = counts['NumberOfReads'].astype(int)
        self.logger.info(f"Calculated NumberOfReads for {len(counts)} genus/sample combinations.")
        return counts

    def join_metadata(self, aggregates, metadata):
        """Left join, so aggregates without metadata keep null metadata fields."""
        if self.metadata_key not in metadata.columns:
            raise ValueError(f"Metadata is missing the key column '{self.metadata_key}'")

        metadata = metadata.copy()
        metadata[self.metadata_key] = metadata[self.metadata_key].astype(str)
        joined = aggregates.merge(metadata, how='left', left_on='AccessionID',
                                  right_on=self.metadata_key)
        if self.metadata_key != 'AccessionID':
            joined = joined.drop(columns=self.metadata_key)

        matched = aggregates['AccessionID'].isin(metadata[self.metadata_key])
        unmatched = aggregates.loc[~matched, 'AccessionID'].nunique()
        if unmatched:
            self.logger.warning(f"{unmatched} accessions have no sample metadata.")
        return joined

    def combine(self, pr2_joined, silva_joined):
        combined = pd.concat([pr2_joined, silva_joined], ignore_index=True)
        self.logger.info("PR2 and SILVA tables successfully merged.")
        return combined

    def validate(self, pr2_counts, silva_counts, combined):
        """
        Check read-count conservation for every accession of the combined table.

        Mismatches are logged and returned, never raised.
        """
        expected_totals = (pr2_counts.groupby('AccessionID')['NumberOfReads'].sum()
                           .add(silva_counts.groupby('AccessionID')['NumberOfReads'].sum(),
                                fill_value=0))
        actual_totals = combined.groupby('AccessionID')['NumberOfReads'].sum()

        results = []
        for accession in pd.unique(combined['AccessionID']):
            expected = int(expected_totals.get(accession, 0))
            actual = int(actual_totals.get(accession, 0))
            passed = expected == actual
            if passed:
                self.logger.info(f"Validation successful for accession {accession}: "
                                 f"Expected: {expected}, Calculated: {actual}")
            else:
                self.logger.error(f"Read count mismatch for accession {accession}: "
                                  f"Expected: {expected}, Calculated: {actual}")
            results.append(ValidationResult(accession, expected, actual, passed))

        failures = sum(1 for r in results if not r.passed)
        self.logger.info(f"Validated {len(results)} accessions, {failures} mismatches.")
        return results

    def rename_genera(self, table):
        """Apply genus corrections; rows that end up identical are summed."""
        table = table.copy()
        genus = table['Genus']
        renamed = genus.copy()
        for old, new in self.genus_renames.items():
            renamed = renamed.str.replace(old, new, regex=False)

        changed = (renamed != genus) & genus.notna()
        table['Genus'] = renamed
        if changed.any():
            keys = [col for col in table.columns if col != 'NumberOfReads']
            collapsed = (table
                         .groupby(keys, dropna=False, sort=False)['NumberOfReads']
                         .sum()
                         .reset_index())
            table = collapsed[list(table.columns)]
        self.logger.info(f"Renamed {int(changed.sum())} genus entries.")
        return table

    def filter_low_abundance(self, table):
        filtered = table[table['NumberOfReads'] > self.min_reads].reset_index(drop=True)
        self.logger.info(f"Filtered out {len(table) - len(filtered)} entries with read count "
                         f"<= {self.min_reads}.")
        return filtered

    def clean_domain(self, table):
        table = table.copy()
        table['Domain'] = table['Domain'].str.replace(r'^.*\|', '', regex=True)
        self.logger.info("Cleaned up Domain column.")
        return table

    def annotate(self, table):
        """Add Superdomain, Database and Microbial_Community."""
        table = table.copy()
        domain = table['Domain']
        phylum = table['Phylum']

        superdomain = np.where(domain.isin(PROKARYOTE_DOMAINS), 'Prokaryote', 'Eukaryote')
        database = np.where(superdomain == 'Prokaryote', SILVA, PR2)

        conditions = [
            (database == SILVA) & (domain == 'Bacteria'),
            (database == SILVA) & (domain == 'Archaea'),
            (database == PR2) & (phylum == 'Metazoa'),
            (database == PR2) & (phylum == 'Fungi'),
            database == PR2,
        ]
        choices = ['Bacteria', 'Archaea', 'Metazoa', 'Fungi', 'Protists']

        table['Superdomain'] = pd.Series(superdomain, index=table.index, dtype=object)
        table['Database'] = pd.Series(database, index=table.index, dtype=object)
        table['Microbial_Community'] = pd.Series(
            np.select(conditions, choices, default='Unknown'), index=table.index, dtype=object)
        self.logger.info("Created Superdomain, Database, and Microbial_Community columns.")
        return table

    def emit(self, table, output_file=None):
        ordered = LEADING_COLUMNS + [col for col in table.columns if col not in LEADING_COLUMNS]
        table = table[ordered]
        if output_file is not None:
            table.to_csv(output_file, index=False)
            self.logger.info(f"Saved merged table: {output_file}")
        return table

    def run(self, pr2_files, silva_files, metadata, output_file=None):
        """
        Run the full merge.

        Parameters:
        -----------
        pr2_files, silva_files : list of str or Path
            Per-sample classification tables
        metadata : pandas.DataFrame
            Sample metadata with the run accession column
        output_file : str or Path, optional
            Where to write the final table

        Returns:
        --------
        MergeResult
            Final table and one ValidationResult per accession
        """
        self.logger.info("Start merging.")
        pr2_records, silva_records = self.ingest(pr2_files, silva_files)

        pr2_records = self.deduplicate(pr2_records)
        silva_records = self.deduplicate(silva_records)

        pr2_counts = self.aggregate(pr2_records)
        silva_counts = self.aggregate(silva_records)

        combined = self.combine(self.join_metadata(pr2_counts, metadata),
                                self.join_metadata(silva_counts, metadata))
        validation = self.validate(pr2_counts, silva_counts, combined)

        table = self.rename_genera(combined)
        table = self.filter_low_abundance(table)
        table = self.clean_domain(table)
        table = self.annotate(table)
        table = self.emit(table, output_file)

        self.logger.info("Merging successfully completed.")
        return MergeResult(table=table, validation=validation)
