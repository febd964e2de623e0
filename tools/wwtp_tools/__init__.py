"""
Tools for merging and analysing PR2/SILVA genus counts of WWTP samples.
"""

from .wwtp_logger import DiagnosticLogger, setup_logger
from .wwtp_config import DEFAULT_CONFIG, load_config
from .wwtp_utils import (
    TAXONOMY_RANKS,
    COMMUNITIES,
    load_metadata,
    load_accession_list,
    rename_plants,
    assign_season,
    genus_count_matrix,
    relative_abundance,
    read_count_distribution,
    split_replicates,
    remove_accessions,
)
from .merger import (
    PR2,
    SILVA,
    MissingInputError,
    ValidationResult,
    MergeResult,
    TaxonomicCountMerger,
    collect_input_files,
)
from .blast_cleaner import clean_blast_table, clean_blast_file, clean_blast_files, find_blast_files
from .wwtp_stats import (
    create_compound_table,
    compound_tables_by_plant,
    shannon_by_sample,
    shannon_by_community,
    top_genera_relative_abundance,
    genus_summary,
    bray_curtis_pcoa,
    run_permanova,
    rarefaction_curves,
    latitudinal_gradient,
)

__version__ = '0.1.0'
