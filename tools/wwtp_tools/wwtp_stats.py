"""
Community composition and diversity statistics for the merged genus table.
"""

import logging

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform
from scipy.stats import linregress
from skbio.diversity import alpha_diversity
from skbio.stats import subsample_counts
from skbio.stats.distance import DistanceMatrix, permanova
from skbio.stats.ordination import pcoa

from .wwtp_utils import COMMUNITIES, assign_season, genus_count_matrix, relative_abundance


logger = logging.getLogger(__name__)

COMPOUND_COLUMNS = ['Number of reads', 'Reads [%]', 'Number of genera', 'Genera [%]']
SAMPLE_FIELDS = ['PLANT', 'COLLECTION_DATE', 'LATITUDE']


def _percent(values):
    total = values.sum()
    if total == 0:
        return pd.Series(np.nan, index=values.index)
    return (values / total * 100).round(2)


def create_compound_table(table, communities=None):
    """
    Reads and genera per microbial community.

    Parameters:
    -----------
    table : pandas.DataFrame
        Merged genus-level table
    communities : list, optional
        Communities to report, default all five

    Returns:
    --------
    pandas.DataFrame
        Communities as index, COMPOUND_COLUMNS as columns
    """
    if communities is None:
        communities = COMMUNITIES

    by_community = table.groupby('Microbial_Community')['NumberOfReads']
    reads = by_community.sum().reindex(communities, fill_value=0).astype(int)
    genera = by_community.size().reindex(communities, fill_value=0).astype(int)

    if reads.sum() != table['NumberOfReads'].sum():
        raise ValueError("Number of reads per community must match summed counts")
    if genera.sum() != len(table):
        raise ValueError("Number of genera per community must match number of rows")

    return pd.DataFrame({
        'Number of reads': reads,
        'Reads [%]': _percent(reads),
        'Number of genera': genera,
        'Genera [%]': _percent(genera),
    }, index=communities)


def compound_tables_by_plant(table, plant_order, plant_col='PLANT'):
    """
    Compound tables for each plant and overall.

    Returns:
    --------
    dict
        'reads_percentage', 'genera_percentage', 'reads_counts', 'genera_counts',
        each a DataFrame with communities as rows and plants + 'Overall' as columns
    """
    keys = {
        'reads_counts': 'Number of reads',
        'reads_percentage': 'Reads [%]',
        'genera_counts': 'Number of genera',
        'genera_percentage': 'Genera [%]',
    }
    tables = {name: pd.DataFrame(index=COMMUNITIES) for name in keys}

    for plant in list(plant_order) + ['Overall']:
        subset = table if plant == 'Overall' else table[table[plant_col] == plant]
        compound = create_compound_table(subset)
        for name, column in keys.items():
            tables[name][plant] = compound[column]

    for name in tables:
        tables[name].index.name = 'Microbial Community'
    return tables


def sample_fields(table, fields=None):
    """One row of sample-level fields per accession."""
    if fields is None:
        fields = SAMPLE_FIELDS
    present = [f for f in fields if f in table.columns]
    return table.drop_duplicates('AccessionID').set_index('AccessionID')[present]


def shannon_by_sample(table):
    """
    Shannon index (natural log) of the genus counts of each accession.

    Returns:
    --------
    pandas.DataFrame
        AccessionID, sample fields and ShannonIndex
    """
    counts = genus_count_matrix(table)
    if counts.empty:
        return pd.DataFrame(columns=['AccessionID', 'ShannonIndex'])

    shannon = alpha_diversity('shannon', counts.values, ids=list(counts.index), base=np.e)
    result = sample_fields(table).loc[counts.index].copy()
    result['ShannonIndex'] = shannon.values
    return result.reset_index()


def shannon_by_community(table, communities):
    frames = []
    for community in communities:
        subset = table[table['Microbial_Community'] == community]
        if subset.empty:
            logger.warning(f"No rows for community {community}; skipping Shannon index")
            continue
        shannon = shannon_by_sample(subset)
        shannon['Microbial_Community'] = community
        frames.append(shannon)
    if not frames:
        return pd.DataFrame(columns=['AccessionID', 'ShannonIndex', 'Microbial_Community'])
    return pd.concat(frames, ignore_index=True)


def top_genera_relative_abundance(table, top_n=10, other_label='Others'):
    """
    Relative abundance per sample with all but the top_n genera merged.

    Genera are ranked by total reads across all samples.

    Returns:
    --------
    pandas.DataFrame
        Long table with AccessionID, sample fields, Genus and RelAbundance
    """
    genus_totals = table.groupby('Genus')['NumberOfReads'].sum().sort_values(ascending=False)
    top = set(genus_totals.head(top_n).index)

    merged = table.assign(Genus=table['Genus'].where(table['Genus'].isin(top), other_label))
    rel = relative_abundance(genus_count_matrix(merged))
    long_df = (rel.rename_axis('AccessionID')
               .reset_index()
               .melt(id_vars='AccessionID', var_name='Genus', value_name='RelAbundance'))
    long_df = long_df[long_df['RelAbundance'] > 0]
    return long_df.join(sample_fields(table), on='AccessionID').reset_index(drop=True)


def genus_summary(table, community, plant, genus, plant_col='PLANT'):
    """
    Mean and standard deviation of one genus' relative abundance (%) across
    the samples of one plant.

    Returns:
    --------
    dict
        'mean', 'std' and 'n' (number of samples)
    """
    subset = table[(table['Microbial_Community'] == community) &
                   (table[plant_col].str.lower() == plant.lower())]
    rel = relative_abundance(genus_count_matrix(subset)) * 100
    values = rel[genus] if genus in rel.columns else pd.Series(0.0, index=rel.index)
    return {
        'mean': float(values.mean()) if len(values) else np.nan,
        'std': float(values.std(ddof=1)) if len(values) > 1 else np.nan,
        'n': int(len(values)),
    }


def bray_curtis_matrix(table):
    """Bray-Curtis dissimilarity between the relative genus profiles of the samples."""
    rel = relative_abundance(genus_count_matrix(table))
    distances = squareform(pdist(rel.values, metric='braycurtis'))
    return DistanceMatrix(distances, ids=[str(i) for i in rel.index])


def bray_curtis_pcoa(table):
    """
    PCoA of the Bray-Curtis matrix.

    Returns:
    --------
    tuple of (pandas.DataFrame, list)
        Coordinates (PCoA1, PCoA2, AccessionID) and percent variance of both axes
    """
    dm = bray_curtis_matrix(table)
    results = pcoa(dm)

    coordinates = pd.DataFrame({
        'PCoA1': results.samples.iloc[:, 0].values,
        'PCoA2': results.samples.iloc[:, 1].values,
        'AccessionID': list(dm.ids),
    })
    variance = [float(results.proportion_explained.iloc[i] * 100) for i in range(2)]
    return coordinates, variance


def prepare_permanova(table, community, plant=None, plant_col='PLANT'):
    """
    Subset the table for one community (and optionally one plant) and
    build per-sample grouping variables, including SEASON.
    """
    subset = table[table['Microbial_Community'] == community]
    if plant is not None:
        subset = subset[subset[plant_col] == plant]

    metadata = sample_fields(subset).copy()
    if 'COLLECTION_DATE' in metadata.columns:
        metadata['SEASON'] = assign_season(metadata['COLLECTION_DATE'])
    return subset, metadata


def perform_permanova(distance_matrix, metadata_df, variable, permutations=999):
    """
    PERMANOVA of one grouping variable.

    Parameters:
    -----------
    distance_matrix : skbio.DistanceMatrix
        Beta diversity distance matrix
    metadata_df : pandas.DataFrame
        Metadata DataFrame with samples as index
    variable : str
        Grouping variable in metadata
    permutations : int
        Number of permutations to use

    Returns:
    --------
    dict
        PERMANOVA results
    """
    usable = metadata_df[variable].dropna()
    common_samples = [s for s in distance_matrix.ids if s in usable.index]

    if len(common_samples) < 3:
        return {
            'variable': variable,
            'test-statistic': np.nan,
            'p-value': np.nan,
            'sample size': len(common_samples),
            'note': 'Insufficient samples for PERMANOVA'
        }

    grouping = usable.loc[common_samples].astype(str).values
    if len(np.unique(grouping)) < 2:
        return {
            'variable': variable,
            'test-statistic': np.nan,
            'p-value': np.nan,
            'sample size': len(common_samples),
            'note': f'Only one group found in {variable}'
        }
    if len(np.unique(grouping)) == len(grouping):
        return {
            'variable': variable,
            'test-statistic': np.nan,
            'p-value': np.nan,
            'sample size': len(common_samples),
            'note': f'No replicated groups in {variable}'
        }

    results = permanova(distance_matrix.filter(common_samples), grouping, permutations=permutations)
    return {
        'variable': variable,
        'test-statistic': float(results['test statistic']),
        'p-value': float(results['p-value']),
        'sample size': len(common_samples),
        'note': 'Successful test'
    }


def run_permanova(table, community, variables=None, permutations=999, plant=None, seed=42):
    """PERMANOVA of each grouping variable for one community."""
    if variables is None:
        variables = ['LATITUDE', 'PLANT', 'SEASON']

    subset, metadata = prepare_permanova(table, community, plant=plant)
    metadata.index = metadata.index.astype(str)
    dm = bray_curtis_matrix(subset)

    np.random.seed(seed)
    rows = []
    for variable in variables:
        if variable not in metadata.columns:
            logger.warning(f"Variable {variable} not found for {community}; skipping")
            continue
        rows.append(perform_permanova(dm, metadata, variable, permutations=permutations))

    result = pd.DataFrame(rows)
    result.insert(0, 'Microbial_Community', community)
    return result


def rarefaction_depths(total, step=100):
    """Subsample sizes 1, 1 + step, ... up to and including total."""
    depths = list(range(1, total + 1, step))
    if depths[-1] != total:
        depths.append(total)
    return depths


def rarefaction_curves(table, step=100, superdomain=None, seed=42):
    """
    Observed genera at increasing sequencing depth for every sample.

    Each sample's genus counts are subsampled without replacement at every
    depth of ``rarefaction_depths``; the last point is the full sample.

    Parameters:
    -----------
    table : pandas.DataFrame
        Merged genus-level table
    step : int
        Read increment between depths
    superdomain : str, optional
        'Prokaryote' or 'Eukaryote' to restrict the curves
    seed : int
        Seed for the subsampling

    Returns:
    --------
    pandas.DataFrame
        Long table with AccessionID, Reads, Genera and PLANT
    """
    if superdomain is not None:
        table = table[table['Superdomain'] == superdomain]

    counts = genus_count_matrix(table)
    np.random.seed(seed)

    rows = []
    for accession, sample_counts in counts.iterrows():
        values = sample_counts.values.astype(int)
        total = int(values.sum())
        if total == 0:
            continue
        for depth in rarefaction_depths(total, step):
            genera = int(np.count_nonzero(subsample_counts(values, depth)))
            rows.append({'AccessionID': accession, 'Reads': depth, 'Genera': genera})

    curves = pd.DataFrame(rows, columns=['AccessionID', 'Reads', 'Genera'])
    logger.info(f"Computed rarefaction curves for {curves['AccessionID'].nunique()} samples")
    return curves.join(sample_fields(table, ['PLANT']), on='AccessionID')


def latitudinal_gradient(table, community, genus, plant_order, plant_col='PLANT'):
    """
    Linear regression of one genus' relative abundance (%) on plant rank.

    Plants are ranked 1..n in ``plant_order`` (north to south); samples of
    plants outside ``plant_order`` are ignored.

    Parameters:
    -----------
    table : pandas.DataFrame
        Merged genus-level table
    community : str
        Microbial community the relative abundance is computed within
    genus : str
        Genus to test
    plant_order : list
        Plants from north to south

    Returns:
    --------
    dict
        'r_squared', 'p_value', 'slope' and 'n' (number of samples)
    """
    subset = table[(table['Microbial_Community'] == community) &
                   (table[plant_col].isin(plant_order))]
    rel = relative_abundance(genus_count_matrix(subset)) * 100
    values = rel[genus] if genus in rel.columns else pd.Series(0.0, index=rel.index)

    ranks = {plant: rank for rank, plant in enumerate(plant_order, start=1)}
    sample_rank = sample_fields(subset, [plant_col]).loc[values.index, plant_col].map(ranks)

    if sample_rank.nunique() < 2:
        raise ValueError(f"Samples from at least two plants are needed to test {genus}")

    fit = linregress(sample_rank.values.astype(float), values.values)
    return {
        'r_squared': float(fit.rvalue ** 2),
        'p_value': float(fit.pvalue),
        'slope': float(fit.slope),
        'n': int(len(values)),
    }
