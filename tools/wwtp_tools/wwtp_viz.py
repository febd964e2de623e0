"""
Plots for the merged WWTP genus table.
"""

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .wwtp_utils import COMMUNITIES, assign_season


COMMUNITY_COLORS = {
    'Metazoa': '#F8766D',
    'Bacteria': '#00BA38',
    'Fungi': '#619CFF',
    'Protists': '#C77CFF',
    'Archaea': '#E5C494',
}

PLANT_COLORS = {
    'Copenhagen_RL': '#00BFC4',
    'Copenhagen_RD': '#00BA38',
    'Copenhagen_RA': '#7CAE00',
    'Rotterdam': '#C77CFF',
    'Budapest': '#F564E3',
    'Bologna': '#F8766D',
    'Rome': '#619CFF',
}

SEASON_COLORS = {
    'Winter': '#64C2FF',
    'Spring': '#EB8BCA',
    'Summer': '#78E300',
    'Fall': '#FF9F45',
    'Unknown': '#B3B3B3',
}


def plot_relative_abundance_bars(rel_df, community, plant_order, other_label='Others'):
    """
    Stacked relative abundance bars, one bar per sample and one panel per plant.

    Parameters:
    -----------
    rel_df : pandas.DataFrame
        Output of wwtp_stats.top_genera_relative_abundance
    community : str
        Community name for the title
    plant_order : list
        Plants from left to right

    Returns:
    --------
    matplotlib.figure.Figure
        Stacked bar plot figure
    """
    plants = [p for p in plant_order if p in set(rel_df['PLANT'])]
    genera = sorted(g for g in rel_df['Genus'].unique() if g != other_label)
    if other_label in set(rel_df['Genus']):
        genera.append(other_label)

    palette = dict(zip(genera, sns.color_palette('tab20', len(genera))))
    palette[other_label] = 'black'

    fig, axes = plt.subplots(1, max(len(plants), 1), figsize=(4 * max(len(plants), 1), 6),
                             sharey=True, squeeze=False)

    for ax, plant in zip(axes[0], plants):
        plant_df = rel_df[rel_df['PLANT'] == plant].copy()
        plant_df['Date'] = pd.to_datetime(plant_df['COLLECTION_DATE'], errors='coerce')
        wide = (plant_df.pivot_table(index=['Date', 'AccessionID'], columns='Genus',
                                     values='RelAbundance', aggfunc='sum', fill_value=0)
                .sort_index()
                .reindex(columns=[g for g in genera if g in set(plant_df['Genus'])]))
        wide.index = [d.strftime('%Y-%m-%d') if pd.notna(d) else acc for d, acc in wide.index]
        wide.plot(kind='bar', stacked=True, ax=ax, width=0.9,
                  color=[palette[g] for g in wide.columns], legend=False)
        ax.set_title(plant)
        ax.set_xlabel('')
        ax.tick_params(axis='x', rotation=90)

    axes[0][0].set_ylabel('Relative Abundance')
    handles = [plt.Rectangle((0, 0), 1, 1, color=palette[g]) for g in genera]
    fig.legend(handles, genera, title='Genus', loc='lower center', ncol=min(len(genera), 6))
    fig.suptitle(f'{community}: top genera per sample')
    fig.tight_layout(rect=(0, 0.12, 1, 0.95))
    return fig


def plot_shannon_trends(shannon_df, plant_order):
    """Shannon index over collection date, one panel per plant."""
    plot_df = shannon_df.copy()
    plot_df['Date'] = pd.to_datetime(plot_df['COLLECTION_DATE'], errors='coerce')
    plot_df = plot_df.sort_values(['PLANT', 'Microbial_Community', 'Date'])
    plants = [p for p in plant_order if p in set(plot_df['PLANT'])]

    fig, axes = plt.subplots(1, max(len(plants), 1), figsize=(5 * max(len(plants), 1), 5),
                             sharey=True, squeeze=False)
    for ax, plant in zip(axes[0], plants):
        sns.lineplot(data=plot_df[plot_df['PLANT'] == plant], x='Date', y='ShannonIndex',
                     hue='Microbial_Community', palette=COMMUNITY_COLORS, marker='o', ax=ax,
                     legend=plant == plants[0])
        ax.set_title(plant)
        ax.set_xlabel('')
        ax.tick_params(axis='x', rotation=45)

    axes[0][0].set_ylabel('Shannon Index')
    fig.tight_layout()
    return fig


def plot_pcoa(coordinates, variance, metadata_df, community):
    """
    PCoA scatter coloured by season with plant as marker style.

    Parameters:
    -----------
    coordinates : pandas.DataFrame
        PCoA1, PCoA2 and AccessionID
    variance : list
        Percent variance explained by both axes
    metadata_df : pandas.DataFrame
        Sample fields with AccessionID as index

    Returns:
    --------
    matplotlib.figure.Figure
        Ordination plot figure
    """
    plot_df = coordinates.join(metadata_df, on='AccessionID')
    plot_df['SEASON'] = assign_season(plot_df['COLLECTION_DATE'])

    fig, ax = plt.subplots(figsize=(10, 8))
    sns.scatterplot(data=plot_df, x='PCoA1', y='PCoA2', hue='SEASON', style='PLANT',
                    palette=SEASON_COLORS, s=60, alpha=0.8, ax=ax)

    ax.set_xlabel(f'PCoA1 [{variance[0]:.2f}%]')
    ax.set_ylabel(f'PCoA2 [{variance[1]:.2f}%]')
    ax.set_title(f'PCoA of Bray-Curtis dissimilarity ({community})')
    ax.legend(bbox_to_anchor=(1.05, 1), loc='upper left')
    plt.tight_layout()
    return fig


def plot_rarefaction_curves(curves, plant_order):
    """
    One rarefaction curve per sample, coloured and dashed by plant.

    Parameters:
    -----------
    curves : pandas.DataFrame
        Output of wwtp_stats.rarefaction_curves
    plant_order : list
        Legend order of the plants

    Returns:
    --------
    matplotlib.figure.Figure
        Rarefaction curve figure
    """
    plants = [p for p in plant_order if p in set(curves['PLANT'])]
    linestyles = ['-', '--', ':', '-.']

    fig, ax = plt.subplots(figsize=(12, 8))
    for i, plant in enumerate(plants):
        plant_df = curves[curves['PLANT'] == plant]
        for j, (_, sample_df) in enumerate(plant_df.groupby('AccessionID')):
            ax.plot(sample_df['Reads'], sample_df['Genera'], linewidth=0.5, alpha=0.7,
                    color=PLANT_COLORS.get(plant), linestyle=linestyles[i % len(linestyles)],
                    label=plant if j == 0 else None)

    ax.set_xlabel('Number of Reads')
    ax.set_ylabel('Number of Genera')
    if plants:
        ax.legend(title='Plant', loc='upper center', bbox_to_anchor=(0.5, -0.1),
                  ncol=min(len(plants), 4))
    fig.tight_layout()
    return fig


def plot_compound_table(reads_percentage, genera_percentage, plant_order):
    """
    Share of reads and genera per community for every plant, side by side.

    Parameters:
    -----------
    reads_percentage, genera_percentage : pandas.DataFrame
        'reads_percentage' and 'genera_percentage' of
        wwtp_stats.compound_tables_by_plant

    Returns:
    --------
    matplotlib.figure.Figure
        Grouped bar plot figure
    """
    plants = [p for p in plant_order if p in reads_percentage.columns]
    frames = []
    for label, table in [('Reads', reads_percentage), ('Genera', genera_percentage)]:
        long_df = (table[plants].rename_axis('Microbial_Community')
                   .reset_index()
                   .melt(id_vars='Microbial_Community', var_name='PLANT', value_name='Percentage'))
        long_df['Group'] = long_df['Microbial_Community'] + '-' + label
        frames.append(long_df)
    plot_df = pd.concat(frames, ignore_index=True)

    hue_order = [f'{community}-{label}' for community in COMMUNITIES for label in ['Reads', 'Genera']]
    palette = {}
    for community in COMMUNITIES:
        palette[f'{community}-Reads'] = COMMUNITY_COLORS[community]
        palette[f'{community}-Genera'] = sns.light_palette(COMMUNITY_COLORS[community], 3)[1]

    fig, ax = plt.subplots(figsize=(14, 6))
    sns.barplot(data=plot_df, x='PLANT', y='Percentage', hue='Group', order=plants,
                hue_order=hue_order, palette=palette, ax=ax)
    ax.set_xlabel('')
    ax.set_ylabel('Relative Abundance [%]')
    ax.tick_params(axis='x', rotation=45)
    ax.legend(bbox_to_anchor=(1.02, 1), loc='upper left')
    fig.tight_layout()
    return fig


def plot_sampling_periods(table, plant_order, date_col='COLLECTION_DATE', plant_col='PLANT'):
    """Sampling period (first to last collection date) of every plant."""
    dates = pd.to_datetime(table[date_col], errors='coerce')
    periods = (table.assign(Date=dates)
               .dropna(subset=['Date'])
               .groupby(plant_col)['Date']
               .agg(['min', 'max']))
    # north at the top
    plants = [p for p in reversed(plant_order) if p in periods.index]

    fig, ax = plt.subplots(figsize=(9, 3))
    for y, plant in enumerate(plants):
        start, end = periods.loc[plant, 'min'], periods.loc[plant, 'max']
        ax.hlines(y, start.to_pydatetime(), end.to_pydatetime(), colors=PLANT_COLORS.get(plant), linewidth=7)
    ax.set_yticks(range(len(plants)))
    ax.set_yticklabels(plants, fontweight='bold')
    ax.tick_params(axis='x', rotation=45)
    fig.tight_layout()
    return fig
