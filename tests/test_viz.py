import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from wwtp_tools.wwtp_stats import (
    bray_curtis_pcoa,
    compound_tables_by_plant,
    rarefaction_curves,
    sample_fields,
    shannon_by_community,
    top_genera_relative_abundance,
)
from wwtp_tools.wwtp_viz import (
    plot_compound_table,
    plot_pcoa,
    plot_rarefaction_curves,
    plot_relative_abundance_bars,
    plot_sampling_periods,
    plot_shannon_trends,
)


PLANTS = ['Rotterdam', 'Bologna']


def test_relative_abundance_bars(merged_table):
    bacteria = merged_table[merged_table['Microbial_Community'] == 'Bacteria']
    rel = top_genera_relative_abundance(bacteria, top_n=1)
    fig = plot_relative_abundance_bars(rel, 'Bacteria', PLANTS)
    assert isinstance(fig, Figure)
    assert [ax.get_title() for ax in fig.axes[:2]] == PLANTS
    plt.close(fig)


def test_shannon_trends(merged_table):
    shannon = shannon_by_community(merged_table, ['Bacteria', 'Protists'])
    fig = plot_shannon_trends(shannon, PLANTS)
    assert isinstance(fig, Figure)
    plt.close(fig)


def test_pcoa_plot_axis_labels(merged_table):
    coordinates, variance = bray_curtis_pcoa(merged_table)
    fig = plot_pcoa(coordinates, variance, sample_fields(merged_table), 'All')
    ax = fig.axes[0]
    assert ax.get_xlabel().startswith('PCoA1 [')
    assert 'Bray-Curtis' in ax.get_title()
    plt.close(fig)


def test_rarefaction_plot(merged_table):
    curves = rarefaction_curves(merged_table, step=10)
    fig = plot_rarefaction_curves(curves, PLANTS)
    ax = fig.axes[0]
    assert len(ax.get_lines()) == 4
    assert ax.get_xlabel() == 'Number of Reads'
    plt.close(fig)


def test_compound_table_plot(merged_table):
    tables = compound_tables_by_plant(merged_table, PLANTS)
    fig = plot_compound_table(tables['reads_percentage'], tables['genera_percentage'], PLANTS)
    assert [t.get_text() for t in fig.axes[0].get_xticklabels()] == PLANTS
    plt.close(fig)


def test_sampling_periods_plot(merged_table):
    fig = plot_sampling_periods(merged_table, PLANTS + ['Rome'])
    # Rome has no samples; southern plants at the bottom
    assert [t.get_text() for t in fig.axes[0].get_yticklabels()] == ['Bologna', 'Rotterdam']
    plt.close(fig)
