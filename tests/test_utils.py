import pandas as pd
import pytest

from wwtp_tools.wwtp_utils import (
    assign_season,
    genus_count_matrix,
    load_accession_list,
    load_metadata,
    read_count_distribution,
    relative_abundance,
    remove_accessions,
    rename_plants,
    split_replicates,
)


def test_load_metadata_semicolon_and_duplicate_keys(tmp_path):
    path = tmp_path / 'DetailsSamples.csv'
    path.write_text(
        'ENA_RUN_ACCESSION;PLANT;COLLECTION_DATE;LATITUDE\n'
        'ERR001;Dokhaven;2019-01-15;51.9\n'
        'ERR001;Dokhaven;2019-01-16;51.9\n'
        'ERR002;Gruppo HERA;2019-07-02;44.5\n'
    )
    metadata = load_metadata(path)
    assert metadata['ENA_RUN_ACCESSION'].tolist() == ['ERR001', 'ERR002']
    assert metadata.loc[0, 'COLLECTION_DATE'] == '2019-01-15'


def test_load_metadata_requires_key_column(tmp_path):
    path = tmp_path / 'meta.csv'
    path.write_text('RUN;PLANT\nERR001;Dokhaven\n')
    with pytest.raises(ValueError, match='ENA_RUN_ACCESSION'):
        load_metadata(path)


def test_load_accession_list_skips_blank_and_comments(tmp_path):
    path = tmp_path / 'acc.txt'
    path.write_text('# hungary\nERR001\n\nERR002\n')
    assert load_accession_list(path) == ['ERR001', 'ERR002']


def test_rename_plants_keeps_unknown_names():
    table = pd.DataFrame({'PLANT': ['Dokhaven', 'Somewhere']})
    renamed = rename_plants(table, {'Dokhaven': 'Rotterdam'})
    assert renamed['PLANT'].tolist() == ['Rotterdam', 'Somewhere']


def test_assign_season():
    dates = pd.Series(['2019-12-01', '2019-02-28', '2019-03-01', '2019-08-31', '2019-11-30', None])
    assert assign_season(dates).tolist() == ['Winter', 'Winter', 'Spring', 'Summer', 'Fall', 'Unknown']


def test_genus_count_matrix_and_relative_abundance(merged_table):
    matrix = genus_count_matrix(merged_table)
    assert matrix.loc['ERR002', 'Mortierella'] == 0
    assert matrix.loc['ERR001', 'Nitrospira'] == 40

    rel = relative_abundance(matrix)
    assert rel.sum(axis=1).round(10).eq(1.0).all()
    assert rel.loc['ERR002', 'Acinetobacter'] == pytest.approx(50 / 90)


def test_read_count_distribution(merged_table):
    summary, total = read_count_distribution(merged_table, 'Eukaryote')
    # Rhogostoma 66, Mortierella 8, Rotaria 12
    assert summary['NumberOfReads'].tolist() == [8, 12, 66]
    assert summary['NumberOfGenera'].tolist() == [1, 1, 1]
    assert total == 3

    head, total = read_count_distribution(merged_table, 'Prokaryote', max_rows=1)
    assert len(head) == 1
    assert total == 3


def test_split_replicates_and_remove_accessions(merged_table):
    sheet = pd.DataFrame({
        'ENA_SAMPLE_ACCESSION': ['S1', 'S1', 'S2'],
        'ENA_ALIAS': ['RT_01', 'RT_01', 'BO_01'],
        'ENA_RUN_ACCESSION': ['ERR001', 'ERR002', 'ERR003'],
        'REPLICA': ['1', '2', '1'],
    })
    matched, unmatched = split_replicates(sheet, ['RT_01_1', 'BO_01_1'])
    assert matched['ENA_RUN_ACCESSION'].tolist() == ['ERR001', 'ERR003']
    assert unmatched['sample_id'].tolist() == ['RT_01_2']

    cleaned = remove_accessions(merged_table, unmatched['ENA_RUN_ACCESSION'])
    assert 'ERR002' not in set(cleaned['AccessionID'])
    assert len(cleaned) == len(merged_table) - 3
