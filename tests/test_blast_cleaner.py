import numpy as np
import pandas as pd
import pytest

from wwtp_tools.blast_cleaner import (
    OUTPUT_COLUMNS,
    apply_taxon_renames,
    clean_blast_file,
    clean_blast_files,
    clean_blast_table,
    fill_missing_ranks,
    filter_taxa,
    find_blast_files,
    read_blast_output,
    split_taxonomy,
)
from wwtp_tools.merger import MissingInputError


def blast_row(read_id, subject_taxonomy):
    return {'ReadID': read_id, 'ReadLength': 150, 'SubjectID_Taxonomy': subject_taxonomy,
            'Score': 250.0, 'Evalue': 1e-50, 'AlignmentLength': 148, 'Identities': 146,
            'PercentIdentity': 98.6}


def write_blast(path, rows):
    pd.DataFrame(rows).to_csv(path, sep='\t', header=False, index=False)
    return path


def test_split_taxonomy_pads_missing_ranks():
    raw = pd.DataFrame([blast_row('ERR001.1', 'AB123.1.1490_Bacteria;Proteobacteria;Gammaproteobacteria')])
    df = split_taxonomy(raw)
    assert list(df.columns) == OUTPUT_COLUMNS
    row = df.iloc[0]
    assert row['SubjectID'] == 'AB123.1.1490'
    assert row['Class'] == 'Gammaproteobacteria'
    assert pd.isna(row['Order']) and pd.isna(row['Species'])


def test_filter_taxa_drops_plants_and_most_metazoa():
    df = pd.DataFrame({
        'Phylum': ['Archaeplastida', 'Metazoa', 'Metazoa', 'Rhizaria', 'Rhizaria'],
        'Class': ['Embryophyceae', 'Arthropoda', 'Rotifera', 'Cercozoa', np.nan],
    })
    kept = filter_taxa(df)
    assert kept['Class'].tolist() == ['Rotifera', 'Cercozoa']


def test_fill_missing_ranks_uses_nearest_named_rank():
    df = pd.DataFrame([{
        'Domain': 'Bacteria', 'Phylum': 'Proteobacteria', 'Class': 'Gammaproteobacteria',
        'Order': 'Burkholderiales', 'Family': np.nan, 'Genus': np.nan, 'Species': np.nan,
    }, {
        'Domain': 'Eukaryota', 'Phylum': 'Alveolata', 'Class': 'Ciliophora',
        'Order': np.nan, 'Family': np.nan, 'Genus': np.nan, 'Species': np.nan,
    }], dtype=object)
    filled = fill_missing_ranks(df)
    assert filled.iloc[0][['Family', 'Genus', 'Species']].tolist() == [
        'Burkholderiales_X', 'Burkholderiales_XX', 'Burkholderiales_XXX']
    assert filled.iloc[1][['Order', 'Family', 'Genus', 'Species']].tolist() == [
        'Ciliophora_X', 'Ciliophora_XX', 'Ciliophora_XXX', 'Ciliophora_XXXX']


def test_lecythium_renamed_with_family_and_order():
    df = pd.DataFrame([{'Order': 'Tectofilosida', 'Family': 'Chlamydophryidae',
                        'Genus': 'Lecythium'}])
    renamed = apply_taxon_renames(df).iloc[0]
    assert (renamed['Order'], renamed['Family'], renamed['Genus']) == \
        ('Cryomonadida', 'Rhogostomidae', 'Rhogostoma')


def test_clean_blast_table_full_rules():
    raw = pd.DataFrame([
        blast_row('ERR001.1', 'X1_Eukaryota;Rhizaria;Cercozoa;Cryomonadida;Rhogostomidae;'
                              'Rhogostoma-lineage;Rhogostoma_sp.'),
        blast_row('ERR001.2', 'X2_Bacteria;Nitrospirota;Nitrospiria;Nitrospirales;'
                              'Nitrospiraceae;Nitrospira_1;Nitrospira_defluvii'),
        blast_row('ERR001.3', 'X3_Bacteria;Proteobacteria;Gammaproteobacteria;Burkholderiales;'
                              'Comamonadaceae;uncultured;uncultured_bacterium'),
        blast_row('ERR001.4', 'X4_Eukaryota;Archaeplastida;Embryophyceae;Poales;'
                              'Poaceae;Zea;Zea_mays'),
        blast_row('ERR001.5', 'X5_Eukaryota;Stramenopiles;Stramenopiles;MAST-3;MAST-3I;'
                              'MAST-3I_X;MAST-3I_X_sp.'),
    ])
    cleaned = clean_blast_table(raw).set_index('ReadID')

    assert 'ERR001.4' not in cleaned.index
    assert cleaned.loc['ERR001.1', 'Genus'] == 'Rhogostoma'
    assert cleaned.loc['ERR001.2', 'Genus'] == 'Nitrospira'
    assert cleaned.loc['ERR001.3', 'Genus'] == 'uncultured Comamonadaceae'
    assert cleaned.loc['ERR001.5', 'Class'] == 'Stramenopiles_X'
    assert cleaned.loc['ERR001.5', 'Order'] == 'Stramenopiles_X_X'


def test_clean_blast_file_writes_filtered_csv(tmp_path):
    path = write_blast(tmp_path / 'ERR001_rRNA_Blast_SILVA.txt', [
        blast_row('ERR001.1', 'X_Bacteria;Nitrospirota;Nitrospiria;Nitrospirales;'
                              'Nitrospiraceae;Nitrospira;Nitrospira_defluvii'),
    ])
    output = clean_blast_file(path, tmp_path)
    assert output.name == 'ERR001_rRNA_Blast_SILVA_filtered.csv'
    written = pd.read_csv(output)
    assert list(written.columns) == OUTPUT_COLUMNS
    assert written['Genus'].tolist() == ['Nitrospira']


def test_clean_blast_files_selects_accessions_and_skips_failures(tmp_path):
    input_dir = tmp_path / 'blast'
    input_dir.mkdir()
    row = blast_row('ERR001.1', 'X_Bacteria;Nitrospirota;Nitrospiria;Nitrospirales;'
                                'Nitrospiraceae;Nitrospira;Nitrospira_defluvii')
    write_blast(input_dir / 'ERR001_rRNA_Blast_SILVA.txt', [row])
    write_blast(input_dir / 'ERR002_rRNA_Blast_SILVA.txt', [row])
    (input_dir / 'ERR003_rRNA_Blast_SILVA.txt').write_text('')

    files = find_blast_files(input_dir, 'SILVA')
    assert len(files) == 3

    written = clean_blast_files(files, tmp_path / 'out', accessions=['ERR001', 'ERR003'])
    assert [p.name for p in written] == ['ERR001_rRNA_Blast_SILVA_filtered.csv']
    assert not (tmp_path / 'out' / 'ERR003_rRNA_Blast_SILVA_filtered.csv').exists()

    with pytest.raises(MissingInputError):
        clean_blast_files(files, tmp_path / 'out', accessions=['ERR999'])


def test_find_blast_files_rejects_unknown_database(tmp_path):
    with pytest.raises(ValueError):
        find_blast_files(tmp_path, 'NCBI')


def test_read_blast_output_rejects_empty_file(tmp_path):
    path = tmp_path / 'ERR003_rRNA_Blast_P2.txt'
    path.write_text('')
    with pytest.raises(ValueError, match='ERR003_rRNA_Blast_P2.txt'):
        read_blast_output(path)
