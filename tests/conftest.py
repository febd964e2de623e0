import matplotlib
matplotlib.use('Agg')

import pandas as pd
import pytest

from wwtp_tools.wwtp_logger import DiagnosticLogger, setup_logger


CLASSIFICATION_COLUMNS = ['ReadID', 'ReadLength', 'SubjectID', 'Domain', 'Phylum', 'Class',
                          'Order', 'Family', 'Genus', 'Species']


def taxonomy(domain='Bacteria', phylum='Proteobacteria', cls='Gammaproteobacteria',
             order='Burkholderiales', family='Comamonadaceae', genus='GenusX', species='GenusX_X'):
    return {'Domain': domain, 'Phylum': phylum, 'Class': cls, 'Order': order,
            'Family': family, 'Genus': genus, 'Species': species}


def classification_rows(accession, n_reads, start=1, **ranks):
    """n_reads rows for one accession with read ids <accession>.<i>."""
    rows = []
    for i in range(start, start + n_reads):
        row = {'ReadID': f'{accession}.{i}', 'ReadLength': 150, 'SubjectID': f'SUBJ{i}'}
        row.update(taxonomy(**ranks))
        rows.append(row)
    return rows


def write_table(path, rows):
    pd.DataFrame(rows, columns=CLASSIFICATION_COLUMNS).to_csv(path, index=False)
    return path


@pytest.fixture
def write_classification(tmp_path):
    def _write(name, rows):
        return write_table(tmp_path / name, rows)
    return _write


@pytest.fixture
def metadata():
    return pd.DataFrame({
        'ENA_RUN_ACCESSION': ['ERR001', 'ERR002', 'ERR003'],
        'PLANT': ['Dokhaven', 'Gruppo HERA', 'Dokhaven'],
        'COLLECTION_DATE': ['2019-01-15', '2019-07-02', '2019-04-20'],
        'LATITUDE': [51.9, 44.5, 51.9],
    })


@pytest.fixture
def diagnostics():
    return DiagnosticLogger(setup_logger(name='wwtp_tests'))


@pytest.fixture
def merged_table():
    """Small annotated table as written by the merger, with short plant names."""
    rows = []
    samples = [
        ('ERR001', 'Rotterdam', '2019-01-15', 51.9),
        ('ERR002', 'Rotterdam', '2019-07-02', 51.9),
        ('ERR003', 'Bologna', '2019-04-20', 44.5),
        ('ERR004', 'Bologna', '2019-10-11', 44.5),
    ]
    counts = {
        'ERR001': {'Nitrospira': 40, 'Acinetobacter': 20, 'Rhogostoma': 10, 'Mortierella': 8},
        'ERR002': {'Nitrospira': 10, 'Acinetobacter': 50, 'Rhogostoma': 30},
        'ERR003': {'Nitrospira': 25, 'Acinetobacter': 25, 'Rhogostoma': 6, 'Rotaria': 12},
        'ERR004': {'Nitrospira': 60, 'Methanosaeta': 9, 'Rhogostoma': 20},
    }
    community = {
        'Nitrospira': ('Bacteria', 'Nitrospirota', 'Bacteria', 'SILVA', 'Prokaryote'),
        'Acinetobacter': ('Bacteria', 'Proteobacteria', 'Bacteria', 'SILVA', 'Prokaryote'),
        'Methanosaeta': ('Archaea', 'Halobacterota', 'Archaea', 'SILVA', 'Prokaryote'),
        'Rhogostoma': ('Eukaryota', 'Rhizaria', 'Protists', 'PR2', 'Eukaryote'),
        'Mortierella': ('Eukaryota', 'Fungi', 'Fungi', 'PR2', 'Eukaryote'),
        'Rotaria': ('Eukaryota', 'Metazoa', 'Metazoa', 'PR2', 'Eukaryote'),
    }
    for accession, plant, date, latitude in samples:
        for genus, reads in counts[accession].items():
            domain, phylum, microbial, database, superdomain = community[genus]
            rows.append({
                'AccessionID': accession, 'Database': database, 'Superdomain': superdomain,
                'Microbial_Community': microbial, 'Domain': domain, 'Phylum': phylum,
                'Genus': genus, 'NumberOfReads': reads, 'PLANT': plant,
                'COLLECTION_DATE': date, 'LATITUDE': latitude,
            })
    return pd.DataFrame(rows)
