import pytest

from wwtp_tools.wwtp_config import DEFAULT_CONFIG, load_config, resolve_path


def test_defaults_without_file():
    config = load_config()
    assert config['merge']['min_reads'] == 5
    assert config['merge']['genus_renames'] == {'Rhogostoma-lineage': 'Rhogostoma'}
    config['merge']['min_reads'] = 100
    assert DEFAULT_CONFIG['merge']['min_reads'] == 5


def test_partial_override_keeps_other_defaults(tmp_path):
    path = tmp_path / 'config.yml'
    path.write_text(
        'merge:\n'
        '  min_reads: 10\n'
        '  pr2_dirs: [data/P2_1, data/P2_2]\n'
        'analysis:\n'
        '  permutations: 99\n'
    )
    config = load_config(path)
    assert config['merge']['min_reads'] == 10
    assert config['merge']['pr2_dirs'] == ['data/P2_1', 'data/P2_2']
    assert config['merge']['metadata_sep'] == ';'
    assert config['analysis']['permutations'] == 99
    assert config['analysis']['top_n'] == 10


@pytest.mark.parametrize('body', [
    'merge:\n  min_reads: -1\n',
    'merge:\n  min_reads: five\n',
    'merge:\n  genus_renames: [a, b]\n',
    'merge:\n  silva_dirs: data/SILVA\n',
    '- just\n- a list\n',
])
def test_invalid_config_raises(tmp_path, body):
    path = tmp_path / 'config.yml'
    path.write_text(body)
    with pytest.raises(ValueError):
        load_config(path)


def test_resolve_path(tmp_path):
    assert resolve_path(None, tmp_path) is None
    assert resolve_path('out/x.csv', tmp_path) == tmp_path / 'out' / 'x.csv'
    assert resolve_path('/abs/x.csv', tmp_path).as_posix() == '/abs/x.csv'
