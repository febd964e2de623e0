import importlib.util
import sys
from pathlib import Path

import pytest


SCRIPTS_DIR = Path(__file__).resolve().parents[1] / 'scripts'


def load_script(filename):
    spec = importlib.util.spec_from_file_location(filename[:-3], SCRIPTS_DIR / filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_merge_script_logs_missing_metadata_and_exits(tmp_path, monkeypatch):
    log_file = tmp_path / 'script_log.txt'
    config = tmp_path / 'config.yml'
    config.write_text(
        'merge:\n'
        f'  metadata_file: {tmp_path / "missing.csv"}\n'
        f'  output_file: {tmp_path / "merged.csv"}\n'
        f'  log_file: {log_file}\n'
    )
    script = load_script('02_merge_tables.py')
    monkeypatch.setattr(sys, 'argv', ['02_merge_tables.py', '--config', str(config)])

    with pytest.raises(SystemExit) as excinfo:
        script.main()

    assert excinfo.value.code == 1
    assert 'Error loading metadata' in log_file.read_text()
    assert not (tmp_path / 'merged.csv').exists()
