"""Tests for configuration loading, validation and CLI merging."""

from argparse import Namespace

import pytest
import yaml

from config_loader import DEFAULT_CONFIG, ConfigLoader, get_nested


def cli_args(**overrides):
    values = {
        'quiver_path': None,
        'output_path': None,
        'ext_names': None,
        'resource_layout': None,
        'max_workers': None,
        'no_timestamps': False,
        'no_progress': False,
        'dry_run': False,
        'report_path': None,
        'broken_links_csv': None,
        'log_file': None,
        'verbose': 0,
    }
    values.update(overrides)
    return Namespace(**values)


@pytest.fixture
def valid_config(tmp_path):
    config = ConfigLoader.load()
    config['quiver']['library_path'] = str(tmp_path / 'Test.qvlibrary')
    config['export']['output_directory'] = str(tmp_path / 'vault')
    return config


class TestLoad:
    """Test reading YAML configuration files."""

    def test_defaults_without_path(self):
        config = ConfigLoader.load()

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_file_values_merged_over_defaults(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text(yaml.safe_dump({'export': {'output_directory': '/vault', 'max_workers': 2}}))

        config = ConfigLoader.load(str(path))

        assert config['export']['output_directory'] == '/vault'
        assert config['export']['max_workers'] == 2
        assert config['export']['library_dirname'] == 'quiver'
        assert config['quiver']['library_path'] is None

    def test_environment_variables_substituted(self, tmp_path, monkeypatch):
        monkeypatch.setenv('QUIVER_HOME', '/data/My.qvlibrary')
        path = tmp_path / 'config.yaml'
        path.write_text('quiver:\n  library_path: "${QUIVER_HOME}"\n')

        config = ConfigLoader.load(str(path))

        assert config['quiver']['library_path'] == '/data/My.qvlibrary'

    def test_unset_variable_left_in_place(self, tmp_path, monkeypatch):
        monkeypatch.delenv('QUIVER_UNSET_VAR', raising=False)
        path = tmp_path / 'config.yaml'
        path.write_text('quiver:\n  library_path: "${QUIVER_UNSET_VAR}"\n')

        config = ConfigLoader.load(str(path))

        assert config['quiver']['library_path'] == '${QUIVER_UNSET_VAR}'
        config['export']['output_directory'] = str(tmp_path)
        with pytest.raises(ValueError, match='QUIVER_UNSET_VAR'):
            ConfigLoader.validate(config)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load(str(tmp_path / 'missing.yaml'))

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text('- a\n- b\n')

        with pytest.raises(ValueError):
            ConfigLoader.load(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text('export: [unclosed\n')

        with pytest.raises(yaml.YAMLError):
            ConfigLoader.load(str(path))


class TestValidate:
    """Test configuration validation rules."""

    def test_valid_config_passes(self, valid_config):
        ConfigLoader.validate(valid_config)

    @pytest.mark.parametrize('field', ['quiver.library_path', 'export.output_directory'])
    def test_required_fields(self, valid_config, field):
        section, key = field.split('.')
        valid_config[section][key] = ''

        with pytest.raises(ValueError, match=field):
            ConfigLoader.validate(valid_config)

    def test_output_directory_must_not_be_a_file(self, valid_config, tmp_path):
        output = tmp_path / 'file.txt'
        output.write_text('x')
        valid_config['export']['output_directory'] = str(output)

        with pytest.raises(ValueError, match='not a directory'):
            ConfigLoader.validate(valid_config)

    @pytest.mark.parametrize('path, value', [
        ('export.library_dirname', 'a/b'),
        ('export.library_dirname', '..'),
        ('export.resource_layout', 'flat'),
        ('export.replace_extensions', 'awebp'),
        ('export.max_workers', 0),
        ('export.max_workers', True),
        ('export.preserve_timestamps', 'yes'),
        ('migration.dry_run', 1),
        ('logging.level', 'LOUD'),
    ])
    def test_invalid_values(self, valid_config, path, value):
        section, key = path.split('.')
        valid_config[section][key] = value

        with pytest.raises(ValueError):
            ConfigLoader.validate(valid_config)


class TestMergeWithArgs:
    """Test CLI arguments overriding file values."""

    def test_no_arguments_keeps_config(self, valid_config):
        assert ConfigLoader.merge_with_args(valid_config, cli_args()) == valid_config

    def test_paths_and_flags_override(self, valid_config):
        merged = ConfigLoader.merge_with_args(valid_config, cli_args(
            quiver_path='/in/My.qvlibrary',
            output_path='/out',
            resource_layout='shared',
            max_workers=8,
            no_timestamps=True,
            no_progress=True,
            dry_run=True,
            report_path='/tmp/report.json',
            broken_links_csv='/tmp/broken.csv',
            log_file='/tmp/migration.log'
        ))

        assert merged['quiver']['library_path'] == '/in/My.qvlibrary'
        assert merged['export']['output_directory'] == '/out'
        assert merged['export']['resource_layout'] == 'shared'
        assert merged['export']['max_workers'] == 8
        assert merged['export']['preserve_timestamps'] is False
        assert merged['export']['progress_bars'] is False
        assert merged['migration']['dry_run'] is True
        assert merged['migration']['report_path'] == '/tmp/report.json'
        assert merged['migration']['broken_links_csv'] == '/tmp/broken.csv'
        assert merged['logging']['file'] == '/tmp/migration.log'

    def test_extensions_are_appended_once(self, valid_config):
        valid_config['export']['replace_extensions'] = ['awebp']

        merged = ConfigLoader.merge_with_args(valid_config, cli_args(ext_names=['heic', 'awebp']))

        assert merged['export']['replace_extensions'] == ['awebp', 'heic']
        assert valid_config['export']['replace_extensions'] == ['awebp']

    @pytest.mark.parametrize('verbose, level', [(1, 'INFO'), (2, 'DEBUG'), (3, 'DEBUG')])
    def test_verbosity_sets_level(self, valid_config, verbose, level):
        merged = ConfigLoader.merge_with_args(valid_config, cli_args(verbose=verbose))

        assert merged['logging']['level'] == level


def test_get_nested():
    config = {'a': {'b': {'c': 1}}}

    assert get_nested(config, 'a.b.c') == 1
    assert get_nested(config, 'a.x', 'fallback') == 'fallback'
    assert get_nested(config, 'a.b.c.d') is None
