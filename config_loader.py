"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict, Optional

import yaml

from models import ResourceLayout

DEFAULT_CONFIG: Dict[str, Any] = {
    'quiver': {
        'library_path': None
    },
    'export': {
        'output_directory': None,
        'library_dirname': 'quiver',
        'resource_layout': ResourceLayout.PER_NOTE.value,
        'replace_extensions': [],
        'preserve_timestamps': True,
        'max_workers': 4,
        'progress_bars': True
    },
    'migration': {
        'dry_run': False,
        'report_path': None,
        'broken_links_csv': None
    },
    'logging': {
        'level': None,
        'file': None
    }
}


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Values missing from the file are filled from DEFAULT_CONFIG; without a
        path the defaults alone are returned.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If the file does not hold a mapping
            yaml.YAMLError: If YAML parsing fails
        """
        if not config_path:
            return copy.deepcopy(DEFAULT_CONFIG)

        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)
        return cls._apply_defaults(config_data)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        cls._validate_required_field(config, 'quiver.library_path')
        cls._validate_required_field(config, 'export.output_directory')

        output_dir = os.path.expanduser(str(get_nested(config, 'export.output_directory')))
        if os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"export.output_directory '{output_dir}' is not a directory")

        library_dirname = get_nested(config, 'export.library_dirname', 'quiver')
        if not isinstance(library_dirname, str) or not library_dirname.strip() \
                or '/' in library_dirname or library_dirname in ('.', '..'):
            raise ValueError("export.library_dirname must be a plain directory name")

        resource_layout = get_nested(config, 'export.resource_layout', ResourceLayout.PER_NOTE.value)
        try:
            ResourceLayout(resource_layout)
        except ValueError:
            raise ValueError(
                f"export.resource_layout must be one of: {[layout.value for layout in ResourceLayout]}"
            )

        replace_extensions = get_nested(config, 'export.replace_extensions', [])
        if not isinstance(replace_extensions, list) or \
                not all(isinstance(ext, str) and ext.strip('.') for ext in replace_extensions):
            raise ValueError("export.replace_extensions must be a list of file extensions")

        max_workers = get_nested(config, 'export.max_workers', 4)
        if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
            raise ValueError("export.max_workers must be a positive integer")

        for field in ('export.preserve_timestamps', 'export.progress_bars', 'migration.dry_run'):
            if not isinstance(get_nested(config, field, False), bool):
                raise ValueError(f"{field} must be a boolean")

        level = get_nested(config, 'logging.level')
        if level is not None and str(level).upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"logging.level '{level}' is not a valid log level")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('quiver', 'export', 'migration', 'logging'):
            if not isinstance(merged.get(section), dict):
                merged[section] = {}

        if getattr(args, 'quiver_path', None):
            merged['quiver']['library_path'] = args.quiver_path

        if getattr(args, 'output_path', None):
            merged['export']['output_directory'] = args.output_path

        if getattr(args, 'ext_names', None):
            extensions = list(merged['export'].get('replace_extensions') or [])
            for ext in args.ext_names:
                if ext not in extensions:
                    extensions.append(ext)
            merged['export']['replace_extensions'] = extensions

        if getattr(args, 'resource_layout', None):
            merged['export']['resource_layout'] = args.resource_layout

        if getattr(args, 'max_workers', None) is not None:
            merged['export']['max_workers'] = args.max_workers

        if getattr(args, 'no_timestamps', False):
            merged['export']['preserve_timestamps'] = False

        if getattr(args, 'no_progress', False):
            merged['export']['progress_bars'] = False

        if getattr(args, 'dry_run', False):
            merged['migration']['dry_run'] = True

        if getattr(args, 'report_path', None):
            merged['migration']['report_path'] = args.report_path

        if getattr(args, 'broken_links_csv', None):
            merged['migration']['broken_links_csv'] = args.broken_links_csv

        if getattr(args, 'log_file', None):
            merged['logging']['file'] = args.log_file

        verbose = getattr(args, 'verbose', 0) or 0
        if verbose >= 2:
            merged['logging']['level'] = 'DEBUG'
        elif verbose == 1:
            merged['logging']['level'] = 'INFO'

        return merged

    @classmethod
    def _apply_defaults(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        merged = copy.deepcopy(DEFAULT_CONFIG)
        for section, values in config.items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(values)
            else:
                merged[section] = values
        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            env_value = os.getenv(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config_section: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config_section, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "export.output_directory")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    value = config
    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


__all__ = ['ConfigLoader', 'DEFAULT_CONFIG', 'get_nested']
