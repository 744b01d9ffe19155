"""Application configuration module for the nls pipeline."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from nls_dev.logging_config import setup_logger
from nls_dev.message_bundle import Language

OPERATIONS = ('bundle', 'export', 'import')


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    project_root: str
    operation: str

    # Bundling
    build_output_folder: str
    extension_id: str
    out_dir: str

    # XLIFF exchange
    project_name: str
    extension_name: str
    xlf_folder: str

    # Languages
    languages: List[Language]
    export_language: Optional[Language]
    i18n_base_dir: str
    i18n_sub_dir: Optional[str]

    prolog: Union[str, List[str]] = ''
    log_problems: bool = True


def _compute_project_root() -> str:
    """Compute the project root directory."""
    script_real_path = os.path.realpath(__file__)
    script_dir = os.path.dirname(script_real_path)
    return os.path.abspath(os.path.join(script_dir, os.pardir))


def _load_dotenv_file(project_root: str) -> Optional[str]:
    """Load the .env file of the project root; return its path when it exists."""
    dotenv_path = os.path.join(project_root, '.env')
    if not os.path.exists(dotenv_path):
        return None
    load_dotenv(dotenv_path)
    return dotenv_path


def _load_yaml_config(project_root: str) -> Dict[str, Any]:
    """Load the YAML configuration file, falling back to defaults on any problem."""
    default_config_path = os.path.join(project_root, 'config.yaml')
    config_file = os.environ.get('NLS_CONFIG_FILE', default_config_path)

    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            print(f"Tip: Create a config.yaml file in '{project_root}' or set NLS_CONFIG_FILE environment variable.",
                  file=sys.stderr)
            return config

        if not os.access(config_file, os.R_OK):
            print(f"Error: Configuration file '{config_file}' exists but is not readable. Check file permissions.",
                  file=sys.stderr)
            return config

        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
                print(f"Successfully loaded configuration from: {config_file}", file=sys.stderr)
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)

    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except OSError as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    """Set up logger based on configuration."""
    log_config = config.get('logging', {})
    log_level_str = log_config.get('log_level', 'INFO').upper()
    log_file_path = log_config.get('log_file_path', 'logs/nls_pipeline.log')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _log_dotenv_status(logger: logging.Logger, project_root: str, dotenv_path: Optional[str]) -> None:
    """Log the status of .env file loading."""
    if dotenv_path:
        logger.info("Loaded environment variables from: %s", dotenv_path)
    else:
        logger.info(
            "No .env file found in project root ('%s'). Relying on system environment variables if any.",
            project_root
        )


def _build_languages(languages_list: List[Any]) -> List[Language]:
    """
    Build Language entries from the `languages` list.

    Entries are either a bare id or a mapping with `id` and an optional
    `folder_name`.
    """
    languages: List[Language] = []
    for entry in languages_list:
        if isinstance(entry, str):
            languages.append(Language(id=entry))
        elif isinstance(entry, dict) and entry.get('id'):
            languages.append(Language(id=entry['id'], folder_name=entry.get('folder_name')))
    return languages


def _find_language(languages: List[Language], language_id: Optional[str]) -> Optional[Language]:
    if not language_id:
        return None
    for language in languages:
        if language.id == language_id:
            return language
    raise ValueError(f"Export language '{language_id}' is not one of the configured languages.")


def load_app_config() -> AppConfig:
    """
    Load application configuration from YAML file and environment variables.

    Returns:
        AppConfig: The loaded application configuration.

    Raises:
        ValueError: If the operation is unknown or the export language is not configured.
    """
    project_root = _compute_project_root()

    dotenv_path = _load_dotenv_file(project_root)

    config = _load_yaml_config(project_root)

    logger = _setup_logger_from_config(config)

    _log_dotenv_status(logger, project_root, dotenv_path)

    operation = os.environ.get('NLS_OPERATION', config.get('operation', 'export'))
    if operation not in OPERATIONS:
        raise ValueError(f"Unknown operation '{operation}'. Expected one of: {', '.join(OPERATIONS)}.")

    languages = _build_languages(config.get('languages', []))
    export_language = _find_language(
        languages, os.environ.get('NLS_EXPORT_LANGUAGE', config.get('export_language')))

    build_output_folder = config.get('build_output_folder', os.path.join(project_root, 'out'))

    return AppConfig(
        project_root=project_root,
        operation=operation,
        build_output_folder=build_output_folder,
        extension_id=config.get('extension_id', 'extension'),
        out_dir=config.get('out_dir', 'out'),
        project_name=config.get('project_name', 'project'),
        extension_name=config.get('extension_name', 'extension'),
        xlf_folder=config.get('xlf_folder', os.path.join(project_root, 'xlf')),
        languages=languages,
        export_language=export_language,
        i18n_base_dir=config.get('i18n_base_dir', os.path.join(project_root, 'i18n')),
        i18n_sub_dir=config.get('i18n_sub_dir'),
        prolog=config.get('prolog', ''),
        log_problems=config.get('log_problems', True),
    )
