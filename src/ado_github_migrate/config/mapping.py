"""Loading of the permission mapping file."""

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import ValidationError

from ..models.permission import PermissionMappingEntry, PermissionMappingTable
from .exceptions import ConfigError, ConfigErrorKind

SAMPLE_MAPPING = {
    'mappings': [
        {'sourceGroup': 'Project Administrators', 'destinationTeam': 'admins', 'role': 'admin'},
        {'sourceGroup': 'Contributors', 'destinationTeam': 'dev-team', 'role': 'push'},
        {'sourceGroup': 'Readers', 'destinationTeam': 'readers', 'role': 'pull'},
    ],
    'users': {
        'alice@contoso.com': 'alice-gh',
    },
}


def load_permission_mappings(path: str) -> PermissionMappingTable:
    """Read and validate a permission mapping file.

    The file holds either a list of entries or a document with a
    ``mappings`` list and an optional ``users`` override table. JSON files
    are accepted as well since JSON is valid YAML.

    Args:
        path: Mapping file path

    Returns:
        The mapping table, in file order

    Raises:
        ConfigError: MISSING_FILE if the file can't be read,
            MALFORMED_MAPPING if any part of it is invalid
    """
    mapping_file = Path(path)
    try:
        text = mapping_file.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(
            ConfigErrorKind.MISSING_FILE,
            f'Permission mapping file not readable: {path} ({e})',
        ) from e

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(
            ConfigErrorKind.MALFORMED_MAPPING,
            f'Permission mapping file is not valid YAML/JSON: {path} ({e})',
        ) from e

    return parse_permission_mappings(document, source=str(path))


def parse_permission_mappings(
    document: Any, source: str = '<memory>'
) -> PermissionMappingTable:
    """Validate an already-parsed mapping document."""
    if document is None:
        document = []

    users: Dict[str, str] = {}
    if isinstance(document, dict):
        unknown = set(document) - {'mappings', 'users'}
        if unknown:
            raise ConfigError(
                ConfigErrorKind.MALFORMED_MAPPING,
                f'{source}: unknown top-level keys: {sorted(unknown)}',
            )
        raw_entries = document.get('mappings') or []
        users = document.get('users') or {}
        if not isinstance(users, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in users.items()
        ):
            raise ConfigError(
                ConfigErrorKind.MALFORMED_MAPPING,
                f'{source}: "users" must map source principals to logins',
            )
    else:
        raw_entries = document

    if not isinstance(raw_entries, list):
        raise ConfigError(
            ConfigErrorKind.MALFORMED_MAPPING,
            f'{source}: mapping entries must be a list',
        )

    entries: List[PermissionMappingEntry] = []
    for index, raw in enumerate(raw_entries):
        if not isinstance(raw, dict):
            raise ConfigError(
                ConfigErrorKind.MALFORMED_MAPPING,
                f'{source}: entry {index} is not a mapping',
            )
        try:
            entries.append(PermissionMappingEntry(**raw))
        except (ValidationError, TypeError) as e:
            raise ConfigError(
                ConfigErrorKind.MALFORMED_MAPPING,
                f'{source}: entry {index} is invalid: {e}',
            ) from e

    return PermissionMappingTable(entries=tuple(entries), users=users)


def write_sample_mapping(output_path: str) -> None:
    """Write an example mapping file."""
    mapping_file = Path(output_path)
    mapping_file.parent.mkdir(parents=True, exist_ok=True)

    with open(mapping_file, 'w', encoding='utf-8') as f:
        yaml.dump(SAMPLE_MAPPING, f, default_flow_style=False, indent=2, sort_keys=False)
