"""
The files of the provider: the desired configuration (YAML) and the state (JSON).

The configuration is what the user wants::

    subscriptions:
      example:
        certificate_authority: lets-encrypt
        domains: [example.com, www.example.com]
        common_name: example.com

The state is what the provider knows about the remote objects after
the latest operation; it is written by the provider only::

    {"version": 1, "subscriptions": {"example": {"id": "...", "attributes": {...}}}}
"""
import dataclasses
import json
import os
import tempfile
from typing import Any, Dict, Mapping

import yaml

STATE_VERSION = 1
SECTION = 'subscriptions'


class ConfigurationError(Exception):
    """ The configuration or the state file is malformed. """


@dataclasses.dataclass
class ResourceRecord:
    id: str
    attributes: Dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class State:
    version: int = STATE_VERSION
    records: Dict[str, ResourceRecord] = dataclasses.field(default_factory=dict)


def load_config(path: str) -> Dict[str, Dict[str, Any]]:
    """ Load the desired resources by their names. An empty file means no resources. """
    try:
        with open(path, 'rt', encoding='utf-8') as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse the configuration {path!r}: {e}") from e

    raw = raw if raw is not None else {}
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"The configuration {path!r} must be a mapping.")
    unexpected = sorted(set(raw) - {SECTION})
    if unexpected:
        raise ConfigurationError(f"Unexpected sections in {path!r}: {unexpected!r}")

    section = raw.get(SECTION) or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"The section {SECTION!r} in {path!r} must be a mapping.")
    configs: Dict[str, Dict[str, Any]] = {}
    for name, config in section.items():
        if not isinstance(config, Mapping):
            raise ConfigurationError(f"The resource {name!r} in {path!r} must be a mapping.")
        configs[str(name)] = dict(config)
    return configs


def load_state(path: str) -> State:
    """ Load the state; an absent file means nothing is created yet. """
    if not os.path.exists(path):
        return State()
    try:
        with open(path, 'rt', encoding='utf-8') as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Cannot parse the state {path!r}: {e}") from e

    if not isinstance(raw, Mapping) or raw.get('version') != STATE_VERSION:
        raise ConfigurationError(f"Unsupported state format in {path!r}.")
    records = {
        name: ResourceRecord(id=record['id'], attributes=dict(record.get('attributes') or {}))
        for name, record in (raw.get(SECTION) or {}).items()
    }
    return State(version=STATE_VERSION, records=records)


def save_state(path: str, state: State) -> None:
    """ Save the state atomically: either the old or the new file remains, never a broken one. """
    raw = {
        'version': state.version,
        SECTION: {
            name: {'id': record.id, 'attributes': record.attributes}
            for name, record in sorted(state.records.items())
        },
    }
    dirname = os.path.dirname(os.path.abspath(path))
    fd, tmppath = tempfile.mkstemp(dir=dirname, prefix='.certsub-', suffix='.tmp')
    try:
        with os.fdopen(fd, 'wt', encoding='utf-8') as f:
            json.dump(raw, f, indent=2, sort_keys=True)
            f.write('\n')
        os.replace(tmppath, path)
    except BaseException:
        os.unlink(tmppath)
        raise
