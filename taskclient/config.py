"""Configuration management for the task list client."""

import os
import json
import logging
from dataclasses import dataclass
from typing import Dict, Any

from .schemas import ValidationMode, PersistenceMode, MissingDuePosition

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = os.path.join(os.path.expanduser('~'), '.taskclient', 'config.json')

DEFAULTS: Dict[str, Any] = {
    'server_url': 'http://127.0.0.1:8000',
    'snapshot_path': os.path.join(os.path.expanduser('~'), '.taskclient', 'tasks.db'),
    'validation_mode': ValidationMode.STRICT.value,
    'persistence_mode': PersistenceMode.SNAPSHOT.value,
    'missing_due_date': MissingDuePosition.LAST.value,
    'rollback_on_save_failure': False,
}


class Config:
    """JSON-file backed configuration for the task list client.

    Setters write the file immediately. A missing file yields the defaults
    without creating anything on disk.
    """

    def __init__(self, config_file: str = None):
        self.config_file = config_file or os.getenv('TASKCLIENT_CONFIG', DEFAULT_CONFIG_FILE)
        self._config: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from file."""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r') as f:
                    self._config = json.load(f)
            except (OSError, ValueError):
                # corrupted file: start from defaults
                logger.warning('could not read %s; using defaults', self.config_file)
                self._config = {}
        else:
            self._config = {}

    def save(self) -> None:
        """Save configuration to file."""
        os.makedirs(os.path.dirname(self.config_file) or '.', exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(self._config, f, indent=2)

    def _get(self, key: str):
        return self._config.get(key, DEFAULTS[key])

    def _set(self, key: str, value) -> None:
        self._config[key] = value
        self.save()

    @property
    def server_url(self) -> str:
        return self._get('server_url')

    @server_url.setter
    def server_url(self, value: str):
        self._set('server_url', value)

    @property
    def snapshot_path(self) -> str:
        return self._get('snapshot_path')

    @snapshot_path.setter
    def snapshot_path(self, value: str):
        self._set('snapshot_path', value)

    @property
    def validation_mode(self) -> ValidationMode:
        return ValidationMode(self._get('validation_mode'))

    @validation_mode.setter
    def validation_mode(self, value):
        self._set('validation_mode', ValidationMode(value).value)

    @property
    def persistence_mode(self) -> PersistenceMode:
        return PersistenceMode(self._get('persistence_mode'))

    @persistence_mode.setter
    def persistence_mode(self, value):
        self._set('persistence_mode', PersistenceMode(value).value)

    @property
    def missing_due_date(self) -> MissingDuePosition:
        return MissingDuePosition(self._get('missing_due_date'))

    @missing_due_date.setter
    def missing_due_date(self, value):
        self._set('missing_due_date', MissingDuePosition(value).value)

    @property
    def rollback_on_save_failure(self) -> bool:
        return bool(self._get('rollback_on_save_failure'))

    @rollback_on_save_failure.setter
    def rollback_on_save_failure(self, value: bool):
        self._set('rollback_on_save_failure', bool(value))


@dataclass(frozen=True)
class EngineSettings:
    """Knobs that select between the behaviors of the engine."""
    validation_mode: ValidationMode = ValidationMode.STRICT
    persistence_mode: PersistenceMode = PersistenceMode.SNAPSHOT
    missing_due_date: MissingDuePosition = MissingDuePosition.LAST
    rollback_on_save_failure: bool = False
    server_url: str = DEFAULTS['server_url']
    snapshot_path: str = DEFAULTS['snapshot_path']

    @classmethod
    def from_config(cls, cfg: Config) -> 'EngineSettings':
        return cls(
            validation_mode=cfg.validation_mode,
            persistence_mode=cfg.persistence_mode,
            missing_due_date=cfg.missing_due_date,
            rollback_on_save_failure=cfg.rollback_on_save_failure,
            server_url=cfg.server_url,
            snapshot_path=cfg.snapshot_path,
        )
