import json

from taskclient.config import Config, EngineSettings
from taskclient.engine import build_store
from taskclient.client import RemoteTaskStore
from taskclient.local_store import SnapshotStore
from taskclient.schemas import MissingDuePosition, PersistenceMode, ValidationMode


def test_defaults_without_file(tmp_path):
    cfg = Config(str(tmp_path / 'missing.json'))
    assert cfg.validation_mode == ValidationMode.STRICT
    assert cfg.persistence_mode == PersistenceMode.SNAPSHOT
    assert cfg.missing_due_date == MissingDuePosition.LAST
    assert cfg.rollback_on_save_failure is False
    # reading defaults does not create the file
    assert not (tmp_path / 'missing.json').exists()


def test_setters_persist(tmp_path):
    path = tmp_path / 'cfg' / 'config.json'
    cfg = Config(str(path))
    cfg.validation_mode = 'minimal'
    cfg.persistence_mode = PersistenceMode.REMOTE
    cfg.server_url = 'http://tasks.local:9000'
    data = json.loads(path.read_text())
    assert data['validation_mode'] == 'minimal'
    assert data['persistence_mode'] == 'remote'

    again = Config(str(path))
    settings = EngineSettings.from_config(again)
    assert settings.validation_mode == ValidationMode.MINIMAL
    assert settings.persistence_mode == PersistenceMode.REMOTE
    assert settings.server_url == 'http://tasks.local:9000'


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text('{not json')
    cfg = Config(str(path))
    assert cfg.persistence_mode == PersistenceMode.SNAPSHOT


def test_build_store_follows_persistence_mode(tmp_path):
    snap = build_store(EngineSettings(snapshot_path=str(tmp_path / 't.db')))
    assert isinstance(snap, SnapshotStore)
    remote = build_store(EngineSettings(persistence_mode=PersistenceMode.REMOTE, server_url='http://127.0.0.1:1'))
    assert isinstance(remote, RemoteTaskStore)
    remote.close()
