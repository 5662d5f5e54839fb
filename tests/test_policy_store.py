import json

import pytest

from mag.constants import TOOL_FILE
from mag.errors import ConfigurationError
from mag.policy.checker import create_policy_checker
from mag.policy.settings import Operation, create_default_settings
from mag.policy.store import PolicyStore


def test_load_or_create_writes_defaults(workdir) -> None:
    store = PolicyStore(workdir)
    settings = store.load_or_create()
    assert store.policy_file == workdir / ".mag" / "policy.json"
    assert store.policy_file.exists()
    assert settings == create_default_settings()
    assert json.loads(store.policy_file.read_text())["version"] == "1.0"


def test_save_then_load(workdir) -> None:
    store = PolicyStore(workdir)
    settings = create_default_settings()
    settings.global_settings.auto_backup = True
    store.save(settings)
    assert store.load() == settings
    assert list(store.policy_dir.iterdir()) == [store.policy_file]


def test_invalid_json_is_fatal_and_not_overwritten(workdir) -> None:
    store = PolicyStore(workdir)
    store.policy_dir.mkdir()
    store.policy_file.write_text("{not json")
    with pytest.raises(ConfigurationError):
        store.load_or_create()
    assert store.policy_file.read_text() == "{not json"


def test_schema_violation_is_fatal(workdir) -> None:
    store = PolicyStore(workdir)
    data = create_default_settings().to_dict()
    del data["global"]["auto_backup"]
    store.policy_dir.mkdir()
    store.policy_file.write_text(json.dumps(data))
    with pytest.raises(ConfigurationError, match="global.auto_backup"):
        store.load()


def test_invariant_violation_is_fatal(workdir) -> None:
    store = PolicyStore(workdir)
    data = create_default_settings().to_dict()
    data["tools"][TOOL_FILE]["create"]["allowed_directories"] = ["src"]
    store.policy_dir.mkdir()
    store.policy_file.write_text(json.dumps(data))
    with pytest.raises(ConfigurationError, match="must end with '/'"):
        store.load()


def test_create_policy_checker_uses_working_directory(workdir) -> None:
    checker = create_policy_checker(working_directory=str(workdir))
    assert (workdir / ".mag" / "policy.json").exists()
    assert checker.is_allowed(TOOL_FILE, Operation.CREATE, "src/a.py")
