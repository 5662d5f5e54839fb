import threading

import pytest

from mag.constants import TOOL_BASH, TOOL_FILE, TOOL_TODO
from mag.errors import ValidationError
from mag.policy.checker import PolicyChecker
from mag.policy.settings import Operation, PolicySettings, create_default_settings, validate_schema
from mag.policy.store import PolicyStore


def test_default_file_create_directories(policy: PolicyChecker) -> None:
    assert policy.is_allowed(TOOL_FILE, Operation.CREATE, "src/main.py")
    assert policy.is_allowed(TOOL_FILE, Operation.CREATE, "tests/test_main.py")
    assert policy.is_allowed(TOOL_FILE, Operation.CREATE, "docs/index.md")
    assert not policy.is_allowed(TOOL_FILE, Operation.CREATE, "main.py")
    assert not policy.is_allowed(TOOL_FILE, Operation.CREATE, "srcfoo/main.py")


def test_update_is_narrower_than_create(policy: PolicyChecker) -> None:
    assert policy.is_allowed(TOOL_FILE, Operation.UPDATE, "src/main.py")
    assert not policy.is_allowed(TOOL_FILE, Operation.UPDATE, "docs/index.md")


@pytest.mark.parametrize("path", ["../etc/passwd", "src/../../outside.txt", "/etc/passwd"])
def test_paths_outside_working_directory_are_denied(path: str, workdir) -> None:
    settings = create_default_settings()
    settings.tools[TOOL_FILE].create.allowed_directories = [""]
    checker = PolicyChecker(settings, working_directory=str(workdir))
    assert not checker.is_allowed(TOOL_FILE, Operation.CREATE, path)


def test_absolute_path_inside_working_directory_is_checked_relatively(policy: PolicyChecker, workdir) -> None:
    assert policy.is_allowed(TOOL_FILE, Operation.CREATE, str(workdir / "src" / "a.py"))


def test_empty_allow_list_denies_everything(policy: PolicyChecker) -> None:
    assert not policy.is_allowed(TOOL_FILE, Operation.DELETE, "src/main.py")
    assert not policy.is_allowed(TOOL_TODO, Operation.CREATE, ".")


def test_empty_string_directory_allows_any_path_inside(workdir) -> None:
    settings = create_default_settings()
    settings.tools[TOOL_FILE].delete.allowed_directories = [""]
    checker = PolicyChecker(settings, working_directory=str(workdir))
    assert checker.is_allowed(TOOL_FILE, Operation.DELETE, "anything/at/all.txt")


def test_unknown_tool_is_denied(policy: PolicyChecker) -> None:
    assert not policy.is_allowed("net_tool", Operation.CREATE, "src/a.py")


@pytest.mark.parametrize("path", ["src/server.key", "src/cert.PEM", "src/.env", "src/.secret"])
def test_blocked_extensions(policy: PolicyChecker, path: str) -> None:
    assert policy.is_extension_blocked(path)
    assert not policy.is_allowed(TOOL_FILE, Operation.CREATE, path)


def test_plain_extension_not_blocked(policy: PolicyChecker) -> None:
    assert not policy.is_extension_blocked("src/env.py")
    assert not policy.is_extension_blocked("src/Makefile")


def test_file_size_limit(policy: PolicyChecker) -> None:
    assert policy.is_file_size_allowed(10 * 1024 * 1024)
    assert not policy.is_file_size_allowed(10 * 1024 * 1024 + 1)


def test_get_allowed_directories_returns_copy(policy: PolicyChecker) -> None:
    dirs = policy.get_allowed_directories(TOOL_FILE, Operation.CREATE)
    assert dirs == ["src/", "tests/", "docs/"]
    dirs.append("etc/")
    assert policy.get_allowed_directories(TOOL_FILE, Operation.CREATE) == ["src/", "tests/", "docs/"]


def test_requires_confirmation(policy: PolicyChecker) -> None:
    assert policy.requires_confirmation(TOOL_FILE, Operation.CREATE)
    assert not policy.requires_confirmation(TOOL_FILE, Operation.READ)
    assert policy.requires_confirmation("net_tool", Operation.READ)


@pytest.mark.parametrize("command", ["make", "make test", "python3 src/script.py", "git status", "ls -la"])
def test_allowed_commands(policy: PolicyChecker, command: str) -> None:
    assert policy.is_bash_command_allowed(command)
    assert policy.get_bash_command_violation_reason(command) == ""


def test_blocked_command_reason(policy: PolicyChecker) -> None:
    reason = policy.get_bash_command_violation_reason("make && shutdown now")
    assert reason == "Command contains blocked operation: 'shutdown'"


def test_command_outside_allow_list(policy: PolicyChecker) -> None:
    ok, reason = policy.check_bash_command("echo hello")
    assert not ok
    assert reason == "Command not in allowed list: 'echo'"


def test_rm_rf_root_denied_even_with_open_policy(workdir) -> None:
    settings = create_default_settings()
    bash_create = settings.tools[TOOL_BASH].create
    bash_create.allowed_commands = []
    bash_create.blocked_commands = []
    checker = PolicyChecker(settings, working_directory=str(workdir))
    assert checker.is_bash_command_allowed("echo fine")
    assert not checker.is_bash_command_allowed("rm -rf /")
    assert not checker.is_bash_command_allowed("rm   -rf   /")


def test_update_rejects_directory_without_trailing_slash(policy: PolicyChecker) -> None:
    new_settings = policy.settings
    new_settings.tools[TOOL_FILE].create.allowed_directories = ["src"]
    ok, error = policy.update_settings(new_settings)
    assert not ok
    assert error == "Directory 'src' in file_tool.create must end with '/'"
    assert policy.get_allowed_directories(TOOL_FILE, Operation.CREATE) == ["src/", "tests/", "docs/"]


def test_update_rejects_traversal(policy: PolicyChecker) -> None:
    new_settings = policy.settings
    new_settings.tools[TOOL_FILE].create.allowed_directories = ["../up/"]
    ok, error = policy.update_settings(new_settings)
    assert not ok
    assert "path traversal" in error


def test_update_rejects_bad_max_size(policy: PolicyChecker) -> None:
    new_settings = policy.settings
    new_settings.global_settings.max_file_size_mb = 0
    ok, error = policy.update_settings(new_settings)
    assert not ok
    assert error == "global.max_file_size_mb must be between 1 and 1000, got 0"


def test_update_swaps_and_persists(workdir) -> None:
    store = PolicyStore(workdir)
    checker = PolicyChecker(create_default_settings(), store, str(workdir))
    new_settings = checker.settings
    new_settings.tools[TOOL_FILE].create.allowed_directories = ["lib/"]
    ok, error = checker.update_settings(new_settings)
    assert ok, error
    assert checker.is_allowed(TOOL_FILE, Operation.CREATE, "lib/a.py")
    assert not checker.is_allowed(TOOL_FILE, Operation.CREATE, "src/a.py")
    assert store.load().tools[TOOL_FILE].create.allowed_directories == ["lib/"]


def test_caller_copy_does_not_leak_into_active_settings(policy: PolicyChecker) -> None:
    new_settings = policy.settings
    new_settings.tools[TOOL_FILE].create.allowed_directories.append("lib/")
    assert not policy.is_allowed(TOOL_FILE, Operation.CREATE, "lib/a.py")


def test_readers_never_see_partial_updates(workdir) -> None:
    checker = PolicyChecker(create_default_settings(), working_directory=str(workdir))
    first = checker.settings
    first.tools[TOOL_FILE].create.allowed_directories = ["a/"]
    first.tools[TOOL_FILE].update.allowed_directories = ["a/"]
    second = checker.settings
    second.tools[TOOL_FILE].create.allowed_directories = ["b/"]
    second.tools[TOOL_FILE].update.allowed_directories = ["b/"]
    mixed = []
    done = threading.Event()

    def writer() -> None:
        for _ in range(200):
            checker.update_settings(first)
            checker.update_settings(second)
        done.set()

    thread = threading.Thread(target=writer)
    thread.start()
    while not done.is_set():
        snapshot = checker.settings
        create = snapshot.tools[TOOL_FILE].create.allowed_directories
        update = snapshot.tools[TOOL_FILE].update.allowed_directories
        if create != update and create != ["src/", "tests/", "docs/"]:
            mixed.append((create, update))
    thread.join()
    assert mixed == []


def test_settings_round_trip() -> None:
    settings = create_default_settings()
    assert PolicySettings.from_dict(settings.to_dict()) == settings


def test_command_lists_only_written_for_bash_tool() -> None:
    data = create_default_settings().to_dict()
    assert "allowed_commands" in data["tools"][TOOL_BASH]["create"]
    assert "allowed_commands" not in data["tools"][TOOL_FILE]["create"]
    assert "blocked_commands" not in data["tools"][TOOL_BASH]["read"]


def test_schema_errors_name_the_field() -> None:
    data = create_default_settings().to_dict()
    data["tools"][TOOL_FILE]["create"]["allowed_directories"] = "src/"
    assert validate_schema(data) == (
        "Missing or invalid 'file_tool.create.allowed_directories' field (must be array)")
    with pytest.raises(ValidationError):
        PolicySettings.from_dict(data)


def test_schema_requires_version() -> None:
    data = create_default_settings().to_dict()
    del data["version"]
    assert validate_schema(data) == "Missing or invalid 'version' field (must be string)"


def test_summary_mentions_tools(policy: PolicyChecker) -> None:
    summary = policy.get_summary()
    assert "file_tool:" in summary
    assert "create: src/, tests/, docs/ [confirm]" in summary
    assert "delete: (disabled)" in summary
