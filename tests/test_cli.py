import re

import pytest

from dirlock.cli import main
from dirlock.entry import EntryKind, create_entry, list_entries, locks


@pytest.fixture(autouse=True)
def no_environment(monkeypatch):
    monkeypatch.delenv("DIRLOCK_DIR", raising=False)
    monkeypatch.delenv("DIRLOCK_NAME", raising=False)


@pytest.fixture
def no_config(tmp_path):
    return str(tmp_path / "absent.yml")


def test_acquire_prints_lock_id(tmp_path, capsys, no_config):
    lock_dir = str(tmp_path / "locks")
    main(["acquire", "-d", lock_dir, "-n", "build", "-i", "1", "-w", "5", "--no-progress", "-c", no_config])

    lock_id = capsys.readouterr().out.strip()
    assert re.fullmatch(r"[0-9a-f]{32}", lock_id)
    held = list(locks(lock_dir))
    assert [e.id for e in held] == [lock_id]
    assert held[0].name == "build"
    assert len(list_entries(lock_dir)) == 1


def test_acquire_reads_config_file(tmp_path, capsys):
    lock_dir = tmp_path / "shared"
    config = tmp_path / "dirlock.yml"
    config.write_text(f"directory: {lock_dir}\nname: nightly\nmax-wait: 5\n")

    main(["acquire", "-c", str(config)])

    lock_id = capsys.readouterr().out.strip()
    assert [(e.name, e.id) for e in locks(str(lock_dir))] == [("nightly", lock_id)]


def test_acquire_failure_exits(tmp_path, capsys, no_config):
    lock_dir = str(tmp_path)
    for i in range(3):
        create_entry(lock_dir, "build", f"node{i}", f"id{i}", i + 1, EntryKind.LOCK)

    with pytest.raises(SystemExit) as excinfo:
        main(["acquire", "-d", lock_dir, "-n", "build", "--no-progress", "-c", no_config])

    assert excinfo.value.code == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "3 locks found" in captured.err


def test_delete(tmp_path, capsys, no_config):
    lock_dir = str(tmp_path)
    main(["acquire", "-d", lock_dir, "--no-progress", "-c", no_config])
    lock_id = capsys.readouterr().out.strip()

    main(["delete", lock_id, "-d", lock_dir, "-c", no_config])
    assert len(list_entries(lock_dir)) == 0


def test_delete_unknown(tmp_path, capsys, no_config):
    with pytest.raises(SystemExit) as excinfo:
        main(["delete", "nope", "-d", str(tmp_path), "-c", no_config])
    assert excinfo.value.code == 1
    assert "Found 0 entries" in capsys.readouterr().err


def test_list(tmp_path, capsys, no_config):
    create_entry(str(tmp_path), "build", "node1", "abc123", 1700000000000000000, EntryKind.LOCK)
    create_entry(str(tmp_path), "deploy", "node2", "def456", 1700000000000000001, EntryKind.REQUEST)

    main(["list", "-d", str(tmp_path), "-c", no_config])

    captured = capsys.readouterr()
    out = captured.out
    assert "abc123" in out
    assert "abc123" not in captured.err
    assert "def456" in out
    assert "2 entries" in out
