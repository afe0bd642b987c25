"""Tests for local and sudo-backed document stores."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from nixboot.core.exceptions import DocumentIOError, ExternalCommandError
from nixboot.infrastructure.files import LocalDocumentStore, SudoDocumentStore

from conftest import FakeRunner


class TestLocalDocumentStore:
    def test_write_new_file(self, tmp_path: Path):
        path = tmp_path / "bootstrap-module.nix"
        LocalDocumentStore().write(path, "{ }\n")

        assert path.read_text() == "{ }\n"
        assert stat.S_IMODE(path.stat().st_mode) == 0o644
        assert os.listdir(tmp_path) == ["bootstrap-module.nix"]

    def test_write_keeps_existing_mode(self, tmp_path: Path):
        path = tmp_path / "configuration.nix"
        path.write_text("{ }")
        path.chmod(0o600)

        LocalDocumentStore().write(path, "{ x = 1; }")

        assert path.read_text() == "{ x = 1; }"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_write_into_missing_directory(self, tmp_path: Path):
        with pytest.raises(DocumentIOError):
            LocalDocumentStore().write(tmp_path / "missing" / "a.nix", "{ }")

    def test_read_missing_file(self, tmp_path: Path):
        store = LocalDocumentStore()
        assert not store.exists(tmp_path / "a.nix")
        with pytest.raises(DocumentIOError):
            store.read(tmp_path / "a.nix")

    def test_copy_into(self, tmp_path: Path):
        source = tmp_path / "configuration.nix"
        source.write_text("{ }")
        backup = tmp_path / "backup"
        backup.mkdir()

        copied = LocalDocumentStore().copy_into(source, backup)

        assert copied == backup / "configuration.nix"
        assert copied.read_text() == "{ }"


class TestSudoDocumentStore:
    def test_write_existing_file(self, tmp_path: Path):
        path = tmp_path / "configuration.nix"
        path.write_text("{ }")
        tmp = str(tmp_path / ".configuration.nix.nixos-bootstrap.tmp")
        runner = FakeRunner()

        SudoDocumentStore(runner).write(path, "{ x = 1; }")

        assert runner.argvs == [
            ["sudo", "tee", tmp],
            ["sudo", "chmod", f"--reference={path}", tmp],
            ["sudo", "mv", "-f", tmp, str(path)],
        ]
        assert runner.calls[0]["input_text"] == "{ x = 1; }"

    def test_write_new_file_uses_default_mode(self, tmp_path: Path):
        path = tmp_path / "bootstrap-module.nix"
        runner = FakeRunner()

        SudoDocumentStore(runner, sudo=["doas"]).write(path, "{ }")

        assert runner.argvs[1] == [
            "doas", "chmod", "644", str(tmp_path / ".bootstrap-module.nix.nixos-bootstrap.tmp"),
        ]

    def test_failed_rename_removes_temp_file(self, tmp_path: Path):
        path = tmp_path / "configuration.nix"
        tmp = str(tmp_path / ".configuration.nix.nixos-bootstrap.tmp")
        runner = FakeRunner({("sudo", "mv"): (1, "", "mv: cannot move")})

        with pytest.raises(DocumentIOError, match="cannot move"):
            SudoDocumentStore(runner).write(path, "{ }")

        assert runner.argvs[-1] == ["sudo", "rm", "-f", tmp]

    def test_failed_tee_removes_partial_file(self, tmp_path: Path):
        tmp = str(tmp_path / ".a.nix.nixos-bootstrap.tmp")
        runner = FakeRunner({("sudo", "tee"): (1, "", "tee: No space left on device")})

        with pytest.raises(DocumentIOError, match="No space left"):
            SudoDocumentStore(runner).write(tmp_path / "a.nix", "{ }")

        assert runner.argvs == [["sudo", "tee", tmp], ["sudo", "rm", "-f", tmp]]

    def test_failed_cleanup_keeps_original_error(self, tmp_path: Path):
        runner = FakeRunner({
            ("sudo", "mv"): (1, "", "mv: cannot move"),
            ("sudo", "rm"): ExternalCommandError("Command not found: sudo"),
        })
        with pytest.raises(DocumentIOError, match="cannot move"):
            SudoDocumentStore(runner).write(tmp_path / "a.nix", "{ }")

    def test_missing_sudo(self, tmp_path: Path):
        runner = FakeRunner({("sudo",): ExternalCommandError("Command not found: sudo")})
        with pytest.raises(DocumentIOError, match="Command not found"):
            SudoDocumentStore(runner).copy_into(tmp_path / "a.nix", tmp_path)

    def test_copy_into(self, tmp_path: Path):
        runner = FakeRunner()
        copied = SudoDocumentStore(runner).copy_into(Path("/etc/nixos/configuration.nix"), tmp_path)
        assert copied == tmp_path / "configuration.nix"
        assert runner.argvs == [["sudo", "cp", "/etc/nixos/configuration.nix", f"{tmp_path}/"]]

    def test_read_without_sudo(self, tmp_path: Path):
        path = tmp_path / "configuration.nix"
        path.write_text("{ }")
        runner = FakeRunner()
        assert SudoDocumentStore(runner).read(path) == "{ }"
        assert runner.calls == []

    def test_read_missing_file(self, tmp_path: Path):
        with pytest.raises(DocumentIOError):
            SudoDocumentStore(FakeRunner()).read(tmp_path / "missing.nix")
