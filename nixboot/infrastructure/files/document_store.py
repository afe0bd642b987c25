"""
File-based document storage implementations
"""
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from ...core.constants import DEFAULT_SUDO_COMMAND, FRAGMENT_MODE, TOOL_NAME
from ...core.exceptions import DocumentIOError, ExternalCommandError
from ...core.interfaces import CommandRunner, DocumentStore
from ...core.logging import get_logger

logger = get_logger(__name__)


def _temp_sibling(path: Path) -> Path:
    """Temporary file next to path, so the final rename stays on one filesystem"""
    return path.with_name(f".{path.name}.{TOOL_NAME}.tmp")


class LocalDocumentStore(DocumentStore):
    """
    Document store for files the current user can write.

    Writes go to a temporary file in the target directory which then
    replaces the target with os.replace.
    """

    def exists(self, path: Path) -> bool:
        return path.exists()

    def read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise DocumentIOError(f"Cannot read {path}: {e}") from e

    def write(self, path: Path, text: str) -> None:
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())

            if path.exists():
                shutil.copymode(path, tmp_name)
            else:
                os.chmod(tmp_name, FRAGMENT_MODE)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise DocumentIOError(f"Cannot write {path}: {e}") from e

    def copy_into(self, path: Path, directory: Path) -> Path:
        try:
            return Path(shutil.copy2(path, directory))
        except OSError as e:
            raise DocumentIOError(f"Cannot copy {path} to {directory}: {e}") from e


class SudoDocumentStore(DocumentStore):
    """
    Document store for root-owned files, every mutation goes through sudo.

    A write streams the text into a sibling temporary file with `tee`, copies
    the original file's mode onto it and renames it over the original.
    """

    def __init__(self, runner: CommandRunner, sudo: Optional[Sequence[str]] = None):
        self.runner = runner
        self.sudo: List[str] = list(DEFAULT_SUDO_COMMAND if sudo is None else sudo)

    def _run(self, *args: str, input_text: Optional[str] = None, action: str) -> None:
        try:
            result = self.runner.run([*self.sudo, *args], input_text=input_text)
        except ExternalCommandError as e:
            raise DocumentIOError(f"Cannot {action}: {e}") from e
        if not result.ok:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise DocumentIOError(f"Cannot {action}: {detail}")

    def exists(self, path: Path) -> bool:
        return path.exists()

    def read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except PermissionError:
            logger.debug(f"{path} is not readable, retrying with sudo")
        except OSError as e:
            raise DocumentIOError(f"Cannot read {path}: {e}") from e

        try:
            result = self.runner.run([*self.sudo, "cat", str(path)])
        except ExternalCommandError as e:
            raise DocumentIOError(f"Cannot read {path}: {e}") from e
        if not result.ok:
            raise DocumentIOError(f"Cannot read {path}: {result.stderr.strip()}")
        return result.stdout

    def write(self, path: Path, text: str) -> None:
        tmp = _temp_sibling(path)
        try:
            self._run("tee", str(tmp), input_text=text, action=f"write {tmp}")
            if path.exists():
                self._run("chmod", f"--reference={path}", str(tmp), action=f"set mode of {tmp}")
            else:
                self._run("chmod", format(FRAGMENT_MODE, "o"), str(tmp), action=f"set mode of {tmp}")
            self._run("mv", "-f", str(tmp), str(path), action=f"replace {path}")
        except DocumentIOError:
            self._discard(tmp)
            raise

    def _discard(self, tmp: Path) -> None:
        """Remove a leftover temp file, failures are only logged"""
        try:
            result = self.runner.run([*self.sudo, "rm", "-f", str(tmp)])
        except ExternalCommandError as e:
            logger.warning(f"Could not remove {tmp}: {e}")
            return
        if not result.ok:
            logger.warning(f"Could not remove {tmp}: {result.stderr.strip()}")

    def copy_into(self, path: Path, directory: Path) -> Path:
        self._run("cp", str(path), f"{directory}/", action=f"copy {path} to {directory}")
        return directory / path.name
