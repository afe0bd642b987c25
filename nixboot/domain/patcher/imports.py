"""
Import list patching

Ensures a Nix configuration document imports a given file exactly once.
The transformation itself (ensure_import) is a pure function of the
document text and the reference; apply_import wires it to a DocumentStore.
"""
import re
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple

from ...core.exceptions import MalformedDocumentError
from ...core.interfaces import DocumentStore
from ...core.logging import get_logger
from .models import PatchOutcome, PatchResult
from .scanner import (
    OPENERS,
    brace_depth,
    find_closing,
    is_balanced,
    mask_source,
    next_significant,
    balanced_masked,
)

logger = get_logger(__name__)

# `imports = [` as an attribute name, not a suffix of another identifier or attr path
IMPORTS_PATTERN = re.compile(r"(?<![\w'.-])imports\s*=\s*\[")

DEFAULT_INDENT = "  "

# Identifiers and keywords in masked source
WORD_PATTERN = re.compile(r"[A-Za-z_][\w'-]*")

# A word preceded by one of these is part of a path, attr path or longer name
WORD_PREFIX_CHARS = "_'.-/"

# Characters that may follow `scheme:` in a URI literal
URI_CHAR_PATTERN = re.compile(r"[\w%/?:@&=+$,.!~*'-]")


# ============================================================
# Reference Detection
# ============================================================

def _reference_pattern(reference: str) -> re.Pattern:
    name = PurePosixPath(reference.strip()).name
    if not name:
        raise ValueError(f"Invalid import reference: {reference!r}")
    return re.compile(r"(?<![\w.-])" + re.escape(name) + r"(?![\w.-])")


def contains_reference(text: str, reference: str) -> bool:
    """
    Check if the document mentions the referenced file anywhere.

    The file name is matched as a whole path component, comments included:
    './b.nix', '/etc/nixos/b.nix' and '# b.nix' all count, 'ab.nix' does not.
    This is stricter than a substring search: './b.nix.bak' contains the
    literal reference but names a different file, so it does not count
    and the reference is added.
    """
    return _reference_pattern(reference).search(text) is not None


# ============================================================
# Existing List
# ============================================================

def find_imports_list(masked: str) -> Optional[Tuple[int, int]]:
    """
    Locate the imports list in masked source.

    Returns:
        (open_bracket, close_bracket) offsets of the least nested list, or None
    """
    candidates = []
    for m in IMPORTS_PATTERN.finditer(masked):
        open_pos = m.end() - 1
        close = find_closing(masked, open_pos)
        if close is None:
            raise MalformedDocumentError("Unterminated imports list in configuration")
        candidates.append((brace_depth(masked, m.start()), open_pos, close))

    if not candidates:
        return None

    _, open_pos, close = min(candidates, key=lambda c: c[0])
    return open_pos, close


def _line_indent(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def _append_entry(text: str, open_pos: int, close: int, reference: str) -> str:
    """Append reference as the last entry of the list text[open_pos:close + 1]"""
    nl = _newline(text)
    body = text[open_pos + 1:close]
    content = body.rstrip()
    trailing = body[len(content):]

    if "\n" not in body:
        if content.strip():
            new_body = f"{content} {reference}{trailing}"
        else:
            new_body = f" {reference} "
    elif content.strip():
        last = content.rfind("\n")
        if last == -1:
            indent = _line_indent(trailing.rsplit("\n", 1)[-1]) + DEFAULT_INDENT
        else:
            indent = _line_indent(content[last + 1:])
        new_body = f"{content}{nl}{indent}{reference}{trailing}"
    else:
        indent = _line_indent(body.rsplit("\n", 1)[-1]) + DEFAULT_INDENT
        new_body = f"{nl}{indent}{reference}{body}"

    return text[:open_pos + 1] + new_body + text[close:]


# ============================================================
# New List
# ============================================================

def _word_at(masked: str, pos: int) -> Optional[re.Match]:
    """Identifier starting at pos, unless pos is inside a path or attribute name"""
    if pos > 0 and (masked[pos - 1].isalnum() or masked[pos - 1] in WORD_PREFIX_CHARS):
        return None
    return WORD_PATTERN.match(masked, pos)


def _skip_let(masked: str, pos: int) -> Optional[int]:
    """Offset just past the `in` closing a `let` whose bindings start at pos"""
    depth = 1
    k = pos
    n = len(masked)
    while k < n:
        c = masked[k]
        if c in OPENERS:
            close = find_closing(masked, k)
            if close is None:
                return None
            k = close + 1
            continue
        m = _word_at(masked, k)
        if m is None:
            k += 1
            continue
        if m.group(0) == "let":
            depth += 1
        elif m.group(0) == "in":
            depth -= 1
            if depth == 0:
                return m.end()
        k = m.end()
    return None


def _skip_statement(masked: str, pos: int) -> Optional[int]:
    """Offset just past the `;` ending a `with` or `assert` prefix"""
    k = pos
    n = len(masked)
    while k < n:
        c = masked[k]
        if c in OPENERS:
            close = find_closing(masked, k)
            if close is None:
                return None
            k = close + 1
        elif c == ";":
            return k + 1
        else:
            k += 1
    return None


def _skip_formals(masked: str, pos: int) -> Optional[int]:
    """
    Offset just past a function header starting at pos, or None if there is none.

    Handles `{ ... }:`, `{ ... }@args:`, `args@{ ... }:` and `args:`.
    """
    n = len(masked)
    if masked[pos] == "{":
        close = find_closing(masked, pos)
        if close is None:
            return None
        k = next_significant(masked, close + 1)
        if k < n and masked[k] == "@":
            m = WORD_PATTERN.match(masked, next_significant(masked, k + 1))
            if m is None:
                return None
            k = next_significant(masked, m.end())
        return k + 1 if k < n and masked[k] == ":" else None

    m = _word_at(masked, pos)
    if m is None:
        return None
    k = next_significant(masked, m.end())
    if k < n and masked[k] == "@":
        k = next_significant(masked, k + 1)
        if k >= n or masked[k] != "{":
            return None
        close = find_closing(masked, k)
        if close is None:
            return None
        k = next_significant(masked, close + 1)
    # `scheme:rest` is a URI literal, not a lambda
    if k < n and masked[k] == ":" and (k + 1 >= n or not URI_CHAR_PATTERN.match(masked[k + 1])):
        return k + 1
    return None


def find_body_brace(masked: str) -> Optional[int]:
    """
    Locate the opening brace of the document's outer attribute set.

    Walks the top-level expression: function headers, `let ... in`,
    `with ...;`, `assert ...;` and `rec` are skipped, and the first `{`
    left over must be the body. Anything else (a call, a parenthesized
    expression, a plain value) has no body to insert into.
    """
    n = len(masked)
    pos = next_significant(masked, 0)
    while pos < n:
        header_end = _skip_formals(masked, pos)
        if header_end is not None:
            pos = next_significant(masked, header_end)
            continue
        if masked[pos] == "{":
            return pos

        m = _word_at(masked, pos)
        if m is None:
            return None
        keyword = m.group(0)
        if keyword == "let":
            end = _skip_let(masked, m.end())
        elif keyword in ("with", "assert"):
            end = _skip_statement(masked, m.end())
        elif keyword == "rec":
            end = m.end()
        else:
            return None
        if end is None:
            return None
        pos = next_significant(masked, end)
    return None


def _body_indent(text: str, line_end: int, close: int) -> str:
    """Indentation of the first non-blank line inside the attribute set"""
    for line in text[line_end + 1:close].split("\n"):
        if line.strip():
            return _line_indent(line)
    return DEFAULT_INDENT


def _insert_imports(text: str, masked: str, reference: str) -> str:
    open_pos = find_body_brace(masked)
    if open_pos is None:
        raise MalformedDocumentError(
            "Could not find the opening brace of the configuration attribute set"
        )
    close = find_closing(masked, open_pos)
    head = text[:open_pos + 1]
    rest = text[open_pos + 1:]

    if "\n" not in text[open_pos:close]:
        attr = f" imports = [ {reference} ];"
        if rest[:1] not in (" ", "\t"):
            attr += " "
        return head + attr + rest

    nl = _newline(text)
    line_end = text.index("\n", open_pos)
    indent = _body_indent(text, line_end, close)
    block = f"{nl}{indent}imports = [{nl}{indent}{DEFAULT_INDENT}{reference}{nl}{indent}];"

    # Content after the brace on the same line moves to its own line
    if text[open_pos + 1:line_end].strip():
        return head + block + nl + indent + rest.lstrip(" \t")
    return head + block + rest


# ============================================================
# Public API
# ============================================================

def ensure_import(text: str, reference: str) -> PatchResult:
    """
    Ensure the document imports reference exactly once.

    Args:
        text: Configuration document text
        reference: Import entry to add, e.g. './bootstrap-module.nix'

    Returns:
        PatchResult with the new text and what was done

    Raises:
        MalformedDocumentError: If the document has unbalanced brackets or no
            attribute set to add an imports list to
    """
    reference = reference.strip()
    if contains_reference(text, reference):
        return PatchResult(text=text, outcome=PatchOutcome.ALREADY_PRESENT)

    masked = mask_source(text)
    if not balanced_masked(masked):
        raise MalformedDocumentError("Configuration has unbalanced brackets, refusing to edit it")

    span = find_imports_list(masked)
    if span is not None:
        new_text = _append_entry(text, span[0], span[1], reference)
        outcome = PatchOutcome.APPENDED
    else:
        new_text = _insert_imports(text, masked, reference)
        outcome = PatchOutcome.CREATED

    if not is_balanced(new_text):
        raise MalformedDocumentError(f"Adding {reference} would unbalance the configuration")

    return PatchResult(text=new_text, outcome=outcome)


def apply_import(store: DocumentStore, path: Path, reference: str) -> PatchResult:
    """
    Patch the document at path in place.

    Nothing is written when the reference is already present. Otherwise the
    file is replaced atomically by the store.

    Raises:
        DocumentIOError: If the file cannot be read or written
        MalformedDocumentError: See ensure_import
    """
    text = store.read(path)
    result = ensure_import(text, reference)

    if result.changed:
        store.write(path, result.text)
        logger.info(f"Added {reference} to imports of {path} ({result.outcome.value})")
    else:
        logger.info(f"{reference} already referenced by {path}")

    return result
