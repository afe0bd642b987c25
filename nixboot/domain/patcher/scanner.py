"""
Structural scanning of Nix source text

The patcher never parses Nix fully. It works on a *masked* copy of the
document in which comments and string literals are blanked out, so that
brackets and keywords inside them are invisible. The masked copy has the
same length and the same newlines as the original, which means every
offset found in it is valid in the original text.
"""
from typing import List, Optional

OPENERS = {"{": "}", "[": "]", "(": ")"}
CLOSERS = {v: k for k, v in OPENERS.items()}

# Escapes inside ''indented strings'': ''' ''$ ''\x
_INDENTED_ESCAPES = ("'''", "''$")


def _blank(chars: List[str], start: int, end: int) -> None:
    """Replace chars[start:end] with spaces, keeping newlines"""
    for k in range(start, end):
        if chars[k] != "\n":
            chars[k] = " "


def _scan_code(text: str, i: int, chars: List[str], nested: bool) -> int:
    """
    Scan code from offset i, blanking comments and strings.

    Returns:
        End of text, or the offset of the closing '}' of an antiquotation
        when nested is True
    """
    n = len(text)
    depth = 0
    while i < n:
        c = text[i]
        if c == "#":
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(chars, i, end)
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            _blank(chars, i, end)
            i = end
        elif c == '"':
            i = _scan_string(text, i, chars, '"')
        elif text.startswith("''", i):
            i = _scan_string(text, i, chars, "''")
        elif c == "{":
            depth += 1
            i += 1
        elif c == "}":
            if nested and depth == 0:
                return i
            depth -= 1
            i += 1
        else:
            i += 1
    return n


def _scan_string(text: str, start: int, chars: List[str], quote: str) -> int:
    """
    Skip a string literal starting at its opening quote and blank it,
    antiquotations included.

    Returns:
        Offset just past the closing quote (or end of text)
    """
    n = len(text)
    i = start + len(quote)
    while i < n:
        if quote == '"':
            if text[i] == "\\":
                i += 2
                continue
            if text[i] == '"':
                i += 1
                break
        else:
            if text.startswith(_INDENTED_ESCAPES, i):
                i += 3
                continue
            if text.startswith("''\\", i):
                i += 4
                continue
            if text.startswith("''", i):
                i += 2
                break
        # `$${` is a literal `${` in both string kinds
        if text.startswith("$$", i):
            i += 2
            continue
        if text.startswith("${", i):
            i = _scan_code(text, i + 2, chars, nested=True) + 1
            continue
        i += 1
    end = min(i, n)
    _blank(chars, start, end)
    return end


def mask_source(text: str) -> str:
    """
    Return text with comments and string literals blanked.

    The result has the same length as text and keeps every newline.
    """
    chars = list(text)
    _scan_code(text, 0, chars, nested=False)
    return "".join(chars)


def is_balanced(text: str) -> bool:
    """Check that braces, brackets and parentheses nest properly, ignoring comments and strings"""
    return balanced_masked(mask_source(text))


def balanced_masked(masked: str) -> bool:
    """Same as is_balanced, for text that is already masked"""
    stack: List[str] = []
    for c in masked:
        if c in OPENERS:
            stack.append(c)
        elif c in CLOSERS:
            if not stack or stack.pop() != CLOSERS[c]:
                return False
    return not stack


def find_closing(masked: str, open_pos: int) -> Optional[int]:
    """
    Find the offset of the bracket closing the one at open_pos.

    Args:
        masked: Masked source text
        open_pos: Offset of an opening bracket

    Returns:
        Offset of the matching closer, or None if unmatched
    """
    stack: List[str] = []
    for k in range(open_pos, len(masked)):
        c = masked[k]
        if c in OPENERS:
            stack.append(c)
        elif c in CLOSERS:
            if not stack or stack.pop() != CLOSERS[c]:
                return None
            if not stack:
                return k
    return None


def brace_depth(masked: str, pos: int) -> int:
    """Number of unclosed '{' before pos"""
    prefix = masked[:pos]
    return prefix.count("{") - prefix.count("}")


def next_significant(masked: str, pos: int) -> int:
    """Offset of the first non-whitespace char at or after pos (len if none)"""
    n = len(masked)
    while pos < n and masked[pos].isspace():
        pos += 1
    return pos
