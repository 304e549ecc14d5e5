import re
from typing import NamedTuple

from .decoders import decode_base64, decode_hex_escape
from .patterns import BASE64, LOADSTRING, CallMatch, STRING_CONCAT, HEX_STRINGS, JUNK_CODE, LITERAL_PART

INDENT_UNIT = "    "
OUTDENT_KEYWORDS = ("end", "until", "else", "elseif")
INDENT_KEYWORDS = ("function", "if", "for", "while", "repeat")
BLOCK_OPENERS = ("then", "do")

_BLOCK_COMMENT = re.compile(r'--\[(=*)\[.*?\]\1\]', re.DOTALL)
_LINE_COMMENT = re.compile(r'--.*$', re.MULTILINE)
_BLANK_RUN = re.compile(r'\n\s*\n\s*\n')


class PassResult(NamedTuple):
    code: str
    count: int

    @property
    def modified(self) -> bool:
        return self.count > 0


def strip_comments_and_whitespace(code: str) -> PassResult:
    """
    Removes Lua comments and squeezes runs of blank lines down to one.
    Long-bracket block comments go first so a '--[[' opener is not cut off
    by the line comment rule, leaving the rest of the block behind.
    Always reports a count of 1.
    """
    code = _BLOCK_COMMENT.sub('', code)
    code = _LINE_COMMENT.sub('', code)
    code = _BLANK_RUN.sub('\n\n', code).strip()
    return PassResult(code, 1)


def _quote_decoded_base64(match: re.Match) -> str:
    decoded = decode_base64(match.group(1))
    return '"' + decoded.replace('"', '\\"') + '"'


def decode_base64_calls(code: str) -> PassResult:
    """
    Replaces frombase64/Base64Decode/atob calls (and loadstring(frombase64(...)))
    with a double-quoted literal holding the decoded text.
    The count is taken from a scan of the untouched text across every recognizer,
    so a payload reachable through two recognizers is counted twice.
    """
    count = BASE64.total(code)
    if not count:
        return PassResult(code, 0)

    for pattern in BASE64.recognizers:
        code = pattern.sub(_quote_decoded_base64, code)
    return PassResult(code, count)


def _fold_chain(match: re.Match) -> str:
    parts = (part.group(part.lastindex) for part in LITERAL_PART.finditer(match.group(0)))
    return '"' + ''.join(parts) + '"'


def fold_concatenation(code: str) -> PassResult:
    """Resolves '"a" .. "b" .. "c"' chains into '"abc"'. Each chain counts once."""
    count = 0
    for pattern in STRING_CONCAT.recognizers:
        code, folded = pattern.subn(_fold_chain, code)
        count += folded
    return PassResult(code, count)


def _unwrap_call(match: CallMatch) -> str:
    argument = match.group(1)
    literal = argument.strip()
    if len(literal) >= 2 and literal[0] in '"\'' and literal[-1] == literal[0]:
        return literal[1:-1]
    return argument


def unwrap_loadstring(code: str) -> PassResult:
    """
    Drops loadstring(...)/load(...)/assert(loadstring(...)) wrappers.
    A bare string argument is hoisted out without its quotes; any other
    argument is left in place as written. Nothing is evaluated.
    The hoisted text is not unescaped: a payload that came out of the base64
    pass keeps its \\" escapes, so print("hi") reads print(\\"hi\\").
    """
    count = 0
    for pattern in LOADSTRING.recognizers:
        code, unwrapped = pattern.subn(_unwrap_call, code)
        count += unwrapped
    return PassResult(code, count)


def _decode_escape(match: re.Match) -> str:
    return decode_hex_escape(match.group(1))


def _decode_hex_literal(match: re.Match) -> str:
    escape = HEX_STRINGS.recognizers[0]
    return '"' + escape.sub(_decode_escape, match.group(1)) + '"'


def decode_hex_strings(code: str) -> PassResult:
    """
    Decodes \\xNN escapes everywhere in the text, then collapses any literal
    that is still made up only of \\xNN escapes (those produced by the first step).
    """
    escape, literal = HEX_STRINGS.recognizers
    code, escapes = escape.subn(_decode_escape, code)
    code, literals = literal.subn(_decode_hex_literal, code)
    return PassResult(code, escapes + literals)


def remove_junk_code(code: str) -> PassResult:
    """Deletes no-op local functions and leftover block comments."""
    count = 0
    for pattern in JUNK_CODE.recognizers:
        code, removed = pattern.subn('', code)
        count += removed
    if count:
        code = code.strip()
    return PassResult(code, count)


def beautify(code: str) -> PassResult:
    """
    Re-indents Lua code line by line.
    A line starting with an outdent keyword drops one level before it is written;
    a line ending in 'then'/'do', or containing an indent keyword followed by a
    space, raises the level for the lines after it. Both checks run on every line.
    Keywords inside strings and comments are not told apart.
    """
    depth = 0
    formatted_lines = []
    for line in code.split('\n'):
        stripped_line = line.strip()
        if not stripped_line:
            formatted_lines.append("")
            continue

        if stripped_line.startswith(OUTDENT_KEYWORDS):
            depth = max(0, depth - 1)

        formatted_lines.append(INDENT_UNIT * depth + stripped_line)

        if stripped_line.endswith(BLOCK_OPENERS) or \
           any(keyword + " " in stripped_line for keyword in INDENT_KEYWORDS):
            depth += 1

    return PassResult("\n".join(formatted_lines), 1)
