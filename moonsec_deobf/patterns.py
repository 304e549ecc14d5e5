import re
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple


@dataclass(frozen=True)
class PatternGroup:
    """
    A named family of recognizers for one obfuscation idiom.
    Recognizers are kept in evaluation order; group 1 of each (where present)
    is the payload a pass extracts.
    """
    name: str
    label: str
    recognizers: tuple

    def any_match(self, code: str) -> bool:
        return any(pattern.search(code) for pattern in self.recognizers)

    def counts(self, code: str) -> Tuple[int, ...]:
        """Match count for each recognizer, in order."""
        return tuple(count_matches(pattern, code) for pattern in self.recognizers)

    def total(self, code: str) -> int:
        return sum(self.counts(code))


def count_matches(pattern, code: str) -> int:
    return sum(1 for _ in pattern.finditer(code))


# --- Call recognizers ---

_LONG_BRACKET_OPEN = re.compile(r'\[(=*)\[')


def find_closing_paren(code: str, pos: int) -> Optional[int]:
    """
    Index of the ')' closing a call whose arguments start at pos, or None.
    Quoted literals and long-bracket strings are stepped over, so parentheses
    inside them do not count. An unterminated literal ends the search.
    """
    depth = 1
    index = pos
    while index < len(code):
        char = code[index]
        if char in '"\'':
            index += 1
            while index < len(code) and code[index] != char:
                if code[index] == '\n':
                    return None
                index += 2 if code[index] == '\\' else 1
            if index >= len(code):
                return None
        elif char == '[':
            bracket = _LONG_BRACKET_OPEN.match(code, index)
            if bracket:
                close = code.find(']' + bracket.group(1) + ']', bracket.end())
                if close < 0:
                    return None
                index = close + len(bracket.group(1)) + 1
        elif char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return None


class CallMatch:
    """Match object for CallPattern; group(1) is the argument text."""

    __slots__ = ("string", "_start", "_end", "args")

    def __init__(self, string: str, start: int, end: int, args: str):
        self.string = string
        self._start = start
        self._end = end
        self.args = args

    def start(self) -> int:
        return self._start

    def end(self) -> int:
        return self._end

    def group(self, index: int = 0) -> str:
        if index == 1:
            return self.args
        if index == 0:
            return self.string[self._start:self._end]
        raise IndexError("no such group")


class CallPattern:
    """
    Recognizes `opener ARGS )` where ARGS runs to the balanced closing paren,
    to any nesting depth. An optional tail regex must follow the close
    (e.g. the extra ')' of assert(loadstring(...))).
    Exposes the search/finditer/subn subset of re.Pattern the passes use.
    """

    def __init__(self, opener: str, tail: str = '', flags: int = re.IGNORECASE):
        self.opener = re.compile(opener, flags)
        self.tail = re.compile(tail) if tail else None

    def finditer(self, code: str) -> Iterator[CallMatch]:
        pos = 0
        while True:
            head = self.opener.search(code, pos)
            if head is None:
                return
            close = find_closing_paren(code, head.end())
            end = None
            if close is not None and close > head.end():
                end = close + 1
                if self.tail is not None:
                    tail = self.tail.match(code, end)
                    end = tail.end() if tail else None
            if end is None:
                pos = head.start() + 1
                continue
            yield CallMatch(code, head.start(), end, code[head.end():close])
            pos = end

    def search(self, code: str) -> Optional[CallMatch]:
        return next(self.finditer(code), None)

    def subn(self, repl, code: str) -> Tuple[str, int]:
        pieces = []
        last = count = 0
        for match in self.finditer(code):
            pieces.append(code[last:match.start()])
            pieces.append(repl(match))
            last = match.end()
            count += 1
        pieces.append(code[last:])
        return ''.join(pieces), count

    def sub(self, repl, code: str) -> str:
        return self.subn(repl, code)[0]


# --- Shared fragments ---

_B64_PAYLOAD = r'\s*\(\s*["\']([A-Za-z0-9+/=]+)["\']\s*\)'

# Literals eligible for folding hold no quote characters and stay on one line.
_PLAIN_LITERAL = r'(?:"[^"\'\n]*"|\'[^"\'\n]*\')'

# Inner text of a single plain literal: group 1 for double quotes, group 2 for single.
LITERAL_PART = re.compile(r'"([^"\'\n]*)"|\'([^"\'\n]*)\'')


BASE64 = PatternGroup(
    name="base64",
    label="Base64",
    recognizers=(
        re.compile(r'frombase64' + _B64_PAYLOAD, re.IGNORECASE),
        re.compile(r'loadstring\s*\(\s*frombase64' + _B64_PAYLOAD + r'\s*\)', re.IGNORECASE),
        re.compile(r'Base64Decode' + _B64_PAYLOAD, re.IGNORECASE),
        re.compile(r'atob' + _B64_PAYLOAD, re.IGNORECASE),
    ),
)

# assert(loadstring(...)) comes first so the outer wrapper is claimed as one span.
LOADSTRING = PatternGroup(
    name="loadstring",
    label="Loadstring",
    recognizers=(
        CallPattern(r'\bassert\s*\(\s*loadstring\s*\(', tail=r'\s*\)'),
        CallPattern(r'\bloadstring\s*\('),
        CallPattern(r'\bload\s*\('),
    ),
)

STRING_CONCAT = PatternGroup(
    name="stringConcat",
    label="Concatenation",
    recognizers=(
        re.compile(_PLAIN_LITERAL + r'(?:\s*\.\.\s*' + _PLAIN_LITERAL + r')+'),
    ),
)

HEX_STRINGS = PatternGroup(
    name="hexStrings",
    label="Hex Encoding",
    recognizers=(
        re.compile(r'\\x([0-9a-fA-F]{2})'),
        re.compile(r'["\']((?:\\x[0-9a-fA-F]{2})+)["\']'),
    ),
)

CHAR_CODES = PatternGroup(
    name="charCodes",
    label="Char Codes",
    recognizers=(
        re.compile(r'string\.char\s*\(([^)]+)\)', re.IGNORECASE),
        re.compile(r'(\{[\d\s,]+\})'),
    ),
)

JUNK_CODE = PatternGroup(
    name="junkCode",
    label="Junk Code",
    recognizers=(
        re.compile(r'local\s+[a-zA-Z_][a-zA-Z0-9_]*\s*=\s*function\s*\(\s*\)\s*end\s*[^;]*;', re.IGNORECASE),
        re.compile(r'--\[\[[^\]]*\]\]'),
        re.compile(r'/\*.*?\*/', re.DOTALL),
    ),
)

CATALOG: Dict[str, PatternGroup] = {
    group.name: group
    for group in (BASE64, LOADSTRING, STRING_CONCAT, HEX_STRINGS, CHAR_CODES, JUNK_CODE)
}
