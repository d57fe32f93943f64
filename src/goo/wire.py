"""
Parser for the value encoding printed by `gnokey query vm/qeval`.

A reply looks like:

    height: 0
    data: (&(struct{("0000001" string),(true bool)} gno.land/r/x.DataRequest) *gno.land/r/x.DataRequest)

Grammar (one value after `data:`):

    value    := '&' value | '(' value [type_tag] ')' | struct | sequence | ref | literal
    struct   := 'struct' '{' [value (',' value)*] '}'
    sequence := WORD '[' [value (',' value)*] ']'
    ref      := 'ref' '(' balanced-text ')'
    literal  := STRING | WORD

The type tag is free text up to the closing paren of its group and may itself
contain brackets (`[]string`, `map[string]int`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple, Union

from goo.errors import MalformedRecord, RecordNotFound


DELIMITERS = set('()[]{},"')
OPENERS = {"(": ")", "[": "]", "{": "}"}

# Go strconv.Quote escapes
SIMPLE_ESCAPES = {
    "a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v",
    "\\": "\\", "\"": "\"", "'": "'",
}
HEX_ESCAPE_DIGITS = {"x": 2, "u": 4, "U": 8}


class WireSyntaxError(MalformedRecord):
    def __init__(self, message: str, pos: int):
        self.pos = pos
        super().__init__(f"offset {pos}: {message}")


@dataclass
class Scalar:
    text: str
    quoted: bool = False
    type_tag: str = ""
    span: Tuple[int, int] = (0, 0)


@dataclass
class Struct:
    fields: List["Value"] = field(default_factory=list)
    type_tag: str = ""
    span: Tuple[int, int] = (0, 0)


@dataclass
class Sequence:
    tag: str
    items: List["Value"] = field(default_factory=list)
    type_tag: str = ""
    span: Tuple[int, int] = (0, 0)


@dataclass
class Ref:
    target: str
    type_tag: str = ""
    span: Tuple[int, int] = (0, 0)


Value = Union[Scalar, Struct, Sequence, Ref]


class WireParser:
    """Recursive descent parser over a single encoded value."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0

    def parse(self) -> Value:
        self._skip_whitespace()
        value = self._parse_value()
        self._skip_whitespace()
        if not self._at_end():
            raise WireSyntaxError(f"unexpected trailing text {self._peek()!r}", self.pos)
        return value

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _peek(self) -> str:
        if self._at_end():
            return ""
        return self.source[self.pos]

    def _advance(self) -> str:
        char = self.source[self.pos]
        self.pos += 1
        return char

    def _match(self, expected: str) -> bool:
        if self._peek() != expected:
            return False
        self.pos += 1
        return True

    def _expect(self, expected: str) -> None:
        if not self._match(expected):
            found = self._peek() or "end of input"
            raise WireSyntaxError(f"expected {expected!r}, found {found!r}", self.pos)

    def _skip_whitespace(self) -> None:
        while not self._at_end() and self._peek().isspace():
            self.pos += 1

    # =========================================================================
    # Productions
    # =========================================================================

    def _parse_value(self) -> Value:
        self._skip_whitespace()
        start = self.pos
        char = self._peek()

        if char == "":
            raise WireSyntaxError("unexpected end of input", self.pos)
        if char == "&":
            self._advance()
            return self._parse_value()
        if char == "(":
            return self._parse_group()
        if char == '"':
            text = self._scan_string()
            return Scalar(text=text, quoted=True, span=(start, self.pos))
        if char in DELIMITERS:
            raise WireSyntaxError(f"unexpected {char!r}", self.pos)

        word = self._scan_word()
        if word == "struct" and self._peek() == "{":
            self._advance()
            fields = self._parse_items("}")
            return Struct(fields=fields, span=(start, self.pos))
        if word == "ref" and self._peek() == "(":
            target = self._scan_balanced()
            return Ref(target=target, span=(start, self.pos))
        if self._peek() == "[":
            self._advance()
            items = self._parse_items("]")
            return Sequence(tag=word, items=items, span=(start, self.pos))
        return Scalar(text=word, span=(start, self.pos))

    def _parse_group(self) -> Value:
        self._expect("(")
        value = self._parse_value()
        self._skip_whitespace()
        if not self._match(")"):
            tag = self._scan_type_tag()
            self._expect(")")
            if not value.type_tag:
                value.type_tag = tag
        return value

    def _parse_items(self, close: str) -> List[Value]:
        items: List[Value] = []
        self._skip_whitespace()
        if self._match(close):
            return items
        while True:
            items.append(self._parse_value())
            self._skip_whitespace()
            if self._match(","):
                continue
            if self._match(close):
                return items
            found = self._peek() or "end of input"
            raise WireSyntaxError(f"expected ',' or {close!r}, found {found!r}", self.pos)

    # =========================================================================
    # Scanners
    # =========================================================================

    def _scan_string(self) -> str:
        """
        Reads a Go-quoted string literal (strconv.Quote escapes). Hex-byte and
        octal escapes are raw bytes, so the literal is assembled as UTF-8 and
        decoded at the end.
        """
        start = self.pos
        self._advance()  # opening quote
        buf = bytearray()
        while not self._at_end() and self._peek() != '"':
            char = self._advance()
            if char != "\\":
                buf += char.encode("utf-8")
                continue
            if self._at_end():
                break
            escape_pos = self.pos - 1
            escape_char = self._advance()
            if escape_char in SIMPLE_ESCAPES:
                buf += SIMPLE_ESCAPES[escape_char].encode("utf-8")
            elif escape_char in HEX_ESCAPE_DIGITS:
                code = self._scan_digits(HEX_ESCAPE_DIGITS[escape_char], 16, escape_pos)
                if escape_char == "x":
                    buf.append(code)
                else:
                    try:
                        buf += chr(code).encode("utf-8")
                    except (ValueError, UnicodeEncodeError):
                        raise WireSyntaxError(f"invalid \\{escape_char} escape", escape_pos)
            elif escape_char in "01234567":
                self.pos -= 1
                code = self._scan_digits(3, 8, escape_pos)
                if code > 0xFF:
                    raise WireSyntaxError("octal escape out of range", escape_pos)
                buf.append(code)
            else:
                raise WireSyntaxError(f"unknown escape \\{escape_char}", escape_pos)
        if self._at_end():
            raise WireSyntaxError("unterminated string", start)
        self._advance()  # closing quote
        return buf.decode("utf-8", errors="replace")

    def _scan_digits(self, count: int, base: int, escape_pos: int) -> int:
        digits = self.source[self.pos:self.pos + count]
        allowed = "0123456789abcdefABCDEF" if base == 16 else "01234567"
        if len(digits) != count or any(c not in allowed for c in digits):
            raise WireSyntaxError(f"malformed escape {digits!r}", escape_pos)
        code = int(digits, base)
        self.pos += count
        return code

    def _scan_word(self) -> str:
        start = self.pos
        while not self._at_end():
            char = self._peek()
            if char.isspace() or char in DELIMITERS:
                break
            self.pos += 1
        if self.pos == start:
            raise WireSyntaxError(f"unexpected {self._peek()!r}", self.pos)
        return self.source[start:self.pos]

    def _scan_balanced(self) -> str:
        """Consumes '(' ... ')' and returns the text between them."""
        start = self.pos
        self._expect("(")
        depth = 1
        while not self._at_end():
            char = self._advance()
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth == 0:
                    return self.source[start + 1:self.pos - 1]
        raise WireSyntaxError("unterminated ref(", start)

    def _scan_type_tag(self) -> str:
        start = self.pos
        stack: List[str] = []
        while not self._at_end():
            char = self._peek()
            if char in OPENERS:
                stack.append(OPENERS[char])
            elif char in ")]}":
                if not stack:
                    if char == ")":
                        return self.source[start:self.pos].strip()
                    raise WireSyntaxError(f"unbalanced {char!r} in type", self.pos)
                if stack.pop() != char:
                    raise WireSyntaxError(f"mismatched {char!r} in type", self.pos)
            self.pos += 1
        raise WireSyntaxError("unterminated group", start)


def parse_value(text: str) -> Value:
    return WireParser(text).parse()


def data_payload(raw: str) -> str:
    """Returns the text after the `data:` prefix of a qeval reply."""
    for line in raw.splitlines():
        stripped = line.strip()
        if stripped.startswith("data:"):
            return stripped[len("data:"):].strip()
    raise RecordNotFound("no 'data:' line in query output")


def iter_nodes(node: Value) -> Iterator[Value]:
    yield node
    if isinstance(node, Struct):
        for child in node.fields:
            yield from iter_nodes(child)
    elif isinstance(node, Sequence):
        for child in node.items:
            yield from iter_nodes(child)


def first_scalar(node: Value, predicate: Optional[Callable[[Scalar], bool]] = None) -> Optional[Scalar]:
    for n in iter_nodes(node):
        if isinstance(n, Scalar) and (predicate is None or predicate(n)):
            return n
    return None


def contains_ref(node: Value) -> bool:
    return any(isinstance(n, Ref) for n in iter_nodes(node))
