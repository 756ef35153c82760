"""A label selector parser that accepts only exact matches, e.g. ``"k1=v1, k2 = v2"``."""

from __future__ import annotations

import enum
import re
from typing import Iterator, Optional

from apiserverlib.field import FieldPath, invalid


class Token(enum.IntEnum):
    """Lexer token kinds."""

    ERROR = 0
    END_OF_STRING = 1
    COMMA = 2
    EQUALS = 3
    IDENTIFIER = 4


class LabelSelectorError(ValueError):
    """Raised when a selector cannot be parsed."""


_STRING_TO_TOKEN = {",": Token.COMMA, "=": Token.EQUALS}
_WHITESPACE = frozenset(" \t\r\n")
_SPECIAL = frozenset("=,")


class Lexer:
    """Splits a selector string into tokens."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def _read(self) -> str:
        if self._pos < len(self._text):
            ch = self._text[self._pos]
            self._pos += 1
            return ch
        return ""

    def _unread(self) -> None:
        self._pos -= 1

    def _scan_identifier(self) -> tuple[Token, str]:
        chars = []
        while True:
            ch = self._read()
            if not ch:
                break
            if ch in _SPECIAL or ch in _WHITESPACE:
                self._unread()
                break
            chars.append(ch)
        literal = "".join(chars)
        return _STRING_TO_TOKEN.get(literal, Token.IDENTIFIER), literal

    def _scan_special_symbol(self) -> tuple[Token, str]:
        last: Optional[tuple[Token, str]] = None
        buffer = ""
        while True:
            ch = self._read()
            if not ch:
                break
            if ch not in _SPECIAL:
                self._unread()
                break
            buffer += ch
            token = _STRING_TO_TOKEN.get(buffer)
            if token is not None:
                last = (token, buffer)
            elif last is not None:
                self._unread()
                break
        if last is None:
            return Token.ERROR, f"error expected: keyword found '{buffer}'"
        return last

    def lex(self) -> tuple[Token, str]:
        """Return the next token and its literal."""
        ch = self._read()
        while ch and ch in _WHITESPACE:
            ch = self._read()
        if not ch:
            return Token.END_OF_STRING, ""
        self._unread()
        if ch in _SPECIAL:
            return self._scan_special_symbol()
        return self._scan_identifier()

    def __iter__(self) -> Iterator[tuple[Token, str]]:
        while True:
            item = self.lex()
            yield item
            if item[0] is Token.END_OF_STRING:
                return


_QUALIFIED_NAME_MAX_LENGTH = 63
_QUALIFIED_NAME_RE = re.compile(r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]")
_LABEL_VALUE_MAX_LENGTH = 63
_LABEL_VALUE_RE = re.compile(r"(([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?")
_DNS1123_SUBDOMAIN_MAX_LENGTH = 253
_DNS1123_SUBDOMAIN_RE = re.compile(
    r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*"
)

_EMPTY_ERROR = "must be non-empty"
_QUALIFIED_NAME_ERROR = (
    "must consist of alphanumeric characters, '-', '_' or '.', "
    "and must start and end with an alphanumeric character"
)
_LABEL_VALUE_ERROR = (
    "a valid label must be an empty string or consist of alphanumeric characters, "
    "'-', '_' or '.', and must start and end with an alphanumeric character"
)
_SUBDOMAIN_ERROR = (
    "a lowercase RFC 1123 subdomain must consist of lower case alphanumeric "
    "characters, '-' or '.', and must start and end with an alphanumeric character"
)
QUALIFIED_NAME_ERROR_MSG = "must match format [ DNS 1123 subdomain / ] DNS 1123 label"


def _max_len_error(length: int) -> str:
    return f"must be no more than {length} characters"


def _dns1123_subdomain_errors(value: str) -> list[str]:
    errors = []
    if len(value) > _DNS1123_SUBDOMAIN_MAX_LENGTH:
        errors.append(_max_len_error(_DNS1123_SUBDOMAIN_MAX_LENGTH))
    if not _DNS1123_SUBDOMAIN_RE.fullmatch(value):
        errors.append(_SUBDOMAIN_ERROR)
    return errors


def is_qualified_name(value: str) -> list[str]:
    """Return why ``value`` is not a qualified name (``[prefix/]name``); empty if it is."""
    errors: list[str] = []
    parts = value.split("/")
    if len(parts) == 1:
        name = parts[0]
    elif len(parts) == 2:
        prefix, name = parts
        if not prefix:
            errors.append("prefix part " + _EMPTY_ERROR)
        else:
            errors.extend("prefix part " + msg for msg in _dns1123_subdomain_errors(prefix))
    else:
        return [
            "a qualified name " + _QUALIFIED_NAME_ERROR
            + " with an optional DNS subdomain prefix and '/'"
        ]
    if not name:
        errors.append("name part " + _EMPTY_ERROR)
    elif len(name) > _QUALIFIED_NAME_MAX_LENGTH:
        errors.append("name part " + _max_len_error(_QUALIFIED_NAME_MAX_LENGTH))
    if not _QUALIFIED_NAME_RE.fullmatch(name):
        errors.append("name part " + _QUALIFIED_NAME_ERROR)
    return errors


def is_valid_label_value(value: str) -> list[str]:
    """Return why ``value`` is not a valid label value; empty if it is."""
    errors = []
    if len(value) > _LABEL_VALUE_MAX_LENGTH:
        errors.append(_max_len_error(_LABEL_VALUE_MAX_LENGTH))
    if not _LABEL_VALUE_RE.fullmatch(value):
        errors.append(_LABEL_VALUE_ERROR)
    return errors


class _Parser:
    def __init__(self, selector: str) -> None:
        self._items = list(Lexer(selector))
        self._position = 0

    def _lookahead(self) -> tuple[Token, str]:
        return self._items[self._position]

    def _consume(self) -> tuple[Token, str]:
        self._position += 1
        if self._position > len(self._items):
            return Token.END_OF_STRING, ""
        return self._items[self._position - 1]

    def parse(self) -> dict[str, str]:
        labels: dict[str, str] = {}
        while True:
            tok, lit = self._lookahead()
            if tok is Token.IDENTIFIER:
                try:
                    key, value = self._parse_label()
                except LabelSelectorError as exc:
                    raise LabelSelectorError(f"unable to parse requirement: {exc}") from exc
                labels[key] = value
                tok, lit = self._consume()
                if tok is Token.END_OF_STRING:
                    return labels
                if tok is Token.COMMA:
                    next_tok, next_lit = self._lookahead()
                    if next_tok is not Token.IDENTIFIER:
                        raise LabelSelectorError(
                            f"found '{next_lit}', expected: identifier after ','"
                        )
                else:
                    raise LabelSelectorError(
                        f"found '{lit}', expected: ',' or 'end of string'"
                    )
            elif tok is Token.END_OF_STRING:
                return labels
            else:
                raise LabelSelectorError(
                    f"found '{lit}', expected: identifier or 'end of string'"
                )

    def _parse_label(self) -> tuple[str, str]:
        key = self._parse_key()
        op = self._parse_operator()
        if op != "=":
            raise LabelSelectorError(f"invalid operator: {op}, expected: '='")
        return key, self._parse_exact_value()

    def _parse_key(self) -> str:
        tok, literal = self._consume()
        if tok is not Token.IDENTIFIER:
            raise LabelSelectorError(f"found '{literal}', expected: identifier")
        if is_qualified_name(literal):
            raise LabelSelectorError(
                str(invalid(FieldPath("label key"), literal, QUALIFIED_NAME_ERROR_MSG))
            )
        return literal

    def _parse_operator(self) -> str:
        tok, lit = self._consume()
        if tok is not Token.EQUALS:
            raise LabelSelectorError(f"found '{lit}', expected: '='")
        return "="

    def _parse_exact_value(self) -> str:
        tok, _ = self._lookahead()
        if tok in (Token.END_OF_STRING, Token.COMMA):
            return ""
        tok, lit = self._consume()
        if tok is not Token.IDENTIFIER:
            raise LabelSelectorError(f"found '{lit}', expected: identifier")
        if is_valid_label_value(lit):
            raise LabelSelectorError(
                str(invalid(FieldPath("label value"), lit, QUALIFIED_NAME_ERROR_MSG))
            )
        return lit


def parse(selector: str) -> dict[str, str]:
    """Parse ``selector`` into a label map.

    The grammar is a comma separated list of ``KEY "=" VALUE`` requirements;
    raises LabelSelectorError when the selector does not follow it.
    """
    return _Parser(selector).parse()


def conflicts(labels1: dict[str, str], labels2: dict[str, str]) -> bool:
    """Return True if a key is in both maps with different values."""
    return any(key in labels2 and labels2[key] != value for key, value in labels1.items())


def merge(labels1: dict[str, str], labels2: dict[str, str]) -> dict[str, str]:
    """Combine two maps; values of the second win. Conflicts are not checked."""
    return {**labels1, **labels2}


def equals(labels1: dict[str, str], labels2: dict[str, str]) -> bool:
    """Return True if both maps hold the same keys and values."""
    return labels1 == labels2