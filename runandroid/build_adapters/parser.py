"""
Build File Parser Utilities.

This module scans Gradle build descriptions (app/build.gradle). It does not
try to understand Groovy; it walks brace-delimited blocks to discover the
names declared inside them (build types, product flavors) and tokenizes the
file to read simple `name = value` assignments.

Matching semantics (case sensitivity, empty block names) are carried by
ScanOptions rather than baked into patterns.
"""

import string
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from runandroid.build_adapters.interface import MalformedConfigError

OPEN_BRACE = '{'
CLOSE_BRACE = '}'
WORD_CHARS = frozenset(string.ascii_letters + string.digits + '_')

DEFAULT_BUILD_TYPES = ('debug', 'release')

SplitResult = Tuple[str, Optional[str]]


@dataclass(frozen=True)
class ScanOptions:
    """
    Matching semantics for the scanner.

    Attributes:
        block_name_case_sensitive: Match block headers such as 'buildTypes' exactly.
        variant_case_sensitive: Match base types inside a variant name exactly.
        flag_name_case_sensitive: Match assignment names exactly.
        allow_empty_names: Record anonymous child blocks as '' instead of dropping them.
    """
    block_name_case_sensitive: bool = False
    variant_case_sensitive: bool = False
    flag_name_case_sensitive: bool = True
    allow_empty_names: bool = False


DEFAULT_OPTIONS = ScanOptions()


def _fold(text: str, case_sensitive: bool) -> str:
    return text if case_sensitive else text.lower()


def _matches_at(text: str, pos: int, word: str, case_sensitive: bool) -> bool:
    """Whether `word` occurs in `text` starting exactly at `pos`."""
    candidate = text[pos:pos + len(word)]
    if len(candidate) != len(word):
        return False
    return _fold(candidate, case_sensitive) == _fold(word, case_sensitive)


def _find_word(text: str, word: str, case_sensitive: bool, start: int = 0) -> int:
    """
    Index of the first occurrence of `word` at or after `start`, or -1.

    Folding is applied per candidate slice so that offsets always refer
    to `text` itself, even where lower() changes a string's length.
    """
    for pos in range(start, len(text) - len(word) + 1):
        if _matches_at(text, pos, word, case_sensitive):
            return pos
    return -1


class CharCursor:
    """Iterates over (position, character) pairs with lookahead."""

    def __init__(self, content: str, pos: int = 0):
        self.content = content
        self.pos = pos

    def at_end(self) -> bool:
        return self.pos >= len(self.content)

    def peek(self, offset: int = 0) -> str:
        """Peek at the character at current position + offset."""
        pos = self.pos + offset
        if 0 <= pos < len(self.content):
            return self.content[pos]
        return ''

    def advance(self) -> str:
        """Advance position and return current character."""
        if self.at_end():
            return ''
        char = self.content[self.pos]
        self.pos += 1
        return char

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        while not self.at_end():
            pos = self.pos
            yield pos, self.advance()


def previous_word(content: str, end: int) -> str:
    """
    Read the identifier that ends at or before `end`, scanning backwards.

    Trailing whitespace is skipped first, then the maximal run of word
    characters is collected. Returns '' when no word character precedes.
    """
    pos = end
    while pos >= 0 and content[pos].isspace():
        pos -= 1
    stop = pos
    while pos >= 0 and content[pos] in WORD_CHARS:
        pos -= 1
    return content[pos + 1:stop + 1]


class ScanState(Enum):
    """States of the brace scanner."""
    SCANNING_OUTER = auto()
    ENTERING_CHILD = auto()
    BALANCED = auto()


@dataclass
class BlockScan:
    """Result of scanning one brace-delimited block."""
    end: int
    children: List[str] = field(default_factory=list)


class BraceScanner:
    """
    Finds the closing brace of a block and the names of its direct children.

    Given `start`, the index just after an opening brace, the scanner keeps a
    nesting depth that starts at 1. Entering depth 2 means a direct child
    block opens, and the identifier in front of it is recorded. The scan
    ends on the brace that brings the depth back to 0.
    """

    def __init__(self, content: str, options: ScanOptions = DEFAULT_OPTIONS):
        self.content = content
        self.options = options

    def scan(self, start: int) -> BlockScan:
        """
        Scan the block whose body begins at `start`.

        Raises:
            MalformedConfigError: If the content ends before the block is balanced.
        """
        depth = 1
        state = ScanState.SCANNING_OUTER
        children: List[str] = []

        for pos, char in CharCursor(self.content, start):
            if char == OPEN_BRACE:
                depth += 1
                if depth == 2:
                    state = ScanState.ENTERING_CHILD
            elif char == CLOSE_BRACE:
                depth -= 1
                if depth == 0:
                    state = ScanState.BALANCED

            if state is ScanState.ENTERING_CHILD:
                name = previous_word(self.content, pos - 1)
                if name or self.options.allow_empty_names:
                    children.append(name)
                state = ScanState.SCANNING_OUTER
            elif state is ScanState.BALANCED:
                return BlockScan(end=pos, children=children)

        raise MalformedConfigError(
            f"unbalanced braces: block opened before offset {start} is never closed"
        )


def find_block_start(
    content: str,
    block_name: str,
    options: ScanOptions = DEFAULT_OPTIONS
) -> Optional[int]:
    """
    Find the first `<block_name> {` header.

    At least one whitespace character must separate the name from the
    brace. Returns the index just after the brace, or None.
    """
    if not block_name:
        return None

    case_sensitive = options.block_name_case_sensitive
    pos = _find_word(content, block_name, case_sensitive)

    while pos != -1:
        cursor = CharCursor(content, pos + len(block_name))
        if cursor.peek().isspace():
            while cursor.peek().isspace():
                cursor.advance()
            if cursor.peek() == OPEN_BRACE:
                return cursor.pos + 1
        pos = _find_word(content, block_name, case_sensitive, pos + 1)

    return None


def extract_variants(
    content: str,
    block_name: str,
    defaults: Optional[Sequence[str]] = None,
    options: ScanOptions = DEFAULT_OPTIONS
) -> List[str]:
    """
    List the names of the child blocks declared inside `block_name`.

    The result starts with `defaults` and appends each newly discovered
    name in order of first appearance. When the block is absent the
    defaults come back unchanged. `defaults` itself is never mutated.
    """
    variants = list(defaults or [])

    start = find_block_start(content, block_name, options)
    if start is None:
        return variants

    for name in BraceScanner(content, options).scan(start).children:
        if name not in variants:
            variants.append(name)
    return variants


def find_variant_split(
    variant: str,
    base_types: Sequence[str],
    options: ScanOptions = DEFAULT_OPTIONS
) -> SplitResult:
    """
    Split a combined variant name into (base type, flavor).

    The base type starts at the leftmost position where any of `base_types`
    occurs; everything before it is the flavor. Only the position matters,
    so when several base types match the earliest occurrence wins regardless
    of their order in `base_types`. An empty base type matches at position 0.
    """
    candidates = [name for name in base_types if name or options.allow_empty_names]

    for index in range(len(variant) + 1):
        if any(
            _matches_at(variant, index, name, options.variant_case_sensitive)
            for name in candidates
        ):
            return variant[index:], variant[:index] or None
    return variant, None


def canonical_build_type(
    build_type: str,
    base_types: Sequence[str],
    options: ScanOptions = DEFAULT_OPTIONS
) -> str:
    """
    Spell a matched build type the way it is declared.

    'Release' split out of 'demoRelease' maps back to 'release', the name
    Gradle uses for output directories. Unknown names only get their first
    letter lowered.
    """
    folded = _fold(build_type, options.variant_case_sensitive)
    for name in base_types:
        if name and _fold(name, options.variant_case_sensitive) == folded:
            return name
    return build_type[:1].lower() + build_type[1:]


def split_variant(
    gradle_file_path: Union[str, Path],
    variant: Optional[str],
    options: ScanOptions = DEFAULT_OPTIONS
) -> SplitResult:
    """
    Split `variant` using the build types declared in a build.gradle file.

    No variant means the default debug build.
    """
    if not variant:
        return DEFAULT_BUILD_TYPES[0], None

    content = Path(gradle_file_path).read_text(encoding='utf-8')
    try:
        build_types = extract_variants(content, 'buildTypes', DEFAULT_BUILD_TYPES, options)
    except MalformedConfigError as e:
        raise MalformedConfigError(str(e), gradle_file_path) from e
    return find_variant_split(variant, build_types, options)


class TokenType(Enum):
    """Token types for the lexer."""
    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()
    LBRACE = auto()
    RBRACE = auto()
    EQUALS = auto()
    OPERATOR = auto()
    COMMENT = auto()
    NEWLINE = auto()
    EOF = auto()


@dataclass
class Token:
    """Represents a lexical token."""
    type: TokenType
    value: str
    line: int
    column: int


class BuildFileLexer:
    """
    Lexer for Gradle (Groovy) build scripts.

    Handles:
    - String literals in single or double quotes
    - Comments (// and /* */)
    - Identifiers, numbers, braces and assignment
    """

    def __init__(self, content: str):
        self.cursor = CharCursor(content)
        self.line = 1
        self.column = 1

    def peek(self, offset: int = 0) -> str:
        return self.cursor.peek(offset)

    def advance(self) -> str:
        char = self.cursor.advance()
        if char == '\n':
            self.line += 1
            self.column = 1
        elif char:
            self.column += 1
        return char

    def read_string(self) -> str:
        """Read a quoted string, handling escapes."""
        quote = self.advance()
        result = []
        while self.peek() and self.peek() != quote:
            if self.peek() == '\\':
                self.advance()
                result.append(self.advance())
            else:
                result.append(self.advance())
        if self.peek() == quote:
            self.advance()
        return ''.join(result)

    def read_identifier(self) -> str:
        result = []
        while self.peek() and (self.peek().isalnum() or self.peek() in '_$'):
            result.append(self.advance())
        return ''.join(result)

    def read_number(self) -> str:
        result = []
        while self.peek() and (self.peek().isdigit() or self.peek() in '.-'):
            result.append(self.advance())
        return ''.join(result)

    def skip_line_comment(self) -> str:
        result = []
        self.advance()
        self.advance()
        while self.peek() and self.peek() != '\n':
            result.append(self.advance())
        return ''.join(result)

    def skip_block_comment(self) -> str:
        result = []
        self.advance()
        self.advance()
        while self.peek():
            if self.peek() == '*' and self.peek(1) == '/':
                self.advance()
                self.advance()
                break
            result.append(self.advance())
        return ''.join(result)

    def tokenize(self) -> Iterator[Token]:
        """Generate tokens from the content."""
        while not self.cursor.at_end():
            line, col = self.line, self.column
            char = self.peek()

            if char in ' \t\r':
                self.advance()
                continue

            if char == '\n':
                self.advance()
                yield Token(TokenType.NEWLINE, '\n', line, col)
                continue

            if char == '/' and self.peek(1) == '/':
                yield Token(TokenType.COMMENT, self.skip_line_comment(), line, col)
                continue

            if char == '/' and self.peek(1) == '*':
                yield Token(TokenType.COMMENT, self.skip_block_comment(), line, col)
                continue

            if char in '"\'':
                yield Token(TokenType.STRING, self.read_string(), line, col)
                continue

            if char.isalpha() or char in '_$':
                yield Token(TokenType.IDENTIFIER, self.read_identifier(), line, col)
                continue

            if char.isdigit():
                yield Token(TokenType.NUMBER, self.read_number(), line, col)
                continue

            if char == OPEN_BRACE:
                self.advance()
                yield Token(TokenType.LBRACE, char, line, col)
            elif char == CLOSE_BRACE:
                self.advance()
                yield Token(TokenType.RBRACE, char, line, col)
            elif char == '=' and self.peek(1) not in ('=', '~'):
                self.advance()
                yield Token(TokenType.EQUALS, char, line, col)
            else:
                # '==', '!=', '<=' and friends are kept whole so that their
                # '=' is never mistaken for an assignment
                op = self.advance()
                if self.peek() in ('=', '~'):
                    op += self.advance()
                yield Token(TokenType.OPERATOR, op, line, col)

        yield Token(TokenType.EOF, '', self.line, self.column)


def find_assignment(
    content: str,
    name: str,
    options: ScanOptions = DEFAULT_OPTIONS
) -> Optional[str]:
    """
    Return the value of the first `name = <word>` assignment, or None.

    Comments are ignored. Assignments whose value is not a bare word or
    number (a string, a closure) are skipped and the search continues.
    """
    tokens = [
        t for t in BuildFileLexer(content).tokenize()
        if t.type not in (TokenType.COMMENT, TokenType.NEWLINE)
    ]
    wanted = _fold(name, options.flag_name_case_sensitive)

    for i, token in enumerate(tokens[:-2]):
        if token.type != TokenType.IDENTIFIER:
            continue
        if _fold(token.value, options.flag_name_case_sensitive) != wanted:
            continue
        if tokens[i + 1].type != TokenType.EQUALS:
            continue
        value = tokens[i + 2]
        if value.type in (TokenType.IDENTIFIER, TokenType.NUMBER):
            return value.value

    return None


def parse_bool_assignment(
    content: str,
    name: str,
    options: ScanOptions = DEFAULT_OPTIONS
) -> bool:
    """
    Read a boolean flag assignment; any value other than 'true' is false.

    Raises:
        MalformedConfigError: If no assignment for `name` exists.
    """
    value = find_assignment(content, name, options)
    if value is None:
        raise MalformedConfigError(f"missing assignment '{name} = true|false'")
    return value.lower() == 'true'
