"""
Go source parsing.

Extracts the import declarations of a Go file: the package clause
followed by any number of ``import`` declarations. The rest of the file
is then checked at the token level so that a file the Go compiler would
reject (a code generator template, say) contributes no imports:

- every character must start a valid Go token
- brackets must balance
- a selector ``.`` must follow an operand
- top-level declarations must start with func, var, const or type
"""

import re
from typing import Iterator, List, Tuple

_IDENT = re.compile(r"[^\W\d]\w*")
_HEX = "0123456789abcdefABCDEF"

_NUMBER = re.compile(
    r"""
    0[xX][0-9a-fA-F_]*(?:\.[0-9a-fA-F_]*)?(?:[pP][+-]?[0-9_]+)?
    | 0[bBoO][0-9_]+
    | (?:[0-9][0-9_]*(?:\.[0-9_]*)?|\.[0-9][0-9_]*)(?:[eE][+-]?[0-9_]+)?
    """,
    re.VERBOSE,
)

_KEYWORDS = frozenset(
    "break case chan const continue default defer else fallthrough for func go "
    "goto if import interface map package range return select struct switch "
    "type var".split()
)

# longest first
_OPERATORS = (
    "<<=", ">>=", "&^=", "...",
    "&&", "||", "<-", "++", "--", "==", "!=", "<=", ">=", ":=",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>", "&^",
    "+", "-", "*", "/", "%", "&", "|", "^", "<", ">", "=", "!", "~",
    "(", ")", "[", "]", "{", "}", ",", ";", ".", ":",
)

_OPENERS = {")": "(", "]": "[", "}": "{"}

# a newline after one of these ends the statement
_SEMICOLON_AFTER = frozenset(
    ["ident", "literal", "break", "continue", "fallthrough", "return", "++", "--", ")", "]", "}"]
)

_OPERAND_END = frozenset(["ident", "literal", ")", "]", "}"])

_TOP_LEVEL = frozenset(["func", "var", "const", "type"])

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
}


class GoSyntaxError(ValueError):
    """The file is not syntactically valid Go source."""

    def __init__(self, message: str, offset: int):
        super().__init__(f"{message} (offset {offset})")
        self.offset = offset


class GoUnquoteError(ValueError):
    """A Go string literal cannot be unquoted."""


class _HeaderScanner:
    """Minimal scanner over Go source text."""

    def __init__(self, source: str):
        self.src = source
        self.pos = 1 if source.startswith("\ufeff") else 0

    def error(self, message: str):
        raise GoSyntaxError(message, self.pos)

    def at_end(self) -> bool:
        return self.pos >= len(self.src)

    def skip_space(self, semicolons: bool = False) -> None:
        """Skip whitespace and comments, and optionally ``;`` separators."""
        src = self.src
        while self.pos < len(src):
            ch = src[self.pos]
            if ch in " \t\r\n" or (semicolons and ch == ";"):
                self.pos += 1
            elif src.startswith("//", self.pos):
                end = src.find("\n", self.pos)
                self.pos = len(src) if end == -1 else end + 1
            elif src.startswith("/*", self.pos):
                end = src.find("*/", self.pos + 2)
                if end == -1:
                    self.error("comment not terminated")
                self.pos = end + 2
            else:
                return

    def peek_ident(self) -> str:
        match = _IDENT.match(self.src, self.pos)
        return match.group(0) if match else ""

    def ident(self) -> str:
        name = self.peek_ident()
        if not name:
            self.error("expected identifier")
        self.pos += len(name)
        return name

    def keyword(self, word: str) -> bool:
        if self.peek_ident() == word:
            self.pos += len(word)
            return True
        return False

    def punct(self, ch: str) -> bool:
        if self.src.startswith(ch, self.pos):
            self.pos += len(ch)
            return True
        return False

    def string_literal(self) -> str:
        """Read an interpreted or raw string literal, quotes included."""
        src = self.src
        start = self.pos
        quote = src[start] if start < len(src) else ""
        if quote == "`":
            end = src.find("`", start + 1)
            if end == -1:
                self.error("raw string literal not terminated")
            self.pos = end + 1
            return src[start : self.pos]
        if quote != '"':
            self.error("expected import path string")

        i = start + 1
        while i < len(src):
            ch = src[i]
            if ch == "\\" and src[i + 1 : i + 2] not in ("", "\n"):
                i += 2
                continue
            if ch == "\n":
                break
            if ch == '"':
                self.pos = i + 1
                return src[start : self.pos]
            i += 1
        self.pos = i
        self.error("string literal not terminated")


def _parse_import_spec(scanner: _HeaderScanner) -> str:
    # ImportSpec = [ "." | PackageName ] ImportPath
    if not scanner.punct("."):
        if scanner.peek_ident():
            scanner.ident()
    scanner.skip_space()
    return scanner.string_literal()


def parse_imports(source: str) -> List[str]:
    """
    Return the raw import path literals declared by a Go source file.

    Literals are returned exactly as written, including their quotes;
    use :func:`unquote` to obtain the import path.

    Args:
        source: Full text of the file

    Returns:
        List[str]: Import literals in declaration order

    Raises:
        GoSyntaxError: If the text does not start with a valid package
            clause, an import declaration is malformed, or the rest of
            the file is not made of well-formed Go declarations
    """
    scanner = _HeaderScanner(source)
    scanner.skip_space()
    if not scanner.keyword("package"):
        scanner.error("expected 'package'")
    scanner.skip_space()
    if scanner.peek_ident() in ("", "package", "import"):
        scanner.error("expected package name")
    scanner.ident()

    literals = []
    while True:
        scanner.skip_space(semicolons=True)
        if scanner.at_end():
            return literals
        if not scanner.keyword("import"):
            _check_body(scanner)
            return literals

        scanner.skip_space()
        if scanner.punct("("):
            while True:
                scanner.skip_space(semicolons=True)
                if scanner.punct(")"):
                    break
                if scanner.at_end():
                    scanner.error("import group not terminated")
                literals.append(_parse_import_spec(scanner))
        else:
            literals.append(_parse_import_spec(scanner))


def _starts_number(src: str, pos: int) -> bool:
    if src[pos] == ".":
        pos += 1
    return pos < len(src) and src[pos] in "0123456789"


def _body_tokens(scanner: _HeaderScanner) -> Iterator[Tuple[str, str, int]]:
    """Yield (kind, text, offset) for the rest of the file, with automatic semicolons."""
    src = scanner.src
    end = len(src)
    last = ";"

    while scanner.pos < end:
        pos = scanner.pos
        ch = src[pos]

        if ch == "\n":
            if last in _SEMICOLON_AFTER:
                last = ";"
                yield ";", "\n", pos
            scanner.pos += 1
        elif ch in " \t\r":
            scanner.pos += 1
        elif src.startswith("//", pos):
            newline = src.find("\n", pos)
            scanner.pos = end if newline == -1 else newline
        elif src.startswith("/*", pos):
            close = src.find("*/", pos + 2)
            if close == -1:
                scanner.error("comment not terminated")
            if "\n" in src[pos:close] and last in _SEMICOLON_AFTER:
                last = ";"
                yield ";", "\n", pos
            scanner.pos = close + 2
        elif _starts_number(src, pos):
            scanner.pos = _NUMBER.match(src, pos).end()
            if src.startswith("i", scanner.pos):
                scanner.pos += 1
            last = "literal"
            yield "literal", src[pos : scanner.pos], pos
        elif ch in "\"`":
            text = scanner.string_literal()
            last = "literal"
            yield "literal", text, pos
        elif ch == "'":
            i = pos + 1
            while i < end and src[i] not in "'\n":
                i += 2 if src[i] == "\\" else 1
            if i >= end or src[i] != "'" or i == pos + 1:
                scanner.error("invalid rune literal")
            scanner.pos = i + 1
            last = "literal"
            yield "literal", src[pos : scanner.pos], pos
        else:
            name = scanner.peek_ident()
            if name:
                scanner.pos += len(name)
                last = name if name in _KEYWORDS else "ident"
                yield ("keyword" if name in _KEYWORDS else "ident"), name, pos
                continue

            for op in _OPERATORS:
                if src.startswith(op, pos):
                    break
            else:
                scanner.error(f"illegal character {ch!r}")
            scanner.pos += len(op)
            last = op
            yield "op", op, pos

    if last in _SEMICOLON_AFTER:
        yield ";", "", end


def _check_body(scanner: _HeaderScanner) -> None:
    """Reject declarations after the imports that cannot be Go."""
    open_brackets: List[Tuple[str, int]] = []
    previous = ";"
    at_declaration = True

    for kind, text, offset in _body_tokens(scanner):
        if at_declaration and text not in (";", "\n", ""):
            if text == "import":
                raise GoSyntaxError("imports must appear before other declarations", offset)
            if text not in _TOP_LEVEL:
                raise GoSyntaxError(f"expected declaration, found {text!r}", offset)
            at_declaration = False

        if kind == "op" and text in ("(", "[", "{"):
            open_brackets.append((text, offset))
        elif kind == "op" and text in _OPENERS:
            if not open_brackets or open_brackets[-1][0] != _OPENERS[text]:
                raise GoSyntaxError(f"unexpected {text!r}", offset)
            open_brackets.pop()
        elif kind == "op" and text == "." and previous not in _OPERAND_END:
            raise GoSyntaxError("unexpected '.'", offset)
        elif text in (";", "\n", "") and not open_brackets:
            at_declaration = True

        previous = kind if kind in ("ident", "literal") else text

    if open_brackets:
        bracket, offset = open_brackets[-1]
        raise GoSyntaxError(f"{bracket!r} not closed", offset)


def unquote(literal: str) -> str:
    """
    Interpret a Go string literal.

    Supports interpreted (``"..."``) literals with every Go escape
    sequence and raw (`````...`````) literals.

    Raises:
        GoUnquoteError: If the literal is not a well-formed Go string
    """
    if len(literal) < 2 or literal[0] != literal[-1] or literal[0] not in '"`':
        raise GoUnquoteError(f"invalid syntax: {literal}")

    body = literal[1:-1]
    if literal[0] == "`":
        if "`" in body:
            raise GoUnquoteError(f"invalid syntax: {literal}")
        return body.replace("\r", "")

    if "\n" in body:
        raise GoUnquoteError(f"invalid syntax: {literal}")
    if "\\" not in body:
        if '"' in body:
            raise GoUnquoteError(f"invalid syntax: {literal}")
        return body

    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == '"':
            raise GoUnquoteError(f"invalid syntax: {literal}")
        if ch != "\\":
            out += ch.encode("utf-8", "surrogateescape")
            i += 1
            continue

        if i + 1 >= len(body):
            raise GoUnquoteError(f"invalid syntax: {literal}")
        esc = body[i + 1]
        i += 2
        if esc in _SIMPLE_ESCAPES:
            out += _SIMPLE_ESCAPES[esc].encode("utf-8")
        elif esc in "xuU":
            width = {"x": 2, "u": 4, "U": 8}[esc]
            digits = body[i : i + width]
            if len(digits) != width or any(d not in _HEX for d in digits):
                raise GoUnquoteError(f"invalid escape in {literal}")
            value = int(digits, 16)
            i += width
            if esc == "x":
                out.append(value)
            elif value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
                raise GoUnquoteError(f"invalid code point in {literal}")
            else:
                out += chr(value).encode("utf-8")
        elif esc in "01234567":
            digits = body[i - 1 : i + 2]
            if len(digits) != 3 or any(d not in "01234567" for d in digits):
                raise GoUnquoteError(f"invalid escape in {literal}")
            value = int(digits, 8)
            if value > 255:
                raise GoUnquoteError(f"invalid escape in {literal}")
            out.append(value)
            i += 2
        else:
            raise GoUnquoteError(f"invalid escape \\{esc} in {literal}")

    return out.decode("utf-8", "surrogateescape")
