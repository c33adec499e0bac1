"""Lightweight JavaScript/TypeScript parser for module reference sites.

The parser does not build a full syntax tree. It tokenizes the source
(skipping comments, strings, template and regular-expression literals
correctly) and keeps only what the crawler needs: nested blocks, ``try``
blocks, and the four kinds of reference site (import declarations,
export-from declarations, dynamic ``import()`` and ``require()`` calls).
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


PROGRAM = "program"
BLOCK = "block"
TRY_BLOCK = "try"
IMPORT_DECLARATION = "import"
EXPORT_DECLARATION = "export"
DYNAMIC_IMPORT = "dynamic_import"
REQUIRE_CALL = "require"

REFERENCE_KINDS = frozenset({IMPORT_DECLARATION, EXPORT_DECLARATION, DYNAMIC_IMPORT, REQUIRE_CALL})

# Modules provided by the Node.js runtime itself
NODE_BUILTINS = frozenset({
    "_http_agent", "_http_client", "_http_common", "_http_incoming",
    "_http_outgoing", "_http_server", "_stream_duplex", "_stream_passthrough",
    "_stream_readable", "_stream_transform", "_stream_wrap", "_stream_writable",
    "_tls_common", "_tls_wrap",
    "assert", "assert/strict", "async_hooks", "buffer", "child_process",
    "cluster", "console", "constants", "crypto", "dgram",
    "diagnostics_channel", "dns", "dns/promises", "domain", "events",
    "fs", "fs/promises", "http", "http2", "https", "inspector",
    "inspector/promises", "module", "net", "os", "path", "path/posix",
    "path/win32", "perf_hooks", "process", "punycode", "querystring",
    "readline", "readline/promises", "repl", "stream", "stream/consumers",
    "stream/promises", "stream/web", "string_decoder", "sys", "timers",
    "timers/promises", "tls", "trace_events", "tty", "url", "util",
    "util/types", "v8", "vm", "wasi", "worker_threads", "zlib",
})

# Keywords after which a "/" starts a regular expression, not a division
REGEX_PRECEDING_KEYWORDS = {
    "return", "typeof", "instanceof", "in", "of", "new", "delete", "void",
    "throw", "case", "do", "else", "yield", "await",
}

_NAME_RE = re.compile(r"[A-Za-z_$\u0080-\uffff][\w$\u0080-\uffff]*")
_NUMBER_RE = re.compile(r"\.?\d[\w.]*")
_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|.)", re.DOTALL)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


@dataclass
class Token:
    """A lexical token: name, number, string, template, regex or punct."""

    type: str
    value: str
    start: int
    end: int


@dataclass
class Expression:
    """
    An argument expression at a reference site.

    ``value`` holds the decoded string for string literals (and templates
    without substitutions). It is None for anything computed at runtime.
    """

    text: str
    value: Optional[str] = None

    @property
    def is_literal(self) -> bool:
        return self.value is not None


@dataclass
class Node:
    """A node of the reference-site tree."""

    kind: str
    text: str = ""
    start: int = 0
    end: int = 0
    children: List["Node"] = field(default_factory=list)
    arguments: List[Expression] = field(default_factory=list)
    type_only: bool = False
    in_try: bool = False

    @property
    def is_reference(self) -> bool:
        return self.kind in REFERENCE_KINDS

    @property
    def specifier(self) -> Optional[Expression]:
        """The expression naming the referenced module, if any."""
        return self.arguments[0] if self.arguments else None


def is_builtin(name: str) -> bool:
    """Check if a module name refers to a Node.js builtin module."""
    return name.startswith("node:") or name in NODE_BUILTINS


def parse_source(text: str) -> Node:
    """
    Parse JavaScript or TypeScript source into a reference-site tree.

    Args:
        text: The source text.

    Returns:
        The program node. Blocks and reference sites are its descendants
        in source order.
    """
    tokens = tokenize(text)
    root = Node(PROGRAM, text=text, start=0, end=len(text))
    _TreeBuilder(text, tokens).build(root)
    return root


def tokenize(source: str) -> List[Token]:
    """Split source text into tokens, dropping whitespace and comments."""
    tokens: List[Token] = []
    length = len(source)
    pos = 0

    if source.startswith("#!"):
        pos = _line_end(source, 0)

    while pos < length:
        char = source[pos]

        if char.isspace():
            pos += 1
            continue

        if source.startswith("//", pos):
            pos = _line_end(source, pos)
            continue

        if source.startswith("/*", pos):
            end = source.find("*/", pos + 2)
            pos = length if end == -1 else end + 2
            continue

        if char in "'\"":
            end = _skip_string(source, pos)
            tokens.append(Token("string", source[pos:end], pos, end))
            pos = end
            continue

        if char == "`":
            end = _skip_template(source, pos)
            tokens.append(Token("template", source[pos:end], pos, end))
            pos = end
            continue

        if char == "/" and _regex_allowed(tokens):
            end = _skip_regex(source, pos)
            if end is not None:
                tokens.append(Token("regex", source[pos:end], pos, end))
                pos = end
                continue

        match = _NAME_RE.match(source, pos)
        if match:
            tokens.append(Token("name", match.group(), pos, match.end()))
            pos = match.end()
            continue

        match = _NUMBER_RE.match(source, pos)
        if match:
            tokens.append(Token("number", match.group(), pos, match.end()))
            pos = match.end()
            continue

        tokens.append(Token("punct", char, pos, pos + 1))
        pos += 1

    return tokens


class _TreeBuilder:
    """Builds the block/reference-site tree from a token list."""

    def __init__(self, source: str, tokens: List[Token]):
        self.source = source
        self.tokens = tokens

    def build(self, root: Node) -> None:
        stack = [root]
        tokens = self.tokens
        i = 0

        while i < len(tokens):
            token = tokens[i]

            if token.type == "punct" and token.value == "{":
                kind = TRY_BLOCK if self._is_name(i - 1, "try") else BLOCK
                block = Node(kind, start=token.start)
                stack[-1].children.append(block)
                stack.append(block)
                i += 1
                continue

            if token.type == "punct" and token.value == "}":
                if len(stack) > 1:
                    self._close(stack.pop(), token.end)
                i += 1
                continue

            node = None
            if token.type == "name" and not self._is_member(i):
                if token.value == "import":
                    node, next_index = self._import(i, stack)
                elif token.value == "export":
                    node, next_index = self._export(i)
                elif token.value == "require":
                    node, next_index = self._require(i, stack)

            if node is not None:
                stack[-1].children.append(node)
                i = next_index
            else:
                i += 1

        # unbalanced braces
        while len(stack) > 1:
            self._close(stack.pop(), len(self.source))

    def _import(self, i: int, stack: List[Node]) -> Tuple[Optional[Node], int]:
        after = self._token(i + 1)
        if after is None:
            return None, i + 1

        if after.type == "punct" and after.value == "(":
            return self._call(DYNAMIC_IMPORT, i, stack)

        # import.meta
        if after.type == "punct" and after.value == ".":
            return None, i + 1

        if after.type == "string":
            return self._declaration(IMPORT_DECLARATION, i, i + 1), i + 2

        following = self._token(i + 2)
        type_only = (
            after.type == "name"
            and after.value == "type"
            and following is not None
            and not self._is_name(i + 2, "from")
            and following.value not in (",", "=")
        )

        j = i + 1
        while j < len(self.tokens):
            token = self.tokens[j]
            if token.type == "punct" and token.value in (";", "="):
                return None, i + 1
            if token.type == "name" and token.value == "from":
                target = self._token(j + 1)
                if target is not None and target.type == "string":
                    node = self._declaration(IMPORT_DECLARATION, i, j + 1)
                    node.type_only = type_only
                    return node, j + 2
            if token.type == "name" and token.value in ("import", "export"):
                break
            j += 1
        return None, i + 1

    def _export(self, i: int) -> Tuple[Optional[Node], int]:
        j = i + 1
        if self._is_name(j, "type"):
            j += 1

        token = self._token(j)
        if token is None or token.type != "punct":
            return None, i + 1

        if token.value == "*":
            j += 1
            if self._is_name(j, "as"):
                j += 2
        elif token.value == "{":
            close = self._matching(j)
            if close is None:
                return None, i + 1
            j = close + 1
        else:
            return None, i + 1

        target = self._token(j + 1)
        if self._is_name(j, "from") and target is not None and target.type == "string":
            return self._declaration(EXPORT_DECLARATION, i, j + 1), j + 2
        return None, i + 1

    def _require(self, i: int, stack: List[Node]) -> Tuple[Optional[Node], int]:
        if self._is_name(i - 1, "function"):
            return None, i + 1
        after = self._token(i + 1)
        if after is None or after.type != "punct" or after.value != "(":
            return None, i + 1
        return self._call(REQUIRE_CALL, i, stack)

    def _call(self, kind: str, i: int, stack: List[Node]) -> Tuple[Node, int]:
        arguments, close = self._arguments(i + 1)
        start = self.tokens[i].start
        end = self.tokens[close].end
        node = Node(
            kind,
            text=self.source[start:end],
            start=start,
            end=end,
            arguments=arguments,
            in_try=any(block.kind == TRY_BLOCK for block in stack),
        )
        return node, close + 1

    def _declaration(self, kind: str, first: int, string_index: int) -> Node:
        start = self.tokens[first].start
        end = self.tokens[string_index].end
        closing = self._token(string_index + 1)
        if closing is not None and closing.type == "punct" and closing.value == ";":
            end = closing.end
        return Node(
            kind,
            text=self.source[start:end],
            start=start,
            end=end,
            arguments=[self._expression(string_index, string_index)],
        )

    def _arguments(self, open_index: int) -> Tuple[List[Expression], int]:
        """Split the tokens of a call's argument list at top-level commas."""
        arguments: List[Expression] = []
        depth = 0
        first = None
        j = open_index + 1

        while j < len(self.tokens):
            token = self.tokens[j]
            if token.type == "punct":
                if token.value in "([{":
                    depth += 1
                elif token.value in ")]}":
                    if depth == 0:
                        if first is not None:
                            arguments.append(self._expression(first, j - 1))
                        if token.value == ")":
                            return arguments, j
                        # stray closer, leave it to the block tracking
                        return arguments, j - 1
                    depth -= 1
                elif token.value == "," and depth == 0:
                    if first is not None:
                        arguments.append(self._expression(first, j - 1))
                    first = None
                    j += 1
                    continue
            if first is None:
                first = j
            j += 1

        if first is not None:
            arguments.append(self._expression(first, len(self.tokens) - 1))
        return arguments, len(self.tokens) - 1

    def _expression(self, first: int, last: int) -> Expression:
        start = self.tokens[first]
        text = self.source[start.start:self.tokens[last].end]
        if first == last:
            if start.type == "string":
                return Expression(text, _unquote(text))
            if start.type == "template" and "${" not in text:
                return Expression(text, _unquote(text))
        return Expression(text)

    def _matching(self, open_index: int) -> Optional[int]:
        depth = 0
        for j in range(open_index, len(self.tokens)):
            token = self.tokens[j]
            if token.type != "punct":
                continue
            if token.value == "{":
                depth += 1
            elif token.value == "}":
                depth -= 1
                if depth == 0:
                    return j
        return None

    def _close(self, block: Node, end: int) -> None:
        block.end = end
        block.text = self.source[block.start:end]

    def _token(self, index: int) -> Optional[Token]:
        if 0 <= index < len(self.tokens):
            return self.tokens[index]
        return None

    def _is_name(self, index: int, value: str) -> bool:
        token = self._token(index)
        return token is not None and token.type == "name" and token.value == value

    def _is_member(self, index: int) -> bool:
        """True for property accesses such as ``obj.require``."""
        previous = self._token(index - 1)
        return previous is not None and previous.type == "punct" and previous.value == "."


def _line_end(source: str, pos: int) -> int:
    end = source.find("\n", pos)
    return len(source) if end == -1 else end


def _skip_string(source: str, pos: int) -> int:
    """Return the end of a quoted string. Unterminated strings stop at the line end."""
    quote = source[pos]
    i = pos + 1
    while i < len(source):
        char = source[i]
        if char == "\\":
            i += 2
            continue
        if char == quote:
            return i + 1
        if char == "\n":
            return i
        i += 1
    return len(source)


def _skip_template(source: str, pos: int) -> int:
    i = pos + 1
    while i < len(source):
        char = source[i]
        if char == "\\":
            i += 2
        elif char == "`":
            return i + 1
        elif source.startswith("${", i):
            i = _skip_substitution(source, i + 2)
        else:
            i += 1
    return len(source)


def _skip_substitution(source: str, pos: int) -> int:
    depth = 1
    i = pos
    while i < len(source):
        char = source[i]
        if char in "'\"":
            i = _skip_string(source, i)
        elif char == "`":
            i = _skip_template(source, i)
        elif char == "{":
            depth += 1
            i += 1
        elif char == "}":
            depth -= 1
            i += 1
            if depth == 0:
                return i
        else:
            i += 1
    return len(source)


def _regex_allowed(tokens: List[Token]) -> bool:
    if not tokens:
        return True
    previous = tokens[-1]
    if previous.type == "name":
        return previous.value in REGEX_PRECEDING_KEYWORDS
    if previous.type == "punct":
        return previous.value not in ")]}"
    return False


def _skip_regex(source: str, pos: int) -> Optional[int]:
    """Return the end of a regular-expression literal, or None if it is not one."""
    in_class = False
    i = pos + 1
    while i < len(source):
        char = source[i]
        if char == "\\":
            i += 2
            continue
        if char == "\n":
            return None
        if in_class:
            if char == "]":
                in_class = False
        elif char == "[":
            in_class = True
        elif char == "/":
            i += 1
            while i < len(source) and (source[i].isalnum() or source[i] in "_$"):
                i += 1
            return i
        i += 1
    return None


def _unquote(literal: str) -> str:
    if len(literal) >= 2 and literal[-1] == literal[0]:
        body = literal[1:-1]
    else:
        body = literal[1:]
    return _ESCAPE_RE.sub(_unescape, body)


def _unescape(match) -> str:
    sequence = match.group(1)
    if sequence.startswith("u{"):
        return chr(int(sequence[2:-1], 16))
    if sequence[0] in "ux" and len(sequence) > 1:
        return chr(int(sequence[1:], 16))
    if sequence in ("\n", "\r\n"):
        return ""
    return _ESCAPES.get(sequence, sequence)
