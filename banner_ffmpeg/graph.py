"""Typed model of an ffmpeg ``-filter_complex`` graph.

Nodes own their option maps; pad wiring is validated as nodes are appended so
a broken graph fails here instead of inside the subprocess.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union

from banner_errors import DanglingPadError, DuplicatePadError, FilterGraphError
from banner_layout import Color

# Applied in this order; later replacements must not touch earlier output
_OPTION_ESCAPES: Tuple[Tuple[str, str], ...] = (
    ("\\", "\\\\"),
    (":", "\\:"),
    ("=", "\\="),
    (";", "\\;"),
)
# The graph parser ends a filter's argument string at these
_GRAPH_DELIMITERS = "[],;"
_OPTION_DELIMITER = ":"
_GRAPH_UNSAFE = set(_GRAPH_DELIMITERS + _OPTION_DELIMITER + "\\='")
_WHITESPACE = " \n\t\r"


class Expr(str):
    """Engine expression emitted verbatim, e.g. ``(w-text_w)/2``."""


class Quoted(str):
    """User-controlled string emitted escaped and wrapped in single quotes."""


OptionValue = Union[str, int, float, bool, Expr, Quoted]


def escape_option_value(value: object, quoted: bool = False) -> str:
    """Escape ``value`` for ffmpeg's option parser.

    Backslashes go first, then ``:``, ``=`` and ``;``; quoted values also
    escape the single quote. This is the option-level escape only: the
    graph-level quoting is added by ``quote_for_graph``.
    """
    text = "" if value is None else str(value)
    for raw, escaped in _OPTION_ESCAPES:
        text = text.replace(raw, escaped)
    if quoted:
        text = text.replace("'", "\\'")
    return text


def quote_for_graph(text: str) -> str:
    """Wrap option-escaped ``text`` in graph-level single quotes.

    Inside quotes the graph parser copies every character literally, so a
    backslash cannot escape a quote there. Each quote closes the section,
    emits ``\\'`` and reopens it.
    """
    return "'" + text.replace("'", "'\\''") + "'"


def format_option_value(value: OptionValue) -> str:
    """Render one option value as it appears in ``-filter_complex``."""
    if isinstance(value, Expr):
        return str(value)
    if isinstance(value, Quoted):
        return quote_for_graph(escape_option_value(value, quoted=True))
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else f"{value:g}"
    text = str(value)
    if text and text.strip(_WHITESPACE) == text and not _GRAPH_UNSAFE.intersection(text):
        return text
    return quote_for_graph(escape_option_value(text, quoted=True))


def unescape_option_value(text: str) -> str:
    """Decode one rendered option value the way ffmpeg reads it.

    The graph parser runs first: a backslash outside quotes takes the next
    character, and quoted text is copied as is. The option parser then reads
    the result with the same rules. A delimiter that would end the value early
    at either level raises ``FilterGraphError``.
    """
    args, end = _read_token(text, 0, _GRAPH_DELIMITERS)
    if end != len(text):
        raise FilterGraphError(f"Unescaped {text[end]!r} in option value: {text!r}")
    value, end = _read_token(args, 0, _OPTION_DELIMITER)
    if end != len(args):
        raise FilterGraphError(f"Unescaped {args[end]!r} in option value: {text!r}")
    return value


def parse_options(text: str) -> Dict[str, str]:
    """Decode a rendered ``key=value:key=value`` argument string into its values."""
    args, end = _read_token(text, 0, _GRAPH_DELIMITERS)
    if end != len(text):
        raise FilterGraphError(f"Unescaped {text[end]!r} in filter arguments: {text!r}")
    options: Dict[str, str] = {}
    pos = 0
    while pos < len(args):
        key_end = args.find("=", pos)
        if key_end < 0:
            raise FilterGraphError(f"Option without value: {args[pos:]!r}")
        key = args[pos:key_end]
        options[key], pos = _read_token(args, key_end + 1, _OPTION_DELIMITER)
        if pos < len(args):
            pos += 1
    return options


def ffmpeg_color(color: Color) -> str:
    r, g, b, a = color
    return f"0x{r:02X}{g:02X}{b:02X}{a:02X}"


def _read_token(text: str, pos: int, delimiters: str) -> Tuple[str, int]:
    """Read one token from ``pos`` up to an unescaped, unquoted delimiter.

    Mirrors ffmpeg's ``av_get_token``: leading whitespace is skipped and
    trailing unquoted whitespace dropped. Returns the token and the index of
    the delimiter (or ``len(text)``).
    """
    out: List[str] = []
    keep = 0
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    while pos < len(text) and text[pos] not in delimiters:
        ch = text[pos]
        pos += 1
        if ch == "\\" and pos < len(text):
            out.append(text[pos])
            pos += 1
            keep = len(out)
        elif ch == "'":
            close = text.find("'", pos)
            if close < 0:
                raise FilterGraphError(f"Unterminated quote in option value: {text!r}")
            out.extend(text[pos:close])
            pos = close + 1
            keep = len(out)
        else:
            out.append(ch)
    while len(out) > keep and out[-1] in _WHITESPACE:
        out.pop()
    return "".join(out), pos


@dataclass
class FilterNode:
    name: str
    options: Dict[str, OptionValue] = field(default_factory=dict)
    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)

    def render(self) -> str:
        pads_in = "".join(f"[{pad}]" for pad in self.inputs)
        pads_out = "".join(f"[{pad}]" for pad in self.outputs)
        body = self.name
        if self.options:
            body += "=" + ":".join(f"{key}={format_option_value(value)}" for key, value in self.options.items())
        return f"{pads_in}{body}{pads_out}"


class FilterGraph:
    """Ordered filter nodes with pad bookkeeping."""

    def __init__(self, external_inputs: Sequence[str] = ("0:v",)) -> None:
        self.external_inputs: Tuple[str, ...] = tuple(external_inputs)
        self.nodes: List[FilterNode] = []
        self._produced: Set[str] = set()
        self._consumed: Set[str] = set()

    def add(
        self,
        name: str,
        options: Optional[Mapping[str, OptionValue]] = None,
        *,
        inputs: Sequence[str] = (),
        outputs: Sequence[str] = (),
    ) -> FilterNode:
        node = FilterNode(name=name, options=dict(options or {}), inputs=list(inputs), outputs=list(outputs))
        self.append(node)
        return node

    def append(self, node: FilterNode) -> None:
        for pad in node.inputs:
            if pad in self.external_inputs:
                continue
            if pad not in self._produced:
                raise DanglingPadError(f"{node.name}: input pad [{pad}] is not produced by an earlier node")
            if pad in self._consumed:
                raise FilterGraphError(f"{node.name}: pad [{pad}] is already consumed")
        for pad in node.outputs:
            if pad in self._produced or pad in self.external_inputs:
                raise DuplicatePadError(f"{node.name}: output pad [{pad}] already exists")

        self._consumed.update(p for p in node.inputs if p not in self.external_inputs)
        self._produced.update(node.outputs)
        self.nodes.append(node)

    def unconsumed(self) -> List[str]:
        """Produced pads that no node reads, in production order."""
        return [pad for node in self.nodes for pad in node.outputs if pad not in self._consumed]

    def validate(self, output_pad: str) -> None:
        """Check that ``output_pad`` is the single unconsumed pad of the graph."""
        if output_pad not in self._produced:
            raise DanglingPadError(f"Output pad [{output_pad}] is never produced")
        leftovers = [pad for pad in self.unconsumed() if pad != output_pad]
        if leftovers or output_pad in self._consumed:
            raise FilterGraphError(f"Unconnected pads in graph: {', '.join(leftovers) or output_pad}")

    def render(self) -> str:
        return ";".join(node.render() for node in self.nodes)

    def names(self) -> List[str]:
        return [node.name for node in self.nodes]

    def find(self, name: str) -> List[FilterNode]:
        return [node for node in self.nodes if node.name == name]

    def __iter__(self) -> Iterator[FilterNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)


__all__ = [
    "Expr",
    "FilterGraph",
    "FilterNode",
    "Quoted",
    "escape_option_value",
    "ffmpeg_color",
    "format_option_value",
    "parse_options",
    "quote_for_graph",
    "unescape_option_value",
]
