"""HTML renderer: converts document nodes to HTML fragments."""

from __future__ import annotations

import html

from deimos import nodes
from deimos.errors import ErrorKind, RenderError
from deimos.trace import TraceHook, emit


def render(
    doc: nodes.Document,
    *,
    escape_html: bool = False,
    trace: TraceHook | None = None,
) -> str:
    """Render a document: each top-level block's output, concatenated.

    A block that cannot be rendered raises RenderError.
    """
    return "".join(to_output(block, escape_html=escape_html, trace=trace) for block in doc.children)


def to_output(node: object, *, escape_html: bool = False, trace: TraceHook | None = None) -> str:
    """Render a single node to its HTML fragment."""
    return _Renderer(escape_html, trace).node(node)


class _Renderer:
    """One pass of node-to-HTML conversion with fixed options."""

    def __init__(self, escape_html: bool, trace: TraceHook | None) -> None:
        self._escape = escape_html
        self._trace = trace

    # ------------------------------------------------------------------
    # Escaping
    # ------------------------------------------------------------------

    def text(self, value: str) -> str:
        return html.escape(value, quote=False) if self._escape else value

    def attr(self, value: str) -> str:
        return html.escape(value, quote=True) if self._escape else value

    # ------------------------------------------------------------------
    # Node dispatcher
    # ------------------------------------------------------------------

    def node(self, node: object) -> str:
        match node:
            case nodes.Text(value=value):
                return self.text(value)
            case nodes.Bold(value=value):
                return f"<strong>{self.text(value)}</strong>"
            case nodes.Italics(value=value):
                return f"<em>{self.text(value)}</em>"
            case nodes.StrikeThrough(value=value):
                return f"<del>{self.text(value)}</del>"
            case nodes.Subscript(value=value):
                return f"<sub>{self.text(value)}</sub>"
            case nodes.Superscript(value=value):
                return f"<sup>{self.text(value)}</sup>"
            case nodes.Code(block_type=nodes.CodeType.INLINE, contents=contents):
                return f"<code>{self.text(contents)}</code>"
            case nodes.Code(block_type=nodes.CodeType.FENCED, contents=contents):
                return f"<pre><code>{self.text(contents)}</code></pre>"
            case nodes.Heading(level=level, text=text):
                return f"<h{level}>{self.text(text)}<h{level}/>"
            case nodes.Paragraph(content=content):
                return self.children(content.children)
            case nodes.RichText(children=children):
                return self.children(children)
            case nodes.List(list_type=list_type, items=items):
                return self._list(list_type, items)
            case nodes.Table():
                return self._table(node)
            case nodes.Aside(content=content):
                return f"<aside>{self.children(content.children)}</aside>"
            case nodes.Details(summary=summary, body=body):
                return (
                    f"<details><summary>{self.children(summary.children)}</summary>"
                    f"{self.children(body)}</details>"
                )
            case nodes.Image(alt=alt, src=src):
                return f'<img src="{self.attr(src)}" alt="{self.attr(alt)}" />'
            case nodes.HorizontalBreak():
                return "<hr>"
            case nodes.Variable(name=name):
                return f"<var>{self.text(name)}</var>"
            case nodes.NegatedVariable(name=name):
                return f"<span>{self.text(name)}</span>"
            case nodes.Error():
                return self.text(node.display)
            case nodes.Whitespace() | nodes.Comment() | nodes.EOI() | nodes.Metadata():
                return ""
            case _:
                raise RenderError(ErrorKind.OTHER, f"no HTML mapping for {type(node).__name__}")

    def children(self, children: tuple[object, ...]) -> str:
        """Render children in order; a child that fails renders as its error text."""
        parts: list[str] = []
        for child in children:
            try:
                parts.append(self.node(child))
            except RenderError as exc:
                emit(self._trace, "render_recovered", kind=type(child).__name__, error=exc.message)
                parts.append(self.text(exc.display))
        return "".join(parts)

    # ------------------------------------------------------------------
    # Composite blocks
    # ------------------------------------------------------------------

    def _list(self, list_type: nodes.ListType, items: tuple[nodes.RichText, ...]) -> str:
        tag = "ol" if list_type is nodes.ListType.ORDERED else "ul"
        parts: list[str] = [f"<{tag}>"]
        for item in items:
            parts.append(f"<li>{self.children((item,))}</li>")
        parts.append(f"</{tag}>")
        return "".join(parts)

    def _table(self, table: nodes.Table) -> str:
        parts: list[str] = ["<table><tr>"]
        for header in table.headers:
            parts.append(f"<th>{self.text(header)}</th>")
        parts.append("</tr>")
        for row in table.rows:
            parts.append("<tr>")
            for cell in row.children:
                parts.append(f"<td>{self.children((cell,))}</td>")
            parts.append("</tr>")
        parts.append("</table>")
        return "".join(parts)
