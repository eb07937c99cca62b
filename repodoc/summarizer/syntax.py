"""Small helpers for reading tree-sitter nodes against their source bytes."""

from __future__ import annotations

from typing import List, Optional, Tuple

from tree_sitter import Node

from .nodes import LiteralValue


class SourceText:
    """Source bytes of one file, used to slice node text."""

    def __init__(self, source: bytes) -> None:
        self.source = source

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def span(self, start: Node, end: Node) -> str:
        return self.source[start.end_byte : end.start_byte].decode("utf-8", errors="replace")

    def field_text(self, node: Node, name: str) -> Optional[str]:
        child = node.child_by_field_name(name)
        return self.text(child) if child is not None else None

    def annotation(self, node: Optional[Node], default: str = "any") -> str:
        """Return the type written after ``:`` in a type annotation node."""
        if node is None:
            return default
        text = self.text(node).strip()
        if text.startswith(":"):
            text = text[1:].strip()
        return text or default

    def unwrap_parens(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        if node.type == "parenthesized_expression":
            inner = named_children(node)
            if len(inner) == 1:
                return self.text(inner[0])
        return self.text(node)

    def header(self, node: Node) -> Optional[str]:
        """Return the text between a statement's own ``(`` and ``)`` tokens."""
        open_paren = close_paren = None
        for child in node.children:
            if child.type == "(" and open_paren is None:
                open_paren = child
            elif child.type == ")" and open_paren is not None:
                close_paren = child
                break
        if open_paren is None or close_paren is None:
            return None
        return self.span(open_paren, close_paren).strip()

    def literal(self, node: Optional[Node]) -> Tuple[bool, Optional[LiteralValue]]:
        """Return ``(True, value)`` when ``node`` is a string, number or boolean literal."""
        if node is None:
            return False, None
        if node.type == "string":
            return True, unquote(self.text(node))
        if node.type == "number":
            return True, parse_number(self.text(node))
        if node.type == "true":
            return True, True
        if node.type == "false":
            return True, False
        if node.type == "unary_expression":
            operator = node.child_by_field_name("operator")
            argument = node.child_by_field_name("argument")
            if (
                operator is not None
                and operator.type in {"-", "+"}
                and argument is not None
                and argument.type == "number"
            ):
                number = parse_number(self.text(argument))
                if isinstance(number, (int, float)):
                    return True, -number if operator.type == "-" else number
        return False, None


def named_children(node: Node) -> List[Node]:
    return [child for child in node.named_children if child.type != "comment"]


def has_token(node: Node, token: str) -> bool:
    return any(not child.is_named and child.type == token for child in node.children)


def unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {"'", '"', "`"}:
        return text[1:-1]
    return text


def parse_number(text: str) -> LiteralValue:
    cleaned = text.replace("_", "")
    if cleaned.endswith("n"):
        cleaned = cleaned[:-1]
    try:
        return int(cleaned, 0)
    except ValueError:
        pass
    try:
        return float(cleaned)
    except ValueError:
        return text


__all__ = ["SourceText", "has_token", "named_children", "parse_number", "unquote"]
