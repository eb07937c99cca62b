"""Statement-level control-flow skeletons for function bodies."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from tree_sitter import Node

from .nodes import LogicKind, LogicNode
from .syntax import SourceText, named_children

_LOOP_KINDS = {
    "for_statement": LogicKind.FOR,
    "for_in_statement": LogicKind.FOR_IN,
    "while_statement": LogicKind.WHILE,
    "do_statement": LogicKind.DO,
}

_NESTED_FUNCTIONS = {
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
}


class LogicFlowBuilder:
    """Builds the coarse logic-flow skeleton of one function body.

    Every visit returns a list so blocks can flatten into their parent;
    an empty list means the statement carried nothing worth keeping.
    """

    def __init__(self, text: SourceText) -> None:
        self.text = text
        self._handlers: Dict[str, Callable[[Node], List[LogicNode]]] = {
            "comment": self._skip,
            "empty_statement": self._skip,
            "statement_block": self._block,
            "expression_statement": self._expression_statement,
            "if_statement": self._if,
            "return_statement": self._return,
            "throw_statement": self._throw,
            "call_expression": self._call,
            "await_expression": self._await,
            "lexical_declaration": self._declaration,
            "variable_declaration": self._declaration,
            "switch_statement": self._switch,
            "try_statement": self._try,
        }
        for syntax_type in _LOOP_KINDS:
            self._handlers[syntax_type] = self._loop
        for syntax_type in _NESTED_FUNCTIONS:
            self._handlers[syntax_type] = self._nested_function

    def build(self, body: Optional[Node]) -> Optional[List[LogicNode]]:
        """Return the logic flow of a body, or None when the function has no body."""
        if body is None:
            return None
        if body.type == "statement_block":
            return self._block(body)
        # Expression-bodied arrow functions return their expression.
        return [LogicNode(kind=LogicKind.RETURN, value=self.text.text(body))]

    def visit(self, node: Node) -> List[LogicNode]:
        handler = self._handlers.get(node.type, self._generic)
        return handler(node)

    # ------------------------------------------------------------------
    # Handlers

    def _skip(self, node: Node) -> List[LogicNode]:
        return []

    def _block(self, node: Node) -> List[LogicNode]:
        flattened: List[LogicNode] = []
        for child in named_children(node):
            flattened.extend(self.visit(child))
        return flattened

    def _expression_statement(self, node: Node) -> List[LogicNode]:
        return self._block(node)

    def _if(self, node: Node) -> List[LogicNode]:
        logic = LogicNode(
            kind=LogicKind.IF,
            condition=self.text.unwrap_parens(node.child_by_field_name("condition")),
        )
        consequence = node.child_by_field_name("consequence")
        then_branch = self.visit(consequence) if consequence is not None else []
        if then_branch:
            logic.children.append(LogicNode(kind=LogicKind.THEN, children=then_branch))
        alternative = node.child_by_field_name("alternative")
        if alternative is not None:
            else_branch = self._block(alternative)
            if else_branch:
                logic.children.append(LogicNode(kind=LogicKind.ELSE, children=else_branch))
        return [logic]

    def _return(self, node: Node) -> List[LogicNode]:
        values = named_children(node)
        value = self.text.text(values[0]) if values else "void"
        return [LogicNode(kind=LogicKind.RETURN, value=value)]

    def _throw(self, node: Node) -> List[LogicNode]:
        values = named_children(node)
        value = self.text.text(values[0]) if values else None
        return [LogicNode(kind=LogicKind.THROW, value=value)]

    def _call(self, node: Node) -> List[LogicNode]:
        arguments_node = node.child_by_field_name("arguments")
        arguments: List[str] = []
        if arguments_node is not None:
            if arguments_node.type == "arguments":
                arguments = [self.text.text(arg) for arg in named_children(arguments_node)]
            else:
                arguments = [self.text.text(arguments_node)]
        return [
            LogicNode(
                kind=LogicKind.CALL,
                name=self.text.field_text(node, "function"),
                arguments=arguments,
            )
        ]

    def _await(self, node: Node) -> List[LogicNode]:
        inner = named_children(node)
        if len(inner) == 1 and inner[0].type == "call_expression":
            call = self._call(inner[0])
            call[0].awaited = True
            return call
        return self._generic(node)

    def _declaration(self, node: Node) -> List[LogicNode]:
        declarations: List[LogicNode] = []
        for declarator in named_children(node):
            if declarator.type != "variable_declarator":
                continue
            declarations.append(
                LogicNode(
                    kind=LogicKind.VARIABLE,
                    name=self.text.field_text(declarator, "name"),
                    value=self.text.field_text(declarator, "value"),
                )
            )
        return declarations

    def _loop(self, node: Node) -> List[LogicNode]:
        body = node.child_by_field_name("body")
        children = self.visit(body) if body is not None else []
        if node.type == "do_statement":
            condition = self.text.unwrap_parens(node.child_by_field_name("condition"))
        elif node.type == "while_statement":
            condition = self.text.unwrap_parens(node.child_by_field_name("condition"))
        else:
            condition = self.text.header(node)
        return [LogicNode(kind=_LOOP_KINDS[node.type], condition=condition, children=children)]

    def _switch(self, node: Node) -> List[LogicNode]:
        logic = LogicNode(
            kind=LogicKind.SWITCH,
            condition=self.text.unwrap_parens(node.child_by_field_name("value")),
        )
        body = node.child_by_field_name("body")
        for case in named_children(body) if body is not None else []:
            if case.type == "switch_case":
                value = case.child_by_field_name("value")
                statements = [child for child in named_children(case) if child != value]
                kind = LogicKind.CASE
                condition: Optional[str] = self.text.text(value)
            elif case.type == "switch_default":
                statements = named_children(case)
                kind = LogicKind.DEFAULT_CASE
                condition = None
            else:
                continue
            children: List[LogicNode] = []
            for statement in statements:
                children.extend(self.visit(statement))
            logic.children.append(LogicNode(kind=kind, condition=condition, children=children))
        return [logic]

    def _try(self, node: Node) -> List[LogicNode]:
        body = node.child_by_field_name("body")
        logic = LogicNode(kind=LogicKind.TRY, children=self.visit(body) if body is not None else [])
        handler = node.child_by_field_name("handler")
        if handler is not None:
            handler_body = handler.child_by_field_name("body")
            logic.children.append(
                LogicNode(
                    kind=LogicKind.CATCH,
                    condition=self.text.field_text(handler, "parameter"),
                    children=self.visit(handler_body) if handler_body is not None else [],
                )
            )
        finalizer = node.child_by_field_name("finalizer")
        if finalizer is not None:
            finalizer_body = finalizer.child_by_field_name("body")
            logic.children.append(
                LogicNode(
                    kind=LogicKind.FINALLY,
                    children=self.visit(finalizer_body) if finalizer_body is not None else [],
                )
            )
        return [logic]

    def _nested_function(self, node: Node) -> List[LogicNode]:
        return [LogicNode(kind=LogicKind.FUNCTION, name=self.text.field_text(node, "name"))]

    def _generic(self, node: Node) -> List[LogicNode]:
        nested: List[LogicNode] = []
        for child in named_children(node):
            nested.extend(self.visit(child))
        if not nested:
            return []
        return [
            LogicNode(
                kind=LogicKind.NESTED,
                syntax=node.type,
                value=self.text.text(node),
                children=nested,
            )
        ]


__all__ = ["LogicFlowBuilder"]
