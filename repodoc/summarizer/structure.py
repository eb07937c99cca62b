"""Structural summarizer for TypeScript and JavaScript sources."""

from __future__ import annotations

import posixpath
import re
from typing import Callable, Dict, List, Optional

from tree_sitter import Node

from ..errors import SummarizationError
from .logic import LogicFlowBuilder
from .nodes import (
    ExportedElement,
    ImportedElement,
    NodeKind,
    Parameter,
    Signature,
    StructuralNode,
)
from .parser import DEFAULT_GRAMMAR, ParserPool, grammar_for
from .syntax import SourceText, has_token, named_children, unquote

Handler = Callable[[Node, SourceText], Optional[StructuralNode]]

_MODIFIER_TOKENS = {
    "export": "export",
    "default": "default",
    "declare": "declare",
    "abstract": "abstract",
    "static": "static",
    "readonly": "readonly",
    "async": "async",
    "override": "override",
    "get": "get",
    "set": "set",
    "*": "generator",
}

_FUNCTION_VALUES = {"arrow_function", "function_expression", "function", "generator_function"}
_CLASS_VALUES = {"class", "class_declaration", "abstract_class_declaration"}
_PARAMETER_PROPERTY_MODIFIERS = {"public", "private", "protected", "readonly", "override"}

_DOC_LINE_RE = re.compile(r"^\s*\*? ?")


class StructuralSummarizer:
    """Turns one source file into a :class:`StructuralNode` tree.

    Dispatch is a mapping from tree-sitter syntax types to handlers; any type
    without a handler falls through to :meth:`_generic`, which keeps the node
    only when one of its descendants produced something.
    """

    def __init__(self, parsers: ParserPool | None = None) -> None:
        self.parsers = parsers or ParserPool()
        self._handlers: Dict[str, Handler] = {
            "program": self._module,
            "comment": self._skip,
            "hash_bang_line": self._skip,
            "decorator": self._skip,
            "import_statement": self._import,
            "export_statement": self._export,
            "function_declaration": self._function,
            "generator_function_declaration": self._function,
            "function_signature": self._function,
            "function_expression": self._function,
            "function": self._function,
            "generator_function": self._function,
            "arrow_function": self._arrow_function,
            "method_definition": self._method,
            "method_signature": self._method,
            "abstract_method_signature": self._method,
            "class_declaration": self._class,
            "abstract_class_declaration": self._class,
            "class": self._class,
            "interface_declaration": self._interface,
            "public_field_definition": self._property,
            "field_definition": self._property,
            "property_signature": self._property_signature,
            "type_alias_declaration": self._type_alias,
            "enum_declaration": self._enum,
            "lexical_declaration": self._variables,
            "variable_declaration": self._variables,
        }

    def summarize(self, source_text: str, path: Optional[str] = None) -> StructuralNode:
        """Return the Module node describing ``source_text``.

        ``path`` selects the grammar and names the module; it defaults to the
        TypeScript grammar and the name ``module``.
        """
        grammar = grammar_for(path) or DEFAULT_GRAMMAR
        source = source_text.encode("utf-8")
        try:
            tree = self.parsers.parse(source, grammar)
            text = SourceText(source)
            root = self._module(tree.root_node, text)
        except (RecursionError, ValueError) as exc:
            raise SummarizationError(f"Unable to summarize {path or 'source'}: {exc}") from exc
        if root is None:  # pragma: no cover - the module handler always returns a node
            raise SummarizationError(f"Unable to summarize {path or 'source'}")
        root.name = _module_name(path)
        return root

    def process(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        handler = self._handlers.get(node.type, self._generic)
        return handler(node, text)

    # ------------------------------------------------------------------
    # Containers

    def _module(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        return StructuralNode(kind=NodeKind.MODULE, children=self._process_all(node, text))

    def _generic(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        children = self._process_all(node, text)
        if not children:
            return None
        return StructuralNode(kind=NodeKind.GENERIC_CONTAINER, syntax=node.type, children=children)

    def _skip(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        return None

    def _process_all(self, node: Node, text: SourceText) -> List[StructuralNode]:
        results: List[StructuralNode] = []
        for child in named_children(node):
            processed = self.process(child, text)
            if processed is not None:
                results.append(processed)
        return results

    # ------------------------------------------------------------------
    # Imports and exports

    def _import(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        result = StructuralNode(
            kind=NodeKind.IMPORT,
            js_doc=_js_doc(node, text),
            module_specifier=unquote(text.field_text(node, "source") or ""),
            imported_elements=[],
        )
        if has_token(node, "type"):
            result.modifiers.append("typeOnly")
        elements = result.imported_elements
        assert elements is not None
        for child in named_children(node):
            if child.type == "import_clause":
                for binding in named_children(child):
                    elements.extend(_import_bindings(binding, text))
            elif child.type == "import_require_clause":
                identifiers = [item for item in named_children(child) if item.type == "identifier"]
                if identifiers:
                    elements.append(ImportedElement(name=text.text(identifiers[0]), is_default=True))
                source = child.child_by_field_name("source")
                if source is not None:
                    result.module_specifier = unquote(text.text(source))
        return result

    def _export(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        is_default = has_token(node, "default")
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")
        target = declaration
        if target is None and value is not None and value.type in _FUNCTION_VALUES | _CLASS_VALUES:
            target = value
        if target is not None:
            processed = self.process(target, text)
            if processed is not None:
                processed.add_modifiers("export", "default" if is_default else "")
                if processed.kind is NodeKind.VARIABLE_DECLARATION_GROUP:
                    for binding in processed.children or []:
                        if binding.kind is not NodeKind.VARIABLE:
                            binding.add_modifiers("export")
                if processed.js_doc is None:
                    processed.js_doc = _js_doc(node, text)
            return processed

        source = node.child_by_field_name("source")
        module_specifier = unquote(text.text(source)) if source is not None else None
        result = StructuralNode(
            kind=NodeKind.EXPORT,
            js_doc=_js_doc(node, text),
            module_specifier=module_specifier,
            exported_elements=[],
        )
        if has_token(node, "type"):
            result.modifiers.append("typeOnly")
        elements = result.exported_elements
        assert elements is not None

        if value is not None:
            elements.append(ExportedElement(name=text.text(value), is_default=True))
            return result

        clause = next((child for child in named_children(node) if child.type == "export_clause"), None)
        namespace = next(
            (child for child in named_children(node) if child.type == "namespace_export"), None
        )
        if clause is not None:
            for specifier in named_children(clause):
                if specifier.type != "export_specifier":
                    continue
                original = text.field_text(specifier, "name") or ""
                alias = text.field_text(specifier, "alias")
                elements.append(
                    ExportedElement(
                        name=unquote(alias) if alias is not None else unquote(original),
                        alias=unquote(original) if alias is not None else None,
                        from_module=module_specifier,
                    )
                )
        elif namespace is not None:
            names = named_children(namespace)
            elements.append(
                ExportedElement(
                    name=text.text(names[-1]) if names else "*",
                    alias="*",
                    from_module=module_specifier,
                )
            )
        elif has_token(node, "*"):
            elements.append(ExportedElement(name="*", from_module=module_specifier))
        else:
            # ``export = value`` and ``export as namespace X``
            remainder = named_children(node)
            if remainder:
                elements.append(ExportedElement(name=text.text(remainder[-1])))
        return result

    # ------------------------------------------------------------------
    # Functions

    def _function(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        return self._function_like(node, text, NodeKind.FUNCTION)

    def _arrow_function(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        return self._function_like(node, text, NodeKind.ARROW_FUNCTION)

    def _method(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        name = text.field_text(node, "name")
        if name == "constructor":
            result = self._function_like(node, text, NodeKind.CONSTRUCTOR)
            if result.signature is not None:
                result.signature = Signature(parameters=result.signature.parameters, return_type="void")
            return result
        result = self._function_like(node, text, NodeKind.METHOD)
        if node.type == "abstract_method_signature":
            result.add_modifiers("abstract")
        if has_token(node, "?"):
            result.modifiers.append("optional")
        return result

    def _function_like(self, node: Node, text: SourceText, kind: NodeKind) -> StructuralNode:
        body = node.child_by_field_name("body")
        return StructuralNode(
            kind=kind,
            name=text.field_text(node, "name"),
            js_doc=_js_doc(node, text),
            modifiers=_modifiers(node, text),
            signature=Signature(
                parameters=_parameters(node, text),
                return_type=text.annotation(node.child_by_field_name("return_type")),
            ),
            logic_flow=LogicFlowBuilder(text).build(body),
        )

    # ------------------------------------------------------------------
    # Classes and interfaces

    def _class(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        result = StructuralNode(
            kind=NodeKind.CLASS,
            name=text.field_text(node, "name"),
            js_doc=_js_doc(node, text),
            modifiers=_modifiers(node, text),
            children=[],
        )
        if node.type == "abstract_class_declaration":
            result.add_modifiers("abstract")
        for heritage in named_children(node):
            if heritage.type != "class_heritage":
                continue
            for clause in named_children(heritage):
                if clause.type == "extends_clause":
                    value = clause.child_by_field_name("value")
                    if value is not None:
                        result.inherits_from.append(text.text(value))
                    else:
                        result.inherits_from.extend(_type_names(clause, text))
                elif clause.type == "implements_clause":
                    result.implements.extend(_type_names(clause, text))
        body = node.child_by_field_name("body")
        if body is not None:
            members: List[StructuralNode] = []
            for member in self._process_all(body, text):
                members.append(member)
                if member.kind is NodeKind.CONSTRUCTOR:
                    members.extend(_parameter_properties(member))
            result.children = members
        return result

    def _interface(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        result = StructuralNode(
            kind=NodeKind.INTERFACE,
            name=text.field_text(node, "name"),
            js_doc=_js_doc(node, text),
            modifiers=_modifiers(node, text),
            children=[],
        )
        for clause in named_children(node):
            if clause.type == "extends_type_clause":
                result.inherits_from.extend(_type_names(clause, text))
        body = node.child_by_field_name("body")
        if body is not None:
            result.children = self._process_all(body, text)
        return result

    def _property(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        name_node = node.child_by_field_name("name") or node.child_by_field_name("property")
        result = StructuralNode(
            kind=NodeKind.PROPERTY,
            name=text.text(name_node) if name_node is not None else None,
            js_doc=_js_doc(node, text),
            modifiers=_modifiers(node, text),
            data_type=text.annotation(node.child_by_field_name("type")),
        )
        if has_token(node, "?"):
            result.modifiers.append("optional")
        _assign_initializer(result, node.child_by_field_name("value"), text)
        return result

    def _property_signature(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        result = StructuralNode(
            kind=NodeKind.PROPERTY_SIGNATURE,
            name=text.field_text(node, "name"),
            js_doc=_js_doc(node, text),
            modifiers=_modifiers(node, text),
            data_type=text.annotation(node.child_by_field_name("type")),
        )
        if has_token(node, "?"):
            result.modifiers.append("optional")
        return result

    # ------------------------------------------------------------------
    # Types, enums and variables

    def _type_alias(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        return StructuralNode(
            kind=NodeKind.TYPE_ALIAS,
            name=text.field_text(node, "name"),
            js_doc=_js_doc(node, text),
            modifiers=_modifiers(node, text),
            data_type=text.field_text(node, "value") or "any",
        )

    def _enum(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        result = StructuralNode(
            kind=NodeKind.ENUM,
            name=text.field_text(node, "name"),
            js_doc=_js_doc(node, text),
            modifiers=_modifiers(node, text),
            children=[],
        )
        if has_token(node, "const"):
            result.add_modifiers("const")
        body = node.child_by_field_name("body")
        members = result.children
        assert members is not None
        for member in named_children(body) if body is not None else []:
            if member.type == "enum_assignment":
                name = text.field_text(member, "name") or ""
                initializer = member.child_by_field_name("value")
                is_literal, literal = text.literal(initializer)
                members.append(
                    StructuralNode(
                        kind=NodeKind.ENUM_MEMBER,
                        name=unquote(name),
                        value=literal if is_literal else text.text(initializer),
                    )
                )
            elif member.type in {"property_identifier", "string"}:
                members.append(StructuralNode(kind=NodeKind.ENUM_MEMBER, name=unquote(text.text(member))))
        return result

    def _variables(self, node: Node, text: SourceText) -> Optional[StructuralNode]:
        group = StructuralNode(
            kind=NodeKind.VARIABLE_DECLARATION_GROUP,
            js_doc=_js_doc(node, text),
            modifiers=_modifiers(node, text),
            children=[],
        )
        keyword = node.child_by_field_name("kind")
        group.add_modifiers(text.text(keyword) if keyword is not None else "var")
        bindings = group.children
        assert bindings is not None
        for declarator in named_children(node):
            if declarator.type != "variable_declarator":
                continue
            name = text.field_text(declarator, "name")
            initializer = declarator.child_by_field_name("value")
            if initializer is not None and initializer.type in _FUNCTION_VALUES:
                function = self.process(initializer, text)
                if function is not None:
                    function.kind = NodeKind.ARROW_FUNCTION
                    function.name = name
                    function.modifiers = list(dict.fromkeys(group.modifiers + function.modifiers))
                    bindings.append(function)
                    continue
            variable = StructuralNode(
                kind=NodeKind.VARIABLE,
                name=name,
                data_type=text.annotation(declarator.child_by_field_name("type"), default=""),
            )
            _assign_initializer(variable, initializer, text)
            if not variable.data_type:
                variable.data_type = _inferred_type(variable)
            bindings.append(variable)
        return group


# ----------------------------------------------------------------------
# Module-level helpers


def _module_name(path: Optional[str]) -> str:
    if not path:
        return "module"
    root, extension = posixpath.splitext(path)
    return root if extension else path


def _import_bindings(binding: Node, text: SourceText) -> List[ImportedElement]:
    if binding.type == "identifier":
        return [ImportedElement(name=text.text(binding), is_default=True)]
    if binding.type == "namespace_import":
        names = [child for child in named_children(binding) if child.type == "identifier"]
        if names:
            return [ImportedElement(name=text.text(names[-1]), is_namespace=True)]
        return []
    if binding.type == "named_imports":
        elements: List[ImportedElement] = []
        for specifier in named_children(binding):
            if specifier.type != "import_specifier":
                continue
            original = unquote(text.field_text(specifier, "name") or "")
            alias = text.field_text(specifier, "alias")
            if alias is not None:
                elements.append(ImportedElement(name=alias, alias=original))
            else:
                elements.append(ImportedElement(name=original))
        return elements
    return []


def _modifiers(node: Node, text: SourceText) -> List[str]:
    found: List[str] = []
    for child in node.children:
        if child.type == "accessibility_modifier":
            found.append(text.text(child))
        elif child.type == "override_modifier":
            found.append("override")
        elif child.type == "decorator":
            found.append(text.text(child))
        elif not child.is_named and child.type in _MODIFIER_TOKENS:
            found.append(_MODIFIER_TOKENS[child.type])
    return list(dict.fromkeys(found))


def _parameters(node: Node, text: SourceText) -> List[Parameter]:
    params_node = node.child_by_field_name("parameters")
    if params_node is None:
        single = node.child_by_field_name("parameter")
        return [Parameter(name=text.text(single))] if single is not None else []
    parameters: List[Parameter] = []
    for param in named_children(params_node):
        if param.type not in {"required_parameter", "optional_parameter"}:
            # Plain JavaScript grammars expose bare patterns.
            parameters.append(Parameter(name=text.text(param)))
            continue
        pattern = param.child_by_field_name("pattern")
        parameters.append(
            Parameter(
                name=text.text(pattern) if pattern is not None else text.text(param),
                type=text.annotation(param.child_by_field_name("type")),
                optional=param.type == "optional_parameter"
                or param.child_by_field_name("value") is not None,
                modifiers=tuple(_modifiers(param, text)),
            )
        )
    return parameters


def _parameter_properties(constructor: StructuralNode) -> List[StructuralNode]:
    """Properties declared through ``constructor(private x: T)`` style parameters."""
    if constructor.signature is None:
        return []
    properties: List[StructuralNode] = []
    for parameter in constructor.signature.parameters:
        if not any(modifier in _PARAMETER_PROPERTY_MODIFIERS for modifier in parameter.modifiers):
            continue
        result = StructuralNode(
            kind=NodeKind.PROPERTY,
            name=parameter.name,
            modifiers=[modifier for modifier in parameter.modifiers if not modifier.startswith("@")],
            data_type=parameter.type,
        )
        properties.append(result)
    return properties


def _type_names(clause: Node, text: SourceText) -> List[str]:
    names: List[str] = []
    for item in named_children(clause):
        if item.type == "type_arguments":
            continue
        if item.type == "generic_type":
            base = item.child_by_field_name("name")
            names.append(text.text(base if base is not None else item))
        else:
            names.append(text.text(item))
    return names


def _assign_initializer(result: StructuralNode, initializer: Optional[Node], text: SourceText) -> None:
    if initializer is None:
        return
    is_literal, literal = text.literal(initializer)
    if is_literal:
        result.value = literal
    else:
        result.assigned_from_expression = text.text(initializer)


def _inferred_type(variable: StructuralNode) -> str:
    if isinstance(variable.value, bool):
        return "boolean"
    if isinstance(variable.value, (int, float)):
        return "number"
    if isinstance(variable.value, str):
        return "string"
    return "any"


def _js_doc(node: Node, text: SourceText) -> Optional[str]:
    anchor = node
    while anchor.parent is not None and anchor.parent.type == "export_statement":
        anchor = anchor.parent
    previous = anchor.prev_sibling
    if previous is None or previous.type != "comment":
        return None
    raw = text.text(previous)
    if not raw.startswith("/**"):
        return None
    if previous.end_point[0] < anchor.start_point[0] - 1:
        return None
    body = raw[3:-2] if raw.endswith("*/") else raw[3:]
    lines = [_DOC_LINE_RE.sub("", line, count=1).rstrip() for line in body.splitlines()]
    cleaned = "\n".join(lines).strip()
    return cleaned or None


__all__ = ["StructuralSummarizer"]
