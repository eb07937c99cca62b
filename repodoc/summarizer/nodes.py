"""Structural digest data model and its JSON rendering."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

LiteralValue = Union[str, int, float, bool]


class NodeKind(str, Enum):
    """Declaration kinds a structural digest can contain."""

    MODULE = "Module"
    IMPORT = "Import"
    EXPORT = "Export"
    FUNCTION = "Function"
    METHOD = "Method"
    ARROW_FUNCTION = "ArrowFunction"
    CLASS = "Class"
    INTERFACE = "Interface"
    PROPERTY = "Property"
    PROPERTY_SIGNATURE = "PropertySignature"
    CONSTRUCTOR = "Constructor"
    TYPE_ALIAS = "TypeAlias"
    ENUM = "Enum"
    ENUM_MEMBER = "EnumMember"
    VARIABLE = "Variable"
    VARIABLE_DECLARATION_GROUP = "VariableDeclarationGroup"
    GENERIC_CONTAINER = "GenericContainer"
    UNKNOWN = "Unknown"


FUNCTION_KINDS = frozenset(
    {NodeKind.FUNCTION, NodeKind.METHOD, NodeKind.ARROW_FUNCTION, NodeKind.CONSTRUCTOR}
)
CONTAINER_KINDS = frozenset(
    {
        NodeKind.MODULE,
        NodeKind.CLASS,
        NodeKind.INTERFACE,
        NodeKind.ENUM,
        NodeKind.VARIABLE_DECLARATION_GROUP,
        NodeKind.GENERIC_CONTAINER,
    }
)


class LogicKind(str, Enum):
    """Statement-level shapes recorded in a function's logic-flow skeleton."""

    IF = "IfStatement"
    THEN = "ThenBlock"
    ELSE = "ElseBlock"
    RETURN = "ReturnStatement"
    THROW = "ThrowStatement"
    CALL = "FunctionCall"
    VARIABLE = "VariableDeclaration"
    FUNCTION = "FunctionDeclaration"
    FOR = "ForStatement"
    FOR_IN = "ForInStatement"
    WHILE = "WhileStatement"
    DO = "DoStatement"
    SWITCH = "SwitchStatement"
    CASE = "SwitchCase"
    DEFAULT_CASE = "DefaultCase"
    TRY = "TryStatement"
    CATCH = "CatchClause"
    FINALLY = "FinallyClause"
    NESTED = "NestedLogic"


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str = "any"
    optional: bool = False
    modifiers: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "type": self.type}
        if self.optional:
            data["isOptional"] = True
        if self.modifiers:
            data["modifiers"] = list(self.modifiers)
        return data


@dataclass(frozen=True)
class Signature:
    parameters: List[Parameter] = field(default_factory=list)
    return_type: str = "any"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameters": [parameter.to_dict() for parameter in self.parameters],
            "returnType": self.return_type,
        }


@dataclass(frozen=True)
class ImportedElement:
    """A binding introduced by an import; ``alias`` holds the exported name it renames."""

    name: str
    alias: Optional[str] = None
    is_default: bool = False
    is_namespace: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name}
        if self.alias is not None:
            data["alias"] = self.alias
        if self.is_default:
            data["isDefault"] = True
        if self.is_namespace:
            data["isNamespace"] = True
        return data


@dataclass(frozen=True)
class ExportedElement:
    """A name made visible by an export; ``alias`` holds the local name it renames."""

    name: str
    alias: Optional[str] = None
    from_module: Optional[str] = None
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name}
        if self.alias is not None:
            data["alias"] = self.alias
        if self.from_module is not None:
            data["fromModule"] = self.from_module
        if self.is_default:
            data["isDefault"] = True
        return data


@dataclass
class LogicNode:
    kind: LogicKind
    name: Optional[str] = None
    condition: Optional[str] = None
    value: Optional[str] = None
    arguments: Optional[List[str]] = None
    awaited: bool = False
    syntax: Optional[str] = None
    children: List["LogicNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind.value}
        if self.syntax is not None:
            data["syntax"] = self.syntax
        if self.name is not None:
            data["name"] = self.name
        if self.condition is not None:
            data["condition"] = self.condition
        if self.value is not None:
            data["value"] = self.value
        if self.arguments is not None:
            data["arguments"] = list(self.arguments)
        if self.awaited:
            data["await"] = True
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class StructuralNode:
    """One declaration in a structural digest.

    ``logic_flow`` is only populated on function-like kinds and ``children``
    only on container kinds; :meth:`__post_init__` enforces both.
    """

    kind: NodeKind
    name: Optional[str] = None
    js_doc: Optional[str] = None
    modifiers: List[str] = field(default_factory=list)
    signature: Optional[Signature] = None
    logic_flow: Optional[List[LogicNode]] = None
    inherits_from: List[str] = field(default_factory=list)
    implements: List[str] = field(default_factory=list)
    data_type: Optional[str] = None
    value: Optional[LiteralValue] = None
    assigned_from_expression: Optional[str] = None
    module_specifier: Optional[str] = None
    imported_elements: Optional[List[ImportedElement]] = None
    exported_elements: Optional[List[ExportedElement]] = None
    syntax: Optional[str] = None
    children: Optional[List["StructuralNode"]] = None

    def __post_init__(self) -> None:
        if self.logic_flow is not None and self.kind not in FUNCTION_KINDS:
            raise ValueError(f"{self.kind.value} nodes cannot carry a logic flow")
        if self.children is not None and self.kind not in CONTAINER_KINDS:
            raise ValueError(f"{self.kind.value} nodes cannot carry children")

    def add_modifiers(self, *modifiers: str) -> None:
        merged = [modifier for modifier in modifiers if modifier]
        merged.extend(self.modifiers)
        self.modifiers = list(dict.fromkeys(merged))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind.value}
        if self.syntax is not None:
            data["syntax"] = self.syntax
        if self.name is not None:
            data["name"] = self.name
        if self.js_doc is not None:
            data["jsDoc"] = self.js_doc
        if self.modifiers:
            data["modifiers"] = list(self.modifiers)
        if self.signature is not None:
            data["signature"] = self.signature.to_dict()
        if self.inherits_from:
            data["inheritsFrom"] = list(self.inherits_from)
        if self.implements:
            data["implements"] = list(self.implements)
        if self.data_type is not None:
            data["dataType"] = self.data_type
        if self.value is not None:
            data["value"] = self.value
        if self.assigned_from_expression is not None:
            data["assignedFromExpression"] = self.assigned_from_expression
        if self.module_specifier is not None:
            data["moduleSpecifier"] = self.module_specifier
        if self.imported_elements is not None:
            data["importedElements"] = [item.to_dict() for item in self.imported_elements]
        if self.exported_elements is not None:
            data["exportedElements"] = [item.to_dict() for item in self.exported_elements]
        if self.logic_flow:
            data["logicFlow"] = [item.to_dict() for item in self.logic_flow]
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def render_digest(node: StructuralNode) -> str:
    """Serialize a module's top-level declarations as indented JSON."""
    items = node.children if node.kind is NodeKind.MODULE else [node]
    return json.dumps([item.to_dict() for item in items or []], indent=2, ensure_ascii=False)


__all__ = [
    "CONTAINER_KINDS",
    "ExportedElement",
    "FUNCTION_KINDS",
    "ImportedElement",
    "LiteralValue",
    "LogicKind",
    "LogicNode",
    "NodeKind",
    "Parameter",
    "Signature",
    "StructuralNode",
    "render_digest",
]
