"""
Declaration tree nodes for the RELang front-end.

The parser materialises a chunk as a tree of these nodes; `relc.events.walk`
turns the tree into the enter/exit event stream read by the semantic builder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class ASTNode:
    """Base class for all declaration nodes"""
    # Location fields are required constructor arguments so subclasses'
    # non-default fields don't follow defaults.
    line: int
    column: int


@dataclass
class TypeRef(ASTNode):
    """Named type, optionally behind one or more pointer levels"""
    name: str
    pointer_depth: int = 0

    @property
    def is_pointer(self) -> bool:
        return self.pointer_depth > 0

    @property
    def pointee(self) -> str:
        """Text of the type one pointer level down."""
        return self.name + "*" * max(self.pointer_depth - 1, 0)

    def __str__(self) -> str:
        return self.name + "*" * self.pointer_depth


@dataclass
class AddressLiteral(ASTNode):
    """Hex literal following '@'"""
    text: str


@dataclass
class ParameterDecl(ASTNode):
    name: str
    type: TypeRef


@dataclass
class FunctionDecl(ASTNode):
    name: str
    return_type: TypeRef
    parameters: List[ParameterDecl] = field(default_factory=list)
    modifier: Optional[str] = None  # 'virtual', 'static'
    calling_convention: Optional[str] = None
    address: Optional[AddressLiteral] = None


@dataclass
class VariableDecl(ASTNode):
    name: str
    type: TypeRef
    address: Optional[AddressLiteral] = None


@dataclass
class RawBlockDecl(ASTNode):
    """Raw block text, delimiters included"""
    text: str


MemberDecl = Union[FunctionDecl, VariableDecl, RawBlockDecl]


@dataclass
class ClassDecl(ASTNode):
    name: str
    base_classes: List[str] = field(default_factory=list)
    members: List[MemberDecl] = field(default_factory=list)


TopLevelDecl = Union[ClassDecl, FunctionDecl, VariableDecl, RawBlockDecl]


@dataclass
class Chunk(ASTNode):
    """Root of one source file"""
    declarations: List[TopLevelDecl] = field(default_factory=list)
