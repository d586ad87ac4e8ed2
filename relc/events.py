"""relc.events

Declaration events.

The semantic builder does not look at syntax trees; it reads an ordered
stream of enter/exit events. `walk()` produces that stream from a parsed
`Chunk` in depth-first order, matching what a grammar listener would see.
Other front-ends may construct `Event` objects directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Tuple

from relc.ast_nodes import (
    AddressLiteral,
    Chunk,
    ClassDecl,
    FunctionDecl,
    ParameterDecl,
    RawBlockDecl,
    TypeRef,
    VariableDecl,
)


class Phase(Enum):
    ENTER = auto()
    EXIT = auto()


class EventKind(Enum):
    CLASS_DECLARATION = auto()
    FUNCTION_DECLARATION = auto()
    FUNCTION_MODIFIER = auto()
    FUNCTION_RETURN_TYPE = auto()
    CALLING_CONVENTION = auto()
    FUNCTION_PARAMETER = auto()
    VARIABLE_DECLARATION = auto()
    MEMORY_ADDRESS = auto()
    POINTER_TYPE = auto()
    PRIMITIVE_TYPE = auto()
    RAW_BLOCK = auto()


@dataclass(frozen=True)
class Event:
    """One enter/exit notification.

    Payload by kind:
    - CLASS_DECLARATION enter: `names` = (class name, *base names)
    - FUNCTION_DECLARATION enter: `text` = function name
    - FUNCTION_MODIFIER / FUNCTION_RETURN_TYPE / CALLING_CONVENTION enter: `text`
    - FUNCTION_PARAMETER / VARIABLE_DECLARATION exit: `text` = declared name
    - MEMORY_ADDRESS enter: `text` = hex literal
    - POINTER_TYPE enter: `text` = pointee type
    - PRIMITIVE_TYPE enter: `text` = type name
    - RAW_BLOCK enter: `text` = block including its delimiters
    """
    kind: EventKind
    phase: Phase
    line: int = 0
    text: str = ""
    names: Tuple[str, ...] = ()


def enter(kind: EventKind, line: int = 0, text: str = "", names: Tuple[str, ...] = ()) -> Event:
    return Event(kind=kind, phase=Phase.ENTER, line=line, text=text, names=names)


def leave(kind: EventKind, line: int = 0, text: str = "") -> Event:
    return Event(kind=kind, phase=Phase.EXIT, line=line, text=text)


def walk(chunk: Chunk) -> Iterator[Event]:
    """Yield the declaration events of `chunk` in source order."""
    for decl in chunk.declarations:
        if isinstance(decl, ClassDecl):
            yield from _walk_class(decl)
        elif isinstance(decl, FunctionDecl):
            yield from _walk_function(decl)
        elif isinstance(decl, VariableDecl):
            yield from _walk_variable(decl)
        elif isinstance(decl, RawBlockDecl):
            yield enter(EventKind.RAW_BLOCK, decl.line, text=decl.text)
        else:
            raise TypeError(f"unexpected declaration node: {type(decl).__name__}")


def _walk_class(decl: ClassDecl) -> Iterator[Event]:
    yield enter(EventKind.CLASS_DECLARATION, decl.line, names=(decl.name, *decl.base_classes))
    for member in decl.members:
        if isinstance(member, FunctionDecl):
            yield from _walk_function(member)
        elif isinstance(member, VariableDecl):
            yield from _walk_variable(member)
        elif isinstance(member, RawBlockDecl):
            yield enter(EventKind.RAW_BLOCK, member.line, text=member.text)
        else:
            raise TypeError(f"unexpected member node: {type(member).__name__}")
    yield leave(EventKind.CLASS_DECLARATION, decl.line)


def _walk_function(decl: FunctionDecl) -> Iterator[Event]:
    yield enter(EventKind.FUNCTION_DECLARATION, decl.line, text=decl.name)
    if decl.modifier:
        yield enter(EventKind.FUNCTION_MODIFIER, decl.line, text=decl.modifier)
    yield enter(EventKind.FUNCTION_RETURN_TYPE, decl.return_type.line, text=str(decl.return_type))
    if decl.calling_convention:
        yield enter(EventKind.CALLING_CONVENTION, decl.line, text=decl.calling_convention)
    for param in decl.parameters:
        yield from _walk_parameter(param)
    if decl.address is not None:
        yield from _walk_address(decl.address)
    yield leave(EventKind.FUNCTION_DECLARATION, decl.line)


def _walk_parameter(param: ParameterDecl) -> Iterator[Event]:
    yield enter(EventKind.FUNCTION_PARAMETER, param.line)
    yield _type_event(param.type)
    yield leave(EventKind.FUNCTION_PARAMETER, param.line, text=param.name)


def _walk_variable(decl: VariableDecl) -> Iterator[Event]:
    yield enter(EventKind.VARIABLE_DECLARATION, decl.line)
    yield _type_event(decl.type)
    if decl.address is not None:
        yield from _walk_address(decl.address)
    yield leave(EventKind.VARIABLE_DECLARATION, decl.line, text=decl.name)


def _walk_address(address: AddressLiteral) -> Iterator[Event]:
    yield enter(EventKind.MEMORY_ADDRESS, address.line, text=address.text)


def _type_event(ty: TypeRef) -> Event:
    if ty.is_pointer:
        return enter(EventKind.POINTER_TYPE, ty.line, text=ty.pointee)
    return enter(EventKind.PRIMITIVE_TYPE, ty.line, text=ty.name)
