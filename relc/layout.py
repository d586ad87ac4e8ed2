"""relc.layout

Layout pass run between the semantic builder and the code emitter.

- resolves implicit field offsets (a field without offset follows the
  previous one)
- inserts pad fields over unmapped byte ranges
- inserts pad virtual functions over unmapped vtable slots
- clears vtable offsets from virtual functions once their slot is fixed

Sizes come from the target backend (`CppSyntax.primitive_sizes` and
`pointer_size`) and from classes declared earlier in the same program.
The input program is left untouched; a new one is returned.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple

from relc.model import (
    UNBOUND,
    Bound,
    Class,
    Function,
    Member,
    Program,
    Variable,
)
from relc.semantics import SemanticError

if TYPE_CHECKING:
    from relc.codegen import CppSyntax

logger = logging.getLogger(__name__)


class LayoutError(SemanticError):
    """Fields or virtual slots cannot be placed as declared"""
    pass


class TypeSizes:
    """sizeof() over the type strings used in the model."""

    def __init__(self, syntax: "CppSyntax", program: Optional[Program] = None):
        self.syntax = syntax
        self._classes: Dict[str, Class] = {}
        self._class_sizes: Dict[str, Optional[int]] = {}
        self._resolving: Set[str] = set()
        if program is not None:
            for cls in program.classes:
                self._classes[cls.name] = cls

    def set_class_size(self, name: str, size: Optional[int]) -> None:
        self._class_sizes[name] = size

    def sizeof(self, type_name: str) -> Optional[int]:
        t = type_name.strip()
        if t.endswith("*"):
            return self.syntax.pointer_size
        if t in self.syntax.primitive_sizes:
            return self.syntax.primitive_sizes[t]
        if t in self._class_sizes:
            return self._class_sizes[t]
        cls = self._classes.get(t)
        if cls is None or t in self._resolving:
            return None
        self._resolving.add(t)
        try:
            size = cls.size(self.variable_size)
        finally:
            self._resolving.discard(t)
        self._class_sizes[t] = size
        return size

    def variable_size(self, variable: Variable) -> Optional[int]:
        size = self.sizeof(variable.type)
        if size is None:
            return None
        if variable.length is not None:
            return size * variable.length
        return size


class LayoutResolver:
    """Resolves class layouts in declaration order."""

    def __init__(self, syntax: "CppSyntax"):
        self.syntax = syntax
        self.sizes = TypeSizes(syntax)
        # byte size of each resolved class's vtable (None when unknown)
        self._vtable_sizes: Dict[str, Optional[int]] = {}

    def resolve(self, program: Program) -> Program:
        self.sizes = TypeSizes(self.syntax)
        self._vtable_sizes = {}

        declarations = []
        for decl in program.declarations:
            if isinstance(decl, Class):
                decl = self._resolve_class(decl)
            declarations.append(decl)
        return Program(declarations=declarations)

    def _fields_start(self, cls: Class) -> Optional[int]:
        ptr = self.syntax.pointer_size
        if not cls.base_classes:
            return ptr if cls.has_virtual_members else 0

        total = 0
        base_has_vtable = False
        for base in cls.base_classes:
            size = self.sizes.sizeof(base) if base in self._vtable_sizes else None
            if size is None:
                return None
            total += size
            if self._vtable_sizes.get(base):
                base_has_vtable = True
        if cls.has_virtual_members and not base_has_vtable:
            total += ptr
        return total

    def _vtable_start(self, cls: Class) -> Optional[int]:
        if not cls.base_classes:
            return 0
        return self._vtable_sizes.get(cls.base_classes[0])

    def _resolve_class(self, cls: Class) -> Class:
        ptr = self.syntax.pointer_size
        field_cursor = self._fields_start(cls)
        slot_cursor = self._vtable_start(cls)
        members: List[Member] = []
        last_offset: Optional[int] = None

        for member in cls.members:
            if isinstance(member, Variable):
                field_cursor, last_offset = self._place_variable(
                    cls, member, field_cursor, last_offset, members
                )
            elif isinstance(member, Function) and member.is_virtual:
                slot_cursor = self._place_virtual(cls, member, slot_cursor, members)
            else:
                members.append(member)

        resolved = replace(cls, base_classes=list(cls.base_classes), members=members)
        size = resolved.size(self.sizes.variable_size)
        if size is None and not resolved.variables and field_cursor is not None:
            # no fields of its own: size is whatever the bases/vptr occupy
            size = field_cursor if field_cursor > 0 else None
        self.sizes.set_class_size(cls.name, size)
        self._vtable_sizes[cls.name] = slot_cursor
        logger.debug(
            "laid out class %s: size=%s vtable=%s (%d slots, word %d)",
            cls.name,
            hex(size) if size is not None else "?",
            hex(slot_cursor) if slot_cursor is not None else "?",
            len(resolved.virtual_functions),
            ptr,
        )
        return resolved

    def _place_variable(
        self,
        cls: Class,
        var: Variable,
        cursor: Optional[int],
        last_offset: Optional[int],
        members: List[Member],
    ) -> Tuple[Optional[int], int]:
        """Place `var` and return (next free offset, offset of `var`)."""
        if isinstance(var.offset, Bound):
            offset = var.offset.value
            if cursor is not None:
                if offset < cursor:
                    raise LayoutError(
                        f"offset 0x{offset:X} of '{cls.name}::{var.name}' overlaps the previous field "
                        f"(next free offset is 0x{cursor:X})",
                        var.line,
                    )
                if offset > cursor:
                    members.append(Variable.pad(cursor, offset - cursor))
            elif last_offset is not None:
                if offset <= last_offset:
                    raise LayoutError(
                        f"offset 0x{offset:X} of '{cls.name}::{var.name}' is not above the previous field "
                        f"at 0x{last_offset:X}",
                        var.line,
                    )
                logger.warning(
                    "line %d: size of the field before '%s::%s' is unknown, offset 0x%X is unchecked",
                    var.line,
                    cls.name,
                    var.name,
                    offset,
                )
            placed = var
        else:
            if cursor is None:
                raise LayoutError(
                    f"cannot infer offset of '{cls.name}::{var.name}': size of the previous field is unknown",
                    var.line,
                )
            offset = cursor
            placed = replace(var, offset=Bound(offset))

        members.append(placed)
        size = self.sizes.variable_size(placed)
        if size is None:
            return None, offset
        return offset + size, offset


    def _place_virtual(
        self,
        cls: Class,
        fn: Function,
        cursor: Optional[int],
        members: List[Member],
    ) -> Optional[int]:
        ptr = self.syntax.pointer_size
        if fn.is_pad:
            members.append(fn)
            return cursor + ptr if cursor is not None else None

        if isinstance(fn.address, Bound):
            offset = fn.address.value
            if offset % ptr != 0:
                raise LayoutError(
                    f"vtable offset 0x{offset:X} of '{cls.name}::{fn.name}' is not a multiple of {ptr}",
                    fn.line,
                )
            if cursor is not None:
                if offset < cursor:
                    raise LayoutError(
                        f"vtable offset 0x{offset:X} of '{cls.name}::{fn.name}' overlaps the previous slot "
                        f"(next free slot is 0x{cursor:X})",
                        fn.line,
                    )
                for slot in range(cursor, offset, ptr):
                    members.append(Function.pad(slot))
            cursor = offset

        members.append(replace(fn, address=UNBOUND, parameters=list(fn.parameters)))
        return cursor + ptr if cursor is not None else None
