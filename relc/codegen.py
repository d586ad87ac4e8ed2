"""relc.codegen

C++ code emitter.

Renders a resolved program model into a header whose classes overlay the
foreign binary's memory exactly:

- every class is wrapped in `#pragma pack(push)` / `#pragma pack(1)` /
  `#pragma pack(pop)` so the compiler inserts no padding of its own
- fields are emitted in model order (which is offset order) with their
  offset in a trailing comment
- callable functions become inline trampolines that cast the fixed address
  to a function pointer with the declared calling convention and forward
  all arguments, `this` first for instance methods
- virtual functions become pure virtual declarations; their order is the
  vtable order and is never changed
- free variables become references bound to their fixed address

The emitter keeps only indentation depth and the current access region as
state and never mutates the model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from relc.context import InternalCompilerError
from relc.layout import TypeSizes
from relc.model import (
    Bound,
    Class,
    Function,
    Parameter,
    Program,
    RawBlock,
    Variable,
)

logger = logging.getLogger(__name__)


DEFAULT_PRIMITIVE_SIZES: Dict[str, int] = {
    "bool": 1,
    "char": 1,
    "int8_t": 1,
    "uint8_t": 1,
    "BYTE": 1,
    "short": 2,
    "wchar_t": 2,
    "int16_t": 2,
    "uint16_t": 2,
    "WORD": 2,
    "int": 4,
    "long": 4,
    "float": 4,
    "int32_t": 4,
    "uint32_t": 4,
    "DWORD": 4,
    "double": 8,
    "int64_t": 8,
    "uint64_t": 8,
    "__int64": 8,
    "QWORD": 8,
}


@dataclass
class CppSyntax:
    """Target syntax rules and type sizes for the C++ backend."""
    indent: str = "    "
    banner: str = "// DO NOT EDIT. THIS FILE WAS GENERATED BY THE RELANG COMPILER"
    include_guard: str = "#pragma once"
    pack_begin: Tuple[str, ...] = ("#pragma pack(push)", "#pragma pack(1)")
    pack_end: Tuple[str, ...] = ("#pragma pack(pop)",)
    size_assert_message: str = "Unexpected class size"
    instance_type: str = "decltype(this)"
    instance_name: str = "this"
    pointer_size: int = 4
    primitive_sizes: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_PRIMITIVE_SIZES))

    def hex(self, value: int) -> str:
        return f"0x{value:X}"


class CodeEmitter:
    """Generates C++ from a program model"""

    def __init__(
        self,
        syntax: Optional[CppSyntax] = None,
        size_assertions: bool = True,
        includes: Optional[Sequence[str]] = None,
        sizes: Optional[TypeSizes] = None,
    ):
        self.syntax = syntax or CppSyntax()
        self.size_assertions = size_assertions
        self.includes = list(includes or [])
        # class sizes settled by the layout pass, if any
        self.layout_sizes = sizes
        self.lines: List[str] = []
        self._indent = 0
        self._public = True
        self._sizes = TypeSizes(self.syntax)

    def emit(self, program: Program) -> str:
        """Render `program` and return the header text."""
        self.lines = []
        self._indent = 0
        self._public = True
        self._sizes = self.layout_sizes if self.layout_sizes is not None else TypeSizes(self.syntax, program)

        self._emit(self.syntax.banner)
        self._emit(self.syntax.include_guard)
        self._emit("")

        if self.includes:
            for path in self.includes:
                self._emit_include(path)
            self._emit("")

        classes = program.classes
        if classes:
            for cls in classes:
                self._emit(f"class {cls.name};")
            self._emit("")

        for decl in program.declarations:
            if isinstance(decl, Class):
                self._emit_class(decl)
            elif isinstance(decl, Function):
                self._emit_trampoline(decl, owner=None)
            elif isinstance(decl, Variable):
                self._emit_global_variable(decl)
            elif isinstance(decl, RawBlock):
                self._emit_raw(decl)
            else:
                raise InternalCompilerError(f"unexpected declaration: {type(decl).__name__}")

        logger.debug("emitted %d lines", len(self.lines))
        return "\n".join(self.lines) + "\n"

    # -----------------
    # Helpers
    # -----------------

    def _emit(self, line: str) -> None:
        if line:
            self.lines.append(self.syntax.indent * self._indent + line)
        else:
            self.lines.append("")

    def _emit_raw(self, raw_block: RawBlock) -> None:
        # verbatim: no indentation, no validation
        self.lines.append(raw_block.code)

    def _emit_include(self, path: str) -> None:
        if path.startswith("<"):
            self._emit(f"#include {path}")
        else:
            self._emit(f'#include "{path}"')

    def _set_access(self, public: bool) -> None:
        if public == self._public:
            return
        # region headers sit one level left of the members
        self._indent -= 1
        self._emit("public:" if public else "private:")
        self._indent += 1
        self._public = public

    @staticmethod
    def _parameters(params: Sequence[Parameter]) -> str:
        return ", ".join(f"{p.type} {p.name}" for p in params)

    def _function_pointer_type(self, fn: Function, params: Sequence[Parameter]) -> str:
        types = ", ".join(p.type for p in params)
        if fn.calling_convention:
            return f"{fn.return_type}({fn.calling_convention} *)({types})"
        return f"{fn.return_type}(*)({types})"

    # -----------------
    # Declarations
    # -----------------

    def _emit_class(self, cls: Class) -> None:
        for directive in self.syntax.pack_begin:
            self._emit(directive)

        if cls.base_classes:
            bases = ", ".join(f"public {b}" for b in cls.base_classes)
            self._emit(f"class {cls.name} : {bases}")
        else:
            self._emit(f"class {cls.name}")
        self._emit("{")
        self._indent += 1

        # class bodies always open with an explicit public region
        self._public = False
        self._set_access(True)

        for member in cls.members:
            if isinstance(member, Variable):
                self._set_access(member.public)
                self._emit_class_variable(member)
            elif isinstance(member, Function) and member.is_virtual:
                self._set_access(member.public)
                self._emit_virtual(member)
            elif isinstance(member, Function):
                self._set_access(member.public)
                self._emit_trampoline(member, owner=cls)
            elif isinstance(member, RawBlock):
                self._emit_raw(member)
            else:
                raise InternalCompilerError(f"unexpected member of {cls.name}: {type(member).__name__}")

        self._indent -= 1
        self._emit("};")

        size = self._sizes.sizeof(cls.name)
        if self.size_assertions and size is not None:
            self._emit(
                f'static_assert(sizeof({cls.name}) == {self.syntax.hex(size)}, "{self.syntax.size_assert_message}");'
            )

        for directive in self.syntax.pack_end:
            self._emit(directive)
        self._emit("")
        self._public = True

    def _emit_class_variable(self, var: Variable) -> None:
        if not isinstance(var.offset, Bound):
            raise InternalCompilerError(f"field '{var.name}' reached the emitter without an offset", var.line)
        self._emit(f"{var.type} {var.declarator}; // offset {self.syntax.hex(var.offset.value)}")

    def _emit_global_variable(self, var: Variable) -> None:
        if not isinstance(var.offset, Bound):
            raise InternalCompilerError(f"global '{var.name}' reached the emitter without an address", var.line)
        addr = self.syntax.hex(var.offset.value)
        self._emit(f"inline {var.type}& {var.name} = *({var.type}*){addr};")
        self._emit("")

    def _emit_virtual(self, fn: Function) -> None:
        self._emit(f"virtual {fn.return_type} {fn.name}({self._parameters(fn.parameters)}) = 0;")

    def _emit_trampoline(self, fn: Function, owner: Optional[Class]) -> None:
        if not isinstance(fn.address, Bound):
            raise InternalCompilerError(f"function '{fn.name}' reached the emitter without an address", fn.line)

        prefix = "static inline" if owner is not None and fn.is_static else "inline"
        self._emit(f"{prefix} {fn.return_type} {fn.name}({self._parameters(fn.parameters)})")
        self._emit("{")
        self._indent += 1

        params: List[Parameter] = list(fn.parameters)
        if owner is not None and not fn.is_static:
            params.insert(0, Parameter(name=self.syntax.instance_name, type=self.syntax.instance_type))

        self._emit(f"using Func_t = {self._function_pointer_type(fn, params)};")
        self._emit(f"auto f = reinterpret_cast<Func_t>({self.syntax.hex(fn.address.value)});")
        self._emit(f"return f({', '.join(p.name for p in params)});")

        self._indent -= 1
        self._emit("}")
        self._emit("")
