"""relc.model

Program model produced by the semantic builder and consumed by the layout pass
and the code emitter.

The model is plain data. Each entity is populated while its declaration is
open and is not touched again once it has been appended to its owner; later
passes build new objects instead of mutating existing ones.

Memory addresses and field offsets use the `Binding` sum type: either
`UNBOUND` or `Bound(value)`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Union


@dataclass(frozen=True)
class Unbound:
    """No address/offset was given."""

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class Bound:
    """An explicit address/offset."""
    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"negative binding: {self.value}")


UNBOUND = Unbound()

Binding = Union[Unbound, Bound]


class FunctionModifier(Enum):
    NONE = ""
    VIRTUAL = "virtual"
    STATIC = "static"


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str


@dataclass
class Function:
    name: str
    return_type: str = "void"
    modifier: FunctionModifier = FunctionModifier.NONE
    parameters: List[Parameter] = field(default_factory=list)
    calling_convention: str = ""
    address: Binding = UNBOUND
    is_pad: bool = False
    public: bool = True
    line: int = 0

    @classmethod
    def pad(cls, vtable_offset: int) -> "Function":
        """Virtual pad occupying one unknown vtable slot.

        The recorded address only names the pad; it is never called.
        """
        return cls(
            name=f"vpad_{vtable_offset:x}",
            return_type="void",
            modifier=FunctionModifier.VIRTUAL,
            address=Bound(vtable_offset),
            is_pad=True,
            public=False,
        )

    @property
    def is_virtual(self) -> bool:
        return self.modifier is FunctionModifier.VIRTUAL

    @property
    def is_static(self) -> bool:
        return self.modifier is FunctionModifier.STATIC

    def add_parameter(self, name: str, parameter_type: str) -> None:
        self.parameters.append(Parameter(name=name, type=parameter_type))


@dataclass
class Variable:
    name: str = ""
    type: str = ""
    offset: Binding = UNBOUND
    # element count for array fields (pads only, for now)
    length: Optional[int] = None
    is_pad: bool = False
    public: bool = True
    line: int = 0

    @classmethod
    def pad(cls, offset: int, size: int) -> "Variable":
        """Opaque byte range covering unmapped fields."""
        return cls(
            name=f"pad_{offset:x}",
            type="char",
            offset=Bound(offset),
            length=size,
            is_pad=True,
            public=False,
        )

    @property
    def declarator(self) -> str:
        if self.length is None:
            return self.name
        return f"{self.name}[{self.length}]"


@dataclass(frozen=True)
class RawBlock:
    code: str
    line: int = 0


Member = Union[Variable, Function, RawBlock]

SizeOf = Callable[[Variable], Optional[int]]


@dataclass
class Class:
    name: str
    base_classes: List[str] = field(default_factory=list)
    # declaration order; per-category views below keep their relative order
    members: List[Member] = field(default_factory=list)
    line: int = 0

    def add_base_class(self, name: str) -> None:
        self.base_classes.append(name)

    def add_variable(self, variable: Variable) -> None:
        self.members.append(variable)

    def add_function(self, function: Function) -> None:
        self.members.append(function)

    def add_raw_block(self, raw_block: RawBlock) -> None:
        self.members.append(raw_block)

    @property
    def variables(self) -> List[Variable]:
        return [m for m in self.members if isinstance(m, Variable)]

    @property
    def functions(self) -> List[Function]:
        """Instance (non-virtual, non-static) methods."""
        return [
            m for m in self.members
            if isinstance(m, Function) and m.modifier is FunctionModifier.NONE
        ]

    @property
    def virtual_functions(self) -> List[Function]:
        return [m for m in self.members if isinstance(m, Function) and m.is_virtual]

    @property
    def static_functions(self) -> List[Function]:
        return [m for m in self.members if isinstance(m, Function) and m.is_static]

    @property
    def raw_blocks(self) -> List[RawBlock]:
        return [m for m in self.members if isinstance(m, RawBlock)]

    @property
    def has_virtual_members(self) -> bool:
        return any(isinstance(m, Function) and m.is_virtual for m in self.members)

    def size(self, sizeof: SizeOf) -> Optional[int]:
        """Offset of the last field plus its size.

        Returns None when the class has no fields or when the last field's
        offset or size is not known.
        """
        variables = self.variables
        if not variables:
            return None
        last = variables[-1]
        if not isinstance(last.offset, Bound):
            return None
        last_size = sizeof(last)
        if last_size is None:
            return None
        return last.offset.value + last_size


Declaration = Union[Class, Function, Variable, RawBlock]


@dataclass
class Program:
    """Top-level container (one per compiled chunk)."""
    declarations: List[Declaration] = field(default_factory=list)

    def add_class(self, cls: Class) -> None:
        self.declarations.append(cls)

    def add_function(self, function: Function) -> None:
        self.declarations.append(function)

    def add_variable(self, variable: Variable) -> None:
        self.declarations.append(variable)

    def add_raw_block(self, raw_block: RawBlock) -> None:
        self.declarations.append(raw_block)

    @property
    def classes(self) -> List[Class]:
        return [d for d in self.declarations if isinstance(d, Class)]

    @property
    def functions(self) -> List[Function]:
        return [d for d in self.declarations if isinstance(d, Function)]

    @property
    def variables(self) -> List[Variable]:
        return [d for d in self.declarations if isinstance(d, Variable)]

    @property
    def raw_blocks(self) -> List[RawBlock]:
        return [d for d in self.declarations if isinstance(d, RawBlock)]

    def find_class(self, name: str) -> Optional[Class]:
        for cls in self.classes:
            if cls.name == name:
                return cls
        return None
