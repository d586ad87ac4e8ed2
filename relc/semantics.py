"""relc.semantics

Semantic builder: turns the ordered declaration event stream into a
`relc.model.Program`.

Rules enforced while building (each checked when the declaration closes):
- free functions need an address
- non-virtual member functions need an address
- the first field of a class needs an explicit offset
- free variables need an explicit offset
- class names are unique

The type of the next parameter/variable is threaded through the handlers as
an explicit value: every handler receives the pending type and returns the
pending type after its event.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from relc.context import ContextTag, DeclarationContextStack, InternalCompilerError
from relc.events import Event, EventKind, Phase
from relc.model import (
    Bound,
    Class,
    Function,
    FunctionModifier,
    Program,
    RawBlock,
    Variable,
)

logger = logging.getLogger(__name__)

RAW_BLOCK_DELIMITER = "```"

Handler = Callable[[Event, Optional[str]], Optional[str]]


class SemanticError(Exception):
    """Invalid declaration in user input"""

    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        if line:
            super().__init__(f"{message} (line {line})")
        else:
            super().__init__(message)


class MissingBindingError(SemanticError):
    """A declaration that must be bound to an address/offset is not"""
    pass


def parse_hex_literal(text: str, line: Optional[int] = None) -> int:
    digits = text.strip()
    if digits[:2] in ("0x", "0X"):
        digits = digits[2:]
    try:
        return int(digits, 16)
    except ValueError:
        raise SemanticError(f"invalid hexadecimal literal '{text}'", line) from None


class SemanticBuilder:
    """Builds the program model from declaration events.

    With `strict` (the default) a function modifier, return type or calling
    convention seen outside a function declaration is an internal error.
    Without it the event is dropped and a warning recorded.
    """

    def __init__(self, strict: bool = True):
        self.strict = strict
        self.warnings: List[str] = []
        self._handlers: Dict[Tuple[EventKind, Phase], Handler] = {
            (EventKind.CLASS_DECLARATION, Phase.ENTER): self._enter_class,
            (EventKind.CLASS_DECLARATION, Phase.EXIT): self._exit_class,
            (EventKind.FUNCTION_DECLARATION, Phase.ENTER): self._enter_function,
            (EventKind.FUNCTION_DECLARATION, Phase.EXIT): self._exit_function,
            (EventKind.FUNCTION_MODIFIER, Phase.ENTER): self._enter_modifier,
            (EventKind.FUNCTION_RETURN_TYPE, Phase.ENTER): self._enter_return_type,
            (EventKind.CALLING_CONVENTION, Phase.ENTER): self._enter_calling_convention,
            (EventKind.FUNCTION_PARAMETER, Phase.EXIT): self._exit_parameter,
            (EventKind.VARIABLE_DECLARATION, Phase.ENTER): self._enter_variable,
            (EventKind.VARIABLE_DECLARATION, Phase.EXIT): self._exit_variable,
            (EventKind.MEMORY_ADDRESS, Phase.ENTER): self._enter_address,
            (EventKind.POINTER_TYPE, Phase.ENTER): self._enter_pointer,
            (EventKind.PRIMITIVE_TYPE, Phase.ENTER): self._enter_primitive,
            (EventKind.RAW_BLOCK, Phase.ENTER): self._enter_raw_block,
        }
        self._reset()

    def _reset(self) -> None:
        self.warnings = []
        self._stack = DeclarationContextStack()
        self._program = Program()
        self._class: Optional[Class] = None
        self._function: Optional[Function] = None
        self._variable: Optional[Variable] = None

    def build(self, events: Iterable[Event]) -> Program:
        """Consume `events` in order and return the finished program."""
        self._reset()
        pending_type: Optional[str] = None
        for event in events:
            handler = self._handlers.get((event.kind, event.phase))
            if handler is None:
                continue
            pending_type = handler(event, pending_type)
        self._stack.expect_empty()
        program = self._program
        logger.debug(
            "built program: %d classes, %d functions, %d variables, %d raw blocks",
            len(program.classes),
            len(program.functions),
            len(program.variables),
            len(program.raw_blocks),
        )
        return program

    # -----------------
    # Classes
    # -----------------

    def _enter_class(self, event: Event, pending: Optional[str]) -> Optional[str]:
        if self._stack:
            raise InternalCompilerError("class declaration inside another declaration", event.line)
        if not event.names:
            raise InternalCompilerError("class declaration without a name", event.line)
        name = event.names[0]
        if self._program.find_class(name) is not None:
            raise SemanticError(f"duplicate class '{name}'", event.line)

        self._class = Class(name=name, line=event.line)
        # first name is the class itself, the rest are its bases
        for base in event.names[1:]:
            self._class.add_base_class(base)

        self._stack.push(ContextTag.CLASS_DECL)
        return pending

    def _exit_class(self, event: Event, pending: Optional[str]) -> Optional[str]:
        self._stack.pop(ContextTag.CLASS_DECL)
        cls = self._class
        if cls is None:
            raise InternalCompilerError("class exit without class", event.line)
        self._program.add_class(cls)
        logger.debug("sealed class %s (%d members)", cls.name, len(cls.members))
        self._class = None
        return pending

    # -----------------
    # Functions
    # -----------------

    def _enter_function(self, event: Event, pending: Optional[str]) -> Optional[str]:
        if self._stack.top() in (ContextTag.FUNCTION_DECL, ContextTag.VARIABLE_DECL):
            raise InternalCompilerError("function declaration nested in a function or variable", event.line)
        self._function = Function(name=event.text, line=event.line)
        self._stack.push(ContextTag.FUNCTION_DECL)
        return pending

    def _exit_function(self, event: Event, pending: Optional[str]) -> Optional[str]:
        self._stack.pop(ContextTag.FUNCTION_DECL)
        fn = self._function
        if fn is None:
            raise InternalCompilerError("function exit without function", event.line)

        if self._stack.contains(ContextTag.CLASS_DECL):
            assert self._class is not None
            if not fn.is_virtual and not isinstance(fn.address, Bound):
                raise MissingBindingError(
                    f"member function '{self._class.name}::{fn.name}' requires an address",
                    fn.line,
                )
            self._class.add_function(fn)
        else:
            if fn.modifier is not FunctionModifier.NONE:
                raise SemanticError(
                    f"modifier '{fn.modifier.value}' is only allowed on class members", fn.line
                )
            if not isinstance(fn.address, Bound):
                raise MissingBindingError(
                    f"global function '{fn.name}' is required to have an address", fn.line
                )
            self._program.add_function(fn)

        self._function = None
        return pending

    def _in_function(self, event: Event, what: str) -> bool:
        if self._stack.top() is ContextTag.FUNCTION_DECL and self._function is not None:
            return True
        message = f"{what} outside of a function declaration"
        if self.strict:
            raise InternalCompilerError(message, event.line)
        logger.warning("line %d: %s, ignored", event.line, message)
        self.warnings.append(f"{message} (line {event.line})")
        return False

    def _enter_modifier(self, event: Event, pending: Optional[str]) -> Optional[str]:
        if not self._in_function(event, "function modifier"):
            return pending
        try:
            modifier = FunctionModifier(event.text)
        except ValueError:
            raise SemanticError(f"unknown function modifier '{event.text}'", event.line) from None
        self._function.modifier = modifier
        return pending

    def _enter_return_type(self, event: Event, pending: Optional[str]) -> Optional[str]:
        if self._in_function(event, "return type"):
            self._function.return_type = event.text
        return pending

    def _enter_calling_convention(self, event: Event, pending: Optional[str]) -> Optional[str]:
        if self._in_function(event, "calling convention"):
            self._function.calling_convention = event.text
        return pending

    def _exit_parameter(self, event: Event, pending: Optional[str]) -> Optional[str]:
        if self._stack.top() is not ContextTag.FUNCTION_DECL or self._function is None:
            raise InternalCompilerError("parameter outside of a function declaration", event.line)
        if pending is None:
            raise InternalCompilerError(f"parameter '{event.text}' has no type", event.line)
        self._function.add_parameter(event.text, pending)
        return None

    # -----------------
    # Variables
    # -----------------

    def _enter_variable(self, event: Event, pending: Optional[str]) -> Optional[str]:
        if self._stack.top() in (ContextTag.FUNCTION_DECL, ContextTag.VARIABLE_DECL):
            raise InternalCompilerError("variable declaration nested in a function or variable", event.line)
        self._variable = Variable(line=event.line)
        self._stack.push(ContextTag.VARIABLE_DECL)
        return pending

    def _exit_variable(self, event: Event, pending: Optional[str]) -> Optional[str]:
        self._stack.pop(ContextTag.VARIABLE_DECL)
        var = self._variable
        if var is None:
            raise InternalCompilerError("variable exit without variable", event.line)
        if pending is None:
            raise InternalCompilerError(f"variable '{event.text}' has no type", event.line)
        var.name = event.text
        var.type = pending

        if self._stack.contains(ContextTag.CLASS_DECL):
            assert self._class is not None
            if not self._class.variables and not isinstance(var.offset, Bound):
                raise MissingBindingError(
                    f"the first variable offset of class '{self._class.name}' needs to be explicitly defined",
                    var.line,
                )
            self._class.add_variable(var)
        else:
            if not isinstance(var.offset, Bound):
                raise MissingBindingError(
                    f"no memory address given for global variable '{var.name}'", var.line
                )
            self._program.add_variable(var)

        self._variable = None
        return None

    # -----------------
    # Literals and types
    # -----------------

    def _enter_address(self, event: Event, pending: Optional[str]) -> Optional[str]:
        value = parse_hex_literal(event.text, event.line)
        top = self._stack.top()
        if top is ContextTag.FUNCTION_DECL and self._function is not None:
            self._function.address = Bound(value)
        elif top is ContextTag.VARIABLE_DECL and self._variable is not None:
            self._variable.offset = Bound(value)
        else:
            raise InternalCompilerError("unknown context for memory address", event.line)
        return pending

    def _enter_pointer(self, event: Event, pending: Optional[str]) -> Optional[str]:
        return event.text + "*"

    def _enter_primitive(self, event: Event, pending: Optional[str]) -> Optional[str]:
        return event.text

    def _enter_raw_block(self, event: Event, pending: Optional[str]) -> Optional[str]:
        text = event.text
        width = len(RAW_BLOCK_DELIMITER)
        if (
            len(text) < 2 * width
            or not text.startswith(RAW_BLOCK_DELIMITER)
            or not text.endswith(RAW_BLOCK_DELIMITER)
        ):
            raise InternalCompilerError("raw block without delimiters", event.line)
        if self._stack.top() in (ContextTag.FUNCTION_DECL, ContextTag.VARIABLE_DECL):
            raise InternalCompilerError("raw block inside a function or variable declaration", event.line)

        raw_block = RawBlock(code=text[width:-width], line=event.line)
        if self._stack.contains(ContextTag.CLASS_DECL):
            assert self._class is not None
            self._class.add_raw_block(raw_block)
        else:
            self._program.add_raw_block(raw_block)
        return pending
