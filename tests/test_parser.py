import pytest

from relc.lexer import Lexer
from relc.parser import Parser, ParserError
from relc.ast_nodes import ClassDecl, FunctionDecl, RawBlockDecl, VariableDecl


def _parse(code: str):
    lexer = Lexer(code)
    tokens = lexer.tokenize()
    assert not lexer.has_errors()
    return Parser(tokens).parse()


def test_class_with_bases_and_members():
    chunk = _parse(
        """
        class Player : Entity, Drawable {
            int health @ 0x10;
            float speed;
            void __thiscall Jump() @ 0x401000;
        }
        """
    )
    assert len(chunk.declarations) == 1
    cls = chunk.declarations[0]
    assert isinstance(cls, ClassDecl)
    assert cls.name == "Player"
    assert cls.base_classes == ["Entity", "Drawable"]

    health, speed, jump = cls.members
    assert isinstance(health, VariableDecl)
    assert health.address.text == "0x10"
    assert speed.address is None
    assert isinstance(jump, FunctionDecl)
    assert jump.calling_convention == "__thiscall"
    assert jump.address.text == "0x401000"
    assert jump.parameters == []


def test_function_modifiers_parameters_and_pointer_types():
    chunk = _parse(
        """
        class Entity {
            virtual Entity* __thiscall Clone(Entity** out, int flags);
            static int __cdecl Count() @ 0x402000;
        };
        """
    )
    clone, count = chunk.declarations[0].members
    assert clone.modifier == "virtual"
    assert str(clone.return_type) == "Entity*"
    assert [p.name for p in clone.parameters] == ["out", "flags"]
    assert str(clone.parameters[0].type) == "Entity**"
    assert clone.parameters[0].type.pointee == "Entity*"
    assert clone.address is None
    assert count.modifier == "static"


def test_top_level_declarations_keep_order():
    chunk = _parse(
        """
        ```#include <cstdint>```
        int __cdecl GetGlobalState() @ 0x500000;
        class A { int x @ 0x0; }
        int g_Frame @ 0x600000;
        """
    )
    kinds = [type(d) for d in chunk.declarations]
    assert kinds == [RawBlockDecl, FunctionDecl, ClassDecl, VariableDecl]
    assert chunk.declarations[0].text == "```#include <cstdint>```"


def test_function_without_address_still_parses():
    # missing addresses are a semantic error, not a syntax error
    chunk = _parse("int GetGlobalState();")
    fn = chunk.declarations[0]
    assert isinstance(fn, FunctionDecl)
    assert fn.address is None


def test_decimal_address_rejected():
    with pytest.raises(ParserError):
        _parse("int g @ 1234;")


def test_modifier_on_variable_rejected():
    with pytest.raises(ParserError):
        _parse("class A { virtual int x @ 0x0; }")


def test_calling_convention_on_variable_rejected():
    with pytest.raises(ParserError):
        _parse("class A { int __cdecl x @ 0x0; }")


def test_nested_class_rejected():
    with pytest.raises(ParserError):
        _parse("class A { class B { } }")


def test_unterminated_class_rejected():
    with pytest.raises(ParserError) as ei:
        _parse("class A { int x @ 0x0;")
    assert "Unterminated class" in str(ei.value)


def test_missing_semicolon_reports_position():
    with pytest.raises(ParserError) as ei:
        _parse("int g @ 0x10\nint h @ 0x20;")
    assert "2:1" in str(ei.value)
