import pytest

from relc.compiler import Compiler
from relc.events import EventKind, enter, leave


PLAYER = """
class Player : Entity {
    int health @ 0x10;
    void __thiscall Jump() @ 0x00401000;
}
"""


def test_player_end_to_end(tmp_path):
    src = tmp_path / "player.rel"
    out = tmp_path / "player.hpp"
    src.write_text(PLAYER)

    res = Compiler().compile_file(str(src), str(out))
    assert res.success, res.errors
    text = out.read_text()
    assert text.startswith("// DO NOT EDIT. THIS FILE WAS GENERATED BY THE RELANG COMPILER\n")
    assert "#pragma pack(1)\nclass Player : public Entity\n" in text
    assert "int health; // offset 0x10" in text
    assert "auto f = reinterpret_cast<Func_t>(0x401000);" in text
    assert "return f(this);" in text
    assert 'static_assert(sizeof(Player) == 0x14, "Unexpected class size");' in text
    assert res.code == text


def test_missing_global_function_address_writes_nothing(tmp_path):
    src = tmp_path / "state.rel"
    out = tmp_path / "state.hpp"
    src.write_text("int __cdecl GetGlobalState();\n")

    res = Compiler().compile_file(str(src), str(out))
    assert not res.success
    assert any("GetGlobalState" in e and "address" in e for e in res.errors)
    assert any("line 1" in e for e in res.errors)
    assert not out.exists()


@pytest.mark.parametrize(
    "code",
    [
        "class A { int x; }",
        "int g_Frame;",
        "class A { int x @ 0x0; void __thiscall Jump(); }",
        "class A { static int Count(); }",
    ],
)
def test_missing_bindings_abort(tmp_path, code):
    out = tmp_path / "out.hpp"
    res = Compiler().compile_code(code, str(out))
    assert not res.success
    assert res.errors[0].startswith("Semantic analysis failed:")
    assert not out.exists()


def test_layout_error_aborts(tmp_path):
    out = tmp_path / "out.hpp"
    res = Compiler().compile_code("class A { int x @ 0x8; int y @ 0x4; }", str(out))
    assert not res.success
    assert res.errors[0].startswith("Layout failed:")
    assert not out.exists()


def test_lexer_and_parser_errors():
    res = Compiler().compile_code("int x = 5;")
    assert not res.success
    assert res.errors[0].startswith("Lexical analysis failed:")

    res = Compiler().compile_code("class A { int x @ 0x0 }")
    assert not res.success
    assert res.errors[0].startswith("Syntax analysis failed:")


def test_internal_errors_reported_distinctly():
    events = [
        enter(EventKind.CLASS_DECLARATION, 1, names=("A",)),
        enter(EventKind.MEMORY_ADDRESS, 1, text="0x10"),
        leave(EventKind.CLASS_DECLARATION, 1),
    ]
    res = Compiler().compile_events(events)
    assert not res.success
    assert res.errors[0].startswith("internal compiler error:")


def test_lenient_mode_collects_warnings():
    events = [
        enter(EventKind.CLASS_DECLARATION, 1, names=("A",)),
        enter(EventKind.FUNCTION_RETURN_TYPE, 2, text="int"),
        enter(EventKind.VARIABLE_DECLARATION, 3),
        enter(EventKind.PRIMITIVE_TYPE, 3, text="int"),
        enter(EventKind.MEMORY_ADDRESS, 3, text="0x0"),
        leave(EventKind.VARIABLE_DECLARATION, 3, text="x"),
        leave(EventKind.CLASS_DECLARATION, 4),
    ]
    res = Compiler(strict=False).compile_events(events)
    assert res.success
    assert len(res.warnings) == 1
    assert "int x; // offset 0x0" in res.code

    res = Compiler().compile_events(events)
    assert not res.success


def test_idempotent_output(tmp_path):
    src = tmp_path / "a.rel"
    src.write_text(PLAYER + "\nint g_Frame @ 0x600000;\n```// tail```\n")
    out1 = tmp_path / "1.hpp"
    out2 = tmp_path / "2.hpp"
    assert Compiler().compile_file(str(src), str(out1)).success
    assert Compiler().compile_file(str(src), str(out2)).success
    assert out1.read_bytes() == out2.read_bytes()


def test_pointer_size_from_environment(monkeypatch):
    monkeypatch.setenv("RELC_POINTER_SIZE", "8")
    res = Compiler().compile_code("class A { void* p @ 0x0; int x; }")
    assert res.success
    assert "int x; // offset 0x8" in res.code


def test_invalid_pointer_size_rejected():
    with pytest.raises(ValueError):
        Compiler(pointer_size=0)


def test_missing_source_file(tmp_path):
    res = Compiler().compile_file(str(tmp_path / "nope.rel"))
    assert not res.success
    assert "Failed to read source file" in res.errors[0]


def test_build_model_helper():
    comp = Compiler()
    chunk = comp.get_ast(comp.get_tokens("class A { int x @ 0x4; }"))
    program = comp.build_model(chunk)
    resolved = comp.resolve_layout(program)
    assert [v.declarator for v in resolved.classes[0].variables] == ["pad_0[4]", "x"]


def test_size_of_field_only_class_reaches_assertions():
    res = Compiler().compile_code("class B { virtual void f(); }\nclass C { int x @ 0x0; B b; }")
    assert res.success, res.errors
    assert "B b; // offset 0x4" in res.code
    assert "static_assert(sizeof(B) == 0x4" in res.code
    assert "static_assert(sizeof(C) == 0x8" in res.code


def test_field_out_of_offset_order_after_unknown_size(tmp_path):
    out = tmp_path / "out.hpp"
    res = Compiler().compile_code("class A { Vec3 p @ 0x10; int y @ 0x8; }", str(out))
    assert not res.success
    assert res.errors[0].startswith("Layout failed:")
    assert "A::y" in res.errors[0]
    assert not out.exists()
