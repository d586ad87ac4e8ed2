from relc.lexer import Lexer
from relc.parser import Parser
from relc.events import Event, EventKind, Phase, enter, leave, walk


def _events(code: str):
    return list(walk(Parser(Lexer(code).tokenize()).parse()))


def _shape(events):
    return [(e.kind, e.phase) for e in events]


def test_variable_event_order():
    events = _events("int g_Frame @ 0x600000;")
    assert _shape(events) == [
        (EventKind.VARIABLE_DECLARATION, Phase.ENTER),
        (EventKind.PRIMITIVE_TYPE, Phase.ENTER),
        (EventKind.MEMORY_ADDRESS, Phase.ENTER),
        (EventKind.VARIABLE_DECLARATION, Phase.EXIT),
    ]
    assert events[1].text == "int"
    assert events[2].text == "0x600000"
    assert events[3].text == "g_Frame"


def test_function_event_order():
    events = _events("static int __cdecl Count(Entity* e, int n) @ 0x1000;")
    # free static functions are rejected later by the builder, not by the walker
    assert _shape(events) == [
        (EventKind.FUNCTION_DECLARATION, Phase.ENTER),
        (EventKind.FUNCTION_MODIFIER, Phase.ENTER),
        (EventKind.FUNCTION_RETURN_TYPE, Phase.ENTER),
        (EventKind.CALLING_CONVENTION, Phase.ENTER),
        (EventKind.FUNCTION_PARAMETER, Phase.ENTER),
        (EventKind.POINTER_TYPE, Phase.ENTER),
        (EventKind.FUNCTION_PARAMETER, Phase.EXIT),
        (EventKind.FUNCTION_PARAMETER, Phase.ENTER),
        (EventKind.PRIMITIVE_TYPE, Phase.ENTER),
        (EventKind.FUNCTION_PARAMETER, Phase.EXIT),
        (EventKind.MEMORY_ADDRESS, Phase.ENTER),
        (EventKind.FUNCTION_DECLARATION, Phase.EXIT),
    ]
    assert events[0].text == "Count"
    assert events[1].text == "static"
    assert events[2].text == "int"
    assert events[3].text == "__cdecl"
    assert events[5].text == "Entity"
    assert events[6].text == "e"


def test_class_events_wrap_members():
    events = _events("class Player : Entity { int health @ 0x10; ```raw``` }")
    assert events[0] == enter(EventKind.CLASS_DECLARATION, 1, names=("Player", "Entity"))
    assert events[-1].kind is EventKind.CLASS_DECLARATION
    assert events[-1].phase is Phase.EXIT
    raw = [e for e in events if e.kind is EventKind.RAW_BLOCK]
    assert raw[0].text == "```raw```"


def test_optional_parts_produce_no_events():
    events = _events("class A { void Foo(); }")
    kinds = [e.kind for e in events]
    assert EventKind.FUNCTION_MODIFIER not in kinds
    assert EventKind.CALLING_CONVENTION not in kinds
    assert EventKind.MEMORY_ADDRESS not in kinds


def test_helpers_build_events():
    ev = leave(EventKind.VARIABLE_DECLARATION, 7, text="x")
    assert ev == Event(kind=EventKind.VARIABLE_DECLARATION, phase=Phase.EXIT, line=7, text="x")
