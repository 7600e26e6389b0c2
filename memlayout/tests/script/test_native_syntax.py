"""Tests for native struct declarations."""

from pytest import raises

from memlayout.config import Options, OverlapPolicy
from memlayout.errors import EvaluationError, LayoutError, ParseError
from memlayout.native.types import FP32, INT32, UINT8, UINT16, Collection, Field, Pointer, Struct
from memlayout.script import Engine, Scope, parse_native


def describe_parse_native():
    def expects_name_then_brace(expect):
        expect(parse_native(["native"], "Test")) == "$ident$"
        expect(parse_native(["native", "Test"], "{")) == "{"

    def expects_padding_size_after_marker(expect):
        expect(parse_native(["native", "Test", "{"], "^")) == "$symbol$"
        expect(parse_native(["native", "Test", "{", "^"], "16")) == "$int$"
        expect(parse_native(["native", "Test", "{", "^", "16"], ",")) == ","

    def expects_colon_and_type_after_name(expect):
        symbols = ["native", "Test", "{", "^", "16", ","]
        expect(parse_native(symbols, "num")) == "$ident$"
        expect(parse_native([*symbols, "num"], ":")) == ":"
        expect(parse_native([*symbols, "num", ":"], "Int32")) == "$expr$"
        expect(parse_native([*symbols, "num", ":", "$expr$"], "}")) == "}"

    def ends_after_closing_brace(expect):
        expect(parse_native(["native", "Test", "{", "a", ":", "$expr$", "}"], ";")) == None


def describe_native_declaration():
    def places_fields_after_padding(expect):
        engine = Engine()
        struct = engine.eval("native Test { ^ 30, field: Int32, field2: UInt16 }; Test")

        expect(isinstance(struct, Struct)) == True
        expect(struct.fields) == ((30, Field("field", INT32)), (34, Field("field2", UINT16)))
        expect(struct.size) == 36

    def binds_name_as_constant(expect):
        _, scope = Engine().eval_with_scope("native Test { a: UInt8 };", Scope())
        expect(scope.is_constant("Test")) == True
        with raises(EvaluationError, match="constant"):
            Engine().eval_with_scope("let Test = 1", scope)

    def embeds_previous_structs(expect):
        engine = Engine()
        script = """
            native Vector { x: Fp32 };
            native Outer { ^ 30, position: Vector };
            size_of(Outer)
        """
        expect(engine.eval(script)) == 34

    def accepts_type_expressions_with_commas(expect):
        struct = Engine().eval("native T { items: Collection(Int32, 3), tail: UInt8 }; T")
        expect(struct.offset_of("tail")) == 12
        expect(struct.field_by_name("items").type) == Collection(INT32, 3)

    def accepts_hex_padding(expect):
        struct = Engine().eval("native T { ^ 0x10, a: Int32 }; T")
        expect(struct.offset_of("a")) == 16

    def accepts_pointers_to_structs(expect):
        script = "native Inner { x: Fp32 }; native Outer { p: Pointer32(Inner) }; Outer"
        struct = Engine().eval(script)
        inner = Struct.from_mapping({0: Field("x", FP32)})
        expect(struct.field_by_name("p").type) == Pointer(4, inner)

    def accepts_struct_wrapper_and_variables(expect):
        script = "let t = Text(8); native Named { name: t, inner: Struct(Named0) }; Named"
        scope = Scope().with_constant("Named0", Struct.from_mapping({0: Field("b", UINT8)}))
        struct = Engine().eval(script, scope)
        expect(struct.offset_of("inner")) == 8
        expect(struct.size) == 9

    def spans_multiple_lines(expect):
        script = """
            native Player {
                ^ 16,
                health: Int32, // hit points
                name: Text(8)
            };
            Player.size
        """
        expect(Engine().eval(script)) == 28

    def zero_sized_fields_replace_by_default(expect):
        struct = Engine().eval("native T { a: Text(0), b: Int32 }; T")
        expect(struct.fields) == ((0, Field("b", INT32)),)

    def zero_sized_fields_can_be_rejected(expect):
        engine = Engine(Options(overlap_policy=OverlapPolicy.REJECT))
        with raises(LayoutError):
            engine.eval("native T { a: Text(0), b: Int32 }")


def describe_native_errors():
    def rejects_name_without_type(expect):
        with raises(ParseError):
            Engine().eval("native Test { asdsd }")

    def rejects_empty_block(expect):
        with raises(ParseError):
            Engine().eval("native Test {}")

    def rejects_bare_integer(expect):
        with raises(ParseError):
            Engine().eval("native Test { 234234 }")

    def rejects_garbage(expect):
        with raises(ParseError):
            Engine().eval("native Test { asdsd ^: ^ asdasd }")

    def rejects_non_literal_padding(expect):
        with raises(ParseError):
            Engine().eval("let n = 4; native Test { ^ n }")

    def rejects_missing_name(expect):
        with raises(ParseError):
            Engine().eval("native { a: Int32 }")

    def rejects_trailing_tokens(expect):
        with raises(ParseError, match="after `native`"):
            Engine().eval("native Test { a: Int32 } 5")

    def rejects_unfinished_block(expect):
        with raises(ParseError):
            Engine().eval("native Test { a: Int32")

    def rejects_non_type_expressions(expect):
        with raises(EvaluationError, match="`asdsd`"):
            Engine().eval("native Test { asdsd: 234234 }")

    def reports_failed_type_expressions(expect):
        with raises(EvaluationError, match="`a` in `Test`"):
            Engine().eval("native Test { a: Unknown }")

    def reports_error_position(expect):
        with raises(ParseError) as exc_info:
            Engine().eval("let a = 1;\nnative Test { 5 }")
        expect(exc_info.value.line) == 2
        expect(exc_info.value.column) == 15
