# =============================================================================
# test_codegen.py - LLVM IR Code Generator Tests
# =============================================================================
# Tests for lowering the Kaleido AST to LLVM IR with llvmlite.
#
# Test coverage includes:
#   - Instructions emitted for each expression node
#   - Calls, arity checks and unknown names
#   - Extern declarations followed by definitions
#   - Redefinition, prototype mismatch and duplicate parameters
#   - Rollback of failed definitions
#   - Module verification
# =============================================================================

import pytest
from llvmlite import ir
import llvmlite.binding as llvm

from kaleido.frontend.codegen import CodeGenerator, DOUBLE, ANONYMOUS_FUNCTION_NAME
from kaleido.frontend.parser import parse_source
from kaleido.frontend.precedence import OperatorTable
from kaleido.frontend.ast import (
    NumberLiteral,
    VariableRef,
    Call,
    Prototype,
    FunctionDecl,
)
from kaleido.frontend.errors import (
    KaleidoCodegenError,
    UnknownVariableError,
    UnknownFunctionError,
    ArgumentCountError,
    InvalidOperatorError,
    FunctionRedefinitionError,
    PrototypeMismatchError,
    DuplicateParameterError,
    VerificationError,
)


# =============================================================================
# Helper Functions
# =============================================================================

def generate(source: str, gen: CodeGenerator = None, operators=None) -> CodeGenerator:
    """Generate every construct of source, stopping at the first error."""
    gen = gen or CodeGenerator()
    for decl in parse_source(source, "<test>", operators):
        gen.generate_function(decl)
    return gen


def opnames(function: ir.Function) -> list:
    """Opcode names of the instructions in a function's entry block."""
    return [instr.opname for instr in function.blocks[0].instructions]


@pytest.fixture
def gen():
    return CodeGenerator()


# =============================================================================
# Expression Tests
# =============================================================================

class TestExpressions:
    """Test the instructions emitted for expressions."""

    def test_number_literal(self, gen):
        """A constant body is returned directly."""
        generate("4.5", gen)
        function = gen.get_function(ANONYMOUS_FUNCTION_NAME)
        assert opnames(function) == ["ret"]
        ret = function.blocks[0].instructions[-1]
        assert ret.return_value.constant == 4.5

    def test_parameter_reference(self, gen):
        """Parameters are used directly as IR arguments."""
        generate("def id(x) x", gen)
        function = gen.get_function("id")
        ret = function.blocks[0].instructions[-1]
        assert ret.return_value is function.args[0]

    @pytest.mark.parametrize("op, opname", [
        ("+", "fadd"),
        ("-", "fsub"),
        ("*", "fmul"),
    ])
    def test_arithmetic(self, gen, op, opname):
        """Arithmetic operators map to floating point instructions."""
        generate(f"def f(a b) a {op} b", gen)
        assert opnames(gen.get_function("f")) == [opname, "ret"]

    def test_less_than(self, gen):
        """< compares unordered and converts the i1 result back to double."""
        generate("def lt(a b) a < b", gen)
        function = gen.get_function("lt")
        assert opnames(function) == ["fcmp", "uitofp", "ret"]
        assert "fcmp ult" in str(function)

    def test_operands_in_order(self, gen):
        """Left operand is generated before the right one."""
        generate("def f(a b c) a*b + c*a", gen)
        assert opnames(gen.get_function("f")) == ["fmul", "fmul", "fadd", "ret"]

    def test_function_type(self, gen):
        """Functions take and return doubles."""
        generate("def f(a b c) a", gen)
        function = gen.get_function("f")
        assert function.ftype.return_type == DOUBLE
        assert function.ftype.args == (DOUBLE, DOUBLE, DOUBLE)
        assert [arg.name for arg in function.args] == ["a", "b", "c"]

    def test_unknown_variable(self, gen):
        """A name that is not a parameter is rejected."""
        with pytest.raises(UnknownVariableError, match="unknown variable name 'x'") as exc_info:
            generate("def f(a b) x", gen)
        assert exc_info.value.hint == "parameters in scope: 'a', 'b'"

    def test_unknown_variable_at_top_level(self, gen):
        """Top-level expressions have no variables at all."""
        with pytest.raises(UnknownVariableError):
            generate("y + 1", gen)

    def test_invalid_operator(self, gen):
        """A registered operator without IR lowering is rejected."""
        table = OperatorTable({"+": 20, "/": 40})
        with pytest.raises(InvalidOperatorError, match="invalid binary operator '/'"):
            generate("def f(a b) a / b", gen, table)
        assert gen.get_function("f") is None

    def test_generate_expression_directly(self, gen):
        """generate_expression works inside a builder set up by the caller."""
        function = ir.Function(gen.module, ir.FunctionType(DOUBLE, []), name="k")
        gen.builder = ir.IRBuilder(function.append_basic_block("entry"))
        value = gen.generate_expression(NumberLiteral(2.0))
        assert isinstance(value, ir.Constant)

    def test_non_expression_rejected(self, gen):
        """Only expression nodes can be generated as expressions."""
        with pytest.raises(TypeError):
            gen.generate_expression(Prototype("f"))


# =============================================================================
# Call Tests
# =============================================================================

class TestCalls:
    """Test function calls."""

    def test_call_matching_arity(self, gen):
        """A call with the declared number of arguments succeeds."""
        generate("def foo(a b) a+b  def bar(x) foo(x, 2)", gen)
        assert opnames(gen.get_function("bar")) == ["call", "ret"]

    def test_call_wrong_arity(self, gen):
        """A call with a different number of arguments fails."""
        generate("def foo(a b c) a", gen)
        with pytest.raises(ArgumentCountError, match="incorrect argument count") as exc_info:
            generate("foo(1, 2)", gen)
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2

    def test_call_extern(self, gen):
        """Declared externs can be called."""
        generate("extern sin(x)  def f(y) sin(y) * 2", gen)
        assert opnames(gen.get_function("f")) == ["call", "fmul", "ret"]

    def test_unknown_function(self, gen):
        """Calls to undeclared functions fail."""
        with pytest.raises(UnknownFunctionError, match="unknown function referenced 'nope'"):
            generate("nope(1)", gen)

    def test_unknown_function_suggestion(self, gen):
        """Similar function names are offered as a hint."""
        generate("def fib(x) x", gen)
        with pytest.raises(UnknownFunctionError) as exc_info:
            generate("fibb(1)", gen)
        assert exc_info.value.hint == "did you mean 'fib'?"

    def test_anonymous_functions_not_suggested(self, gen):
        """Anonymous functions never appear in suggestions."""
        generate("1", gen)
        call = Call(ANONYMOUS_FUNCTION_NAME[:-1], [])
        with pytest.raises(UnknownFunctionError) as exc_info:
            gen.generate_function(FunctionDecl(Prototype(""), call))
        assert exc_info.value.hint is None

    def test_argument_error_propagates(self, gen):
        """A failing argument fails the whole call."""
        generate("def foo(a b) a", gen)
        with pytest.raises(UnknownVariableError):
            generate("def bar(x) foo(x, y)", gen)

    def test_recursive_call(self, gen):
        """A function can call itself while being defined."""
        generate("def loop(x) loop(x - 1)", gen)
        assert opnames(gen.get_function("loop")) == ["fsub", "call", "ret"]


# =============================================================================
# Prototype and Function Tests
# =============================================================================

class TestFunctions:
    """Test declaration and definition of functions."""

    def test_extern_is_declaration(self, gen):
        """An extern produces a declaration with no body."""
        generate("extern cos(x)", gen)
        function = gen.get_function("cos")
        assert function.is_declaration
        assert str(function).startswith("declare double")

    def test_extern_then_define(self, gen):
        """A definition may follow an extern of the same arity."""
        generate("extern foo(a)", gen)
        declared = gen.get_function("foo")
        generate("def foo(a) a+1", gen)
        assert gen.get_function("foo") is declared
        assert not declared.is_declaration
        assert gen.function_names() == ["foo"]

    def test_define_uses_own_parameter_names(self, gen):
        """The definition's parameter names are bound positionally."""
        generate("extern foo(a)  def foo(b) b*2", gen)
        assert opnames(gen.get_function("foo")) == ["fmul", "ret"]

    def test_repeated_extern(self, gen):
        """Repeating an extern with the same arity reuses the function."""
        generate("extern foo(a)", gen)
        first = gen.get_function("foo")
        generate("extern foo(b)", gen)
        assert gen.get_function("foo") is first

    def test_redefinition_rejected(self, gen):
        """A function with a body cannot be redefined."""
        generate("def foo(a) a", gen)
        with pytest.raises(FunctionRedefinitionError, match="function cannot be redefined: 'foo'"):
            generate("def foo(a) a+1", gen)
        # The first definition survives unchanged
        assert opnames(gen.get_function("foo")) == ["ret"]

    def test_prototype_mismatch(self, gen):
        """Redeclaring with a different arity is rejected."""
        generate("extern foo(a)", gen)
        with pytest.raises(PrototypeMismatchError, match="redeclaration of 'foo'"):
            generate("def foo(a b) a", gen)
        assert gen.get_function("foo").is_declaration
        assert len(gen.get_function("foo").args) == 1

    def test_duplicate_parameters(self, gen):
        """The same parameter name may not appear twice."""
        with pytest.raises(DuplicateParameterError, match="duplicate parameter name 'a'"):
            generate("def f(a b a) a", gen)
        assert gen.get_function("f") is None

    def test_duplicate_parameters_in_extern(self, gen):
        """Externs are checked for duplicate parameters too."""
        with pytest.raises(DuplicateParameterError):
            generate("extern g(x x)", gen)

    def test_anonymous_names_are_unique(self, gen):
        """Each top-level expression gets its own function."""
        generate("1  2  3", gen)
        names = gen.function_names()
        assert len(names) == 3
        assert len(set(names)) == 3
        assert all(name.startswith(ANONYMOUS_FUNCTION_NAME) for name in names)

    def test_anonymous_functions_take_no_arguments(self, gen):
        """Anonymous functions have no parameters."""
        function = gen.generate_function(FunctionDecl(Prototype(""), NumberLiteral(1.0)))
        assert len(function.args) == 0
        assert function.name == ANONYMOUS_FUNCTION_NAME

    def test_shared_module(self):
        """A generator can add functions to an existing module."""
        module = ir.Module(name="shared")
        generate("def f(x) x", CodeGenerator(module=module))
        generate("def g(x) f(x)", CodeGenerator(module=module))
        assert [f.name for f in module.functions] == ["f", "g"]

    def test_module_name(self):
        """New modules get the requested name."""
        assert CodeGenerator(module_name="demo").module.name == "demo"


# =============================================================================
# Rollback Tests
# =============================================================================

class TestRollback:
    """Test that failed definitions leave the module as it was."""

    def test_failed_definition_removed(self, gen):
        """A function whose body fails is removed from the module."""
        with pytest.raises(KaleidoCodegenError):
            generate("def f(x) y", gen)
        assert gen.get_function("f") is None
        assert gen.function_names() == []

    def test_name_reusable_after_failure(self, gen):
        """The name of a removed function can be defined again."""
        with pytest.raises(KaleidoCodegenError):
            generate("def f(x) y", gen)
        generate("def f(x) x", gen)
        assert not gen.get_function("f").is_declaration

    def test_failed_anonymous_removed(self, gen):
        """A failing top-level expression leaves no function behind."""
        with pytest.raises(KaleidoCodegenError):
            generate("nope()", gen)
        assert gen.function_names() == []

    def test_failed_body_keeps_extern(self, gen):
        """A failed definition of an extern reverts it to a declaration."""
        generate("extern foo(a)  def bar(x) foo(x)", gen)
        with pytest.raises(UnknownVariableError):
            generate("def foo(a) z", gen)
        foo = gen.get_function("foo")
        assert foo is not None
        assert foo.is_declaration
        gen.verify()

        # A later definition can still supply the body
        generate("def foo(a) a", gen)
        assert not foo.is_declaration

    def test_earlier_functions_survive(self, gen):
        """Functions generated before a failure stay valid."""
        generate("def a(x) x  def b(x) a(x)", gen)
        with pytest.raises(KaleidoCodegenError):
            generate("def c(x) a(x, x)", gen)
        assert gen.function_names() == ["a", "b"]
        gen.verify()

    def test_remove_function(self, gen):
        """remove_function drops a function and frees its name."""
        generate("extern foo(a)", gen)
        gen.remove_function(gen.get_function("foo"))
        assert gen.get_function("foo") is None
        generate("extern foo(a b)", gen)
        assert len(gen.get_function("foo").args) == 2


# =============================================================================
# Verification Tests
# =============================================================================

class TestVerification:
    """Test module verification."""

    def test_generated_module_parses(self, gen):
        """The generated IR is accepted by LLVM."""
        generate("""
            extern sin(x)
            def poly(x) x*x*3 + x*2 - 1
            def both(a b) poly(a) < sin(b)
            both(1, 2.5)
        """, gen)
        gen.verify()
        llvm.parse_assembly(str(gen.module)).verify()

    def test_malformed_function_rejected(self, gen):
        """A block without a terminator fails verification."""
        function = ir.Function(gen.module, ir.FunctionType(DOUBLE, []), name="broken")
        function.append_basic_block("entry")
        with pytest.raises(VerificationError, match="failed verification"):
            gen.verify()

    def test_verification_can_be_disabled(self):
        """With verify=False definitions are not checked."""
        gen = CodeGenerator(verify=False)
        function = ir.Function(gen.module, ir.FunctionType(DOUBLE, []), name="broken")
        function.append_basic_block("entry")
        generate("def ok(x) x", gen)
        assert gen.get_function("ok") is not None

    def test_call_node_without_location(self, gen):
        """Hand-built nodes without locations generate fine."""
        gen.generate_function(FunctionDecl(Prototype("f", ["x"]), VariableRef("x")))
        gen.generate_function(FunctionDecl(Prototype("g"), Call("f", [NumberLiteral(1.0)])))
        assert opnames(gen.get_function("g")) == ["call", "ret"]
