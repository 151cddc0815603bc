"""
Test MathJSON to Excel formula conversion.
Covers operators, functions, constants, subscripts and variable mapping.
"""

import pytest

from latex_to_excel_parser.converters.mathjson_to_excel_converter import (
    ExcelTranslationError,
    MalformedExpressionError,
    MathJSONToExcelConverter,
    UnknownNodeTypeError,
    UnsupportedOperatorError,
    build_variable_map,
    can_convert_to_excel,
    create_default_mapping_registry,
    load_mapping_registry,
    mathjson_to_excel,
)
from latex_to_excel_parser.models.excel_models import (
    AlgebraMode,
    ExcelMapping,
    ExcelMappingRegistry,
    MappingKind,
    VariableBinding,
)


# ============================================================================
# BASIC VALUES
# ============================================================================


class TestBasicValues:
    """Test class for numbers, symbols and error handling."""

    @pytest.mark.parametrize(
        "expression, expected",
        [
            (5, "=5"),
            (-5, "=-5"),
            (2.5, "=2.5"),
            ("x", "=x"),
        ],
    )
    def test_basic_values(self, expression, expected):
        assert mathjson_to_excel(expression) == expected

    def test_unsupported_operator(self):
        with pytest.raises(UnsupportedOperatorError) as exc_info:
            mathjson_to_excel(["UnsupportedOp", 1, 2])

        assert str(exc_info.value) == 'No Excel equivalent for operator "UnsupportedOp"'
        assert exc_info.value.operator == "UnsupportedOp"
        assert isinstance(exc_info.value, ExcelTranslationError)

    def test_unsupported_operator_nested(self):
        with pytest.raises(UnsupportedOperatorError, match='"Integrate"'):
            mathjson_to_excel(["Add", 1, ["Integrate", "x"]])

    @pytest.mark.parametrize("expression", [True, None, {"num": "1"}, [], [1, 2]])
    def test_unknown_node_type(self, expression):
        with pytest.raises(UnknownNodeTypeError):
            mathjson_to_excel(expression)

    @pytest.mark.parametrize(
        "expression",
        [["Root", "x"], ["Subscript", "a"], ["Mod", 1], ["Negate"]],
    )
    def test_missing_arguments(self, expression):
        with pytest.raises(MalformedExpressionError):
            mathjson_to_excel(expression)

    def test_can_convert(self):
        assert can_convert_to_excel(["Add", "x", 1])
        assert not can_convert_to_excel(["UnsupportedOp", 1])
        assert not can_convert_to_excel(["Root", "x"])

    @pytest.mark.parametrize(
        "expression, expected",
        [
            (float("inf"), "=1E+307"),
            (float("-inf"), "=-1E+307"),
            (["Add", "x", float("inf")], "=(x+1E+307)"),
        ],
    )
    def test_infinite_floats_use_constants(self, expression, expected):
        assert mathjson_to_excel(expression) == expected

    def test_nan_is_unknown_node_type(self):
        with pytest.raises(UnknownNodeTypeError):
            mathjson_to_excel(float("nan"))
        assert not can_convert_to_excel(["Add", 1, float("nan")])

    def test_infinity_without_constant_is_unknown_node_type(self):
        converter = MathJSONToExcelConverter(registry=ExcelMappingRegistry())
        with pytest.raises(UnknownNodeTypeError):
            converter.convert_to_excel(float("inf"))

    def test_deeply_nested_expression(self):
        expression = "x"
        for _ in range(5000):
            expression = ["Negate", expression]

        with pytest.raises(MalformedExpressionError, match="nested too deeply"):
            mathjson_to_excel(expression)
        assert not can_convert_to_excel(expression)


# ============================================================================
# ARITHMETIC
# ============================================================================


class TestArithmetic:
    """Test class for arithmetic operators and templates."""

    @pytest.mark.parametrize(
        "expression, expected",
        [
            (["Add", 2, 3], "=(2+3)"),
            (["Subtract", 5, 2], "=(5-2)"),
            (["Multiply", 4, 3], "=(4*3)"),
            (["Divide", 10, 2], "=(10/2)"),
            (["Power", 2, 3], "=(2^3)"),
            (["Square", "x"], "=(x^2)"),
            (["Sqrt", 16], "=SQRT(16)"),
            (["Root", "x", 3], "=(x^(1/3))"),
            (["Negate", "x"], "=(-x)"),
            (["Parentheses", "x"], "=(x)"),
            (["Add", "x", "y", "z"], "=(x+y+z)"),
        ],
    )
    def test_arithmetic(self, expression, expected):
        assert mathjson_to_excel(expression) == expected

    @pytest.mark.parametrize(
        "expression, expected",
        [
            (["Multiply", ["Add", 2, 3], 4], "=((2+3)*4)"),
            (["Power", 2, ["Add", 3, 4]], "=(2^(3+4))"),
            (
                [
                    "Add",
                    ["Negate", "b"],
                    ["Sqrt", ["Subtract", ["Power", "b", 2], ["Multiply", 4, "a", "c"]]],
                ],
                "=((-b)+SQRT(((b^2)-(4*a*c))))",
            ),
            (
                ["Add", ["Multiply", "a", ["Power", "x", 2]], ["Multiply", "b", "x"], "c"],
                "=((a*(x^2))+(b*x)+c)",
            ),
            (
                ["Divide", ["Add", "x", "y"], ["Subtract", "z", "w"]],
                "=((x+y)/(z-w))",
            ),
            (
                ["Sqrt", ["Add", ["Power", "x", 2], ["Power", "y", 2]]],
                "=SQRT(((x^2)+(y^2)))",
            ),
            (["Add", ["Add", ["Add", 1, 2], 3], 4], "=(((1+2)+3)+4)"),
            (
                [
                    "Divide",
                    ["Multiply", ["Add", "a", "b"], ["Subtract", "c", "d"]],
                    ["Power", "e", "f"],
                ],
                "=(((a+b)*(c-d))/(e^f))",
            ),
            (["Power", "a", ["Power", "b", ["Power", "c", "d"]]], "=(a^(b^(c^d)))"),
            (
                [
                    "Sqrt",
                    [
                        "Add",
                        ["Power", "a", 2],
                        ["Sqrt", ["Add", ["Power", "b", 2], ["Power", "c", 2]]],
                    ],
                ],
                "=SQRT(((a^2)+SQRT(((b^2)+(c^2)))))",
            ),
        ],
    )
    def test_nested_expressions(self, expression, expected):
        assert mathjson_to_excel(expression) == expected

    def test_tuple_expression(self):
        assert mathjson_to_excel(("Add", 1, ("Multiply", 2, "x"))) == "=(1+(2*x))"


# ============================================================================
# SUBSCRIPTS AND INVISIBLE OPERATOR
# ============================================================================


class TestSubscripts:
    """Test class for subscripts and juxtaposition."""

    @pytest.mark.parametrize(
        "expression, expected",
        [
            (["Subscript", "a", "n"], "=a_n"),
            (["Subscript", "a", 1], "=a_1"),
            (["Subscript", "a", ["Add", "n", 1]], "=a_(n+1)"),
            (["Multiply", 2, ["Subscript", "a", ["Add", "n", 1]]], "=(2*a_(n+1))"),
            (
                ["Add", ["Subscript", "a", "i"], ["Subscript", "b", "j"], ["Subscript", "c", "k"]],
                "=(a_i+b_j+c_k)",
            ),
        ],
    )
    def test_subscripts(self, expression, expected):
        assert mathjson_to_excel(expression) == expected

    def test_subscript_with_variable_mapping(self):
        result = mathjson_to_excel(
            ["Subscript", "a", ["Add", "n", 1]], {"a": "A1", "n": "B1"}
        )
        assert result == "=A1_(B1+1)"

    @pytest.mark.parametrize(
        "expression, expected",
        [
            (["Subscript", "f", ["InvisibleOperator", "a", "b", "c", "d"]], "=f_abcd"),
            (["InvisibleOperator", 2, "x"], "=(2*x)"),
            (["Add", ["InvisibleOperator", 2, "x", "y"], 3], "=((2*x*y)+3)"),
            (
                ["Multiply", 2, ["Subscript", "a", ["InvisibleOperator", "i", "j", "k"]]],
                "=(2*a_ijk)",
            ),
            (
                [
                    "Add",
                    ["Subscript", "f", ["InvisibleOperator", "a", "b"]],
                    ["InvisibleOperator", 2, "x"],
                ],
                "=(f_ab+(2*x))",
            ),
            (
                [
                    "Multiply",
                    ["Subscript", "f", ["InvisibleOperator", "m", "n"]],
                    ["Subscript", "g", ["InvisibleOperator", "p", "q"]],
                ],
                "=(f_mn*g_pq)",
            ),
        ],
    )
    def test_invisible_operator(self, expression, expected):
        assert mathjson_to_excel(expression) == expected

    def test_invisible_operator_in_subscript_with_mapping(self):
        result = mathjson_to_excel(
            ["Subscript", "f", ["InvisibleOperator", "a", "b"]],
            {"f": "F1", "a": "A1", "b": "B1"},
        )
        assert result == "=F1_A1B1"

    def test_subscript_context_does_not_leak_into_base(self):
        result = mathjson_to_excel(["Subscript", ["InvisibleOperator", 2, "a"], "i"])
        assert result == "=(2*a)_i"


# ============================================================================
# FUNCTIONS
# ============================================================================


FUNCTION_CASES = [
    # Trigonometry
    (["Sin", "x"], "=SIN(x)"),
    (["Cos", "y"], "=COS(y)"),
    (["Tan", "theta"], "=TAN(theta)"),
    (["Csc", "x"], "=CSC(x)"),
    (["Sec", "x"], "=SEC(x)"),
    (["Cot", "x"], "=COT(x)"),
    (["Arcsin", "x"], "=ASIN(x)"),
    (["Arccos", "x"], "=ACOS(x)"),
    (["Arctan", "x"], "=ATAN(x)"),
    (["Acsc", "x"], "=ACSC(x)"),
    (["Asec", "x"], "=ASEC(x)"),
    (["Acot", "x"], "=ACOT(x)"),
    # Hyperbolic
    (["Sinh", "x"], "=SINH(x)"),
    (["Cosh", "x"], "=COSH(x)"),
    (["Tanh", "x"], "=TANH(x)"),
    (["Csch", "x"], "=CSCH(x)"),
    (["Sech", "x"], "=SECH(x)"),
    (["Coth", "x"], "=COTH(x)"),
    (["Arsinh", "x"], "=ASINH(x)"),
    (["Arcosh", "x"], "=ACOSH(x)"),
    (["Artanh", "x"], "=ATANH(x)"),
    (["Acsch", "x"], "=ACSCH(x)"),
    (["Asech", "x"], "=ASECH(x)"),
    (["Arcoth", "x"], "=ACOTH(x)"),
    # Logarithms and exponentials
    (["Exp", "x"], "=EXP(x)"),
    (["Ln", "x"], "=LN(x)"),
    (["Log", "x"], "=LOG(x)"),
    (["Lb", "x"], "=LOG(x,2)"),
    (["Lg", "x"], "=LOG(x)"),
    (["LogOnePlus", "x"], "=LN(x + 1)"),
    # Rounding
    (["Abs", "x"], "=ABS(x)"),
    (["Abs", -5], "=ABS(-5)"),
    (["Ceil", "x"], "=CEILING.MATH(x,1)"),
    (["Floor", "x"], "=FLOOR(x,1)"),
    # Special functions
    (["Factorial", 5], "=FACT(5)"),
    (["Factorial", "n"], "=FACT(n)"),
    (["Factorial2", 5], "=FACTDOUBLE(5)"),
    (["Gamma", "x"], "=GAMMA(x)"),
    (["Rational", "a", "b"], "=(a/b)"),
    (["Mod", "x", "y"], "=MOD(x, y)"),
    (["Mod", 17, 5], "=MOD(17, 5)"),
    (["LCM", "a", "b"], "=LCM(a,b)"),
    # Complex numbers
    (["Complex", "a", "b"], "=COMPLEX(a,b)"),
    (["Real", "z"], "=IMREAL(z)"),
    (["Imaginary", "z"], "=IMAGINARY(z)"),
    (["Conjugate", "z"], "=IMCONJUGATE(z)"),
    (["Arg", "z"], "=IMARGUMENT(z)"),
    (["Argument", "z"], "=IMARGUMENT(z)"),
    (["Magnitude", "z"], "=IMABS(z)"),
    (["Norm", "z"], "=IMABS(z)"),
    # Statistics
    (["Mean", "a", "b", "c"], "=AVERAGE(a,b,c)"),
    (["Median", "a", "b"], "=MEDIAN(a,b)"),
    (["Min", 1, "x"], "=MIN(1,x)"),
    (["Max", 1, "x"], "=MAX(1,x)"),
    (["Mode", "a", "b"], "=MODE.SNGL(a,b)"),
    (["StandardDeviation", "a", "b"], "=STDEV.S(a,b)"),
    (["PopulationStandardDeviation", "a", "b"], "=STDEV.P(a,b)"),
    (["Variance", "a", "b"], "=VAR.P(a,b)"),
]


class TestFunctions:
    """Test class for named and templated functions."""

    @pytest.mark.parametrize("expression, expected", FUNCTION_CASES)
    def test_functions(self, expression, expected):
        assert mathjson_to_excel(expression) == expected

    def test_pythagorean_identity(self):
        expression = ["Add", ["Power", ["Sin", "x"], 2], ["Power", ["Cos", "x"], 2]]
        assert mathjson_to_excel(expression) == "=((SIN(x)^2)+(COS(x)^2))"

    def test_function_of_expression(self):
        expression = ["Sin", ["Add", ["Multiply", "b", "x"], "c"]]
        assert mathjson_to_excel(expression) == "=SIN(((b*x)+c))"

    def test_exponential_decay(self):
        expression = ["Multiply", "A", ["Exp", ["Negate", ["Multiply", "k", "t"]]]]
        assert mathjson_to_excel(expression) == "=(A*EXP((-(k*t))))"


# ============================================================================
# CONSTANTS AND VARIABLE MAPPING
# ============================================================================


class TestConstantsAndVariables:
    """Test class for constants and variable substitution."""

    @pytest.mark.parametrize(
        "symbol, expected",
        [
            ("Pi", "=PI()"),
            ("ExponentialE", "=EXP(1)"),
            ("ImaginaryUnit", "=COMPLEX(0,1)"),
            ("PositiveInfinity", "=1E+307"),
            ("NegativeInfinity", "=-1E+307"),
            ("GoldenRatio", "=((1+SQRT(5))/2)"),
        ],
    )
    def test_constants(self, symbol, expected):
        assert mathjson_to_excel(symbol) == expected

    def test_constant_in_formula(self):
        assert mathjson_to_excel(["Multiply", "Pi", ["Power", "r", 2]]) == "=(PI()*(r^2))"

    def test_constants_win_over_variable_map(self):
        assert mathjson_to_excel("Pi", {"Pi": "A1"}) == "=PI()"

    @pytest.mark.parametrize(
        "expression, var_map, expected",
        [
            ("x", {"x": "A1"}, "=A1"),
            (["Add", "x", "y"], {"x": "A1", "y": "B1"}, "=(A1+B1)"),
            (
                ["Add", ["Multiply", "a", ["Power", "x", 2]], ["Multiply", "b", "x"], "c"],
                {"a": "A1", "b": "B1", "c": "C1", "x": "D1"},
                "=((A1*(D1^2))+(B1*D1)+C1)",
            ),
            (
                ["Add", ["Sin", "x"], ["Cos", "y"]],
                {"x": "A1", "y": "B1"},
                "=(SIN(A1)+COS(B1))",
            ),
            (["Add", "x", "y", "z"], {"x": "A1", "y": "B1"}, "=(A1+B1+z)"),
            (
                [
                    "Divide",
                    [
                        "Add",
                        ["Negate", "b"],
                        ["Sqrt", ["Subtract", ["Power", "b", 2], ["Multiply", 4, "a", "c"]]],
                    ],
                    ["Multiply", 2, "a"],
                ],
                {"a": "A1", "b": "B1", "c": "C1"},
                "=(((-B1)+SQRT(((B1^2)-(4*A1*C1))))/(2*A1))",
            ),
        ],
    )
    def test_variable_mapping(self, expression, var_map, expected):
        assert mathjson_to_excel(expression, var_map) == expected

    def test_empty_mapping_falls_back_to_symbol(self):
        assert mathjson_to_excel("x", {"x": ""}) == "=x"


# ============================================================================
# REGISTRY AND ALGEBRA MODE
# ============================================================================


class TestRegistry:
    """Test class for mapping tables and algebra mode."""

    def test_default_registry_contents(self):
        registry = create_default_mapping_registry()
        assert registry.is_supported("Add")
        assert registry.is_supported("InvisibleOperator")
        assert registry.get_mapping("Add").is_operator
        assert not registry.get_mapping("Sqrt").is_operator
        assert registry.get_constant("Pi") == "PI()"
        assert not registry.is_supported("D")

    def test_algebra_mode_removes_named_constants(self):
        converter = MathJSONToExcelConverter(algebra_mode=AlgebraMode())
        assert converter.convert_to_excel("GoldenRatio") == "=GoldenRatio"
        assert converter.convert_to_excel("EulerGamma", {"EulerGamma": "B2"}) == "=B2"
        assert converter.convert_to_excel("Pi") == "=PI()"

    def test_algebra_mode_removes_functions(self):
        registry = create_default_mapping_registry()
        registry.add_mapping(
            ExcelMapping(tag="D", kind=MappingKind.FUNCTION, template="DERIV({0})")
        )
        assert MathJSONToExcelConverter(registry).convert_to_excel(["D", "x"]) == "=DERIV(x)"

        converter = MathJSONToExcelConverter(registry, algebra_mode=AlgebraMode())
        with pytest.raises(UnsupportedOperatorError):
            converter.convert_to_excel(["D", "x"])
        # The caller's registry is left intact
        assert registry.is_supported("D")

    def test_custom_renderer(self):
        registry = ExcelMappingRegistry()
        registry.add_mapping(
            ExcelMapping(
                tag="Hypot",
                kind=MappingKind.FUNCTION,
                custom=lambda args: "SQRT(SUMSQ(" + ",".join(args) + "))",
            )
        )
        converter = MathJSONToExcelConverter(registry)
        assert converter.convert_to_excel(["Hypot", "x", 3]) == "=SQRT(SUMSQ(x,3))"

    def test_load_mapping_registry_from_file(self, tmp_path):
        config_file = tmp_path / "mappings.yaml"
        config_file.write_text(
            "constants:\n"
            "  Tau: \"(2*PI())\"\n"
            "operators:\n"
            "  Add:\n"
            "    symbol: \"+\"\n"
            "functions:\n"
            "  Sqrt:\n"
            "    name: SQRT\n"
            "  Half:\n"
            "    template: \"({0}/2)\"\n",
            encoding="utf-8",
        )
        registry = load_mapping_registry(config_file)
        converter = MathJSONToExcelConverter(registry)

        assert converter.convert_to_excel(["Add", "Tau", ["Half", ["Sqrt", "x"]]]) == (
            "=((2*PI())+(SQRT(x)/2))"
        )
        with pytest.raises(UnsupportedOperatorError):
            converter.convert_to_excel(["Multiply", 1, 2])

    def test_load_mapping_registry_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_mapping_registry(tmp_path / "missing.yaml")

    def test_operator_requires_symbol(self):
        with pytest.raises(ValueError):
            ExcelMapping(tag="Add", kind=MappingKind.OPERATOR)

    @pytest.mark.parametrize(
        "fields",
        [{}, {"name": "SQRT", "template": "SQRT({0})"}],
    )
    def test_function_requires_one_renderer(self, fields):
        with pytest.raises(ValueError):
            ExcelMapping(tag="Sqrt", kind=MappingKind.FUNCTION, **fields)


# ============================================================================
# VARIABLE BINDINGS
# ============================================================================


class TestBuildVariableMap:
    """Test class for variable panel rows."""

    def test_rows_to_map(self):
        bindings = [
            VariableBinding(latex_var="x", units="m", excel_var="A1"),
            VariableBinding(latex_var=" y ", excel_var=" $B$2 "),
            VariableBinding(latex_var="", excel_var="C3"),
        ]
        assert build_variable_map(bindings) == {"x": "A1", "y": "$B$2"}

    def test_symbol_resolver(self):
        bindings = [VariableBinding(latex_var=r"\alpha", excel_var="A1")]
        var_map = build_variable_map(bindings, lambda latex_var: latex_var.lstrip("\\"))
        assert var_map == {"alpha": "A1"}
        assert mathjson_to_excel(["Multiply", 2, "alpha"], var_map) == "=(2*A1)"

    def test_later_rows_win(self):
        bindings = [
            VariableBinding(latex_var="x", excel_var="A1"),
            VariableBinding(latex_var="x", excel_var="A2"),
        ]
        assert build_variable_map(bindings) == {"x": "A2"}
