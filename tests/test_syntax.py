"""Unit tests for expression classification, rewriting and parsing."""

from __future__ import annotations

import pytest
from builders import block

from hcl_eval.engine.exceptions import ExpressionSyntaxError
from hcl_eval.engine.resolver import (
    ExpressionClassifier,
    ExpressionKind,
    RuleContext,
    RuleType,
    TransformRule,
    apply_rules,
    default_rules,
    rewrite_expression,
)
from hcl_eval.engine.resolver.scanner import PartKind, scan_template, split_strings
from hcl_eval.engine.resolver.syntax_rules import normalize_operators
from hcl_eval.engine.syntax import SourceRange, parse_expression


def squash(text: str) -> str:
    return " ".join(text.split())


class TestScanner:
    """Tests for template scanning."""

    def test_parts(self) -> None:
        """Test literal text, interpolations and directives are split apart."""
        parts = scan_template('"a-${var.x}%{ if var.on }b%{ endif }"')
        assert [part.kind for part in parts] == [
            PartKind.LITERAL,
            PartKind.INTERPOLATION,
            PartKind.DIRECTIVE,
            PartKind.LITERAL,
            PartKind.DIRECTIVE,
        ]
        assert parts[1].text == "var.x"
        assert parts[2].text == "if var.on"

    def test_escapes(self) -> None:
        """Test character escapes and escaped template markers."""
        parts = scan_template(r'"a\n\"b\" $${x} %%{y} é"')
        assert parts == [parts[0]]
        assert parts[0].text == 'a\n"b" ${x} %{y} é'

    def test_strip_markers(self) -> None:
        """Test ~ markers are recorded on the part."""
        (part,) = scan_template('"${~ var.x ~}"')
        assert part.strip_left and part.strip_right
        assert part.text == "var.x"

    def test_nested_braces(self) -> None:
        """Test braces inside a sequence do not close it."""
        (part,) = scan_template('"${merge(var.a, {"k" = "}"})}"')
        assert part.text == 'merge(var.a, {"k" = "}"})'

    @pytest.mark.parametrize(
        ("source", "message"),
        [
            ('"abc', "unterminated template string"),
            ('"${var.x"', "unclosed template sequence"),
            ('"${ }"', "empty interpolation sequence"),
            ('"a" b', "extra characters"),
            (r'"\q"', "invalid escape sequence"),
        ],
    )
    def test_malformed(self, source: str, message: str) -> None:
        """Test malformed templates are rejected."""
        with pytest.raises(ExpressionSyntaxError, match=message):
            scan_template(source)

    def test_split_strings(self) -> None:
        """Test code and string literal segments are separated."""
        assert split_strings('upper("a && b") && x') == [
            (False, "upper("),
            (True, '"a && b"'),
            (False, ") && x"),
        ]


class TestExpressionClassifier:
    """Tests for expression classification."""

    @pytest.mark.parametrize(
        ("source", "kind"),
        [
            ('"plain text"', ExpressionKind.LITERAL),
            ('"$${not_a_sequence}"', ExpressionKind.LITERAL),
            ('"${var.x}"', ExpressionKind.INTERPOLATION),
            ('  "${var.x}"  ', ExpressionKind.INTERPOLATION),
            ('"web-${var.env}"', ExpressionKind.TEMPLATE),
            ('"${var.a}${var.b}"', ExpressionKind.TEMPLATE),
            ('"%{ if var.on }x%{ endif }"', ExpressionKind.TEMPLATE),
            ("var.x", ExpressionKind.EXPRESSION),
            ("[1, 2]", ExpressionKind.EXPRESSION),
        ],
    )
    def test_classify(self, source: str, kind: ExpressionKind) -> None:
        """Test each source routes to the expected kind."""
        assert ExpressionClassifier().classify(source) is kind

    def test_type_preservation(self) -> None:
        """Test only single interpolations and bare expressions keep their type."""
        assert ExpressionKind.INTERPOLATION.preserves_type
        assert ExpressionKind.EXPRESSION.preserves_type
        assert not ExpressionKind.TEMPLATE.preserves_type
        assert not ExpressionKind.LITERAL.preserves_type


class TestRewriting:
    """Tests for rewriting into jinja2 source."""

    def test_template(self) -> None:
        """Test interpolations become output markers."""
        assert rewrite_expression('"web-${var.env}"') == (
            ExpressionKind.TEMPLATE,
            "web-{{ var.env }}",
        )

    def test_single_interpolation_unwraps(self) -> None:
        """Test a lone interpolation becomes a bare expression."""
        assert rewrite_expression('"${var.ports}"') == (ExpressionKind.INTERPOLATION, "var.ports")

    def test_directives(self) -> None:
        """Test directives become statement markers with strip flags."""
        _, source = rewrite_expression('"%{~ if var.on ~}x%{ endif }"')
        assert source == "{%- if var.on -%}x{% endif %}"

    def test_literal_braces_are_raw(self) -> None:
        """Test literal text containing braces is protected from jinja2."""
        _, source = rewrite_expression('"{a}-${var.x}"')
        assert source == "{% raw %}{a}-{% endraw %}{{ var.x }}"

    def test_operators(self) -> None:
        """Test logical operators and null are normalized."""
        _, source = rewrite_expression("var.a && !var.b || var.c != null")
        assert squash(source) == "var.a and not var.b or var.c != none"

    def test_operators_inside_interpolation(self) -> None:
        """Test operators are normalized inside template sequences too."""
        _, source = rewrite_expression('"${var.a && var.b}"')
        assert squash(source) == "var.a and var.b"

    def test_string_literals_untouched(self) -> None:
        """Test operators inside string literals are not rewritten."""
        assert normalize_operators('upper("a && !b") || null') == 'upper("a && !b")  or  none'

    def test_null_attribute_untouched(self) -> None:
        """Test only the null keyword is rewritten, not attributes named null."""
        assert normalize_operators("var.null == null") == "var.null == none"
        assert normalize_operators("var.tags.null") == "var.tags.null"

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            (
                '"%{ for k, v in var.tags }${k}%{ endfor }"',
                "{% for k, v in _template_pairs(var.tags) %}{{ k }}{% endfor %}",
            ),
            (
                '"%{ for az in var.azs }${az}%{ endfor }"',
                "{% for az in _template_values(var.azs) %}{{ az }}{% endfor %}",
            ),
        ],
    )
    def test_for_directives(self, source: str, expected: str) -> None:
        """Test for directives iterate through the pair and value helpers."""
        assert rewrite_expression(source) == (ExpressionKind.TEMPLATE, expected)

    def test_custom_rule(self) -> None:
        """Test extra rules run after the defaults."""

        class UppercaseRule(TransformRule):
            rule_type = RuleType.SYNTAX
            priority = 50

            def applies_to(self, context: RuleContext) -> bool:
                return context.kind is ExpressionKind.EXPRESSION

            def transform(self, context: RuleContext) -> RuleContext:
                context.expression = context.expression.replace("VAR", "var")
                return context

            @property
            def description(self) -> str:
                return "Lowercase VAR"

        assert rewrite_expression("VAR.x", [UppercaseRule()]) == (
            ExpressionKind.EXPRESSION,
            "var.x",
        )

    def test_applied_rules_are_recorded(self) -> None:
        """Test only rules that changed the source are recorded."""
        context = apply_rules(
            default_rules(),
            RuleContext(expression="var.a && var.b", kind=ExpressionKind.EXPRESSION),
        )
        assert context.applied == ["Convert logical operators and null into jinja2 syntax"]


class TestParseExpression:
    """Tests for parse_expression."""

    def test_records_source_and_range(self) -> None:
        """Test the handle keeps the original source and location."""
        expr = parse_expression('"${var.x}"', filename="main.tf", line=12)
        assert expr.source == '"${var.x}"'
        assert expr.kind is ExpressionKind.INTERPOLATION
        assert expr.range == SourceRange("main.tf", 12, 1)
        assert str(expr.range) == "main.tf:12"

    def test_syntax_error_carries_range(self) -> None:
        """Test malformed sources report their location."""
        with pytest.raises(ExpressionSyntaxError, match=r"^main\.tf:3: empty interpolation"):
            parse_expression('"${}"', filename="main.tf", line=3)

    def test_invalid_jinja_expression(self) -> None:
        """Test incomplete bare expressions are rejected."""
        with pytest.raises(ExpressionSyntaxError, match="Invalid expression"):
            parse_expression("var.x +")

    def test_trailing_tokens(self) -> None:
        """Test trailing tokens after a complete expression are rejected."""
        with pytest.raises(ExpressionSyntaxError, match="Invalid expression"):
            parse_expression("var.x var.y")

    @pytest.mark.parametrize(
        "source",
        [
            "var.x.__class__",
            '"${var.x.__class__}"',
            'eval("1")',
            "__import__",
        ],
    )
    def test_forbidden_names(self, source: str) -> None:
        """Test dunder access and code execution builtins are rejected."""
        with pytest.raises(ExpressionSyntaxError, match="Security violation"):
            parse_expression(source)

    def test_forbidden_text_in_strings_is_allowed(self) -> None:
        """Test forbidden words inside string content are plain text."""
        parse_expression('"__init__ eval(x)"')
        parse_expression('upper("__x")')


class TestBlockFromDict:
    """Tests for Block.from_dict."""

    def test_attributes_and_nested_blocks(self) -> None:
        """Test strings become attributes and dicts become nested blocks."""
        result = block(
            {
                "name": '"web"',
                "tags": {"env": '"prod"'},
                "ingress": [{"port": "80"}, {"port": "443"}],
            }
        )
        assert set(result.attributes) == {"name"}
        assert [nested.type for nested in result.blocks] == ["tags", "ingress", "ingress"]
        assert result.blocks[2].attributes["port"].source == "443"

    def test_line_numbers(self) -> None:
        """Test attributes and nested blocks get increasing line numbers."""
        result = block({"name": '"web"', "tags": {"env": '"prod"'}, "other": "1"}, line=10)
        assert result.def_range.line == 10
        assert result.attributes["name"].range.line == 11
        assert result.blocks[0].def_range.line == 12
        assert result.blocks[0].attributes["env"].range.line == 13
        assert result.attributes["other"].range.line == 15

    def test_labels(self) -> None:
        """Test nested labels come from the __labels__ key."""
        result = block({"env": [{"__labels__": ["prod"], "size": '"large"'}]})
        assert result.blocks[0].labels == ("prod",)
        assert set(result.blocks[0].attributes) == {"size"}

    def test_immutable_attributes(self) -> None:
        """Test the attribute mapping cannot be modified."""
        result = block({"name": '"web"'})
        with pytest.raises(TypeError):
            result.attributes["name"] = result.attributes["name"]  # type: ignore[index]

    def test_unsupported_value(self) -> None:
        """Test non-string attribute values are rejected."""
        with pytest.raises(TypeError, match="Unsupported body value"):
            block({"port": 80})
