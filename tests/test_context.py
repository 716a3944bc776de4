"""Unit tests for the evaluation context."""

from __future__ import annotations

import pytest
from builders import block, expr

from hcl_eval.engine.context import EvalContext
from hcl_eval.engine.schema import BlockSchema
from hcl_eval.engine.types import DYNAMIC, NUMBER, STRING, Type, list_of
from hcl_eval.engine.values import UNKNOWN, Value


def evaluate(ctx: EvalContext, source: str, want_type: Type = DYNAMIC) -> Value:
    value, diags = ctx.evaluate_expr(expr(source), want_type)
    assert not diags.has_errors(), [str(diag) for diag in diags]
    return value


class TestEvaluateExpr:
    """Tests for expression evaluation."""

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ('"${var.region}"', "eu-west-1"),
            ("var.port + 1", 8081),
            ('"${var.port}"', 8080),
            ('"port=${var.port}"', "port=8080"),
            ('"on=${var.enabled} ratio=${var.ratio}"', "on=true ratio=1.5"),
            ("var.tags.env", "prod"),
            ('var.tags["team"]', "core"),
            ("var.azs[1]", "a"),
            ("var.ports", [80, 443]),
            ("terraform.workspace", "staging"),
            ("path.module", "modules/network"),
            ("path.cwd", "/work"),
            ('"${path.module}/main.tf"', "modules/network/main.tf"),
            ("var.enabled && var.port > 80", True),
            ("!var.enabled", False),
            ("var.nothing == null", True),
            ('("big" if var.port > 1000 else "small")', "big"),
            ('upper(var.name) ~ "-" ~ lower("X")', "WEB-x"),
            ('join(",", var.azs)', "b,a,c"),
            ("length(var.tags)", 2),
            ('"%{ for az in var.azs }${az};%{ endfor }"', "b;a;c;"),
            ('"%{ if var.enabled }yes%{ else }no%{ endif }"', "yes"),
        ],
    )
    def test_values(self, ctx: EvalContext, source: str, expected: object) -> None:
        """Test expressions evaluate against the bound variables."""
        assert evaluate(ctx, source).to_python() == expected

    def test_literal_template(self, ctx: EvalContext) -> None:
        """Test literal text with escapes and braces renders as written."""
        assert evaluate(ctx, r'"a {b} $${c}\n"').to_python() == "a {b} ${c}\n"

    def test_want_type_conversion(self, ctx: EvalContext) -> None:
        """Test results are converted to the requested type."""
        assert evaluate(ctx, "var.port", STRING) == Value.string("8080")
        assert evaluate(ctx, '"42"', NUMBER).to_python() == 42
        assert evaluate(ctx, "var.ports", list_of(STRING)).to_python() == ["80", "443"]

    def test_conversion_failure_is_diagnostic(self, ctx: EvalContext) -> None:
        """Test a failed conversion reports an error diagnostic."""
        value, diags = ctx.evaluate_expr(expr("var.azs"), STRING)
        assert value.is_null()
        assert diags.has_errors()
        assert diags[0].summary == "Incorrect value type"
        assert "string required" in diags[0].detail

    def test_undefined_variable_is_diagnostic(self, ctx: EvalContext) -> None:
        """Test missing bindings report a diagnostic instead of raising."""
        value, diags = ctx.evaluate_expr(expr("var.missing"), STRING)
        assert value.is_null()
        assert diags.has_errors()
        assert diags[0].summary == "Invalid expression"
        assert "missing" in diags[0].detail
        assert "main.tf:1" in str(diags.err())

    def test_undefined_in_template_is_diagnostic(self, ctx: EvalContext) -> None:
        """Test missing bindings inside templates report a diagnostic."""
        _, diags = ctx.evaluate_expr(expr('"a-${var.missing}"'))
        assert diags.has_errors()

    def test_null_in_template_is_diagnostic(self, ctx: EvalContext) -> None:
        """Test interpolating null into a template is an error."""
        _, diags = ctx.evaluate_expr(expr('"a-${var.nothing}"'))
        assert diags.has_errors()
        assert "null" in diags[0].detail

    def test_collection_in_template_is_diagnostic(self, ctx: EvalContext) -> None:
        """Test interpolating a list into a template is an error."""
        _, diags = ctx.evaluate_expr(expr('"a-${var.azs}"'))
        assert diags.has_errors()

    def test_null_result(self, ctx: EvalContext) -> None:
        """Test null values are returned as null, not reported."""
        assert evaluate(ctx, "var.nothing").is_null()
        assert evaluate(ctx, "null").is_null()

    @pytest.mark.parametrize(
        "source",
        [
            "var.pending",
            "var.pending + 1",
            "var.pending.id",
            '"id-${var.pending}"',
            "upper(var.pending)",
            '("a" if var.pending else "b")',
            "length(var.pending_list)",
        ],
    )
    def test_unknown_propagates(self, ctx: EvalContext, source: str) -> None:
        """Test any dependency on an unknown value yields an unknown result."""
        assert not evaluate(ctx, source, STRING).is_known()

    def test_unknown_element_is_kept(self, ctx: EvalContext) -> None:
        """Test unknown elements stay inside an otherwise known list."""
        value = evaluate(ctx, "var.pending_list")
        assert value.to_python() == ["a", UNKNOWN]

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ('"%{ for k, v in var.tags }${k}=${v};%{ endfor }"', "env=prod;team=core;"),
            ('"%{ for i, az in var.azs }${i}:${az} %{ endfor }"', "0:b 1:a 2:c "),
            ('"%{ for v in var.tags }${v},%{ endfor }"', "prod,core,"),
            ('"%{~ for i, p in var.ports ~}${p * 2}|%{~ endfor ~}"', "160|886|"),
        ],
    )
    def test_for_directive(self, ctx: EvalContext, source: str, expected: str) -> None:
        """Test for directives bind values, or index/key and value pairs."""
        assert evaluate(ctx, source).to_python() == expected

    def test_for_directive_over_unknown(self, ctx: EvalContext) -> None:
        """Test iterating an unknown collection yields an unknown result."""
        assert not evaluate(ctx, '"%{ for k, v in var.pending }${k}%{ endfor }"').is_known()

    def test_for_directive_over_null(self, ctx: EvalContext) -> None:
        """Test iterating null is an error diagnostic."""
        _, diags = ctx.evaluate_expr(expr('"%{ for v in var.nothing }x%{ endfor }"'))
        assert diags.has_errors()
        assert "list or map required" in diags[0].detail

    def test_null_as_attribute_name(self) -> None:
        """Test an attribute named null is looked up, not read as the null keyword."""
        ctx = EvalContext({"tags": {"null": "kept"}})
        assert evaluate(ctx, "var.tags.null").to_python() == "kept"
        assert evaluate(ctx, '"${var.tags.null}"').to_python() == "kept"

    def test_custom_functions(self) -> None:
        """Test callers can register extra functions."""
        ctx = EvalContext({"n": 21}, functions={"double": lambda x: x * 2})
        assert evaluate(ctx, "double(var.n)").to_python() == 42

    def test_sandbox_prevents_mutation(self, ctx: EvalContext) -> None:
        """Test expressions cannot mutate bound collections."""
        _, diags = ctx.evaluate_expr(expr('var.azs.append("d")'))
        assert diags.has_errors()
        assert ctx.variables["azs"] == Value.from_python(["b", "a", "c"])

    def test_bindings_are_read_only(self, ctx: EvalContext) -> None:
        """Test the variable snapshot cannot be modified."""
        with pytest.raises(TypeError):
            ctx.variables["x"] = Value.string("changed")  # type: ignore[index]

    def test_cwd_defaults_to_current_directory(self) -> None:
        """Test path.cwd defaults to the process working directory."""
        from pathlib import Path

        assert EvalContext().path_attrs["cwd"] == Value.string(str(Path.cwd()))


class TestEvaluateBlock:
    """Tests for block evaluation."""

    SCHEMA = BlockSchema.model_validate(
        {
            "attributes": {
                "name": {"type": "string", "required": True},
                "port": {"type": "number"},
                "description": {"type": "string"},
            },
            "block_types": {
                "tags": {"nesting": "single", "block": {"attributes": {"env": {}}}},
                "ingress": {
                    "nesting": "list",
                    "min_items": 1,
                    "max_items": 2,
                    "block": {"attributes": {"port": {"type": "number"}}},
                },
                "env": {"nesting": "map", "block": {"attributes": {"size": {}}}},
            },
        }
    )

    def test_full_body(self, ctx: EvalContext) -> None:
        """Test attributes and nested blocks of every nesting mode."""
        body = block(
            {
                "name": '"${var.name}"',
                "port": '"8080"',
                "tags": {"env": "terraform.workspace"},
                "ingress": [{"port": "80"}, {"port": "var.port"}],
                "env": [
                    {"__labels__": ["prod"], "size": '"large"'},
                    {"__labels__": ["dev"], "size": '"small"'},
                ],
            }
        )
        value, diags = ctx.evaluate_block(body, self.SCHEMA)
        assert not diags.has_errors()
        assert value.to_python() == {
            "name": "web",
            "port": 8080,
            "description": None,
            "tags": {"env": "staging"},
            "ingress": [{"port": 80}, {"port": 8080}],
            "env": {"prod": {"size": "large"}, "dev": {"size": "small"}},
        }

    def test_omitted_nested_blocks(self, ctx: EvalContext) -> None:
        """Test omitted single blocks are null and omitted maps are empty."""
        body = block({"name": '"web"', "ingress": {"port": "22"}})
        value, diags = ctx.evaluate_block(body, self.SCHEMA)
        assert not diags.has_errors()
        assert value.to_python()["tags"] is None
        assert value.to_python()["env"] == {}

    @pytest.mark.parametrize(
        ("body", "summary"),
        [
            ({"ingress": {"port": "22"}}, "Missing required argument"),
            ({"name": '"a"', "ingress": {"port": "22"}, "extra": "1"}, "Unsupported argument"),
            ({"name": '"a"', "ingress": {"port": "22"}, "other": {}}, "Unsupported block type"),
            ({"name": '"a"', "ingress": {"port": "22"}, "port": '"abc"'}, "Incorrect value type"),
            ({"name": '"a"'}, "Insufficient blocks"),
            (
                {"name": '"a"', "ingress": [{"port": "1"}, {"port": "2"}, {"port": "3"}]},
                "Too many blocks",
            ),
            (
                {"name": '"a"', "ingress": {"port": "22"}, "tags": [{"env": "1"}, {"env": "2"}]},
                "Duplicate block",
            ),
            (
                {"name": '"a"', "ingress": {"port": "22"}, "env": {"size": "1"}},
                "Missing block label",
            ),
        ],
    )
    def test_body_errors(self, ctx: EvalContext, body: dict[str, object], summary: str) -> None:
        """Test schema violations are reported as diagnostics and yield null."""
        value, diags = ctx.evaluate_block(block(body), self.SCHEMA)
        assert value.is_null()
        assert summary in [diag.summary for diag in diags]
