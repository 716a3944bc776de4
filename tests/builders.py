"""Builders for expressions, blocks and schemas located in a fixed file."""

from typing import Any

from hcl_eval.engine.schema import BlockSchema
from hcl_eval.engine.syntax import Block, Expression, parse_expression
from hcl_eval.engine.values import UNKNOWN

FILENAME = "main.tf"


def expr(source: str, line: int = 1) -> Expression:
    """Parse expression source located in main.tf."""
    return parse_expression(source, filename=FILENAME, line=line)


def block(body: dict[str, Any], block_type: str = "resource", line: int = 1) -> Block:
    """Build a block located in main.tf."""
    return Block.from_dict(block_type, body, filename=FILENAME, line=line)


def schema(**attributes: Any) -> BlockSchema:
    """Build a flat block schema: name -> type string or attribute dict."""
    return BlockSchema(
        attributes={
            name: spec if isinstance(spec, dict) else {"type": spec}
            for name, spec in attributes.items()
        }
    )


VARIABLES: dict[str, Any] = {
    "x": "ok",
    "name": "web",
    "region": "eu-west-1",
    "port": 8080,
    "ratio": 1.5,
    "enabled": True,
    "azs": ["b", "a", "c"],
    "ports": [80, 443],
    "tags": {"env": "prod", "team": "core"},
    "pending": UNKNOWN,
    "pending_list": ["a", UNKNOWN],
    "nothing": None,
    "maybe": ["a", None],
}
