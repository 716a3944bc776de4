"""
Evaluability gate.

Decides, before anything is evaluated, whether an expression or block depends
only on statically known references. The check is structural: it never looks
at bound values, because the evaluation context may not have bindings for
subjects that only exist at apply time.

A single non-evaluable reference anywhere makes the whole node non-evaluable.
"""

from .references import is_evaluable_ref, references_in_block, references_in_expr
from .schema import BlockSchema
from .syntax import Block, Expression


def is_evaluable_expr(expr: Expression) -> bool:
    """
    Check whether an expression can be evaluated statically.

    Raises:
        ReferenceParseError: If reference extraction fails
    """
    return all(is_evaluable_ref(ref) for ref in references_in_expr(expr))


def is_evaluable_block(block: Block, schema: BlockSchema) -> bool:
    """
    Check whether every schema-declared part of a block can be evaluated statically.

    Raises:
        ReferenceParseError: If reference extraction fails
    """
    return all(is_evaluable_ref(ref) for ref in references_in_block(block, schema))
