"""Shared test configuration for hcl-eval tests.

Provides:
- A populated evaluation context and runner
- Isolation from the developer's environment (config file, TF_VAR_*, cwd)
"""

import os
from collections.abc import Iterator

import pytest
from builders import VARIABLES

from hcl_eval.engine.context import EvalContext
from hcl_eval.engine.runner import Runner


@pytest.fixture(autouse=True)
def isolated_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> Iterator[None]:
    """Keep tests independent of the caller's config file and TF_VAR_ variables."""
    for name in list(os.environ):
        if name.startswith("TF_VAR_") or name in ("TF_WORKSPACE", "HCL_EVAL_CONFIG"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
    yield


@pytest.fixture
def ctx() -> EvalContext:
    """Evaluation context with a representative set of variables."""
    return EvalContext(
        VARIABLES,
        workspace="staging",
        module_path="modules/network",
        root_path=".",
        cwd="/work",
    )


@pytest.fixture
def runner(ctx: EvalContext) -> Runner:
    """Runner over the shared context."""
    return Runner(ctx)
