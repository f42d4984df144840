# File: tests/conftest.py
# Contains pytest fixtures for generating and importing packages in temporary directories.

import importlib
import sys
import uuid
from pathlib import Path
from typing import Any, Callable, Generator

import pytest

from dynamo_codegen.ast_codegen.code_generator import generate_for_table

from schema_factories import email_index, order_schema, order_status_index, table_binding, user_schema


@pytest.fixture
def unique_namespace() -> str:
    """A fresh top-level package name per test so imported modules never leak between tests."""
    return f"generated_{uuid.uuid4().hex[:10]}.model"


@pytest.fixture
def import_generated(tmp_path: Path) -> Generator[Callable[[str, str], Any], Any, None]:
    """
    Yields a function importing ``<namespace>.<module>`` from the tmp_path tree.

    sys.path and sys.modules are restored after the test.
    """
    sys.path.insert(0, str(tmp_path))
    imported_roots = set()

    def _import(namespace: str, module: str) -> Any:
        imported_roots.add(namespace.split(".")[0])
        importlib.invalidate_caches()
        return importlib.import_module(f"{namespace}.{module}")

    yield _import

    sys.path.remove(str(tmp_path))
    for name in list(sys.modules):
        if name.split(".")[0] in imported_roots:
            del sys.modules[name]


@pytest.fixture
def generated_table(tmp_path: Path, unique_namespace: str) -> str:
    """User and Order entities of one table, with secondary indexes, written to tmp_path."""
    generate_for_table(
        [user_schema(), order_schema()],
        namespace=unique_namespace,
        output_dir=str(tmp_path),
        table_binding=table_binding([email_index(), order_status_index()]),
    )
    return unique_namespace
