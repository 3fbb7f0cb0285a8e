"""Test fixtures and configuration for aisdk tests.

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── mock_model.py        # Scripted LanguageModel and response builders
    ├── test_config.py       # aisdk.toml / .env loading
    └── unit/                # Unit tests (no network, scripted models)
        ├── test_types.py
        ├── test_messages.py
        ├── test_tools.py
        ├── test_generate_text.py
        ├── test_stream_text.py
        └── test_openai_compatible.py

Running tests:
    pytest tests/unit -v                    # Unit tests only
    pytest -v                               # Everything
"""

import sys
from pathlib import Path

import pytest

# Add tests directory to path for imports
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from aisdk import Tool  # noqa: E402


@pytest.fixture
def add_tool() -> Tool:
    """Sync tool adding two integers."""
    return Tool(
        name="add",
        description="Add two integers",
        input_schema={
            "type": "object",
            "properties": {"a": {"type": "integer"}, "b": {"type": "integer"}},
            "required": ["a", "b"],
        },
        execute=lambda args: str(args["a"] + args["b"]),
    )


@pytest.fixture
def failing_tool() -> Tool:
    """Tool that always raises."""

    def explode(args):
        raise RuntimeError("boom")

    return Tool(name="explode", description="Always fails", execute=explode)


@pytest.fixture
def guarded_tool() -> Tool:
    """Tool that always needs approval; records its executions."""
    calls = []

    def delete_file(args):
        calls.append(args)
        return f"deleted {args.get('path')}"

    tool = Tool(
        name="delete_file",
        description="Delete a file",
        execute=delete_file,
        needs_approval=True,
    )
    tool.calls = calls  # type: ignore[attr-defined]
    return tool
