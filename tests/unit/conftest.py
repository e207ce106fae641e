# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from observability import logger


@pytest.fixture(autouse=True)
def captured_logs(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Keep JSONL output out of the test report; tests may inspect it."""
    lines: list[str] = []
    monkeypatch.setattr(logger, "_print", lines.append)
    return lines
