from __future__ import annotations

from pathlib import Path

import pytest

from mcp_homefs.config import HomeFsConfig
from mcp_homefs.dispatcher import OperationDispatcher, build_dispatcher
from mcp_homefs.export import Exporter
from mcp_homefs.operations import FileOperations
from mcp_homefs.security import PathSandbox


@pytest.fixture
def root(tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def sandbox(root: Path) -> PathSandbox:
    return PathSandbox(root)


@pytest.fixture
def pdf_calls() -> list[tuple[str, Path]]:
    return []


@pytest.fixture
def exporter(pdf_calls: list[tuple[str, Path]]) -> Exporter:
    def fake_engine(html: str, output: Path) -> None:
        pdf_calls.append((html, output))
        output.write_bytes(b"%PDF-1.4\n" + b"0" * 200)

    return Exporter(pdf_engine=fake_engine)


@pytest.fixture
def dispatcher(root: Path, exporter: Exporter) -> OperationDispatcher:
    return build_dispatcher(HomeFsConfig(root=root), exporter=exporter)


@pytest.fixture
def ops(dispatcher: OperationDispatcher) -> FileOperations:
    return dispatcher.operations
