"""Shared fixtures: in-memory parsing and small JSX projects built in tmp_path."""

from pathlib import Path

import pytest

from tsmigrate.config import MigrationConfig, load_config
from tsmigrate.models import SourceUnit
from tsmigrate.parse import unit_from_source


@pytest.fixture
def unit():
    """Parse source text into a SourceUnit: ``unit(src, path="components/X.jsx")``."""

    def _unit(source: str, path: str = "components/Sample.jsx") -> SourceUnit:
        return unit_from_source(path, source.encode("utf-8"))

    return _unit


@pytest.fixture
def root(unit):
    """Parse source text and return the tree's root node."""

    def _root(source: str, path: str = "components/Sample.jsx"):
        return unit(source, path).tree.root_node

    return _root


@pytest.fixture
def project(tmp_path: Path):
    """An empty project; ``project.write(rel, text)`` adds files."""

    class Project:
        path = tmp_path

        def write(self, rel: str, text: str) -> Path:
            target = tmp_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
            return target

        def read(self, rel: str) -> str:
            return (tmp_path / rel).read_text(encoding="utf-8")

        def exists(self, rel: str) -> bool:
            return (tmp_path / rel).exists()

    return Project()


@pytest.fixture
def config(project) -> MigrationConfig:
    cfg = load_config(str(project.path))
    cfg.workers = 1
    return cfg


WIDGET_TEMPLATE = """import React, {{ useState }} from 'react';

export default function Widget{n}({{ label = 'w{n}', count }}) {{
  const [open, setOpen] = useState(false);
  return <div onClick={{() => setOpen(!open)}}>{{label}} {{count}}</div>;
}}
"""


@pytest.fixture
def widget_project(project):
    """Ten simple function components under components/widgets/."""
    for n in range(10):
        project.write(f"components/widgets/Widget{n}.jsx", WIDGET_TEMPLATE.format(n=n))
    return project
