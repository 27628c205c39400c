"""End-to-end tests for the tsmigrate command line."""

import io
import json
import logging

import pytest

from tsmigrate.artifacts import load_roadmap
from tsmigrate.cli import main


def _main(*argv) -> int:
    with pytest.raises(SystemExit) as exc:
        main(list(argv))
    return exc.value.code


def _batch_of(config, rel_path: str) -> int:
    for batch in load_roadmap(config.root_path(config.roadmap_file)):
        if any(c.path == rel_path for c in batch.components):
            return batch.id
    raise AssertionError(f"{rel_path} not in roadmap")


@pytest.fixture
def planned(widget_project, config, capsys):
    assert _main("plan", str(widget_project.path)) == 0
    capsys.readouterr()
    return widget_project


class TestPlan:
    def test_writes_artifacts(self, widget_project, capsys):
        assert _main("plan", str(widget_project.path)) == 0
        out = capsys.readouterr().out
        assert "components: 10" in out
        for name in ("component-inventory.json", "migration-roadmap.json", "component-relationships.md"):
            assert widget_project.exists(name)
        inventory = json.loads(widget_project.read("component-inventory.json"))
        assert len(inventory) == 10

    def test_missing_directory(self, tmp_path, capsys):
        assert _main("plan", str(tmp_path / "nope")) == 1
        assert "error: Project directory not found" in capsys.readouterr().err


class TestBatches:
    def test_requires_roadmap(self, widget_project, capsys):
        assert _main("batches", "--path", str(widget_project.path)) == 1
        assert "run 'tsmigrate plan' first" in capsys.readouterr().err

    def test_lists_batches(self, planned, capsys):
        assert _main("batches", "--path", str(planned.path), "--list") == 0
        out = capsys.readouterr().out
        assert "1. Batch 1: Base Components" in out
        assert "components/widgets/Widget0.jsx" in out


class TestRun:
    def test_unknown_batch(self, planned, capsys):
        assert _main("run", "42", "--path", str(planned.path)) == 1
        assert "Batch 42 not found" in capsys.readouterr().err

    def test_failures_do_not_change_exit_status(self, planned, config, capsys):
        batch_id = _batch_of(config, "components/widgets/Widget3.jsx")
        planned.write("components/widgets/Widget3.jsx", "export default function (")

        assert _main("run", str(batch_id), "--path", str(planned.path)) == 0
        captured = capsys.readouterr()
        assert "failed:    1" in captured.out
        assert "Widget3 [load]" in captured.err
        assert planned.exists(f".migration-checkpoints/batch-{batch_id}-failures.json")
        assert list((planned.path / "logs").glob("migration-*.log"))

    def test_console_levels_are_restored_after_run(self, planned, config, capsys):
        batch_id = _batch_of(config, "components/widgets/Widget0.jsx")
        console = logging.StreamHandler(io.StringIO())
        root = logging.getLogger()
        pkg = logging.getLogger("tsmigrate")
        pkg_level = pkg.level
        root.addHandler(console)
        try:
            assert _main("run", str(batch_id), "--path", str(planned.path)) == 0
            assert console.level == logging.NOTSET
            assert pkg.level == pkg_level
            assert not any(isinstance(h, logging.FileHandler) for h in pkg.handlers)
        finally:
            root.removeHandler(console)

    def test_dry_run_leaves_no_trace(self, planned, config, capsys):
        batch_id = _batch_of(config, "components/widgets/Widget0.jsx")
        assert _main("run", str(batch_id), "--path", str(planned.path), "--dry-run") == 0
        assert "(dry run)" in capsys.readouterr().out
        assert not planned.exists("src")
        assert not planned.exists("logs")


class TestStatus:
    def test_overview_before_any_run(self, planned, capsys):
        assert _main("status", "--path", str(planned.path)) == 0
        out = capsys.readouterr().out
        assert "Planned:   (not planned yet)" not in out
        assert "Batches:   (none run yet)" in out

    def test_overview_without_store(self, widget_project, capsys):
        assert _main("status", "--path", str(widget_project.path)) == 0
        assert "No migration runs recorded yet" in capsys.readouterr().out

    def test_batch_and_overview_after_run(self, planned, config, capsys):
        batch_id = _batch_of(config, "components/widgets/Widget0.jsx")
        size = next(b.component_count for b in load_roadmap(config.root_path(config.roadmap_file))
                    if b.id == batch_id)
        assert _main("run", str(batch_id), "--path", str(planned.path)) == 0
        capsys.readouterr()

        assert _main("status", str(batch_id), "--path", str(planned.path)) == 0
        out = capsys.readouterr().out
        assert f"Progress:  {size}/{size}" in out

        assert _main("status", "--path", str(planned.path)) == 0
        out = capsys.readouterr().out
        assert f"Succeeded: {size}" in out
        assert f"Batches:   {batch_id}" in out

    def test_missing_checkpoint(self, planned, capsys):
        assert _main("status", "3", "--path", str(planned.path)) == 0
        assert "No checkpoint for batch 3" in capsys.readouterr().out


class TestAnalyze:
    def test_json_profile(self, widget_project, capsys):
        path = widget_project.path / "components/widgets/Widget0.jsx"
        assert _main("analyze", str(path), "--path", str(widget_project.path), "--json") == 0
        profile = json.loads(capsys.readouterr().out)
        assert profile["name"] == "Widget0"
        assert profile["kind"] == "FunctionComponent"
        assert [p["name"] for p in profile["props"]] == ["label", "count"]

    def test_text_profile(self, widget_project, capsys):
        path = widget_project.path / "components/widgets/Widget0.jsx"
        assert _main("analyze", str(path), "--path", str(widget_project.path)) == 0
        out = capsys.readouterr().out
        assert "target:     src/components/widgets/Widget0.tsx" in out

    def test_file_outside_project(self, widget_project, tmp_path_factory, capsys):
        other = tmp_path_factory.mktemp("other") / "X.jsx"
        other.write_text("export const X = () => <i />;\n")
        assert _main("analyze", str(other), "--path", str(widget_project.path)) == 1
        assert "outside the project root" in capsys.readouterr().err
