import json
from pathlib import Path

import pytest

from pkgbuild.exceptions import TaskGraphError
from pkgbuild.task import SourceType, Task, TaskPlan, load_task_graph
from pkgbuild.testing import make_task

PLAN = {
    "root": "app",
    "tasks": [
        {
            "id": "ocaml-4.6.0",
            "package": {"name": "ocaml", "version": "4.6.0"},
            "paths": {
                "installPath": "%store%/i/ocaml-4.6.0",
                "sourcePath": "%store%/s/ocaml-4.6.0",
                "buildInfoPath": "%store%/b/ocaml-4.6.0/build-info.json",
            },
            "buildCommands": ["./configure --prefix #{self.install}", "make"],
            "installCommands": ["make install"],
        },
        {
            "id": "app",
            "package": {"name": "app", "version": "0.1.0", "sourceType": "root"},
            "paths": {
                "installPath": "%localStore%/i/app",
                "sourcePath": "%sandbox%",
                "buildInfoPath": "%localStore%/b/app/build-info.json",
            },
            "dependencies": ["ocaml-4.6.0"],
            "env": {"OCAMLPARAM": "_,g=1"},
        },
    ],
}


class TestTaskModel:
    def test_reads_camel_case(self):
        plan = TaskPlan.model_validate(PLAN)
        ocaml, app = plan.tasks

        assert ocaml.package.source_type == SourceType.IMMUTABLE
        assert ocaml.install_commands == ("make install",)
        assert app.package.source_type == SourceType.ROOT
        assert app.dependencies == ("ocaml-4.6.0",)
        assert app.env == {"OCAMLPARAM": "_,g=1"}
        assert app.paths.source_path == "%sandbox%"

    def test_writes_camel_case(self):
        task = make_task("dev", SourceType.DEVELOPMENT, build_commands=["make"])
        data = json.loads(task.model_dump_json(by_alias=True))

        assert data["buildCommands"] == ["make"]
        assert data["package"]["sourceType"] == "development"
        assert data["paths"]["installPath"] == "%localStore%/i/dev"
        assert Task.model_validate(data) == task

    def test_str(self):
        assert str(make_task("x", name="foo", version="2.0.0")) == "foo@2.0.0"

    def test_unknown_source_type(self):
        data = json.loads(json.dumps(PLAN))
        data["tasks"][0]["package"]["sourceType"] = "linked"
        with pytest.raises(ValueError):
            TaskPlan.model_validate(data)


class TestLoadTaskGraph:
    def test_load(self, tmp_path: Path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps(PLAN))

        graph = load_task_graph(path)

        assert graph.root.id == "app"
        assert [t.id for t in graph.build_order()] == ["ocaml-4.6.0", "app"]

    def test_unknown_dependency(self, tmp_path: Path):
        data = json.loads(json.dumps(PLAN))
        data["tasks"][1]["dependencies"] = ["missing"]
        path = tmp_path / "plan.json"
        path.write_text(json.dumps(data))

        with pytest.raises(TaskGraphError, match="missing"):
            load_task_graph(path)
