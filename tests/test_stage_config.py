"""
Tests for stage models and lifecycle normalization.

Covers the task-reference shorthand, legacy ``dependsOn``, the built-in
stage graphs, and how a lifecycle resolves to its canonical stage list.
"""

import pytest
from pydantic import ValidationError

from hookstage.core.config.models import DEFAULT_SCOPES, LifecycleConfig
from hookstage.core.hooks.models import HookScope, HookType, TaskMode
from hookstage.core.hooks.stage import Stage, StageTask, default_stages, implicit_stage


class TestStageTask:
    """Test task reference parsing."""

    def test_bare_id_defaults_to_fix(self):
        ref = StageTask.parse("format")
        assert ref.id == "format"
        assert ref.mode is TaskMode.FIX

    @pytest.mark.parametrize(
        "value,mode",
        [
            ("format:check", TaskMode.CHECK),
            ("format:fix", TaskMode.FIX),
            ("versionSync:fixOnly", TaskMode.FIX_ONLY),
        ],
    )
    def test_shorthand_modes(self, value, mode):
        assert StageTask.parse(value).mode is mode

    def test_object_form_with_options(self):
        ref = StageTask.parse({"id": "test", "mode": "check", "options": {"parallel": False}})
        assert ref.mode is TaskMode.CHECK
        assert ref.options == {"parallel": False}

    def test_invalid_mode_rejected(self):
        with pytest.raises(ValidationError, match="Invalid task mode 'lint'"):
            StageTask.parse("format:lint")

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            StageTask.parse(":check")


class TestStage:
    """Test stage construction from configuration dictionaries."""

    def test_defaults(self):
        stage = Stage.model_validate({"name": "quality", "tasks": ["format:check"]})
        assert stage.parallel is True
        assert stage.dependencies == frozenset()
        assert stage.continue_on_error is False
        assert stage.task_ids == ["format"]

    def test_depends_on_becomes_dependency(self):
        stage = Stage.model_validate({"name": "test", "dependsOn": "quality"})
        assert stage.dependencies == frozenset({"quality"})

    def test_depends_on_with_dependencies_rejected(self):
        with pytest.raises(ValidationError, match="dependsOn"):
            Stage.model_validate(
                {"name": "test", "dependsOn": "a", "dependencies": ["b"]}
            )

    def test_continue_on_error_alias(self):
        stage = Stage.model_validate({"name": "analysis", "continueOnError": True})
        assert stage.continue_on_error is True

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            Stage.model_validate({"name": ""})

    def test_to_config_uses_camel_case(self):
        stage = Stage(
            name="validation",
            tasks=[StageTask.parse("test:check")],
            parallel=False,
            dependencies=frozenset({"analysis"}),
        )
        assert stage.to_config() == {
            "name": "validation",
            "tasks": [{"id": "test", "mode": "check"}],
            "parallel": False,
            "dependencies": ["analysis"],
            "continueOnError": False,
        }


class TestDefaultStages:
    """Test the built-in stage graphs."""

    def test_pre_commit(self):
        stages = default_stages(HookType.PRE_COMMIT)
        assert [s.name for s in stages] == ["autofix", "analysis", "validation"]
        autofix, analysis, validation = stages
        assert [(t.id, t.mode) for t in autofix.tasks] == [
            ("versionSync", TaskMode.FIX),
            ("format", TaskMode.FIX),
        ]
        assert analysis.continue_on_error
        assert analysis.dependencies == {"autofix"}
        assert validation.parallel is False
        assert validation.dependencies == {"analysis"}

    def test_pre_push(self):
        stages = default_stages(HookType.PRE_PUSH)
        assert [s.name for s in stages] == ["verify"]
        assert all(t.mode is TaskMode.CHECK for t in stages[0].tasks)

    def test_ci(self):
        quality, test = default_stages(HookType.CI)
        assert quality.task_ids == ["format", "unused", "duplicates"]
        assert test.dependencies == {"quality"}
        assert test.parallel is False

    def test_implicit_stage_named_after_hook(self):
        stage = implicit_stage(HookType.PRE_PUSH, [StageTask.parse("test")], parallel=False)
        assert stage.name == "pre-push"
        assert stage.parallel is False
        assert stage.dependencies == frozenset()


class TestLifecycleConfig:
    """Test lifecycle normalization into stages."""

    def test_explicit_stages_win(self):
        lifecycle = LifecycleConfig.model_validate(
            {"stages": [{"name": "only", "tasks": ["format:check"]}]}
        )
        assert [s.name for s in lifecycle.resolved_stages(HookType.CI)] == ["only"]

    def test_legacy_flat_list_becomes_one_stage(self):
        lifecycle = LifecycleConfig.model_validate(
            {"tasks": ["format:check", "test"], "parallel": False}
        )
        stages = lifecycle.resolved_stages(HookType.PRE_COMMIT)
        assert len(stages) == 1
        assert stages[0].name == "pre-commit"
        assert stages[0].parallel is False
        assert stages[0].task_ids == ["format", "test"]

    def test_empty_legacy_list_means_no_stages(self):
        lifecycle = LifecycleConfig.model_validate({"tasks": []})
        assert lifecycle.resolved_stages(HookType.CI) == []

    def test_nothing_configured_uses_defaults(self):
        stages = LifecycleConfig().resolved_stages(HookType.CI)
        assert [s.name for s in stages] == ["quality", "test"]

    def test_tasks_and_stages_together_rejected(self):
        with pytest.raises(ValidationError, match="both 'tasks' and 'stages'"):
            LifecycleConfig.model_validate(
                {"tasks": ["format"], "stages": [{"name": "x"}]}
            )

    def test_default_scopes(self):
        assert DEFAULT_SCOPES[HookType.PRE_COMMIT] is HookScope.STAGED
        lifecycle = LifecycleConfig()
        assert lifecycle.resolved_scope(HookType.PRE_PUSH) is HookScope.CHANGED
        assert lifecycle.resolved_scope(HookType.CI) is HookScope.ALL

    def test_explicit_scope(self):
        lifecycle = LifecycleConfig.model_validate({"scope": "all", "baseBranch": "develop"})
        assert lifecycle.resolved_scope(HookType.PRE_COMMIT) is HookScope.ALL
        assert lifecycle.base_branch == "develop"
