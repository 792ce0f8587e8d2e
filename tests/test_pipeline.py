"""Tests for specmodel.pipeline -- end-to-end generation with a fake emitter."""

from __future__ import annotations

import os
from io import StringIO
from pathlib import Path
from typing import Optional

import pytest
from rich.console import Console

from specmodel.emitters import Emitter, EmitterRegistry
from specmodel.exceptions import EmitterError, InputError, InvalidUsageError, ValidationError
from specmodel.models import EmitOptions, EmitResult, GenerateConfig, PlannedFile, ServiceModel
from specmodel.pipeline import (
    DEFAULT_TOOL_NAME,
    check_config,
    derive_tool_name,
    generate,
    resolve_tool_name,
    sanitize_tool_name,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SAMPLE = str(FIXTURES_DIR / "sample_v3.yaml")


class RecordingEmitter(Emitter):
    """Records what it was asked to emit; optionally raises."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: list[tuple[ServiceModel, EmitOptions]] = []

    @property
    def name(self) -> str:
        return "go"

    def emit(self, model: ServiceModel, options: EmitOptions) -> EmitResult:
        self.calls.append((model, options))
        if self.error is not None:
            raise self.error
        return EmitResult(planned=[PlannedFile(rel_path="go.mod"), PlannedFile(rel_path="main.go")])


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def registry(emitter: RecordingEmitter) -> EmitterRegistry:
    registry = EmitterRegistry()
    registry.register(emitter)
    return registry


@pytest.fixture
def console() -> Console:
    return Console(file=StringIO(), width=500, no_color=True)


# ------------------------------------------------------------------ #
# Tool names
# ------------------------------------------------------------------ #


class TestToolNames:
    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Sample API", "sample-api"),
            ("Pet Store: v1.2", "pet-store-v1-2"),
            ("a/b_c,d", "a-b-c-d"),
            ("   ", ""),
        ],
    )
    def test_derive(self, title: str, expected: str) -> None:
        assert derive_tool_name(title) == expected

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("My Tool!", "my-tool"),
            ("org/tool", "org-tool"),
            ("-edge-", "edge"),
            ("$$$", ""),
        ],
    )
    def test_sanitize(self, name: str, expected: str) -> None:
        assert sanitize_tool_name(name) == expected

    def test_resolve_prefers_override(self) -> None:
        model = ServiceModel(title="Sample API")
        config = GenerateConfig(input="x", tool_name="Custom Name")
        assert resolve_tool_name(config, model) == "custom-name"

    def test_resolve_falls_back_to_default(self) -> None:
        assert resolve_tool_name(GenerateConfig(input="x"), ServiceModel()) == DEFAULT_TOOL_NAME
        config = GenerateConfig(input="x", tool_name="%%%")
        assert resolve_tool_name(config, ServiceModel(title="t")) == DEFAULT_TOOL_NAME


# ------------------------------------------------------------------ #
# Config checks
# ------------------------------------------------------------------ #


class TestCheckConfig:
    def test_input_required(self) -> None:
        with pytest.raises(InvalidUsageError, match="input is required"):
            check_config(GenerateConfig(input="   "))

    def test_tag_overlap(self) -> None:
        config = GenerateConfig(input="x", include_tags="a, b,c", exclude_tags=["b", "a"])
        with pytest.raises(InvalidUsageError, match="overlap: a, b"):
            check_config(config)

    def test_valid(self) -> None:
        check_config(GenerateConfig(input="x", include_tags=["a"], exclude_tags=["b"]))


# ------------------------------------------------------------------ #
# generate()
# ------------------------------------------------------------------ #


class TestGenerate:
    """Test the full load -> build -> emit run."""

    def test_emits_model(self, registry, emitter, tmp_path: Path) -> None:
        out = str(tmp_path / "out")
        result = generate(GenerateConfig(input=SAMPLE, out=out), registry=registry)

        assert [p.rel_path for p in result.planned] == ["go.mod", "main.go"]
        (model, options), = emitter.calls
        assert model.title == "Sample API"
        assert [ep.id for ep in model.endpoints] == ["get /admin", "get /pets", "post /pets"]
        assert options.out_dir == out
        assert options.tool_name == "sample-api"
        assert not options.dry_run

    def test_tag_filters_applied(self, registry, emitter, tmp_path: Path) -> None:
        config = GenerateConfig(input=SAMPLE, out=str(tmp_path), exclude_tags=["admin"])
        generate(config, registry=registry)
        model, _ = emitter.calls[0]
        assert [ep.id for ep in model.endpoints] == ["get /pets", "post /pets"]

    def test_options_passed_through(self, registry, emitter, tmp_path: Path) -> None:
        config = GenerateConfig(
            input=SAMPLE,
            out=str(tmp_path),
            tool_name="Pets Tool",
            package_name="example.com/pets",
            force=True,
            verbose=True,
        )
        generate(config, registry=registry)
        _, options = emitter.calls[0]
        assert options.tool_name == "pets-tool"
        assert options.package_name == "example.com/pets"
        assert options.force and options.verbose

    def test_out_defaults_to_tool_name(
        self, registry, emitter, console, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        generate(GenerateConfig(input=SAMPLE, dry_run=True), registry=registry, console=console)
        _, options = emitter.calls[0]
        assert options.out_dir == "sample-api"

    def test_dry_run_prints_plan(
        self, registry, console, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        generate(GenerateConfig(input=SAMPLE, dry_run=True), registry=registry, console=console)
        output = console.file.getvalue()
        expected_dir = os.path.abspath("sample-api")
        assert output.splitlines() == [
            f"Planned writes to {expected_dir} (2 files):",
            "- go.mod",
            "- main.go",
        ]

    def test_no_plan_without_dry_run(self, registry, console, tmp_path: Path) -> None:
        generate(GenerateConfig(input=SAMPLE, out=str(tmp_path)), registry=registry, console=console)
        assert console.file.getvalue() == ""

    def test_unknown_lang_checked_before_loading(self, registry) -> None:
        config = GenerateConfig(input="/does/not/exist.yaml", lang="cobol")
        with pytest.raises(InvalidUsageError, match="unsupported lang"):
            generate(config, registry=registry)

    def test_load_errors_propagate(self, registry, emitter, tmp_path: Path) -> None:
        with pytest.raises(InputError):
            generate(GenerateConfig(input=str(tmp_path / "missing.yaml")), registry=registry)
        bad = str(FIXTURES_DIR / "empty_responses_v3.yaml")
        with pytest.raises(ValidationError):
            generate(GenerateConfig(input=bad), registry=registry)
        assert emitter.calls == []

    def test_os_error_wrapped(self, tmp_path: Path) -> None:
        registry = EmitterRegistry()
        registry.register(RecordingEmitter(PermissionError("permission denied")))
        with pytest.raises(EmitterError, match="output error for") as exc_info:
            generate(GenerateConfig(input=SAMPLE, out=str(tmp_path)), registry=registry)
        assert "Hint:" in exc_info.value.message
        assert exc_info.value.exit_code == 10
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_unexpected_error_wrapped(self, tmp_path: Path) -> None:
        registry = EmitterRegistry()
        registry.register(RecordingEmitter(ValueError("boom")))
        with pytest.raises(EmitterError, match="Emitter 'go' failed: boom"):
            generate(GenerateConfig(input=SAMPLE, out=str(tmp_path)), registry=registry)

    def test_specmodel_error_not_wrapped(self, tmp_path: Path) -> None:
        registry = EmitterRegistry()
        registry.register(RecordingEmitter(InvalidUsageError("generate: bad package name")))
        with pytest.raises(InvalidUsageError, match="bad package name"):
            generate(GenerateConfig(input=SAMPLE, out=str(tmp_path)), registry=registry)
