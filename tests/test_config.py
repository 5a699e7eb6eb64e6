from __future__ import annotations

import pytest

from app.config import MAX_DEPTH_CAP, ExportOptions, get_default_export_options, load_worker_settings


class TestExportOptions:
    def test_defaults(self) -> None:
        options = ExportOptions()

        assert options.max_depth == 5
        assert options.batch_size == 10
        assert options.entity_source == "cheimarros"
        assert options.graph_mode == "full"
        assert options.component_types == ("ref", "parent", "children", "other")
        assert options.uses_embedded_graph
        assert not options.uses_graph_database

    def test_values_are_clamped(self) -> None:
        options = ExportOptions(max_depth=500, batch_size=0, max_text_length=-3)

        assert options.max_depth == MAX_DEPTH_CAP
        assert options.batch_size == 1
        assert options.max_text_length == 1
        assert ExportOptions(max_depth=-1).max_depth == 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"graph_mode": "verbose"},
            {"entity_source": "elsewhere"},
            {"component_types": ("ref", "siblings")},
        ],
    )
    def test_invalid_choices_raise(self, kwargs) -> None:
        with pytest.raises(ValueError):
            ExportOptions(**kwargs)

    def test_skip_mode_disables_both_graph_sources(self) -> None:
        options = ExportOptions(graph_mode="skip", entity_source="both")

        assert not options.uses_embedded_graph
        assert not options.uses_graph_database

    def test_from_mapping_accepts_camel_case_and_aliases(self) -> None:
        options = ExportOptions.from_mapping(
            {
                "maxDepth": "3",
                "parallelBatchSize": 4,
                "includeOcr": False,
                "cheimarrosMode": "MINIMAL",
                "entitySource": "graphdb",
                "componentTypes": ["ref"],
                "recursive": True,
            }
        )

        assert options.max_depth == 3
        assert options.batch_size == 4
        assert options.include_ocr is False
        assert options.graph_mode == "minimal"
        assert options.entity_source == "graphdb"
        assert options.component_types == ("ref",)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("false", False), ("FALSE", False), ("0", False), (0, False), ("true", True), ("yes", True), (True, True)],
    )
    def test_from_mapping_parses_boolean_strings(self, raw, expected) -> None:
        options = ExportOptions.from_mapping({"includeOcr": raw, "verbose": raw})

        assert options.include_ocr is expected
        assert options.verbose is expected

    @pytest.mark.parametrize("raw", ["maybe", 2, ["true"]])
    def test_from_mapping_rejects_non_boolean_flags(self, raw) -> None:
        with pytest.raises(ValueError, match="include_ocr"):
            ExportOptions.from_mapping({"includeOcr": raw})

    def test_from_mapping_empty_is_default(self) -> None:
        assert ExportOptions.from_mapping(None) == ExportOptions()
        assert ExportOptions.from_mapping({}).to_dict() == ExportOptions().to_dict()


def test_default_options_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("EXPORT_MAX_DEPTH", "2")
    monkeypatch.setenv("EXPORT_GRAPH_MODE", "Skip")
    monkeypatch.setenv("EXPORT_INCLUDE_OCR", "no")

    options = get_default_export_options()

    assert options.max_depth == 2
    assert options.graph_mode == "skip"
    assert options.include_ocr is False


class TestWorkerSettings:
    def test_reads_environment(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setenv("TASK_ID", "task-1")
        monkeypatch.setenv("PI", "01ROOT")
        monkeypatch.setenv("BATCH_ID", "batch-7")
        monkeypatch.setenv("EXPORT_OPTIONS", '{"recursive": true, "maxDepth": 2}')
        monkeypatch.setenv("CALLBACK_URL", "https://orchestrator.example/callback")
        monkeypatch.setenv("EXPORT_OUTPUT_DIR", str(tmp_path))

        settings = load_worker_settings()

        assert settings.task_id == "task-1"
        assert settings.pi == "01ROOT"
        assert settings.batch_id == "batch-7"
        assert settings.recursive is True
        assert settings.export_options["maxDepth"] == 2
        assert settings.callback_url == "https://orchestrator.example/callback"
        assert settings.output_dir == str(tmp_path)

    def test_lists_every_problem(self, monkeypatch) -> None:
        monkeypatch.delenv("TASK_ID", raising=False)
        monkeypatch.delenv("PI", raising=False)
        monkeypatch.setenv("EXPORT_OPTIONS", "[1, 2]")

        with pytest.raises(RuntimeError) as ctx:
            load_worker_settings()

        message = str(ctx.value)
        assert "TASK_ID" in message
        assert "PI is not set" in message
        assert "EXPORT_OPTIONS must be a JSON object" in message

    def test_recursive_flag_accepts_string_false(self, monkeypatch) -> None:
        monkeypatch.setenv("TASK_ID", "task-1")
        monkeypatch.setenv("PI", "01ROOT")
        monkeypatch.setenv("EXPORT_OPTIONS", '{"recursive": "false"}')

        assert load_worker_settings().recursive is False

        monkeypatch.setenv("EXPORT_OPTIONS", '{"recursive": "sometimes"}')
        with pytest.raises(RuntimeError, match="recursive must be a boolean"):
            load_worker_settings()
