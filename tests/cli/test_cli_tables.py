"""Tests for ``llmcompat tables`` CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from llmcompat.cli import main

_CUSTOM = {
    "version": "3",
    "description": "custom table",
    "formats": {"source": "openai", "target": "acme"},
    "fieldMappings": {"model": "engine"},
}


class TestTablesList:
    def test_lists_bundled(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tables", "list"])

        assert result.exit_code == 0, result.output
        assert "Mapping Tables" in result.output
        assert "openai-to-qwen" in result.output
        assert "iflow-to-openai" in result.output

    def test_lists_tables_dir(self, tmp_path: Path) -> None:
        (tmp_path / "acme.json").write_text(json.dumps(_CUSTOM))
        (tmp_path / "broken.json").write_text("{}")

        runner = CliRunner()
        result = runner.invoke(main, ["tables", "list", "--tables-dir", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "acme" in result.output
        assert "broken" in result.output
        assert "invalid" in result.output


class TestTablesShow:
    def test_detail(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tables", "show", "openai-to-iflow"])

        assert result.exit_code == 0, result.output
        assert "openai -> iflow" in result.output
        assert "Field Mappings" in result.output
        assert "agentId" in result.output

    def test_detail_lists_transforms(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tables", "show", "openai-to-qwen"])

        assert result.exit_code == 0, result.output
        assert "Transforms:" in result.output
        assert "model_to_qwen: mapping" in result.output

    def test_json(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tables", "show", "openai-to-iflow", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["formats"] == {"source": "openai", "target": "iflow"}
        assert data["fieldMappings"]["user"] == "userId"

    def test_reverse_json(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tables", "show", "openai-to-iflow", "--json", "--reverse"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["formats"] == {"source": "iflow", "target": "openai"}
        assert data["version"] == "1.0.0-reverse"
        assert data["fieldMappings"]["userId"] == {"targetField": "user"}

    def test_json_keeps_explicit_null_default(self, tmp_path: Path) -> None:
        table = {**_CUSTOM, "fieldMappings": {"stop": {"targetField": "stop", "defaultValue": None}}}
        (tmp_path / "nulls.json").write_text(json.dumps(table))

        runner = CliRunner()
        result = runner.invoke(main, ["tables", "show", "nulls", "--tables-dir", str(tmp_path), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["fieldMappings"]["stop"] == {"targetField": "stop", "defaultValue": None}
        assert "validationRules" not in data

        exported = tmp_path / "exported.json"
        exported.write_text(result.output)
        convert = runner.invoke(
            main,
            ["convert", "-t", "exported", "--tables-dir", str(tmp_path)],
            input="{}",
        )
        assert convert.exit_code == 0, convert.output
        assert json.loads(convert.output) == {"stop": None}

    def test_unknown(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tables", "show", "nope"])

        assert result.exit_code == 1
        assert "Error loading table" in result.output


class TestTablesCheck:
    def test_valid(self, tmp_path: Path) -> None:
        path = tmp_path / "acme.json"
        path.write_text(json.dumps(_CUSTOM))

        runner = CliRunner()
        result = runner.invoke(main, ["tables", "check", str(path)])

        assert result.exit_code == 0, result.output
        assert "OK" in result.output
        assert "openai -> acme, 1 fields" in result.output

    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "acme.yaml"
        path.write_text(
            "version: '1'\ndescription: yaml\nformats:\n  source: a\n  target: b\nfieldMappings:\n  x: y\n"
        )

        runner = CliRunner()
        result = runner.invoke(main, ["tables", "check", str(path)])

        assert result.exit_code == 0, result.output
        assert "a -> b, 1 fields" in result.output

    def test_invalid(self, tmp_path: Path) -> None:
        good = tmp_path / "good.json"
        good.write_text(json.dumps(_CUSTOM))
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({**_CUSTOM, "fieldMappings": {"model": {"targetField": "m", "transform": "missing"}}}))

        runner = CliRunner()
        result = runner.invoke(main, ["tables", "check", str(good), str(bad)])

        assert result.exit_code == 1
        assert "FAIL" in result.output
        assert "1 of 2 table(s) invalid" in result.output

    def test_unparseable(self, tmp_path: Path) -> None:
        path = tmp_path / "t.json"
        path.write_text("{")

        runner = CliRunner()
        result = runner.invoke(main, ["tables", "check", str(path)])

        assert result.exit_code == 1
        assert "cannot parse mapping table" in result.output
