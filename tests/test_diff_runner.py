"""DiffRunner — pairing by file name and exit-code classification."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from openapi_gate.core.process import ProcessResult
from openapi_gate.reporting.console import format_diff_output
from openapi_gate.runners.diff import EXCLUDED_ELEMENTS, DiffRunner, DiffStatus
from tests.fakes import FakeRunner, arg_after, fake_oasdiff

BASELINE = {
    "openapi": "3.0.4",
    "info": {"title": "V1 API", "version": "v1"},
    "paths": {
        "/Foo": {
            "get": {
                "responses": {
                    "200": {
                        "description": "Success",
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "properties": {"id": {"type": "integer"}},
                                }
                            }
                        },
                    }
                }
            }
        }
    },
}


def _write(path: Path, doc: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(doc), encoding="utf-8")
    return path


def _differ(tmp_path: Path, fake: FakeRunner) -> DiffRunner:
    return DiffRunner(fake, tmp_path / "oasdiff" / "oasdiff", tmp_path / "reports")


def test_invocation_excludes_cosmetic_fields(tmp_path: Path) -> None:
    inv = _differ(tmp_path, FakeRunner()).invocation(Path("a.yaml"), Path("b.yaml"))
    assert inv.args[:3] == ("diff", "a.yaml", "b.yaml")
    assert arg_after(inv, "--exclude-elements") == "description,examples,title,summary"
    assert set(EXCLUDED_ELEMENTS) == {"description", "examples", "title", "summary"}
    assert "--fail-on-diff" in inv.args
    assert arg_after(inv, "--format") == "yaml"


@pytest.mark.asyncio
async def test_matches_by_file_name_across_directories(tmp_path: Path) -> None:
    baseline = _write(tmp_path / "specs" / "openapi-v1.yaml", BASELINE)
    generated = _write(tmp_path / "obj" / "tools" / "openapi-v1.yaml", BASELINE)
    fake = FakeRunner().on("oasdiff", fake_oasdiff)

    report = await _differ(tmp_path, fake).compare([baseline], [generated])

    assert [r.status for r in report.results] == [DiffStatus.NO_CHANGES]
    assert report.results[0].generated == generated
    assert report.in_sync
    assert fake.calls[0].args[1:3] == (str(baseline), str(generated))


@pytest.mark.asyncio
async def test_missing_generated_counterpart_is_skipped(tmp_path: Path, caplog) -> None:
    baseline = _write(tmp_path / "openapi-v2.yaml", BASELINE)
    other = _write(tmp_path / "gen" / "openapi-v1.yaml", BASELINE)
    fake = FakeRunner()

    with caplog.at_level("WARNING"):
        report = await _differ(tmp_path, fake).compare([baseline], [other])

    assert fake.calls == []
    assert report.results[0].status is DiffStatus.MISSING_GENERATED
    assert not report.any_breaking
    assert not report.in_sync
    assert "Could not find a generated spec file for openapi-v2.yaml" in caplog.text


@pytest.mark.asyncio
async def test_added_optional_field_is_not_breaking(tmp_path: Path) -> None:
    gen_doc = yaml.safe_load(yaml.safe_dump(BASELINE))
    props = gen_doc["paths"]["/Foo"]["get"]["responses"]["200"]["content"]["application/json"][
        "schema"
    ]["properties"]
    props["name"] = {"type": "string"}
    baseline = _write(tmp_path / "specs" / "openapi-v1.yaml", BASELINE)
    generated = _write(tmp_path / "gen" / "openapi-v1.yaml", gen_doc)

    differ = _differ(tmp_path, FakeRunner().on("oasdiff", fake_oasdiff))
    report = await differ.compare([baseline], [generated])
    assert report.results[0].status is DiffStatus.NO_CHANGES


@pytest.mark.asyncio
async def test_removed_endpoint_is_breaking_and_reported(tmp_path: Path, caplog) -> None:
    baseline = _write(tmp_path / "specs" / "openapi-v1.yaml", BASELINE)
    generated = _write(tmp_path / "gen" / "openapi-v1.yaml", {**BASELINE, "paths": {}})

    with caplog.at_level("INFO"):
        differ = _differ(tmp_path, FakeRunner().on("oasdiff", fake_oasdiff))
        report = await differ.compare([baseline], [generated])

    result = report.results[0]
    assert result.status is DiffStatus.BREAKING
    assert report.any_breaking
    assert result.report_path == tmp_path / "reports" / "oasdiff-openapi-v1.yaml"
    assert "removed path /Foo" in result.report_path.read_text(encoding="utf-8")
    assert "[removed] removed path /Foo" in result.details
    assert "Breaking changes detected in openapi-v1.yaml" in caplog.text
    assert "in sync" not in caplog.text


@pytest.mark.asyncio
async def test_stderr_is_a_tool_error_not_pass_or_fail(tmp_path: Path) -> None:
    baseline = _write(tmp_path / "a" / "openapi-v1.yaml", BASELINE)
    generated = _write(tmp_path / "b" / "openapi-v1.yaml", BASELINE)
    fake = FakeRunner().on("oasdiff", ProcessResult(1, "", "failed to load base spec"))

    report = await _differ(tmp_path, fake).compare([baseline], [generated])

    assert report.results[0].status is DiffStatus.TOOL_ERROR
    assert report.compared == 0
    assert not report.any_breaking
    assert not report.in_sync


@pytest.mark.asyncio
async def test_in_sync_message_only_when_all_compared_clean(tmp_path: Path, caplog) -> None:
    b1 = _write(tmp_path / "s" / "openapi-v1.yaml", BASELINE)
    b2 = _write(tmp_path / "s" / "openapi-v1-management.yaml", BASELINE)
    g1 = _write(tmp_path / "g" / "openapi-v1.yaml", BASELINE)
    g2 = _write(tmp_path / "g" / "openapi-v1-management.yaml", BASELINE)

    with caplog.at_level("INFO"):
        differ = _differ(tmp_path, FakeRunner().on("oasdiff", fake_oasdiff))
        report = await differ.compare([b1, b2], [g1, g2])

    assert report.compared == 2
    assert caplog.text.count("All OpenAPI specifications are in sync") == 1


@pytest.mark.asyncio
async def test_no_baselines_means_no_sync_message(tmp_path: Path, caplog) -> None:
    with caplog.at_level("INFO"):
        report = await _differ(tmp_path, FakeRunner()).compare([], [])
    assert report.results == []
    assert "in sync" not in caplog.text


class TestFormatDiffOutput:
    def test_empty_output(self) -> None:
        assert format_diff_output("") == "No detailed output available."
        assert format_diff_output("  \n") == "No detailed output available."

    def test_markers(self) -> None:
        out = format_diff_output(
            "error [BREAKING] api-path-removed\nadded the optional property 'name'\n"
            "deleted endpoint\nmodified type\nsomething else\n"
        )
        assert out.splitlines() == [
            "[breaking] error [BREAKING] api-path-removed",
            "[added] added the optional property 'name'",
            "[removed] deleted endpoint",
            "[changed] modified type",
            "- something else",
        ]
