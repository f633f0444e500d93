"""ChecksumCalculator — skip/run decision and fail-safe persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from openapi_gate.core.checksum import ChecksumCalculator, compute_checksum


@pytest.fixture()
def inputs(tmp_path: Path) -> tuple[Path, list[Path]]:
    ruleset = tmp_path / "ruleset.yaml"
    ruleset.write_text("extends: spectral:oas\n", encoding="utf-8")
    docs = []
    for name in ("openapi-v1.yaml", "openapi-v1-management.yaml"):
        doc = tmp_path / name
        doc.write_text(f"openapi: 3.0.4\ninfo:\n  title: {name}\n", encoding="utf-8")
        docs.append(doc)
    return ruleset, docs


def test_same_bytes_give_same_checksum(inputs) -> None:
    ruleset, docs = inputs
    assert compute_checksum(ruleset, docs) == compute_checksum(ruleset, docs)


def test_document_order_is_part_of_the_checksum(inputs) -> None:
    ruleset, docs = inputs
    assert compute_checksum(ruleset, docs) != compute_checksum(ruleset, list(reversed(docs)))


def test_first_run_must_run(tmp_path: Path, inputs) -> None:
    ruleset, docs = inputs
    decision = ChecksumCalculator(tmp_path / "reports").decide(str(ruleset), ruleset, docs)
    assert decision.must_run
    assert decision.reason == "no previous checksum"


class TestAfterSuccessfulRun:
    def _saved(self, tmp_path: Path, ruleset: Path, docs: list[Path]):
        calc = ChecksumCalculator(tmp_path / "reports")
        decision = calc.decide(str(ruleset), ruleset, docs)
        calc.save(str(ruleset), decision.checksum, docs)
        reports = []
        for doc in docs:
            report = tmp_path / "reports" / f"spectral-{doc.stem}.txt"
            report.write_text("ok\n", encoding="utf-8")
            reports.append(report)
        return calc, reports

    def test_unchanged_inputs_skip(self, tmp_path: Path, inputs) -> None:
        ruleset, docs = inputs
        calc, reports = self._saved(tmp_path, ruleset, docs)
        decision = calc.decide(str(ruleset), ruleset, docs, reports)
        assert not decision.must_run
        assert decision.reason == "unchanged"

    def test_ruleset_byte_change_forces_run(self, tmp_path: Path, inputs) -> None:
        ruleset, docs = inputs
        calc, reports = self._saved(tmp_path, ruleset, docs)
        ruleset.write_text("extends: spectral:oaS\n", encoding="utf-8")
        assert calc.decide(str(ruleset), ruleset, docs, reports).must_run

    def test_single_document_byte_change_forces_run(self, tmp_path: Path, inputs) -> None:
        ruleset, docs = inputs
        calc, reports = self._saved(tmp_path, ruleset, docs)
        docs[1].write_bytes(docs[1].read_bytes() + b" ")
        decision = calc.decide(str(ruleset), ruleset, docs, reports)
        assert decision.must_run
        assert decision.reason == "ruleset or documents changed"

    def test_missing_report_forces_run(self, tmp_path: Path, inputs) -> None:
        ruleset, docs = inputs
        calc, reports = self._saved(tmp_path, ruleset, docs)
        reports[0].unlink()
        decision = calc.decide(str(ruleset), ruleset, docs, reports)
        assert decision.must_run
        assert decision.reason.startswith("missing report")

    def test_state_is_keyed_by_ruleset_identity(self, tmp_path: Path, inputs) -> None:
        ruleset, docs = inputs
        calc, reports = self._saved(tmp_path, ruleset, docs)
        assert calc.decide("https://example.com/other.yaml", ruleset, docs, reports).must_run


def test_unsaved_decision_leaves_previous_checksum(tmp_path: Path, inputs) -> None:
    ruleset, docs = inputs
    calc = ChecksumCalculator(tmp_path / "reports")
    first = calc.decide(str(ruleset), ruleset, docs)
    calc.save(str(ruleset), first.checksum, docs)

    docs[0].write_text("changed\n", encoding="utf-8")
    calc.decide(str(ruleset), ruleset, docs)  # run "crashes" before save

    assert calc.load(str(ruleset)) == first.checksum
    assert calc.decide(str(ruleset), ruleset, docs).must_run


def test_state_file_is_schema_valid_json(tmp_path: Path, inputs) -> None:
    ruleset, docs = inputs
    calc = ChecksumCalculator(tmp_path / "reports")
    path = calc.save(str(ruleset), compute_checksum(ruleset, docs), docs)
    state = json.loads(path.read_text(encoding="utf-8"))
    assert state["schema_version"] == "checksum_state_v1"
    assert state["ruleset"] == str(ruleset)
    assert len(state["checksum"]) == 64
    assert path.name.startswith("spectral-checksum-")


def test_corrupt_state_is_treated_as_missing(tmp_path: Path, inputs) -> None:
    ruleset, docs = inputs
    calc = ChecksumCalculator(tmp_path / "reports")
    path = calc.state_path(str(ruleset))
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")
    assert calc.load(str(ruleset)) is None
    assert calc.decide(str(ruleset), ruleset, docs).must_run
