"""Log grouping and the document set container."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from openapi_gate.core.documents import DocumentSet
from openapi_gate.reporting.console import log_group


def _messages(caplog: pytest.LogCaptureFixture) -> list[str]:
    return [r.getMessage() for r in caplog.records]


def test_log_group_emits_workflow_markers(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    with log_group("Spectral", enabled=True):
        logging.getLogger("openapi_gate.test").info("inside")
    assert _messages(caplog) == ["::group::Spectral", "inside", "::endgroup::"]


def test_log_group_closes_on_error(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    with pytest.raises(RuntimeError):
        with log_group("Spectral", enabled=True):
            raise RuntimeError("boom")
    assert _messages(caplog)[-1] == "::endgroup::"


def test_log_group_disabled_logs_plain_heading(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    with log_group("Spectral", enabled=False):
        pass
    assert _messages(caplog) == ["Spectral"]


class TestDocumentSet:
    def test_preserves_order(self) -> None:
        docs = DocumentSet([("v2", "b.yaml"), ("v1", "a.yaml")])
        assert list(docs) == ["v2", "v1"]
        assert docs.paths == [Path("b.yaml"), Path("a.yaml")]

    def test_rejects_duplicate_names(self) -> None:
        with pytest.raises(ValueError, match="Duplicate document name: v1"):
            DocumentSet([("v1", "a.yaml"), ("v1", "b.yaml")])

    def test_from_mapping_skips_unknown_names(self) -> None:
        docs = DocumentSet.from_mapping(["v1", "v2"], {"v2": "b.yaml", "v3": "c.yaml"})
        assert dict(docs) == {"v2": Path("b.yaml")}
