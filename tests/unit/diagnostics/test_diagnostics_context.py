"""Unit tests for OperationDiagnosticsContext."""

from __future__ import annotations

import pytest

from repokit.context import OperationContext, OperationContextAccessor
from repokit.diagnostics import (
    TAG_CORRELATION_ID,
    TAG_NODE_ID,
    TAG_OPERATION_ID,
    TAG_TENANT_ID,
    DiagnosticsContext,
    DiagnosticsSnapshot,
    OperationDiagnosticsContext,
)
from repokit.exceptions import InvalidArgumentError


class TestOperationDiagnosticsContext:
    """Tests for OperationDiagnosticsContext."""

    def test_rejects_none(self) -> None:
        with pytest.raises(InvalidArgumentError):
            OperationDiagnosticsContext(None)  # type: ignore[arg-type]

    def test_empty_without_context(self, context_accessor: OperationContextAccessor) -> None:
        diagnostics = OperationDiagnosticsContext(context_accessor)

        assert diagnostics.correlation_id is None
        assert diagnostics.operation_id is None
        assert diagnostics.node_id is None
        assert dict(diagnostics.tags) == {}

    def test_reads_bound_context(
        self,
        context_accessor: OperationContextAccessor,
        operation_context: OperationContext,
    ) -> None:
        diagnostics = OperationDiagnosticsContext(context_accessor)
        context_accessor.bind(operation_context)

        assert diagnostics.correlation_id == "corr-123"
        assert diagnostics.operation_id == "op-456"
        assert diagnostics.node_id == "node-1"
        assert dict(diagnostics.tags) == {
            "region": "eu",
            TAG_CORRELATION_ID: "corr-123",
            TAG_OPERATION_ID: "op-456",
            TAG_NODE_ID: "node-1",
            TAG_TENANT_ID: "acme",
        }

    def test_well_known_keys_win(self, context_accessor: OperationContextAccessor) -> None:
        context_accessor.bind(
            OperationContext(correlation_id="real", tags={TAG_CORRELATION_ID: "spoofed"})
        )
        assert OperationDiagnosticsContext(context_accessor).tags[TAG_CORRELATION_ID] == "real"

    def test_blank_values_omitted(self, context_accessor: OperationContextAccessor) -> None:
        context_accessor.bind(OperationContext(correlation_id="", tenant_id="acme"))
        assert dict(OperationDiagnosticsContext(context_accessor).tags) == {TAG_TENANT_ID: "acme"}

    def test_tags_read_only(
        self,
        context_accessor: OperationContextAccessor,
        operation_context: OperationContext,
    ) -> None:
        context_accessor.bind(operation_context)
        tags = OperationDiagnosticsContext(context_accessor).tags
        with pytest.raises(TypeError):
            tags["region"] = "us"  # type: ignore[index]

    def test_follows_context_changes(self, context_accessor: OperationContextAccessor) -> None:
        diagnostics = OperationDiagnosticsContext(context_accessor)

        with context_accessor.scope(OperationContext(correlation_id="first")):
            assert diagnostics.correlation_id == "first"
        with context_accessor.scope(OperationContext(correlation_id="second")):
            assert diagnostics.correlation_id == "second"
        assert diagnostics.correlation_id is None

    def test_satisfies_protocol(self, context_accessor: OperationContextAccessor) -> None:
        assert isinstance(OperationDiagnosticsContext(context_accessor), DiagnosticsContext)


class TestDiagnosticsSnapshot:
    def test_captures_current_values(
        self,
        context_accessor: OperationContextAccessor,
        operation_context: OperationContext,
    ) -> None:
        diagnostics = OperationDiagnosticsContext(context_accessor)
        context_accessor.bind(operation_context)

        snapshot = diagnostics.snapshot()
        context_accessor.bind(None)

        assert isinstance(snapshot, DiagnosticsSnapshot)
        assert snapshot.correlation_id == "corr-123"
        assert snapshot.tags[TAG_TENANT_ID] == "acme"
        assert diagnostics.correlation_id is None
