"""Tests for ingestkit_sheets.models and the exception hierarchy in errors."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from ingestkit_sheets.errors import (
    BackendHTTPError,
    CleanupFailure,
    ErrorCode,
    ExportFailure,
    IngestError,
    MetadataFetchError,
    TabProcessingError,
    UploadFailure,
    classify_backend_error,
)
from ingestkit_sheets.models import (
    ColumnDescriptor,
    Credentials,
    GraphicalOutcome,
    TableDescriptor,
    TabOutcome,
    TabularOutcome,
)


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


class TestTableDescriptor:
    @pytest.mark.unit
    def test_populate_by_alias_or_name(self) -> None:
        by_alias = ColumnDescriptor(dataType="string", colName="A", width=200)
        by_name = ColumnDescriptor(data_type="string", col_name="A", width=200)
        assert by_alias.col_name == by_name.col_name == "A"

    @pytest.mark.unit
    def test_ids_generated_and_unique(self) -> None:
        a = TableDescriptor(table_name="A", created_by="import")
        b = TableDescriptor(table_name="A", created_by="import")
        assert a.id and b.id and a.id != b.id

    @pytest.mark.unit
    def test_frozen(self) -> None:
        table = TableDescriptor(table_name="A", created_by="import")
        with pytest.raises(ValidationError):
            table.table_name = "B"

    @pytest.mark.unit
    def test_graphical_descriptor_shape(self) -> None:
        table = GraphicalOutcome(preview_path="p/x.xlsx").to_descriptor(
            "X", created_by="import", data_type="string", width=200
        )
        dumped = table.model_dump(by_alias=True)
        assert dumped["columns"] == []
        assert dumped["rows"] == []
        assert dumped["excelPreview"] == {"path": "p/x.xlsx"}
        assert dumped["tableName"] == "X"


# ---------------------------------------------------------------------------
# TabOutcome tagged union
# ---------------------------------------------------------------------------


class TestTabOutcome:
    @pytest.mark.unit
    def test_discriminates_on_kind(self) -> None:
        adapter = TypeAdapter(TabOutcome)

        tabular = adapter.validate_python(
            {"kind": "tabular", "column_names": ["a"], "rows": [{"a": "1"}]}
        )
        graphical = adapter.validate_python({"kind": "graphical", "preview_path": "p"})

        assert isinstance(tabular, TabularOutcome)
        assert isinstance(graphical, GraphicalOutcome)

    @pytest.mark.unit
    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TypeAdapter(TabOutcome).validate_python({"kind": "chart"})


class TestCredentials:
    @pytest.mark.unit
    def test_token_hidden_from_repr(self) -> None:
        creds = Credentials(access_token="s3cret")
        assert "s3cret" not in repr(creds)
        assert creds.authorization_header() == {"Authorization": "Bearer s3cret"}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TestExceptions:
    @pytest.mark.unit
    def test_class_defaults(self) -> None:
        assert MetadataFetchError("x").code == ErrorCode.E_METADATA_FETCH
        assert ExportFailure("x").stage == "export"
        assert UploadFailure("x").code == ErrorCode.E_UPLOAD_FAILED
        assert CleanupFailure("x").code == ErrorCode.W_CLEANUP_FAILED

    @pytest.mark.unit
    def test_per_instance_code_override(self) -> None:
        exc = ExportFailure("copy failed", code=ErrorCode.E_EXPORT_COPY, tab_name="T")
        assert exc.code == ErrorCode.E_EXPORT_COPY
        assert ExportFailure.code == ErrorCode.E_EXPORT_RENDER

    @pytest.mark.unit
    def test_export_and_upload_are_tab_errors(self) -> None:
        assert issubclass(ExportFailure, TabProcessingError)
        assert issubclass(UploadFailure, TabProcessingError)
        assert not issubclass(MetadataFetchError, TabProcessingError)

    @pytest.mark.unit
    def test_to_ingest_error(self) -> None:
        detail = TabProcessingError("bad", tab_name="T", stage="classify").to_ingest_error(
            recoverable=True
        )
        assert isinstance(detail, IngestError)
        assert detail.code == ErrorCode.E_TAB_PROCESSING
        assert detail.tab_name == "T"
        assert detail.stage == "classify"
        assert detail.recoverable is True

    @pytest.mark.unit
    def test_backend_http_error_keeps_status(self) -> None:
        assert BackendHTTPError("nope", status_code=403).status_code == 403


class TestClassifyBackendError:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (TimeoutError("t"), ErrorCode.E_BACKEND_TIMEOUT),
            (ConnectionError("c"), ErrorCode.E_BACKEND_CONNECT),
            (BackendHTTPError("h", status_code=500), ErrorCode.E_BACKEND_HTTP),
            (UploadFailure("u"), ErrorCode.E_UPLOAD_FAILED),
            (KeyError("k"), ErrorCode.E_TAB_PROCESSING),
        ],
    )
    def test_mapping(self, exc: Exception, expected: ErrorCode) -> None:
        assert classify_backend_error(exc) == expected
