"""Tests for the exception hierarchy and describe_error rendering."""
import grpc
import pytest

from lorawan_migrate.api.exceptions import (
    APIError,
    MigrationError,
    NotFoundError,
    PaginationError,
    ServerError,
    SourceError,
    SourceResponseError,
    TranslationError,
    UnknownGatewayModelError,
    UnsupportedOutputError,
    describe_error,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            NotFoundError("Device", "0001"),
            ServerError(),
            PaginationError("Empty page"),
            SourceResponseError("Missing field", rpc="DeviceService.Get", field="device"),
            UnsupportedOutputError("AMQP"),
        ],
    )
    def test_all_are_migration_errors(self, error):
        assert isinstance(error, MigrationError)

    def test_source_response_error_is_source_error(self):
        error = SourceResponseError("Missing field", rpc="DeviceService.Get", field="device")

        assert isinstance(error, SourceError)
        assert error.details == {"rpc": "DeviceService.Get", "field": "device"}
        assert error.code == "SOURCE_RESPONSE_ERROR"

    def test_server_error_is_recoverable(self):
        assert ServerError().recoverable is True
        assert NotFoundError("Device").recoverable is False

    def test_translation_error_keys(self):
        error = UnknownGatewayModelError("Kerlink", "Wirnet iZen", key="7276FF000B030001")

        assert isinstance(error, TranslationError)
        assert error.entity == "gateway"
        assert error.key == "7276FF000B030001"
        assert "Wirnet iZen" in error.message

    def test_str_includes_code_and_details(self):
        error = PaginationError("Empty page", endpoint="/1/nwk/apps", page=2)

        assert str(error) == "[PAGINATION_ERROR] Empty page (endpoint=/1/nwk/apps, page=2)"

    def test_to_dict(self):
        data = NotFoundError("Device", "0001").to_dict()

        assert data["error_type"] == "NotFoundError"
        assert data["code"] == "NOT_FOUND"
        assert data["details"]["resource_id"] == "0001"


class TestDescribeError:
    def test_api_error_with_body(self):
        error = APIError(
            "failed",
            status_code=400,
            endpoint="/1/nwk/apps",
            method="POST",
            response_body="x" * 300,
        )

        text = describe_error(error)

        assert text.startswith("POST /1/nwk/apps -> 400 ")
        assert len(text) == len("POST /1/nwk/apps -> 400 ") + 200

    def test_api_error_without_body(self):
        error = NotFoundError("Device", "0001", endpoint="/1/nwk/app/1/device/0001", method="DELETE")

        assert describe_error(error) == "DELETE /1/nwk/app/1/device/0001 -> 404"

    def test_grpc_error(self):
        error = grpc.aio.AioRpcError(
            grpc.StatusCode.PERMISSION_DENIED,
            grpc.aio.Metadata(),
            grpc.aio.Metadata(),
            details="bad token",
        )

        assert describe_error(error) == "gRPC PERMISSION_DENIED: bad token"

    def test_migration_error(self):
        error = TranslationError("No keys", entity="device", key="0001")

        assert describe_error(error) == str(error)

    def test_other_exception(self):
        assert describe_error(ValueError("bad hex")) == "ValueError: bad hex"
