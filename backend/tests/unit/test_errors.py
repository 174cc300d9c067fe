"""Unit tests for the error taxonomy"""

from stockyard.errors import (
    AccessDeniedError,
    ConcurrencyConflictError,
    ConfigurationError,
    CoreError,
    DataAccessError,
    DataIntegrityError,
    ValidationError,
)


class TestErrorKinds:
    def test_every_error_is_a_core_error_with_a_distinct_kind(self):
        classes = [
            ConfigurationError,
            AccessDeniedError,
            ValidationError,
            ConcurrencyConflictError,
            DataAccessError,
            DataIntegrityError,
        ]
        kinds = {cls.kind for cls in classes}

        assert all(issubclass(cls, CoreError) for cls in classes)
        assert len(kinds) == len(classes)

    def test_to_dict_without_details(self):
        error = ConcurrencyConflictError("Retries exhausted")
        assert error.to_dict() == {"kind": "concurrency_conflict", "message": "Retries exhausted"}

    def test_validation_error_records_field(self):
        error = ValidationError("page must be at least 1", field="page")

        assert error.field == "page"
        assert error.to_dict()["details"] == {"field": "page"}
        assert error.status_hint == 422

    def test_str_includes_class_name(self):
        assert str(DataAccessError("store down")) == "DataAccessError: store down"
