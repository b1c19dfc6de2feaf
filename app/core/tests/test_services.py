"""
Tests for ServiceResult and BaseService helpers.
"""

import logging

import pytest

from accounts.models import Role
from core.exceptions import NotFoundError
from core.services import BaseService, ServiceResult


class TestServiceResult:
    def test_success(self):
        result = ServiceResult.success({"id": 1})

        assert result.success is True
        assert result.data == {"id": 1}
        assert result.error is None

    def test_failure(self):
        result = ServiceResult.failure("Nope", error_code="NO_BILLING_CUSTOMER")

        assert result.success is False
        assert result.error_code == "NO_BILLING_CUSTOMER"
        assert result.data is None

    def test_from_application_error_keeps_code(self):
        result = ServiceResult.from_exception(
            NotFoundError("Account missing", error_code="ACCOUNT_NOT_FOUND")
        )

        assert result.error == "Account missing"
        assert result.error_code == "ACCOUNT_NOT_FOUND"

    def test_from_plain_exception_uses_class_name(self):
        result = ServiceResult.from_exception(KeyError("userId"))

        assert result.error_code == "KEYERROR"

    def test_to_response(self):
        failed = ServiceResult.failure(
            "Invalid", error_code="VALIDATION_ERROR", errors={"email": ["taken"]}
        )

        assert ServiceResult.success(3).to_response() == {"success": True, "data": 3}
        assert failed.to_response() == {
            "success": False,
            "error": "Invalid",
            "error_code": "VALIDATION_ERROR",
            "errors": {"email": ["taken"]},
        }


class DummyService(BaseService):
    pass


class TestBaseService:
    def test_logger_is_named_after_class(self):
        assert DummyService.get_logger().name == "core.tests.test_services.DummyService"

    def test_handle_exception_logs_and_converts(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = DummyService.handle_exception(
                ValueError("boom"), "doing work", log_level=logging.WARNING
            )

        assert result.success is False
        assert result.error_code == "VALUEERROR"
        assert "doing work: boom" in caplog.text

    def test_validate_required(self):
        assert DummyService.validate_required(email="a@b.c") is None

        result = DummyService.validate_required(email="  ", url=None)

        assert result.error_code == "VALIDATION_ERROR"
        assert set(result.errors) == {"email", "url"}

    def test_validate_required_failure_short_circuits(self):
        # Callers return the failure with `if invalid: return invalid`.
        invalid = DummyService.validate_required(url="")

        assert invalid
        assert invalid.success is False

    @pytest.mark.django_db
    def test_atomic_rolls_back_on_error(self):
        before = Role.objects.count()

        with pytest.raises(RuntimeError):
            with DummyService.atomic():
                Role.objects.filter(name=Role.Name.ADMIN).delete()
                raise RuntimeError("abort")

        assert Role.objects.count() == before
