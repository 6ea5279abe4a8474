from leadflow.services.result import DeliveryErrorCode, Result


class TestResultSuccess:
    def test_success_creates_ok_result(self):
        result = Result.success(True)
        assert result.ok is True
        assert result.value is True
        assert result.error is None
        assert result.error_code is None


class TestResultFailure:
    def test_failure_keeps_message_and_code(self):
        result = Result.failure("Gateway reported failure", "gateway_rejected")
        assert result.ok is False
        assert result.error == "Gateway reported failure"
        assert result.error_code == "gateway_rejected"
        assert result.value is None

    def test_failure_default_code(self):
        result = Result.failure("Error message")
        assert result.error_code == "unknown"

    def test_failure_accepts_enum_code(self):
        result = Result.failure("timeout", DeliveryErrorCode.NETWORK_ERROR)
        assert result.error_code == "network_error"


class TestResultHelpers:
    def test_unwrap_or_returns_value_on_success(self):
        assert Result.success(True).unwrap_or(False) is True

    def test_unwrap_or_returns_default_on_failure(self):
        assert Result.failure("Error", "code").unwrap_or(False) is False

    def test_is_config_missing(self):
        assert Result.failure("no token", DeliveryErrorCode.CONFIG_MISSING).is_config_missing() is True
        assert Result.failure("boom", DeliveryErrorCode.NETWORK_ERROR).is_config_missing() is False
        assert Result.success(True).is_config_missing() is False
