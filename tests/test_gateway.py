from unittest.mock import MagicMock, patch

import httpx
import pytest

from leadflow.services.gateway_service import (
    GatewayClient,
    build_jid,
    is_public_media_url,
    normalize_media_kind,
    normalize_phone,
)

BASE_URL = "https://gateway.test/api/v1"


def json_response(payload):
    return httpx.Response(200, json=payload)


def html_response():
    return httpx.Response(200, html="<!DOCTYPE html><html><body>Not found</body></html>")


@pytest.fixture
def gateway():
    return GatewayClient(base_url=BASE_URL, timeout=5)


class TestHelpers:
    def test_normalize_phone(self):
        assert normalize_phone("+7 (701) 123-45-67") == "77011234567"
        assert normalize_phone(None) == ""

    def test_build_jid(self):
        assert build_jid("+7 701 123 45 67") == "77011234567@s.whatsapp.net"
        assert build_jid("12345") is None

    def test_media_kind_aliases(self):
        assert normalize_media_kind("audio") == "ptt"
        assert normalize_media_kind("IMAGE") == "image"
        assert normalize_media_kind("file") == "document"
        assert normalize_media_kind("sticker") is None

    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost/file.png",
            "http://127.0.0.1/file.png",
            "http://10.0.0.5/file.png",
            "http://192.168.1.10/file.png",
            "http://169.254.1.1/file.png",
            "http://printer.local/file.png",
            "ftp://files.example.com/file.png",
        ],
    )
    def test_non_public_urls(self, url):
        assert is_public_media_url(url) is False

    def test_public_url(self):
        assert is_public_media_url("https://cdn.example.com/photo.jpg") is True


class TestSendText:
    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_success(self, mock_client_class, gateway):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.get.return_value = json_response({"success": True})

        result = gateway.send_text("token-1", "instance-1", "+7 701 123 45 67", " Привет ")

        assert result.ok is True
        mock_client.get.assert_called_once()
        call_args = mock_client.get.call_args
        assert call_args[0][0] == f"{BASE_URL}/send-text"
        assert call_args[1]["params"] == {
            "token": "token-1",
            "instance_id": "instance-1",
            "jid": "77011234567@s.whatsapp.net",
            "msg": "Привет",
        }

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_missing_config_makes_no_request(self, mock_client_class, gateway):
        result = gateway.send_text(None, "instance-1", "77011234567", "Привет")

        assert result.ok is False
        assert result.error_code == "config_missing"
        mock_client_class.assert_not_called()

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_short_phone(self, mock_client_class, gateway):
        result = gateway.send_text("token-1", "instance-1", "12345", "Привет")

        assert result.error_code == "invalid_phone"
        mock_client_class.assert_not_called()

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_gateway_reports_failure(self, mock_client_class, gateway):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.get.return_value = json_response({"success": False, "error": "instance offline"})

        result = gateway.send_text("token-1", "instance-1", "77011234567", "Привет")

        assert result.ok is False
        assert result.error_code == "gateway_rejected"

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_non_json_body(self, mock_client_class, gateway):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.get.return_value = httpx.Response(200, text="OK")

        result = gateway.send_text("token-1", "instance-1", "77011234567", "Привет")

        assert result.error_code == "malformed_response"

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_network_error(self, mock_client_class, gateway):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.get.side_effect = httpx.ConnectError("connection refused")

        result = gateway.send_text("token-1", "instance-1", "77011234567", "Привет")

        assert result.ok is False
        assert result.error_code == "network_error"


class TestSendMedia:
    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_first_strategy_success(self, mock_client_class, gateway):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.get.return_value = json_response({"success": True})

        result = gateway.send_media("token-1", "instance-1", "77011234567", "https://cdn.example.com/a.jpg", "image")

        assert result.ok is True
        mock_client.post.assert_not_called()
        params = mock_client.get.call_args[1]["params"]
        assert params["url"] == "https://cdn.example.com/a.jpg"
        assert params["type"] == "image"
        assert mock_client.get.call_args[0][0] == f"{BASE_URL}/send-media"

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_falls_through_to_json_post(self, mock_client_class, gateway):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.get.return_value = json_response({"success": False})
        mock_client.post.side_effect = [httpx.ConnectError("reset"), json_response({"success": True})]

        result = gateway.send_media("token-1", "instance-1", "77011234567", "https://cdn.example.com/a.pdf", "document")

        assert result.ok is True
        assert mock_client.post.call_count == 2
        assert "data" in mock_client.post.call_args_list[0][1]
        assert "json" in mock_client.post.call_args_list[1][1]

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_html_everywhere_falls_back_to_text_link(self, mock_client_class, gateway):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.get.side_effect = [html_response(), json_response({"success": True})]
        mock_client.post.return_value = html_response()

        result = gateway.send_media("token-1", "instance-1", "77011234567", "https://cdn.example.com/v.ogg", "ptt")

        assert result.ok is True
        text_call = mock_client.get.call_args_list[1]
        assert text_call[0][0] == f"{BASE_URL}/send-text"
        assert text_call[1]["params"]["msg"] == "🎵 Голосовое сообщение: https://cdn.example.com/v.ogg"

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_all_strategies_rejected(self, mock_client_class, gateway):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.get.return_value = json_response({"success": False})
        mock_client.post.return_value = json_response({"success": False})

        result = gateway.send_media("token-1", "instance-1", "77011234567", "https://cdn.example.com/a.jpg", "image")

        assert result.ok is False
        assert result.error_code == "gateway_rejected"

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_private_url_rejected_before_network(self, mock_client_class, gateway):
        result = gateway.send_media("token-1", "instance-1", "77011234567", "http://192.168.0.2/a.jpg", "image")

        assert result.error_code == "non_public_url"
        mock_client_class.assert_not_called()

    @patch("leadflow.services.gateway_service.httpx.Client")
    def test_unsupported_kind(self, mock_client_class, gateway):
        result = gateway.send_media("token-1", "instance-1", "77011234567", "https://cdn.example.com/a.gif", "sticker")

        assert result.error_code == "unsupported_media"
        mock_client_class.assert_not_called()
