"""Unit tests for configuration getters."""

import json
from unittest.mock import patch

import pytest

from invoice_review import config


@pytest.fixture
def client_config(tmp_path, monkeypatch):
    """Point the client config at a temp file and clear related env vars."""
    path = tmp_path / "client_config.json"
    monkeypatch.setenv('INVOICE_CLIENT_CONFIG', str(path))
    for name in ('INVOICE_API_URL', 'INVOICE_API_KEY', 'INVOICE_API_TIMEOUT', 'INVOICE_EXTRACTION_MODE',
                 'INVOICE_DEFAULT_CURRENCY', 'INVOICE_DEFAULT_VAT_RATE', 'INVOICE_TOTAL_EDIT_RULE',
                 'INVOICE_CUSTOMER_ID'):
        monkeypatch.delenv(name, raising=False)
    return path


class TestDefaults:
    """Test defaults without env vars or a config file."""

    def test_defaults(self, client_config):
        assert config.get_api_url() == "http://localhost:8000"
        assert config.get_api_key() is None
        assert config.get_api_timeout() == 30
        assert config.get_extraction_mode() == "llm"
        assert config.get_default_currency() == "ILS"
        assert config.get_default_vat_rate() == 0.18
        assert config.get_total_edit_rule() == "tax_preserving"
        assert config.get_customer_id() is None


class TestEnvironment:
    """Test environment overrides."""

    def test_env_values(self, client_config, monkeypatch):
        monkeypatch.setenv('INVOICE_API_URL', 'http://svc:9000')
        monkeypatch.setenv('INVOICE_DEFAULT_CURRENCY', 'usd')
        monkeypatch.setenv('INVOICE_DEFAULT_VAT_RATE', '0.17')
        monkeypatch.setenv('INVOICE_TOTAL_EDIT_RULE', 'rate_reconstruct')
        monkeypatch.setenv('INVOICE_CUSTOMER_ID', '12')

        assert config.get_api_url() == 'http://svc:9000'
        assert config.get_default_currency() == 'USD'
        assert config.get_default_vat_rate() == 0.17
        assert config.get_total_edit_rule() == 'rate_reconstruct'
        assert config.get_customer_id() == 12

    @pytest.mark.parametrize("name,value,getter,expected", [
        ('INVOICE_API_TIMEOUT', 'soon', 'get_api_timeout', 30),
        ('INVOICE_EXTRACTION_MODE', 'regex', 'get_extraction_mode', 'llm'),
        ('INVOICE_DEFAULT_VAT_RATE', 'abc', 'get_default_vat_rate', 0.18),
        ('INVOICE_DEFAULT_VAT_RATE', '-0.1', 'get_default_vat_rate', 0.18),
        ('INVOICE_TOTAL_EDIT_RULE', 'guess', 'get_total_edit_rule', 'tax_preserving'),
        ('INVOICE_CUSTOMER_ID', 'acme', 'get_customer_id', None),
    ])
    def test_invalid_values_fall_back(self, client_config, monkeypatch, name, value, getter, expected):
        monkeypatch.setenv(name, value)
        assert getattr(config, getter)() == expected


class TestClientConfigFile:
    """Test the JSON config file fallback."""

    def test_saved_values_used(self, client_config):
        config.save_client_config({'api_url': 'http://saved:8000', 'api_key': 'k', 'customer_id': 4, 'vat_rate': 0.17})

        assert json.loads(client_config.read_text(encoding="utf-8"))['customer_id'] == 4
        assert config.get_api_url() == 'http://saved:8000'
        assert config.get_api_key() == 'k'
        assert config.get_customer_id() == 4
        assert config.get_default_vat_rate() == 0.17

    def test_env_beats_file(self, client_config, monkeypatch):
        config.save_client_config({'api_url': 'http://saved:8000'})
        monkeypatch.setenv('INVOICE_API_URL', 'http://env:8000')
        assert config.get_api_url() == 'http://env:8000'

    def test_broken_file_ignored(self, client_config):
        client_config.write_text("{broken", encoding="utf-8")
        assert config.load_client_config() == {}


class TestPaths:
    """Test output paths."""

    def test_output_dir_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv('INVOICE_OUTPUT_DIR', str(tmp_path / "out"))
        monkeypatch.delenv('INVOICE_SESSION_PATH', raising=False)
        assert config.get_default_output_dir() == tmp_path / "out"
        assert (tmp_path / "out").is_dir()
        assert config.get_session_path() == tmp_path / "out" / "session.json"
        assert config.get_pending_notice_path() == tmp_path / "out" / "pending_notice.json"

    def test_session_path_from_env(self, tmp_path, monkeypatch):
        with patch.dict('os.environ', {'INVOICE_SESSION_PATH': str(tmp_path / "s.json")}):
            assert config.get_session_path() == tmp_path / "s.json"
