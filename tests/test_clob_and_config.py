"""Tests for CLOB client bootstrap and environment parsing."""

from unittest.mock import MagicMock, patch

import pytest

from src.config import _env_float, _env_int
from src.copytrade.clob import create_clob_client
from src.copytrade.errors import SessionError

FUNDER = "0x" + "12" * 20


@pytest.fixture
def clob_class():
    with patch("src.copytrade.clob.ClobClient") as mock_class:
        client = MagicMock()
        client.mode = 2
        client.get_address = MagicMock(return_value="0xsigner")
        client.create_or_derive_api_creds = MagicMock(return_value="creds")
        mock_class.return_value = client
        yield mock_class


class TestCreateClobClient:
    """Tests for authenticated client creation."""

    def test_adds_key_prefix_and_sets_creds(self, clob_class):
        client = create_clob_client(private_key="ab" * 32, funder=FUNDER, signature_type=2)

        kwargs = clob_class.call_args[1]
        assert kwargs["key"] == "0x" + "ab" * 32
        assert kwargs["funder"] == FUNDER
        assert kwargs["signature_type"] == 2
        assert kwargs["chain_id"] == 137
        client.set_api_creds.assert_called_once_with("creds")

    def test_missing_key(self, clob_class):
        with pytest.raises(SessionError, match="POLYMARKET_PRIVATE_KEY"):
            create_clob_client(private_key="", funder=FUNDER)
        clob_class.assert_not_called()

    def test_missing_funder(self, clob_class):
        with pytest.raises(SessionError, match="POLYMARKET_FUNDER"):
            create_clob_client(private_key="0x" + "ab" * 32, funder="")

    def test_credential_derivation_failure(self, clob_class):
        clob_class.return_value.create_or_derive_api_creds.side_effect = RuntimeError("401")

        with pytest.raises(SessionError, match="Failed to initialize CLOB client"):
            create_clob_client(private_key="0x" + "ab" * 32, funder=FUNDER)

    def test_not_l2_authenticated(self, clob_class):
        clob_class.return_value.mode = 1

        with pytest.raises(SessionError, match="L2 auth"):
            create_clob_client(private_key="0x" + "ab" * 32, funder=FUNDER)


class TestEnvParsing:
    """Tests for numeric environment values."""

    def test_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("SIZE_SCALE_TEST", raising=False)
        assert _env_float("SIZE_SCALE_TEST", 0.1) == 0.1

    def test_parses_value(self, monkeypatch):
        monkeypatch.setenv("SIZE_SCALE_TEST", "0.25")
        monkeypatch.setenv("DEDUPE_TEST", "500")

        assert _env_float("SIZE_SCALE_TEST", 0.1) == 0.25
        assert _env_int("DEDUPE_TEST", 2000) == 500

    def test_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("SIZE_SCALE_TEST", "ten percent")

        with pytest.raises(ValueError, match="Invalid number for SIZE_SCALE_TEST"):
            _env_float("SIZE_SCALE_TEST", 0.1)
