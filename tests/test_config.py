"""
Tests for configuration loading
"""

import pytest

from atm_ledger import config as config_module
from atm_ledger.config import AtmLedgerConfig, get_config, reload_config
from atm_ledger.currency import Currency
from atm_ledger.ledger import Ledger


class TestAtmLedgerConfig:
    """Test settings defaults and environment overrides"""

    def test_defaults(self):
        """Test out-of-the-box settings"""
        settings = AtmLedgerConfig(_env_file=None)

        assert settings.data_file == "accounts.json"
        assert settings.currency == "USD"
        assert settings.account_number_length == 10
        assert settings.salt_bytes == 16
        assert settings.mini_statement_size == 10
        assert settings.seed_demo_account is True
        assert settings.demo_initial_deposit == "5000.00"
        assert settings.log_format == "json"

    def test_environment_override(self, monkeypatch):
        """Test ATM_LEDGER_ prefixed variables"""
        monkeypatch.setenv("ATM_LEDGER_DATA_FILE", "/tmp/other.json")
        monkeypatch.setenv("ATM_LEDGER_SEED_DEMO_ACCOUNT", "false")
        monkeypatch.setenv("atm_ledger_mini_statement_size", "5")

        settings = AtmLedgerConfig(_env_file=None)

        assert settings.data_file == "/tmp/other.json"
        assert settings.seed_demo_account is False
        assert settings.mini_statement_size == 5

    def test_invalid_value_rejected(self, monkeypatch):
        """Test that a non-numeric integer setting fails validation"""
        monkeypatch.setenv("ATM_LEDGER_MAX_ID_ATTEMPTS", "many")

        with pytest.raises(ValueError):
            AtmLedgerConfig(_env_file=None)

    def test_env_file(self, tmp_path):
        """Test loading from a dotenv file"""
        env_file = tmp_path / ".env"
        env_file.write_text("ATM_LEDGER_CURRENCY=EUR\n", encoding="utf-8")

        settings = AtmLedgerConfig(_env_file=str(env_file))

        assert settings.currency == "EUR"

    def test_reload_config(self, monkeypatch):
        """Test that reload_config replaces the global instance"""
        monkeypatch.setattr(config_module, "config", config_module.config)
        monkeypatch.setenv("ATM_LEDGER_LOG_LEVEL", "DEBUG")

        reloaded = reload_config()

        assert reloaded.log_level == "DEBUG"
        assert get_config() is reloaded

    def test_ledger_options(self):
        """Test the ledger constructor options derived from settings"""
        settings = AtmLedgerConfig(
            _env_file=None, currency="gbp", account_number_length=6, max_id_attempts=9
        )

        options = Ledger.options_from_config(settings)
        assert options == {
            'currency': Currency.GBP,
            'account_number_length': 6,
            'max_id_attempts': 9,
            'salt_bytes': 16
        }

        ledger = Ledger.from_config(settings)
        account_id = ledger.create_account("Alice", 0, "1234").account.account_id
        assert len(account_id) == 6
