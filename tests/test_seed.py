"""
Tests for demo account seeding and the console entry point
"""

from decimal import Decimal

from atm_ledger import __main__ as entry_point
from atm_ledger.config import AtmLedgerConfig
from atm_ledger.currency import Money
from atm_ledger.ledger import Ledger
from atm_ledger.seed import seed_demo_account
from atm_ledger.storage import InMemorySnapshotStore


def make_config(**overrides) -> AtmLedgerConfig:
    return AtmLedgerConfig(_env_file=None, **overrides)


class TestSeedDemoAccount:
    """Test seed_demo_account"""

    def test_seeds_empty_ledger(self):
        """Test the demo account on a fresh ledger"""
        store = InMemorySnapshotStore()
        ledger = store.load()

        account = seed_demo_account(ledger, make_config())

        assert account is not None
        assert account.holder_name == "Demo User"
        assert account.balance == Money(Decimal('5000.00'))
        assert account.authenticate("1234")
        assert account.account_id in store.get_raw()

    def test_skips_non_empty_ledger(self):
        """Test that existing data is never topped up"""
        ledger = Ledger()
        ledger.create_account("Alice", 1, "1234")

        assert seed_demo_account(ledger, make_config()) is None
        assert len(ledger) == 1

    def test_disabled(self):
        """Test the seed switch"""
        ledger = Ledger()

        assert seed_demo_account(ledger, make_config(seed_demo_account=False)) is None
        assert len(ledger) == 0

    def test_skips_after_failed_load(self):
        """Test that an unreadable snapshot is not overwritten by the seed"""
        store = InMemorySnapshotStore()
        store.set_raw("corrupt")
        ledger = store.load()

        assert seed_demo_account(ledger, make_config()) is None
        assert store.get_raw() == "corrupt"

    def test_rejected_settings(self):
        """Test that invalid demo settings create nothing"""
        ledger = Ledger()

        assert seed_demo_account(ledger, make_config(demo_pin="")) is None
        assert seed_demo_account(ledger, make_config(demo_initial_deposit="-5")) is None
        assert len(ledger) == 0


class FakeShell:
    instances = []

    def __init__(self, ledger, config):
        self.ledger = ledger
        self.config = config
        FakeShell.instances.append(self)

    def run(self):
        pass


class TestEntryPoint:
    """Test python -m atm_ledger wiring"""

    def test_main_loads_seeds_and_runs(self, tmp_path, monkeypatch, capsys):
        """Test that main seeds a fresh data file and hands the ledger to the shell"""
        settings = make_config(data_file=str(tmp_path / "accounts.json"))
        monkeypatch.setattr(entry_point, "get_config", lambda: settings)
        monkeypatch.setattr(entry_point, "setup_logging", lambda *args, **kwargs: None)
        monkeypatch.setattr(entry_point, "AtmShell", FakeShell)
        FakeShell.instances = []

        assert entry_point.main() == 0

        shell = FakeShell.instances[0]
        assert len(shell.ledger) == 1
        assert (tmp_path / "accounts.json").exists()
        assert "Demo account created" in capsys.readouterr().out

    def test_main_reports_unreadable_file(self, tmp_path, monkeypatch, capsys):
        """Test that a corrupt data file is reported and left unseeded"""
        data_file = tmp_path / "accounts.json"
        data_file.write_text("nonsense", encoding="utf-8")
        settings = make_config(data_file=str(data_file))
        monkeypatch.setattr(entry_point, "get_config", lambda: settings)
        monkeypatch.setattr(entry_point, "setup_logging", lambda *args, **kwargs: None)
        monkeypatch.setattr(entry_point, "AtmShell", FakeShell)
        FakeShell.instances = []

        entry_point.main()

        out = capsys.readouterr().out
        assert "Could not read data file" in out
        assert "Demo account created" not in out
        assert len(FakeShell.instances[0].ledger) == 0
        assert data_file.read_text(encoding="utf-8") == "nonsense"
