"""
Tests for the pocki command line.
"""

import getpass
import json

import pytest

import app
from models import AssetDescriptor, WalletStore
from services import AppState
from wallet import PhraseGenerator, RecoveryPhrase
from conftest import ONE_ETH, RECIPIENT, TEST_ADDRESS, TEST_PASSWORD, TEST_PHRASE, TOKEN_ADDRESS, FakeNetwork


@pytest.fixture(autouse=True)
def fast_settings(app_home):
    app_home.mkdir(parents=True, exist_ok=True)
    (app_home / "settings.json").write_text(json.dumps({
        "kdf_time_cost": 1, "kdf_memory_cost": 8, "kdf_parallelism": 1,
        "log_retention_days": 0,
    }))


@pytest.fixture
def answers(monkeypatch):
    """Queue replies for getpass prompts."""
    replies = []
    monkeypatch.setattr(getpass, "getpass", lambda prompt="": replies.pop(0))
    return replies


def _imported(answers):
    answers.extend([TEST_PHRASE, TEST_PASSWORD, TEST_PASSWORD])
    assert app.main(["import"]) == 0
    answers.clear()


class TestSetupCommands:

    def test_import(self, answers, app_home, capsys):
        _imported(answers)
        assert TEST_ADDRESS in capsys.readouterr().out
        assert WalletStore(app_home / "wallet.json").has_wallet

    def test_import_bad_phrase(self, answers, app_home, capsys):
        answers.append(" ".join(["abandon"] * 12))
        assert app.main(["import"]) == 1
        assert "Invalid recovery phrase" in capsys.readouterr().err
        assert not WalletStore(app_home / "wallet.json").has_wallet

    def test_import_weak_password(self, answers, capsys):
        answers.extend([TEST_PHRASE, "short", "short"])
        assert app.main(["import"]) == 1
        assert "at least 8 characters" in capsys.readouterr().err

    def test_create_with_backup_check(self, answers, monkeypatch, capsys):
        monkeypatch.setattr(PhraseGenerator, "generate", lambda self: RecoveryPhrase.parse(TEST_PHRASE))
        monkeypatch.setattr("builtins.input", lambda prompt="": TEST_PHRASE)
        answers.extend([TEST_PASSWORD, TEST_PASSWORD])
        assert app.main(["create"]) == 0
        assert f"Wallet created: {TEST_ADDRESS}" in capsys.readouterr().out

    def test_create_backup_mismatch(self, answers, monkeypatch, app_home, capsys):
        monkeypatch.setattr("builtins.input", lambda prompt="": "wrong words")
        assert app.main(["create"]) == 1
        assert "do not match" in capsys.readouterr().err
        assert not WalletStore(app_home / "wallet.json").has_wallet

    @pytest.mark.parametrize("command", ["create", "import"])
    def test_existing_wallet_not_replaced(self, answers, app_home, capsys, command):
        _imported(answers)
        before = WalletStore(app_home / "wallet.json").get_encrypted_secret()
        capsys.readouterr()
        assert app.main([command]) == 1
        assert "already exists" in capsys.readouterr().err
        assert WalletStore(app_home / "wallet.json").get_encrypted_secret() == before

    def test_force_replaces(self, answers, app_home):
        _imported(answers)
        before = WalletStore(app_home / "wallet.json").get_encrypted_secret()
        answers.extend([TEST_PHRASE, TEST_PASSWORD, TEST_PASSWORD])
        assert app.main(["import", "--force"]) == 0
        assert WalletStore(app_home / "wallet.json").get_encrypted_secret() != before


class TestAddressCommand:

    def test_unlock_and_show(self, answers, capsys):
        _imported(answers)
        capsys.readouterr()
        answers.append(TEST_PASSWORD)
        assert app.main(["address"]) == 0
        assert capsys.readouterr().out.strip() == TEST_ADDRESS

    def test_wrong_password(self, answers, capsys):
        _imported(answers)
        answers.append("wrongpassword")
        assert app.main(["address"]) == 1
        assert "Invalid password" in capsys.readouterr().err

    def test_no_wallet(self, answers, capsys):
        assert app.main(["address"]) == 1
        assert "No wallet yet" in capsys.readouterr().err

    def test_corrupt_secret_reads_as_wrong_password(self, answers, app_home, capsys):
        WalletStore(app_home / "wallet.json").set_encrypted_secret("{not json")
        answers.append(TEST_PASSWORD)
        assert app.main(["address"]) == 1
        assert capsys.readouterr().err.strip() == "Invalid password"


class TestParser:

    def test_send_arguments(self):
        args = app.build_parser().parse_args(
            ["send", "--to", "0xabc", "--amount", "500", "--fiat", "--token", "USDC", "-y"])
        assert args.command == "send"
        assert args.fiat and args.yes
        assert args.token == "USDC"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            app.build_parser().parse_args([])


@pytest.fixture
def node(monkeypatch):
    """Run commands against an in-memory node."""
    network = FakeNetwork()
    network.balances[TEST_ADDRESS.lower()] = ONE_ETH
    build = AppState.build
    monkeypatch.setattr(AppState, "build",
                        classmethod(lambda cls, settings, path: build(settings, path, network=network)))
    return network


class TestSendCommand:

    def _send(self, answers, *args):
        answers.append(TEST_PASSWORD)
        return app.main(["send", "--to", RECIPIENT, "-y", *args])

    def test_sends(self, answers, node, capsys):
        _imported(answers)
        assert self._send(answers, "--amount", "0.25") == 0
        assert "Success!" in capsys.readouterr().out
        assert len(node.sent) == 1

    @pytest.mark.parametrize("amount", ["1,5", "1.123456789", "-1", "0.5e1"])
    def test_bad_amount_is_not_rewritten(self, answers, node, capsys, amount):
        _imported(answers)
        capsys.readouterr()
        assert self._send(answers, "--amount", amount) == 1
        assert "amount" in capsys.readouterr().err
        assert node.estimated == []
        assert node.sent == []

    def test_fraction_on_whole_unit_token(self, answers, node, app_home, capsys):
        _imported(answers)
        node.add_token(TOKEN_ADDRESS, symbol="WHL", decimals=0, balances={TEST_ADDRESS: 10})
        WalletStore(app_home / "wallet.json").add_user_token(AssetDescriptor.token(
            address=TOKEN_ADDRESS, symbol="WHL", name="Whole", decimals=0))
        capsys.readouterr()
        assert self._send(answers, "--token", "WHL", "--amount", "0.5") == 1
        assert "0 decimal places" in capsys.readouterr().err
        assert node.sent == []
