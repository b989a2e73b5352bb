"""
Pocki - Non-custodial wallet

Command-line front end over the wallet core.

Entry point for the application.
"""

import argparse
import asyncio
import getpass
import logging
import sys

from errors import WalletError
from models import AppSettings
from networks import explorer_tx_url
from services import AmountEntry, AppState, Representation, SendStep, format_fiat, format_native
from services.logging import configure_logging
from services.tokens import popular_token_address
from utils import get_settings_path, get_wallet_store_path
from wallet import check_backup, check_password

logger = logging.getLogger(__name__)


def _ask_new_password() -> str:
    password = getpass.getpass("New password: ")
    confirmation = getpass.getpass("Confirm password: ")
    check_password(password, confirmation)
    return password


def _unlock(state: AppState) -> None:
    if not state.session.has_secret:
        raise WalletError("No wallet yet. Run 'pocki create' or 'pocki import' first.")
    if not state.session.unlock(getpass.getpass("Password: ")):
        raise WalletError("Invalid password")


def _check_replace(state: AppState, args) -> None:
    if state.store.has_wallet and not args.force:
        raise WalletError("A wallet already exists. Use --force to replace it; "
                          "funds are only recoverable from its recovery phrase.")


# ============================================
# Commands
# ============================================

def cmd_create(state: AppState, args) -> int:
    _check_replace(state, args)
    phrase = state.phrases.generate()
    print("Write down your recovery phrase and keep it offline:\n")
    for i, word in enumerate(phrase.words, 1):
        print(f"  {i:2d}. {word}")
    print()
    if not check_backup(phrase, input("Re-enter the 12 words to confirm: ")):
        raise WalletError("The words do not match your recovery phrase. Please try again.")

    state.setup_wallet(phrase, _ask_new_password())
    print(f"Wallet created: {state.session.address}")
    return 0


def cmd_import(state: AppState, args) -> int:
    _check_replace(state, args)
    words = getpass.getpass("Recovery phrase: ")
    if not state.phrases.validate(words):
        raise WalletError("Invalid recovery phrase. Please check the words and try again.")

    state.setup_wallet(words, _ask_new_password())
    print(f"Wallet imported: {state.session.address}")
    return 0


def cmd_address(state: AppState, args) -> int:
    _unlock(state)
    print(state.session.address)
    return 0


async def cmd_balances(state: AppState, args) -> int:
    _unlock(state)
    snapshot = await state.refresh()
    for item in snapshot.assets:
        print(f"{item.asset.symbol:>8}  {format_native(item.balance, 5):>16}  {format_fiat(item.fiat_value)}")
    print(f"{'Total':>8}  {'':>16}  {format_fiat(snapshot.total_fiat)}")
    for error in snapshot.errors:
        print(error, file=sys.stderr)
    return 0


async def cmd_add_token(state: AppState, args) -> int:
    address = args.address
    if args.popular:
        address = popular_token_address(args.address, state.network_config)
        if address is None:
            raise WalletError(f"No popular token '{args.address}' on {state.network_config.display_name}.")
    token = await state.add_token(address)
    print(f"Added {token.name} ({token.symbol}) at {token.address}")
    return 0


async def cmd_send(state: AppState, args) -> int:
    _unlock(state)
    snapshot = await state.refresh()
    symbol = args.token or state.native_asset.symbol
    holding = snapshot.find(symbol)
    if holding is None:
        raise WalletError(f"Unknown asset: {symbol}")

    mode = Representation.FIAT if args.fiat else Representation.NATIVE
    entry = AmountEntry(holding.asset, holding.price, mode)
    entry.set_text(args.amount)

    def report(flow):
        if flow.step == SendStep.SENDING and flow.tx_hash:
            print(f"Submitted: {explorer_tx_url(state.network_config, flow.tx_hash)}")

    flow = state.new_send_flow(on_change=report)
    quote = await flow.review(entry.to_request(args.to), holding.balance)

    request = flow.request
    print(f"To:      {request.recipient}")
    print(f"Amount:  {format_native(request.amount, 6)} {request.asset.symbol}  ({format_fiat(request.fiat_amount)})")
    print(f"Fee:     {quote.format_fee(state.native_asset.symbol)}")
    if not args.yes and input("Send? [y/N] ").strip().lower() != "y":
        flow.cancel()
        flow.close()
        print("Cancelled")
        return 1

    outcome = await flow.send()
    flow.close()
    if outcome.is_confirmed:
        print(f"Success! Confirmed in block {outcome.block_number}")
        return 0
    print(f"Failed: {outcome.reason}", file=sys.stderr)
    return 1


# ============================================
# Entry point
# ============================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pocki", description="Pocki wallet")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, text in (("create", "create a new wallet"),
                       ("import", "import a wallet from a recovery phrase")):
        setup = sub.add_parser(name, help=text)
        setup.add_argument("--force", action="store_true", help="replace the existing wallet")
    sub.add_parser("address", help="unlock and show the wallet address")
    sub.add_parser("balances", help="show balances and fiat values")

    add = sub.add_parser("add-token", help="add an ERC-20 token")
    add.add_argument("address", help="contract address, or a symbol with --popular")
    add.add_argument("--popular", action="store_true", help="look the token up by symbol")

    send = sub.add_parser("send", help="send ETH or a token")
    send.add_argument("--to", required=True, help="recipient address")
    send.add_argument("--amount", required=True, help="amount, e.g. 0.25")
    send.add_argument("--token", help="token symbol (default: native currency)")
    send.add_argument("--fiat", action="store_true", help="amount is in USD")
    send.add_argument("-y", "--yes", action="store_true", help="skip the confirmation prompt")
    return parser


COMMANDS = {
    "create": cmd_create,
    "import": cmd_import,
    "address": cmd_address,
    "balances": cmd_balances,
    "add-token": cmd_add_token,
    "send": cmd_send,
}


def main(argv=None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    settings = AppSettings.load(get_settings_path())
    # Configure logging before anything else
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING,
                      settings.log_retention_days)

    state = AppState.build(settings, get_wallet_store_path())
    logger.info(f"Network: {settings.network.display_name}")

    command = COMMANDS[args.command]
    try:
        result = command(state, args)
        if asyncio.iscoroutine(result):
            result = asyncio.run(result)
        return result
    except WalletError as e:
        print(e.message, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    finally:
        if not state.session.busy:
            state.session.lock()


if __name__ == "__main__":
    sys.exit(main())
