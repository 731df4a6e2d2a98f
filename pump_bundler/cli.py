# pump_bundler/cli.py

import argparse
import asyncio
import importlib
import os
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from pump_bundler.bundle.fee_bidder import FeeBidder
from pump_bundler.bundle.relay import RelayClient
from pump_bundler.bundle.assembler import BundleAssembler
from pump_bundler.bundle.types import SlippagePolicy, SubmissionMode, SubmissionOutcome
from pump_bundler.core.client import SolanaClient
from pump_bundler.core.constants import LAMPORTS_PER_SOL
from pump_bundler.core.priority_fee.manager import PriorityFeeManager
from pump_bundler.core.wallet import TokenIdentity, Wallet
from pump_bundler.trading.base import TokenMetadata, fixed_amounts_policy, random_amount_policy
from pump_bundler.trading.bundler import PumpBundler
from pump_bundler.utils.audit_logger import AuditLogger
from pump_bundler.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

OPTIONAL_DEFAULTS: Dict[str, Any] = {
    "BLOCK_ENGINE_URL": "https://mainnet.block-engine.jito.wtf/api/v1",
    "RELAY_TIMEOUT_SECONDS": 10.0,
    "BUNDLE_WALLET_KEYS": "",
    "FEE_BID_SOL": 0.001,
    "BUY_SLIPPAGE_BPS": 1500,
    "SELL_SLIPPAGE_BPS": 2500,
    "MAX_BUNDLE_TRANSACTIONS": 5,
    "MAX_SUBMISSION_ATTEMPTS": 3,
    "STATUS_POLL_INTERVAL_SECONDS": 1.0,
    "SIMULATE_BEFORE_SUBMIT": False,
    "ENABLE_DYNAMIC_FEE": False,
    "ENABLE_FIXED_FEE": False,
    "PRIORITY_FEE_FIXED_AMOUNT_MICROLAMPORTS": 10000,
    "EXTRA_PRIORITY_FEE_MICROLAMPORTS": 0,
    "HARD_CAP_PRIORITY_FEE_MICROLAMPORTS": 1_000_000,
    "COMPUTE_UNIT_LIMIT": 0,
    "AUDIT_LOG_TO_FILE": True,
    "AUDIT_LOG_PATH": "bundle_audit.log",
}


def _coerce(raw: Any, default: Any) -> Any:
    if isinstance(default, bool) and isinstance(raw, str):
        if raw.strip().lower() in ("1", "true", "yes", "on"):
            return True
        if raw.strip().lower() in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    return type(default)(raw)


def load_config(config_path: str) -> Dict[str, Any]:
    """Load and validate the bundler configuration from a Python module path."""
    logger.info(f"Attempting to load configuration from: {config_path}")

    module_path = config_path.replace("/", ".").replace("\\", ".")
    if module_path.endswith(".py"):
        module_path = module_path[:-3]

    try:
        cfg_mod = importlib.import_module(module_path)
    except ModuleNotFoundError:
        logger.critical(f"FATAL: Config module not found: '{module_path}'.")
        raise

    # 1) Required core values
    config: Dict[str, Any] = {}
    for var in ("SOLANA_NODE_RPC_ENDPOINT", "SOLANA_PRIVATE_KEY"):
        val = getattr(cfg_mod, var, None) or os.getenv(var)
        if not val:
            raise ValueError(f"Missing required config var: {var}")
        config[var] = val

    # 2) Optional values without a typed default
    config["BLOCK_ENGINE_UUID"] = getattr(cfg_mod, "BLOCK_ENGINE_UUID", None) or os.getenv("BLOCK_ENGINE_UUID")
    config["TIP_ACCOUNTS"] = getattr(cfg_mod, "TIP_ACCOUNTS", None)

    # 3) All other optional settings
    for var, default in OPTIONAL_DEFAULTS.items():
        raw = getattr(cfg_mod, var, os.getenv(var))
        if raw is None:
            config[var] = default
        else:
            try:
                config[var] = _coerce(raw, default)
            except (TypeError, ValueError):
                logger.warning(f"Config warning: invalid type for {var}, using default {default}")
                config[var] = default

    logger.info("Configuration loaded successfully.")
    return config


def parse_wallet_keys(raw: str) -> List[Wallet]:
    return [Wallet(key.strip()) for key in raw.split(",") if key.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pump.fun launch-and-buy bundler")
    parser.add_argument("--config", default="pump_bundler.config",
                        help="Python module path (e.g., pump_bundler.config)")
    parser.add_argument("--fee-bid", type=float, help="Override FEE_BID_SOL")
    parser.add_argument("--slippage-bps", type=int, help="Override the slippage for this command")
    parser.add_argument("--ordinary", action="store_true",
                        help="Submit transactions one by one through RPC (no bundle, no atomicity)")
    sub = parser.add_subparsers(dest="command", required=True)

    launch = sub.add_parser("launch", help="Create a token and buy it from the bundle wallets")
    launch.add_argument("--name", required=True)
    launch.add_argument("--symbol", required=True)
    launch.add_argument("--uri", required=True, help="Already uploaded metadata URI")
    amounts = launch.add_mutually_exclusive_group(required=True)
    amounts.add_argument("--amounts", type=float, nargs="+", help="SOL per wallet, in wallet order")
    amounts.add_argument("--amount-range", type=float, nargs=2, metavar=("MIN", "MAX"),
                         help="Random SOL amount per wallet")

    buy = sub.add_parser("buy", help="Buy an existing token with the operator wallet")
    buy.add_argument("--mint", required=True)
    buy.add_argument("--amount", type=float, required=True, help="SOL to spend")

    sell = sub.add_parser("sell", help="Sell an existing token from the operator wallet")
    sell.add_argument("--mint", required=True)
    size = sell.add_mutually_exclusive_group(required=True)
    size.add_argument("--amount", type=int, help="Token units to sell")
    size.add_argument("--percent", type=float, help="Percent of the balance to sell")
    return parser


def print_outcome(outcome: SubmissionOutcome) -> None:
    print(f"Status:   {outcome.status.value}")
    print(f"Attempts: {outcome.attempts}")
    if outcome.bundle_id:
        print(f"Bundle:   {outcome.bundle_id}")
    if outcome.is_landed:
        print(f"Slot:     {outcome.slot}")
        for tx_id in outcome.transaction_ids:
            print(f"  {tx_id}")
    else:
        print(f"Reason:   {outcome.reason}")


async def run_command(args: argparse.Namespace, cfg: Dict[str, Any], bundler: PumpBundler,
                      buyers: List[Wallet]) -> SubmissionOutcome:
    mode = SubmissionMode.ORDINARY if args.ordinary else SubmissionMode.BUNDLE
    fee_bid_sol = args.fee_bid if args.fee_bid is not None else cfg["FEE_BID_SOL"]
    fee_bid = None if args.ordinary else int(fee_bid_sol * LAMPORTS_PER_SOL)

    if args.command == "launch":
        if args.amounts:
            if len(args.amounts) != len(buyers):
                raise ValueError(f"{len(args.amounts)} amounts given for {len(buyers)} bundle wallets")
            policy = fixed_amounts_policy(args.amounts)
        else:
            policy = random_amount_policy(*args.amount_range)
        slippage = SlippagePolicy(args.slippage_bps if args.slippage_bps is not None else cfg["BUY_SLIPPAGE_BPS"])
        return await bundler.create_and_buy_bundle(
            creator=bundler.operator,
            token_identity=TokenIdentity.generate(),
            metadata=TokenMetadata(args.name, args.symbol, args.uri),
            wallets=buyers,
            amount_policy=policy,
            slippage=slippage,
            fee_bid_lamports=fee_bid,
            mode=mode,
        )

    if args.command == "buy":
        slippage = SlippagePolicy(args.slippage_bps if args.slippage_bps is not None else cfg["BUY_SLIPPAGE_BPS"])
        return await bundler.buy_bundle(
            bundler.operator, args.mint, int(args.amount * LAMPORTS_PER_SOL),
            slippage=slippage, fee_bid_lamports=fee_bid, mode=mode,
        )

    slippage = SlippagePolicy(args.slippage_bps if args.slippage_bps is not None else cfg["SELL_SLIPPAGE_BPS"])
    return await bundler.sell_bundle(
        bundler.operator, args.mint, token_amount=args.amount, percent=args.percent,
        slippage=slippage, fee_bid_lamports=fee_bid, mode=mode,
    )


async def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()  # early .env load
    setup_logging()

    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config)
    except Exception as e:
        logger.critical(f"Config load failed: {e}")
        return 1

    client = SolanaClient(cfg["SOLANA_NODE_RPC_ENDPOINT"])
    relay = RelayClient(cfg["BLOCK_ENGINE_URL"], timeout=cfg["RELAY_TIMEOUT_SECONDS"], uuid=cfg["BLOCK_ENGINE_UUID"])
    try:
        operator = Wallet(cfg["SOLANA_PRIVATE_KEY"])
        buyers = parse_wallet_keys(cfg["BUNDLE_WALLET_KEYS"])
        fee_mgr = None
        if cfg["ENABLE_DYNAMIC_FEE"] or cfg["ENABLE_FIXED_FEE"] or cfg["COMPUTE_UNIT_LIMIT"]:
            fee_mgr = PriorityFeeManager(
                client=client,
                compute_unit_limit=cfg["COMPUTE_UNIT_LIMIT"] or None,
                enable_dynamic_fee=cfg["ENABLE_DYNAMIC_FEE"],
                enable_fixed_fee=cfg["ENABLE_FIXED_FEE"],
                fixed_fee=cfg["PRIORITY_FEE_FIXED_AMOUNT_MICROLAMPORTS"],
                extra_fee=cfg["EXTRA_PRIORITY_FEE_MICROLAMPORTS"],
                hard_cap=cfg["HARD_CAP_PRIORITY_FEE_MICROLAMPORTS"],
            )
        bundler = PumpBundler(
            client,
            relay,
            operator,
            assembler=BundleAssembler(max_transactions=cfg["MAX_BUNDLE_TRANSACTIONS"]),
            fee_bidder=FeeBidder(relay, tip_accounts=cfg["TIP_ACCOUNTS"]),
            max_attempts=cfg["MAX_SUBMISSION_ATTEMPTS"],
            poll_interval=cfg["STATUS_POLL_INTERVAL_SECONDS"],
            simulate_head=cfg["SIMULATE_BEFORE_SUBMIT"],
            priority_fee_manager=fee_mgr,
            audit_logger=AuditLogger(log_to_file=cfg["AUDIT_LOG_TO_FILE"], filepath=cfg["AUDIT_LOG_PATH"]),
        )
        outcome = await run_command(args, cfg, bundler, buyers)
        print_outcome(outcome)
        return 0 if outcome.is_landed else 1
    except asyncio.CancelledError:
        logger.info("Cancelled.")
        raise
    except Exception as e:
        logger.critical(f"FATAL: {e}", exc_info=True)
        return 1
    finally:
        logger.info("Cleaning up…")
        await client.close()
        await relay.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
