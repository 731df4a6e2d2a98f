# pump_bundler/config.py

import os
from dotenv import load_dotenv

# Load .env from the project root
script_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(script_dir)
dotenv_path = os.path.join(project_root, '.env')
load_dotenv(dotenv_path=dotenv_path)

# --- Solana Node Connection (Required - MUST be in .env or environment) ---
SOLANA_NODE_RPC_ENDPOINT = os.getenv("SOLANA_NODE_RPC_ENDPOINT", "https://api.mainnet-beta.solana.com")

# --- Jito Block Engine ---
BLOCK_ENGINE_URL = os.getenv("BLOCK_ENGINE_URL", "https://mainnet.block-engine.jito.wtf/api/v1")
BLOCK_ENGINE_UUID = os.getenv("BLOCK_ENGINE_UUID")  # Optional auth key
RELAY_TIMEOUT_SECONDS = 10.0
TIP_ACCOUNTS = None  # Override the relay's advertised tip accounts (list of base58 strings)

# --- Wallets (Required - MUST be in .env or environment) ---
# Operator signs the creation and pays the fee bid.
SOLANA_PRIVATE_KEY = os.getenv("SOLANA_PRIVATE_KEY")
# Comma separated base58 keys of the buyer wallets, in bundle order.
BUNDLE_WALLET_KEYS = os.getenv("BUNDLE_WALLET_KEYS", "")

# --- Bundle Parameters ---
FEE_BID_SOL = 0.001
BUY_SLIPPAGE_BPS = 1500  # 15%
SELL_SLIPPAGE_BPS = 2500  # 25%
MAX_BUNDLE_TRANSACTIONS = 5
MAX_SUBMISSION_ATTEMPTS = 3
STATUS_POLL_INTERVAL_SECONDS = 1.0
SIMULATE_BEFORE_SUBMIT = False

# --- Priority Fee Configuration ---
ENABLE_DYNAMIC_FEE = False
ENABLE_FIXED_FEE = False
PRIORITY_FEE_FIXED_AMOUNT_MICROLAMPORTS = 10000
EXTRA_PRIORITY_FEE_MICROLAMPORTS = 0
HARD_CAP_PRIORITY_FEE_MICROLAMPORTS = 1_000_000
COMPUTE_UNIT_LIMIT = 0  # 0 leaves the runtime default

# --- Audit Log ---
AUDIT_LOG_TO_FILE = True
AUDIT_LOG_PATH = "bundle_audit.log"
