# pump_bundler/core/constants.py

# Solana-wide constants
LAMPORTS_PER_SOL = 1_000_000_000
DEFAULT_TOKEN_DECIMALS = 6

# Serialized transaction must fit in one packet.
PACKET_DATA_SIZE = 1232

# Jito block engine limits
MAX_BUNDLE_TRANSACTIONS = 5
MIN_FEE_BID_LAMPORTS = 1_000

# Launch bundles carry a creation tx and a fee-bid tx around the wallet buys.
LAUNCH_OVERHEAD_TRANSACTIONS = 2

# Pump.fun program limits for create() string arguments (bytes)
MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200

# Protocol fee charged by the curve on every trade (basis points)
DEFAULT_FEE_BASIS_POINTS = 100

# Defaults of the pump.fun global account, used when reporting quotes
DEFAULT_INITIAL_VIRTUAL_TOKEN_RESERVES = 1_073_000_000_000_000
DEFAULT_INITIAL_VIRTUAL_SOL_RESERVES = 30_000_000_000
DEFAULT_INITIAL_REAL_TOKEN_RESERVES = 793_100_000_000_000
DEFAULT_TOKEN_TOTAL_SUPPLY = 1_000_000_000_000_000

U64_MAX = 2**64 - 1
