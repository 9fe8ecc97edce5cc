"""
Heuristic rule tables
Thresholds, tags and brackets used by the diagnostic, wallet and approval engines.
Values are kept exactly as the VANTA backend shipped them.
"""

# Protocol tags: (substring of the destination's textual form, tag)
PROTOCOL_TAG_RULES = [
    ('uniswap', 'DEX'),
    ('swap', 'DEX'),
    ('aave', 'Lending'),
    ('compound', 'Lending'),
    ('bridge', 'Bridge'),
    ('nft', 'NFT'),
]
UNKNOWN_PROTOCOL_TAG = 'Unknown / Direct'

# Gas efficiency: (upper bound exclusive, score, label); last entry catches the rest
GAS_EFFICIENCY_BRACKETS = [
    (80000, 85, 'Efficient'),
    (200000, 70, 'Normal'),
    (None, 55, 'Heavy'),
]

# Wallet risk flags
FLAG_NEW_WALLET = 'Low activity / new wallet'
FLAG_HIGH_VALUE = 'High value wallet'
FLAG_LOW_VALUE = 'Low value wallet'
FLAG_HIGH_ACTIVITY = 'High activity wallet'
FLAG_UNKNOWN_CONTRACTS = 'Interacts with unknown contracts'
FLAG_HIGH_GAS = 'High gas usage'

NEW_WALLET_MAX_TX = 3          # txCount < 3
HIGH_VALUE_USD = 10000         # total > 10000
LOW_VALUE_USD = 10             # total < 10
HIGH_ACTIVITY_MIN_TX = 50      # txCount > 50

# Health score
HEALTH_BASE = 80
HEALTH_MIN = 0
HEALTH_MAX = 100
HEALTH_LOW_VALUE_USD = 50      # total < 50 -> -5
HEALTH_LOW_VALUE_DELTA = -5
HEALTH_HIGH_VALUE_USD = 10000  # total > 10000 -> +5
HEALTH_HIGH_VALUE_DELTA = 5
HEALTH_FEW_TX = 5              # txCount < 5 -> -10
HEALTH_FEW_TX_DELTA = -10
HEALTH_MANY_TX = 100           # txCount > 100 -> +5
HEALTH_MANY_TX_DELTA = 5
HEALTH_FLAG_DELTAS = [
    (FLAG_HIGH_GAS, -5),
    (FLAG_UNKNOWN_CONTRACTS, -10),
]

# Narrative activity brackets share the health score tx thresholds
NARRATIVE_NEW_TX = HEALTH_FEW_TX
NARRATIVE_ACTIVE_TX = HEALTH_MANY_TX

# Wallet personality / whale badge
STABLECOIN_SYMBOLS = ('USDC', 'USDT', 'DAI')
PERSONALITY_WHALE_USD = 100000
PERSONALITY_MANY_TOKENS = 5
PERSONALITY_STABLE_MAXI_USD = 5000
PERSONALITY_NEW_TX = 10
MEGA_WHALE_USD = 250000
WHALE_USD = 50000

# Activity reconstruction
ACTIVITY_BLOCK_WINDOW = 5000
ACTIVITY_MAX_EVENTS = 25

# Approvals
UNLIMITED_APPROVAL_AMOUNT = 1_000_000_000
APPROVAL_HIGH_RISK_AMOUNT = 100000
APPROVAL_MEDIUM_RISK_AMOUNT = 1000
