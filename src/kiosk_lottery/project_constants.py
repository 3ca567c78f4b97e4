"""
Fixed rules of the kiosk prize draw.

These values define how the draw behaves independently of config.json.
Changing them changes the public rules of the event and MUST be announced
to the operators.
"""

# Files kept in the data directory
CONFIG_FILE = "config.json"
BLACKLIST_FILE = "blacklist.txt"
MUST_WIN_FILE = "mustwin.txt"
DRAW_RESULT_FILE = "draw_result.json"

# Data directory used when neither --data-dir nor LOTTERY_DATA_DIR is set
DEFAULT_DATA_DIR = "data"

# Prize tiers: 1 is the top prize
MIN_PRIZE_TIER = 1
MAX_PRIZE_TIER = 4

# Pool defaults written to a fresh config.json
DEFAULT_COMMON_MIN_ID = 1
DEFAULT_COMMON_MAX_ID = 100
DEFAULT_SPECIAL_MIN_ID = 1
DEFAULT_SPECIAL_MAX_ID = 10
DEFAULT_SPECIAL_PRIZE_TIER = 4

# Upper bound on rejection-sampling attempts for a single draw
MAX_DRAW_ATTEMPTS = 10_000
