# backend/app/engine/constants.py

# --- Board Dimensions ---
# The most common version of Connect Four has 6 rows and 7 columns.
DEFAULT_NR_ROWS = 6
DEFAULT_NR_COLS = 7
DEFAULT_WINNING_NR = 4

# Boards smaller or larger than this are rejected by the interaction layer
MIN_BOARD_SIZE = 4
MAX_BOARD_SIZE = 9
MIN_WINNING_NR = 4

# --- Symbols ---
EMPTY = " "

# --- Search ---
# How many plies the bot looks ahead from the real position
MAX_NR_TURNS = 6
# Score of a line the user has already won, below any ledger difference
LOSS_SCORE = -(2 ** 63)
