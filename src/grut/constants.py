"""Constants used throughout Grut."""

# Directory names
GRUT_DIR = ".grut"
OBJECTS_DIR = "objects"

# File names
HEAD_FILE = "HEAD"
INDEX_FILE = "index"

# Staging index format
INDEX_VERSION = 1

# Hash algorithm
HASH_ALGORITHM = "sha256"
HASH_LENGTH = 64  # SHA-256 produces 64 hex characters

# Shortest abbreviated digest accepted by `grut show`
MIN_PREFIX_LENGTH = 4
SHORT_HASH_LENGTH = 7

# Upper bound on parent links followed before history is declared corrupt
MAX_HISTORY_DEPTH = 100_000

# Text encoding for blob contents shown in diffs
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"

# Exit codes
EXIT_USER_ERROR = 1
EXIT_DATA_ERROR = 3
