"""Constants used throughout Twig."""

# Directory names
TWIG_DIR = ".twig"
OBJECTS_DIR = "objects"
COMMITS_DIR = "commits"

# File names
STATE_FILE = "state.json"
STATE_VERSION = 1

# Hash algorithm
HASH_ALGORITHM = "sha256"
HASH_LENGTH = 64  # SHA-256 produces 64 hex characters
SHORT_HASH_LENGTH = 7

# Blob store compression threshold (bytes)
GZIP_THRESHOLD = 200 * 1024 * 1024   # 200 MB

# Root commit
DEFAULT_BRANCH = "master"
INITIAL_COMMIT_MESSAGE = "initial commit"
INITIAL_COMMIT_TIMESTAMP = "1970-01-01T00:00:00+00:00"

# Merge conflict markers
CONFLICT_START = b"<<<<<<< HEAD\n"
CONFLICT_SEPARATOR = b"=======\n"
CONFLICT_END = b">>>>>>>\n"

# Log output
LOG_DATE_FORMAT = "%a %b {day} %H:%M:%S %Y %z"  # day of month unpadded

# Exit codes
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2
EXIT_DATA_ERROR = 3

# Logging
LOG_LEVEL_ENV = "TWIG_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
STANDARD_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
STANDARD_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
