from enum import Enum

# Upper bound on calls pulled into one lag analysis run
LAG_ANALYSIS_CALL_LIMIT = 500

# Transcripts at or under this many characters hold no turns worth analyzing
MIN_TRANSCRIPT_LENGTH = 10

DEFAULT_LOOKBACK_DAYS = 7

SHORT_CALL_SECONDS = 10
LONG_CALL_SECONDS = 60


class CallType(str, Enum):
    ALL = "all"
    WELCOME = "welcome"
    DAILY = "daily"


class CallStatus(str, Enum):
    COMPLETED = "completed"
