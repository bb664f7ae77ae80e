from enum import Enum


class DecodeFailure(str, Enum):
    """Why a raw log entry was dropped instead of becoming a LogEvent."""

    MISSING_FIELDS = "MISSING_FIELDS"
    BAD_TOPIC = "BAD_TOPIC"
    EMPTY_PAYLOAD = "EMPTY_PAYLOAD"
    MALFORMED_PAYLOAD = "MALFORMED_PAYLOAD"
    ARRAY_LENGTH_MISMATCH = "ARRAY_LENGTH_MISMATCH"
    EMPTY_BATCH = "EMPTY_BATCH"
    UNKNOWN_SIGNATURE = "UNKNOWN_SIGNATURE"
