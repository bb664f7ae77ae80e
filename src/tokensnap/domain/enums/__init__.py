from tokensnap.domain.enums.decode_failure import DecodeFailure
from tokensnap.domain.enums.export_format import ExportFormat
from tokensnap.domain.enums.network import Network
from tokensnap.domain.enums.token_standard import EventKind, TokenStandard

__all__ = [
    "DecodeFailure",
    "EventKind",
    "ExportFormat",
    "Network",
    "TokenStandard",
]
