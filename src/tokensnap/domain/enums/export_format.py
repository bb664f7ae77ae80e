from enum import Enum


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    MERKLE = "merkle"
