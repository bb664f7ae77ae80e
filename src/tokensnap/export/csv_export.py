"""CSV export, one fixed column schema per token standard."""

import csv
import io

from tokensnap.domain.enums import TokenStandard
from tokensnap.domain.models.snapshot import Snapshot
from tokensnap.export.rows import CSV_COLUMNS, entry_row

_FILENAME_SUFFIX = {
    TokenStandard.ERC721: "snapshot",
    TokenStandard.ERC1155: "erc1155-snapshot",
    TokenStandard.ERC20: "erc20-snapshot",
}


def write_csv(snapshot: Snapshot) -> str:
    columns = CSV_COLUMNS[snapshot.token_standard]
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=columns, lineterminator="\n")
    writer.writeheader()
    for entry in snapshot.entries:
        writer.writerow(entry_row(entry))
    return buf.getvalue()


def csv_filename(snapshot: Snapshot) -> str:
    suffix = _FILENAME_SUFFIX[snapshot.token_standard]
    if snapshot.is_partial:
        suffix += "-partial"
    return f"{snapshot.contract_address}-{suffix}.csv"
