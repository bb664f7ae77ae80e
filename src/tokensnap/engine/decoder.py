"""Turn raw log dicts into LogEvents, one decoder per token standard.

Decoders never raise on a bad entry. They return a DecodeFailure that the
caller counts and skips.
"""

import logging
import re
from collections import Counter
from typing import Any, Iterable, Union

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

from tokensnap.domain.enums import DecodeFailure, EventKind, TokenStandard
from tokensnap.domain.models.events import ZERO_ADDRESS, LogEvent, LogPage

logger = logging.getLogger(__name__)

TRANSFER_TOPIC = "0x" + keccak(text="Transfer(address,address,uint256)").hex()
TRANSFER_SINGLE_TOPIC = "0x" + keccak(text="TransferSingle(address,address,address,uint256,uint256)").hex()
TRANSFER_BATCH_TOPIC = "0x" + keccak(text="TransferBatch(address,address,address,uint256[],uint256[])").hex()

_POSITION_FIELDS = ["block_number", "log_index"]

# Topic filters and the minimal field selection per standard
EVENT_TOPICS: dict[TokenStandard, list[str]] = {
    TokenStandard.ERC721: [TRANSFER_TOPIC],
    TokenStandard.ERC20: [TRANSFER_TOPIC],
    TokenStandard.ERC1155: [TRANSFER_SINGLE_TOPIC, TRANSFER_BATCH_TOPIC],
}

LOG_FIELDS: dict[TokenStandard, list[str]] = {
    TokenStandard.ERC721: ["topic0", "topic1", "topic2", "topic3", *_POSITION_FIELDS],
    TokenStandard.ERC20: ["topic0", "topic1", "topic2", "data", *_POSITION_FIELDS],
    TokenStandard.ERC1155: ["topic0", "topic1", "topic2", "topic3", "data", *_POSITION_FIELDS],
}

_HEX_WORD = re.compile(r"^0x[0-9a-fA-F]{1,64}$")
_HEX_DATA = re.compile(r"^0x(?:[0-9a-fA-F]{2})*$")

DecodeOutcome = Union[list[LogEvent], DecodeFailure]


def parse_address(topic: Any) -> str | None:
    """Low 20 bytes of a 32-byte topic as a lowercase 0x address."""
    if not isinstance(topic, str) or not _HEX_WORD.match(topic):
        return None
    return "0x" + topic[2:].rjust(64, "0")[-40:].lower()


def parse_uint(topic: Any) -> int | None:
    if not isinstance(topic, str) or not _HEX_WORD.match(topic):
        return None
    return int(topic, 16)


def _payload(data: Any) -> bytes | DecodeFailure:
    if not data or data == "0x":
        return DecodeFailure.EMPTY_PAYLOAD
    if not isinstance(data, str) or not _HEX_DATA.match(data):
        return DecodeFailure.MALFORMED_PAYLOAD
    return bytes.fromhex(data[2:])


def _position(log: dict[str, Any]) -> dict[str, int | None]:
    block_number = log.get("block_number")
    log_index = log.get("log_index")
    return {
        "block_number": block_number if isinstance(block_number, int) else None,
        "log_index": log_index if isinstance(log_index, int) else None,
    }


def decode_erc721(log: dict[str, Any]) -> DecodeOutcome:
    """Transfer(from, to, tokenId) with all three arguments indexed."""
    if not log.get("topic2") or not log.get("topic3"):
        return DecodeFailure.MISSING_FIELDS

    to = parse_address(log["topic2"])
    token_id = parse_uint(log["topic3"])
    if to is None or token_id is None:
        return DecodeFailure.BAD_TOPIC

    from_topic = log.get("topic1")
    frm = parse_address(from_topic) if from_topic else ZERO_ADDRESS
    if frm is None:
        return DecodeFailure.BAD_TOPIC

    return [LogEvent(
        standard=EventKind.ERC721,
        from_address=frm,
        to_address=to,
        token_id=token_id,
        amount=1,
        **_position(log),
    )]


def decode_erc20(log: dict[str, Any]) -> DecodeOutcome:
    """Transfer(from, to, value) with value in the data payload."""
    if not log.get("topic1") or not log.get("topic2"):
        return DecodeFailure.MISSING_FIELDS

    frm = parse_address(log["topic1"])
    to = parse_address(log["topic2"])
    if frm is None or to is None:
        return DecodeFailure.BAD_TOPIC

    payload = _payload(log.get("data"))
    if isinstance(payload, DecodeFailure):
        return payload
    if len(payload) > 32:
        return DecodeFailure.MALFORMED_PAYLOAD

    return [LogEvent(
        standard=EventKind.ERC20,
        from_address=frm,
        to_address=to,
        amount=int.from_bytes(payload, "big"),
        **_position(log),
    )]


def _erc1155_parties(log: dict[str, Any]) -> tuple[str, str] | DecodeFailure:
    # topic1 is the operator, which plays no part in balances
    if not log.get("topic2") or not log.get("topic3"):
        return DecodeFailure.MISSING_FIELDS
    frm = parse_address(log["topic2"])
    to = parse_address(log["topic3"])
    if frm is None or to is None:
        return DecodeFailure.BAD_TOPIC
    return frm, to


def decode_erc1155_single(log: dict[str, Any]) -> DecodeOutcome:
    """TransferSingle(operator, from, to, id, value); data is exactly (id, value)."""
    parties = _erc1155_parties(log)
    if isinstance(parties, DecodeFailure):
        return parties

    payload = _payload(log.get("data"))
    if isinstance(payload, DecodeFailure):
        return payload
    if len(payload) != 64:
        return DecodeFailure.MALFORMED_PAYLOAD

    frm, to = parties
    return [LogEvent(
        standard=EventKind.ERC1155_SINGLE,
        from_address=frm,
        to_address=to,
        token_id=int.from_bytes(payload[:32], "big"),
        amount=int.from_bytes(payload[32:], "big"),
        **_position(log),
    )]


def decode_batch_payload(payload: bytes) -> list[tuple[int, int]] | DecodeFailure:
    """ABI-decode (uint256[] ids, uint256[] values) into (id, value) pairs."""
    # two head offsets + two length words at minimum
    if len(payload) < 128:
        return DecodeFailure.MALFORMED_PAYLOAD
    try:
        ids, values = abi_decode(["uint256[]", "uint256[]"], payload)
    except (DecodingError, OverflowError, ValueError):
        return DecodeFailure.MALFORMED_PAYLOAD

    if len(ids) != len(values):
        return DecodeFailure.ARRAY_LENGTH_MISMATCH
    if not ids:
        return DecodeFailure.EMPTY_BATCH
    return list(zip(ids, values))


def decode_erc1155_batch(log: dict[str, Any]) -> DecodeOutcome:
    """TransferBatch(operator, from, to, ids[], values[]); one LogEvent per pair."""
    parties = _erc1155_parties(log)
    if isinstance(parties, DecodeFailure):
        return parties

    payload = _payload(log.get("data"))
    if isinstance(payload, DecodeFailure):
        return payload

    pairs = decode_batch_payload(payload)
    if isinstance(pairs, DecodeFailure):
        return pairs

    frm, to = parties
    position = _position(log)
    return [
        LogEvent(
            standard=EventKind.ERC1155_BATCH,
            from_address=frm,
            to_address=to,
            token_id=token_id,
            amount=amount,
            **position,
        )
        for token_id, amount in pairs
    ]


def decode_log(log: dict[str, Any], standard: TokenStandard) -> DecodeOutcome:
    if standard == TokenStandard.ERC721:
        return decode_erc721(log)
    if standard == TokenStandard.ERC20:
        return decode_erc20(log)

    topic0 = (log.get("topic0") or "").lower()
    if topic0 == TRANSFER_SINGLE_TOPIC:
        return decode_erc1155_single(log)
    if topic0 == TRANSFER_BATCH_TOPIC:
        return decode_erc1155_batch(log)
    return DecodeFailure.UNKNOWN_SIGNATURE


class DecodeStats:
    """Tally of dropped log entries by reason."""

    def __init__(self) -> None:
        self.decoded = 0
        self.failures: Counter[DecodeFailure] = Counter()

    @property
    def skipped(self) -> int:
        return sum(self.failures.values())

    def record(self, outcome: DecodeOutcome) -> None:
        if isinstance(outcome, DecodeFailure):
            self.failures[outcome] += 1
        else:
            self.decoded += len(outcome)


def decode_pages(pages: Iterable[LogPage], standard: TokenStandard) -> tuple[list[LogEvent], DecodeStats]:
    """Decode every log in source order, skipping and counting the malformed ones."""
    events: list[LogEvent] = []
    stats = DecodeStats()
    for page in pages:
        for log in page.logs:
            outcome = decode_log(log, standard)
            stats.record(outcome)
            if not isinstance(outcome, DecodeFailure):
                events.extend(outcome)

    if stats.skipped:
        logger.info(
            "Skipped %d malformed %s logs: %s",
            stats.skipped, standard.value, {k.value: v for k, v in stats.failures.items()},
        )
    return events, stats
