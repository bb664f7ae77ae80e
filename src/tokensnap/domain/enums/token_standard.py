from enum import Enum


class TokenStandard(str, Enum):
    """Token standard of the snapshotted contract. Values match the `type` query param."""

    ERC721 = "erc721"
    ERC1155 = "erc1155"
    ERC20 = "erc20"

    @property
    def supports_merkle(self) -> bool:
        return self is not TokenStandard.ERC1155

    @property
    def cacheable(self) -> bool:
        return self is TokenStandard.ERC721


class EventKind(str, Enum):
    """Decoded transfer-family event variant."""

    ERC721 = "ERC721"
    ERC1155_SINGLE = "ERC1155Single"
    ERC1155_BATCH = "ERC1155Batch"
    ERC20 = "ERC20"
