"""Token identifiers and metadata"""
import re
from dataclasses import dataclass

# Token addresses are kept as lower-cased 0x-prefixed hex strings
TokenAddress = str

_ADDRESS_RE = re.compile(r'^0x[0-9a-fA-F]{40}$')


def is_address(value: str) -> bool:
    """Check whether value is a 20-byte hex address"""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def normalize_address(value: str) -> TokenAddress:
    """Validate an address and return its canonical lower-case form"""
    if not is_address(value):
        raise ValueError(f"Invalid token address: {value!r}")
    return value.lower()


@dataclass(frozen=True)
class TokenInfo:
    """Metadata for a supported token"""
    address: TokenAddress
    symbol: str
    decimals: int
    chain_id: int = 1

    def __post_init__(self):
        object.__setattr__(self, 'address', normalize_address(self.address))
