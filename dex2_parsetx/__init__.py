"""Dex2 transaction and operation-sequence decoding package."""

from .bitfield import BitFieldReader
from .dex2 import DEX2_METHODS, Dex2Method, InputDecodeError, decode_input_data
from .operations import (
    ConfirmDeposit,
    ExistingOrderRef,
    HardCancelOrder,
    InitiateWithdraw,
    MatchOrders,
    NewOrder,
    SequenceHeader,
    SetFeeRates,
    SetFeeRebatePercent,
)
from .sequence import (
    DecodedOperation,
    ErrorKind,
    SequenceDecodeError,
    SequenceTrace,
    decode,
    decode_sequence,
)
from .tokens import DEFAULT_TOKENS, TokenInfo, format_token, normalize_amount

__all__ = [
    "BitFieldReader",
    "DEX2_METHODS",
    "Dex2Method",
    "InputDecodeError",
    "decode_input_data",
    "ConfirmDeposit",
    "ExistingOrderRef",
    "HardCancelOrder",
    "InitiateWithdraw",
    "MatchOrders",
    "NewOrder",
    "SequenceHeader",
    "SetFeeRates",
    "SetFeeRebatePercent",
    "DecodedOperation",
    "ErrorKind",
    "SequenceDecodeError",
    "SequenceTrace",
    "decode",
    "decode_sequence",
    "DEFAULT_TOKENS",
    "TokenInfo",
    "format_token",
    "normalize_amount",
]
