import logging

import pytest
from eth_abi import encode
from eth_utils import keccak

from dex2_parsetx.dex2 import DEX2_METHODS, InputDecodeError, decode_input_data
from dex2_parsetx.sequence import ErrorKind, SequenceDecodeError
from dex2_parsetx.tokens import TokenInfo, build_token_table

TRADER = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
TRADER_CHECKSUM = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def call_data(signature: str, types: list[str], values: list) -> bytes:
    return keccak(text=signature)[:4] + encode(types, values)


def test_method_table_is_keyed_by_selector() -> None:
    names = {method.name for method in DEX2_METHODS.values()}

    assert names == {"depositEth", "depositToken", "withdrawEth", "withdrawToken", "exeSequence"}
    for selector, method in DEX2_METHODS.items():
        assert selector == keccak(text=method.signature)[:4]


def test_deposit_eth() -> None:
    data = call_data("depositEth(address)", ["address"], [TRADER])

    assert decode_input_data(data) == f"Deposit ETH by {TRADER_CHECKSUM}"


def test_deposit_token_formats_amount() -> None:
    data = call_data(
        "depositToken(address,uint16,uint256)",
        ["address", "uint16", "uint256"],
        [TRADER, 101, 1_500_000_000_000_000_000],
    )

    assert decode_input_data(data) == f"Deposit Token(KNC): 1.50000000 by {TRADER_CHECKSUM}"


def test_withdraw_eth_accepts_hex_string() -> None:
    data = call_data("withdrawEth(address)", ["address"], [TRADER])

    assert decode_input_data("0x" + data.hex()) == f"Withdraw ETH for {TRADER_CHECKSUM}"


def test_withdraw_token_uses_supplied_token_table() -> None:
    tokens = build_token_table({9: TokenInfo("NINE", 10**9)})
    data = call_data("withdrawToken(address,uint16)", ["address", "uint16"], [TRADER, 9])

    assert decode_input_data(data, tokens) == f"Withdraw Token (NINE) for {TRADER_CHECKSUM}"


def test_exe_sequence_returns_trace() -> None:
    header = 4 | (1_530_000_000 << 64)
    body = [0xDE01 | (7 << 16)]
    data = call_data("exeSequence(uint256,uint256[])", ["uint256", "uint256[]"], [header, body])

    assert decode_input_data(data) == (
        "newLogicTimeSec: 1530000000\n"
        "beginIndex: 4\n"
        "len(body): 1\n"
        "operation ConfirmDeposit:\n"
        "  depositIndex:  7\n"
    )


def test_exe_sequence_failure_carries_partial_trace() -> None:
    body = [0xDE01 | (7 << 16), 0xDE09]
    data = call_data("exeSequence(uint256,uint256[])", ["uint256", "uint256[]"], [0, body])

    with pytest.raises(SequenceDecodeError) as excinfo:
        decode_input_data(data)

    assert excinfo.value.kind is ErrorKind.INVALID_OPCODE
    assert excinfo.value.partial_trace.endswith("  depositIndex:  7\n\n")


def test_exe_sequence_with_empty_body() -> None:
    data = call_data("exeSequence(uint256,uint256[])", ["uint256", "uint256[]"], [0, []])

    with pytest.raises(SequenceDecodeError) as excinfo:
        decode_input_data(data)

    assert excinfo.value.kind is ErrorKind.EMPTY_BODY


@pytest.mark.parametrize("data", ["0x", "0x1234", b"\x01\x02\x03"])
def test_short_input_is_rejected(data) -> None:
    with pytest.raises(InputDecodeError, match="invalid data length"):
        decode_input_data(data)


def test_unknown_selector_is_rejected() -> None:
    with pytest.raises(InputDecodeError, match="0xdeadbeef"):
        decode_input_data("0xdeadbeef" + "00" * 32)


def test_truncated_arguments_are_rejected() -> None:
    data = keccak(text="depositEth(address)")[:4] + b"\x00" * 10

    with pytest.raises(InputDecodeError):
        decode_input_data(data)


def test_invalid_hex_is_rejected() -> None:
    with pytest.raises(InputDecodeError):
        decode_input_data("0xzz")


def test_method_name_is_logged_at_debug_only(caplog: pytest.LogCaptureFixture) -> None:
    data = call_data("withdrawEth(address)", ["address"], [TRADER])

    with caplog.at_level(logging.INFO, logger="dex2_parsetx.dex2"):
        decode_input_data(data)
    assert not caplog.records

    with caplog.at_level(logging.DEBUG, logger="dex2_parsetx.dex2"):
        decode_input_data(data)
    assert "Decoding withdrawEth call" in caplog.text
