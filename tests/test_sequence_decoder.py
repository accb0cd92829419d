import pytest

from dex2_parsetx.operations import (
    ConfirmDeposit,
    HardCancelOrder,
    InitiateWithdraw,
    SequenceHeader,
    SetFeeRates,
    SetFeeRebatePercent,
)
from dex2_parsetx.sequence import ErrorKind, SequenceDecodeError, decode, decode_sequence

TRADER = 0x5AAEB6053F3E94C9B9A09F33669435E7EF1BEAED


def op_word(opcode: int, payload: int = 0) -> int:
    return opcode | (payload << 16)


def header_word(begin_index: int, new_logic_time_sec: int) -> int:
    return begin_index | (new_logic_time_sec << 64)


def test_confirm_deposit_end_to_end() -> None:
    text, error = decode(None, [op_word(0xDE01, 7)])

    assert error is None
    assert text == "len(body): 1\noperation ConfirmDeposit:\n  depositIndex:  7\n"


@pytest.mark.parametrize("deposit_index", [0, 1, 12345678901234567890, (1 << 240) - 1])
def test_confirm_deposit_prints_any_240_bit_index(deposit_index: int) -> None:
    result = decode_sequence(None, [op_word(0xDE01, deposit_index)])

    assert result.ok
    assert f"operation ConfirmDeposit:\n  depositIndex:  {deposit_index}\n" in result.text
    assert result.operations[0].operation == ConfirmDeposit(deposit_index=deposit_index)


def test_header_lines_precede_body_length() -> None:
    text, error = decode(header_word(42, 1_530_000_000), [op_word(0xDE01, 1)])

    assert error is None
    assert text.startswith("newLogicTimeSec: 1530000000\nbeginIndex: 42\nlen(body): 1\n")


def test_header_is_exposed_on_trace() -> None:
    result = decode_sequence(header_word(3, 4), [op_word(0xDE01)])

    assert result.header == SequenceHeader(begin_index=3, new_logic_time_sec=4)


@pytest.mark.parametrize("bit", [128, 129, 200, 255])
def test_header_with_high_bits_is_invalid(bit: int) -> None:
    text, error = decode(header_word(1, 2) | (1 << bit), [op_word(0xDE01)])

    assert isinstance(error, SequenceDecodeError)
    assert error.kind is ErrorKind.INVALID_HEADER
    assert text == ""


def test_empty_body_fails_without_trace() -> None:
    text, error = decode(header_word(1, 2), [])

    assert text == ""
    assert error is not None
    assert error.kind is ErrorKind.EMPTY_BODY


@pytest.mark.parametrize("opcode", [0x0001, 0xDF01, 0xAD01, 0x01DE, 0xFFFF])
def test_wrong_magic_number(opcode: int) -> None:
    text, error = decode(None, [op_word(opcode, (1 << 240) - 1)])

    assert error is not None
    assert error.kind is ErrorKind.WRONG_MAGIC_NUMBER
    assert text == "len(body): 1\n"


@pytest.mark.parametrize("opcode", [0xDE00, 0xDE07, 0xDEFF])
def test_unknown_opcode_with_magic_prefix(opcode: int) -> None:
    _, error = decode(None, [op_word(opcode)])

    assert error is not None
    assert error.kind is ErrorKind.INVALID_OPCODE
    assert f"{opcode:#x}" in str(error)


def test_initiate_withdraw_fields_and_repack() -> None:
    payload = TRADER | (101 << 160) | (250_000_000 << 176)
    result = decode_sequence(None, [op_word(0xDE02, payload)])

    assert result.ok
    assert result.text == (
        "len(body): 1\n"
        "operation InitiateWithdraw:\n"
        "  traderAddr: 0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed\n"
        "  tokenCode: 101\n"
        "  amountE8: 250000000\n"
    )
    operation = result.operations[0].operation
    assert operation == InitiateWithdraw(trader_addr=TRADER, token_code=101, amount_e8=250_000_000)
    assert operation.pack() == payload


def test_initiate_withdraw_prints_zero_address_unpadded() -> None:
    text, error = decode(None, [op_word(0xDE02, 5 << 176)])

    assert error is None
    assert "  traderAddr: 0x0\n" in text
    assert "  amountE8: 5\n" in text


@pytest.mark.parametrize(
    "opcode, name, operation",
    [
        (0xDE04, "HardCancelOrder", HardCancelOrder()),
        (0xDE05, "SetFeeRates", SetFeeRates()),
        (0xDE06, "SetFeeRebatePercent", SetFeeRebatePercent()),
    ],
)
def test_unimplemented_operations_emit_placeholder(opcode: int, name: str, operation) -> None:
    result = decode_sequence(None, [op_word(opcode, (1 << 240) - 1)])

    assert result.ok
    assert result.text == f"len(body): 1\noperation {name}:\n  <to be implemented>\n"
    assert result.operations[0].operation == operation
    assert result.operations[0].word_count == 1


def test_operations_are_separated_by_blank_lines() -> None:
    text, error = decode(None, [op_word(0xDE01, 1), op_word(0xDE05), op_word(0xDE01, 2)])

    assert error is None
    assert text == (
        "len(body): 3\n"
        "operation ConfirmDeposit:\n"
        "  depositIndex:  1\n"
        "\n"
        "operation SetFeeRates:\n"
        "  <to be implemented>\n"
        "\n"
        "operation ConfirmDeposit:\n"
        "  depositIndex:  2\n"
    )


def test_error_keeps_trace_of_earlier_operations() -> None:
    result = decode_sequence(None, [op_word(0xDE01, 7), 0x1234])

    assert result.error is not None
    assert result.error.kind is ErrorKind.WRONG_MAGIC_NUMBER
    assert result.text == "len(body): 2\noperation ConfirmDeposit:\n  depositIndex:  7\n\n"
    assert result.error.partial_trace == result.text
    assert [op.start for op in result.operations] == [0]


def test_raise_for_error_reraises_decode_error() -> None:
    result = decode_sequence(None, [0])

    with pytest.raises(SequenceDecodeError) as excinfo:
        result.raise_for_error()

    assert excinfo.value.kind is ErrorKind.WRONG_MAGIC_NUMBER


@pytest.mark.parametrize(
    "header, body",
    [
        (-1, [op_word(0xDE01)]),
        (None, [1 << 256]),
        (None, [op_word(0xDE01), -5]),
    ],
)
def test_out_of_range_words_are_caller_errors(header, body) -> None:
    with pytest.raises(ValueError):
        decode(header, body)


def test_accepts_any_sequence_type() -> None:
    text_from_list, _ = decode(None, [op_word(0xDE01, 9)])
    text_from_tuple, _ = decode(None, (op_word(0xDE01, 9),))

    assert text_from_list == text_from_tuple
