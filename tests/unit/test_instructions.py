"""Tests for instruction composition and message decomposition"""
import base64

import pytest
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import decode_transfer

from blink_actions.core.errors import (
    InvalidAddress,
    InvalidAmount,
    QuoteUnavailable,
    SerializationFailed,
)
from blink_actions.core.instructions import (
    MAX_BASE_UNITS,
    CurrencyUnit,
    compose_transfer,
    decompose_message,
    instruction_from_json,
    parse_amount,
    parse_decimal,
    parse_pubkey,
    require_instructions,
    sol_to_lamports,
    to_base_units,
)


class TestParsePubkey:

    def test_valid_address(self):
        key = Pubkey.new_unique()
        assert parse_pubkey(str(key)) == key

    def test_surrounding_whitespace_ignored(self):
        key = Pubkey.new_unique()
        assert parse_pubkey(f"  {key} ") == key

    def test_pubkey_passthrough(self):
        key = Pubkey.new_unique()
        assert parse_pubkey(key) is key

    @pytest.mark.parametrize("value", ["not-a-key", "0OIl", "abc", "", None, 42])
    def test_invalid_address(self, value):
        with pytest.raises(InvalidAddress):
            parse_pubkey(value, "account")

    def test_error_names_field(self):
        with pytest.raises(InvalidAddress, match="account"):
            parse_pubkey("abc", "account")


class TestAmounts:

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "NaN", "inf", "", True])
    def test_parse_decimal_rejects(self, value):
        with pytest.raises(InvalidAmount):
            parse_decimal(value)

    def test_sol_to_lamports(self):
        assert sol_to_lamports("0.05") == 50_000_000
        assert sol_to_lamports("1") == 1_000_000_000
        assert sol_to_lamports("0.000000001") == 1

    def test_sub_lamport_precision_rejected(self):
        with pytest.raises(InvalidAmount):
            sol_to_lamports("0.0000000001")

    def test_to_base_units_token_decimals(self):
        assert to_base_units("1.5", 6) == 1_500_000
        assert to_base_units("2", 5) == 200_000

    def test_parse_amount_lamports_unit(self):
        assert parse_amount("1000000", CurrencyUnit.LAMPORTS) == 1_000_000

    def test_fractional_lamports_rejected(self):
        with pytest.raises(InvalidAmount):
            parse_amount("1.5", CurrencyUnit.LAMPORTS)

    def test_u64_upper_bound(self):
        assert parse_amount(str(MAX_BASE_UNITS), CurrencyUnit.LAMPORTS) == MAX_BASE_UNITS
        with pytest.raises(InvalidAmount, match="too large"):
            parse_amount(str(MAX_BASE_UNITS + 1), CurrencyUnit.LAMPORTS)

    @pytest.mark.parametrize("amount", ["100000000000", "18446744074", "1e999999"])
    def test_sol_amount_beyond_u64(self, amount):
        with pytest.raises(InvalidAmount, match="too large"):
            sol_to_lamports(amount)


class TestComposeTransfer:

    def test_single_transfer(self, sender, recipient):
        instructions = compose_transfer(sender, recipient, 1_000_000)

        assert len(instructions) == 1
        ix = instructions[0]
        assert ix.program_id == SYSTEM_PROGRAM_ID
        assert ix.accounts[0] == AccountMeta(sender, is_signer=True, is_writable=True)
        assert ix.accounts[1] == AccountMeta(recipient, is_signer=False, is_writable=True)

        params = decode_transfer(ix)
        assert params["lamports"] == 1_000_000
        assert params["from_pubkey"] == sender
        assert params["to_pubkey"] == recipient

    @pytest.mark.parametrize("lamports", [0, -1, True, 1.5, "100", 2**64])
    def test_invalid_lamports(self, sender, recipient, lamports):
        with pytest.raises(InvalidAmount):
            compose_transfer(sender, recipient, lamports)


class TestQuotedInstructions:

    def test_require_instructions_empty(self):
        with pytest.raises(QuoteUnavailable, match="Jupiter"):
            require_instructions([], "Jupiter")

    def test_require_instructions_accepts_generator(self, sender, recipient):
        ixs = compose_transfer(sender, recipient, 5)
        assert require_instructions((ix for ix in ixs), "test") == ixs

    def test_instruction_from_json(self):
        program = Pubkey.new_unique()
        account = Pubkey.new_unique()
        ix = instruction_from_json({
            "programId": str(program),
            "accounts": [{"pubkey": str(account), "isSigner": False, "isWritable": True}],
            "data": base64.b64encode(b"\x09\x08").decode(),
        })

        assert ix.program_id == program
        assert ix.accounts == [AccountMeta(account, is_signer=False, is_writable=True)]
        assert bytes(ix.data) == b"\x09\x08"

    @pytest.mark.parametrize("payload", [
        {},
        {"programId": "bad"},
        {"programId": str(Pubkey.default()), "accounts": [{"pubkey": "x"}]},
        {"programId": str(Pubkey.default()), "data": "%%%"},
    ])
    def test_instruction_from_json_malformed(self, payload):
        with pytest.raises(QuoteUnavailable):
            instruction_from_json(payload)


class TestDecomposeMessage:

    def _instructions(self, payer):
        program = Pubkey.new_unique()
        return [
            *compose_transfer(payer, Pubkey.new_unique(), 42),
            Instruction(
                program,
                b"\x01",
                [
                    AccountMeta(payer, is_signer=True, is_writable=True),
                    AccountMeta(Pubkey.new_unique(), is_signer=False, is_writable=False),
                ],
            ),
        ]

    def test_v0_message(self, sender, blockhash):
        instructions = self._instructions(sender)
        message = MessageV0.try_compile(sender, instructions, [], blockhash)

        assert decompose_message(message) == instructions

    def test_legacy_message(self, sender):
        instructions = self._instructions(sender)
        message = Message(instructions, sender)

        assert decompose_message(message) == instructions

    def test_lookup_table_accounts(self, sender):
        program = Pubkey.new_unique()
        writable = Pubkey.new_unique()
        readonly = Pubkey.new_unique()
        table = AddressLookupTableAccount(Pubkey.new_unique(), [readonly, Pubkey.new_unique(), writable])
        instructions = [
            Instruction(
                program,
                b"\x07",
                [
                    AccountMeta(sender, is_signer=True, is_writable=True),
                    AccountMeta(readonly, is_signer=False, is_writable=False),
                    AccountMeta(writable, is_signer=False, is_writable=True),
                ],
            )
        ]
        message = MessageV0.try_compile(sender, instructions, [table], Hash.new_unique())
        assert len(message.address_table_lookups) == 1

        assert decompose_message(message, [table]) == instructions

    def test_unresolved_lookup_table(self, sender):
        account = Pubkey.new_unique()
        table = AddressLookupTableAccount(Pubkey.new_unique(), [account])
        instructions = [
            Instruction(
                Pubkey.new_unique(),
                b"",
                [
                    AccountMeta(sender, is_signer=True, is_writable=True),
                    AccountMeta(account, is_signer=False, is_writable=True),
                ],
            )
        ]
        message = MessageV0.try_compile(sender, instructions, [table], Hash.new_unique())

        with pytest.raises(SerializationFailed):
            decompose_message(message, [])
