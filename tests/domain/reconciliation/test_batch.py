from __future__ import annotations

from accountsync.domain.model import AccountType
from accountsync.domain.reconciliation import (
    AccountInput,
    BatchValidationError,
    Err,
    Ok,
    ReconciliationStep,
    Upserter,
    order_batch,
    validate_batch,
)
from tests.helpers.accounts import make_entry


def test_validate_batch_accepts_mappings_and_models() -> None:
    model = AccountInput.model_validate(make_entry("0xb"))

    result = validate_batch([make_entry("0xa", gold=5, account_type="validator"), model])

    assert isinstance(result, Ok)
    first, second = result.value
    assert first.address == "0xa"
    assert first.gold == 5
    assert first.account_type is AccountType.VALIDATOR
    assert second is model


def test_validate_batch_enumerates_every_offending_entry() -> None:
    missing_address = make_entry("0xa")
    del missing_address["address"]
    negative = make_entry("0xb", gold=-1)

    result = validate_batch([missing_address, make_entry("0xc"), negative])

    assert isinstance(result, Err)
    error = result.error
    assert isinstance(error, BatchValidationError)
    assert error.step is ReconciliationStep.VALIDATE_BATCH
    assert [issue.index for issue in error.issues] == [0, 2]
    assert error.issues[0].address is None
    assert "address" in error.issues[0].message
    assert error.issues[1].address == "0xb"
    assert "gold" in error.issues[1].message


def test_validate_batch_rejects_blank_address_and_unknown_type() -> None:
    result = validate_batch([make_entry("   "), make_entry("0xa", account_type="whale")])

    assert isinstance(result, Err)
    assert len(result.error.issues) == 2


def test_validate_batch_accepts_amounts_beyond_64_bits() -> None:
    huge = 2**200

    result = validate_batch([make_entry("0xa", gold=huge, rewards=str(huge))])

    assert isinstance(result, Ok)
    assert result.value[0].gold == huge
    assert result.value[0].rewards == huge


def test_order_batch_keeps_last_occurrence_and_sorts() -> None:
    entries = [
        AccountInput.model_validate(make_entry("0xc", gold=1)),
        AccountInput.model_validate(make_entry("0xa", gold=2)),
        AccountInput.model_validate(make_entry("0xc", gold=3)),
    ]

    ordered = order_batch(entries)

    assert [entry.address for entry in ordered] == ["0xa", "0xc"]
    assert ordered[1].gold == 3


def test_prepare_validates_before_ordering() -> None:
    prepared = Upserter.prepare([make_entry("0xb"), make_entry("0xa"), make_entry("0xb")])

    assert isinstance(prepared, Ok)
    assert [entry.address for entry in prepared.value] == ["0xa", "0xb"]
