"""Tests for the contract store and change detection."""
import pytest

from conftest import DOC_URL, make_contract
from contractwatch.persistence.store import ContractNotFound, ContractStore, PersistenceError


def test_save_and_read_back(store):
    """Saved contracts are returned with every field."""
    store.save_contracts([
        make_contract("10892/2024", link="https://x/1", contracting_body="Ayuntamiento de Getafe"),
        make_contract("13/25"),
    ])

    assert store.count() == 2
    stored = store.get_contract("10892/2024")
    assert stored.description == "Suministro de pantallas LED"
    assert stored.contracting_body == "Ayuntamiento de Getafe"
    assert stored.link == "https://x/1"
    assert store.get_contract("missing") is None


def test_new_contracts_are_the_unknown_ids(store):
    """Only identifiers not yet stored are new, in input order."""
    store.save_contracts([make_contract("10892/2024")])
    batch = [make_contract("13/25"), make_contract("10892/2024"), make_contract("2024/25")]

    assert [c.id for c in store.get_new_contracts(batch)] == ["13/25", "2024/25"]
    assert store.get_new_contracts([]) == []


def test_first_save_records_no_change(store):
    """A contract seen for the first time has no status history."""
    changes = store.save_contracts([make_contract("10892/2024")])

    assert changes == []
    assert store.get_all_status_changes() == []


def test_save_records_status_transition(store):
    """Saving a known contract with a new status records one change."""
    store.save_contracts([make_contract("10892/2024", "Publicada")])
    changes = store.save_contracts([make_contract("10892/2024", "Evaluación Previa")])

    assert len(changes) == 1
    assert changes[0].old_status == "Publicada"
    assert changes[0].new_status == "Evaluación Previa"
    assert str(changes[0]) == "10892/2024: Publicada → Evaluación Previa"
    assert store.get_contract("10892/2024").status == "Evaluación Previa"


def test_save_same_status_records_nothing(store):
    """Re-saving an unchanged contract adds no history."""
    store.save_contracts([make_contract("10892/2024")])
    assert store.save_contracts([make_contract("10892/2024")]) == []


def test_duplicate_ids_in_one_batch(store):
    """A batch listing the same identifier twice stores one contract."""
    changes = store.save_contracts([
        make_contract("10892/2024", "Publicada"),
        make_contract("10892/2024", "Evaluación Previa"),
    ])

    assert store.count() == 1
    assert [c.new_status for c in changes] == ["Evaluación Previa"]



def test_failed_save_rolls_back_whole_batch(store):
    """A row that cannot be written undoes every other write of its batch."""
    store.save_contracts([make_contract("10892/2024", "Publicada")])
    bad = make_contract("2024/25")
    bad.amount = {"x": 1}

    with pytest.raises(PersistenceError) as exc_info:
        store.save_contracts([
            make_contract("13/25"),
            make_contract("10892/2024", "Adjudicada"),
            bad,
        ])

    assert exc_info.value.operation == "save_contracts"
    assert store.count() == 1
    assert store.get_contract("13/25") is None
    assert store.get_contract("10892/2024").status == "Publicada"
    assert store.get_all_status_changes() == []


def test_failed_reconciliation_rolls_back(store):
    """Reconciliation applies all status updates or none."""
    store.save_contracts([make_contract("10892/2024", "Publicada"), make_contract("13/25", "Publicada")])
    bad = make_contract("13/25")
    bad.status = {"x": 1}

    with pytest.raises(PersistenceError):
        store.check_and_update_status_changes([make_contract("10892/2024", "Adjudicada"), bad])

    assert store.get_contract("10892/2024").status == "Publicada"
    assert store.get_contract("13/25").status == "Publicada"
    assert store.get_all_status_changes() == []


def test_check_updates_known_contracts_only(store):
    """Reconciliation updates stored statuses and ignores unknown ids."""
    store.save_contracts([make_contract("10892/2024", "Publicada"), make_contract("13/25", "Publicada")])

    changes = store.check_and_update_status_changes([
        make_contract("10892/2024", "Adjudicada"),
        make_contract("13/25", "Publicada"),
        make_contract("2024/25", "Adjudicada"),
    ])

    assert [(c.contract_id, c.old_status, c.new_status) for c in changes] == [
        ("10892/2024", "Publicada", "Adjudicada"),
    ]
    assert store.get_contract("10892/2024").status == "Adjudicada"
    assert store.get_contract("2024/25") is None
    assert store.count() == 2


def test_upsert_keeps_stored_document_links(store):
    """A later save without document links does not clear stored ones."""
    pliego = DOC_URL.format("P1")
    store.save_contracts([make_contract("10892/2024", pliego_link=pliego)])
    store.save_contracts([make_contract("10892/2024", description="Suministro actualizado")])

    stored = store.get_contract("10892/2024")
    assert stored.pliego_link == pliego
    assert stored.description == "Suministro actualizado"


def test_status_history_newest_first(store):
    """Per-contract history is ordered newest first."""
    store.save_contracts([make_contract("10892/2024", "Publicada")])
    store.save_contracts([make_contract("10892/2024", "Evaluación Previa")])
    store.save_contracts([make_contract("10892/2024", "Adjudicada")])

    history = store.get_status_changes("10892/2024")
    assert [c.new_status for c in history] == ["Adjudicada", "Evaluación Previa"]


def test_recent_changes_and_changed_contracts(store):
    """Changes from the last day are reported once per contract."""
    store.save_contracts([make_contract("10892/2024", "Publicada"), make_contract("13/25", "Publicada")])
    store.save_contracts([make_contract("10892/2024", "Evaluación Previa")])
    store.save_contracts([make_contract("10892/2024", "Adjudicada")])

    assert len(store.get_recent_status_changes()) == 2
    assert [c.id for c in store.get_contracts_with_status_changes()] == ["10892/2024"]


def test_delete_contract_keeps_history(store):
    """Deleting a contract leaves its status history in place."""
    store.save_contracts([make_contract("10892/2024", "Publicada")])
    store.save_contracts([make_contract("10892/2024", "Adjudicada")])

    store.delete_contract("10892/2024")

    assert store.get_contract("10892/2024") is None
    assert len(store.get_status_changes("10892/2024")) == 1


def test_delete_missing_contract_raises(store):
    """Deleting an unknown identifier is an error."""
    with pytest.raises(ContractNotFound) as exc_info:
        store.delete_contract("missing")

    assert exc_info.value.contract_id == "missing"


def test_delete_all_contracts(store):
    """Delete-all reports how many contracts were removed."""
    store.save_contracts([make_contract("10892/2024"), make_contract("13/25")])

    assert store.delete_all_contracts() == 2
    assert store.count() == 0
    assert store.delete_all_contracts() == 0


def test_stores_are_isolated():
    """Each in-memory store has its own database."""
    first = ContractStore.from_url("sqlite://")
    second = ContractStore.from_url("sqlite://")

    first.save_contracts([make_contract("10892/2024")])

    assert first.count() == 1
    assert second.count() == 0


def test_round_trip_preserves_fields(store):
    """A stored contract reads back with identical field values."""
    record = make_contract(
        "S-02968-2025",
        "Evaluación Previa",
        submission_date="01/04/2025",
        contracting_body="Diputación de Cádiz",
        link="https://x/detalle",
        pliego_link=DOC_URL.format("P1"),
        anuncio_link=DOC_URL.format("A1"),
    )
    store.save_contracts([record])

    stored = store.get_contract("S-02968-2025").to_dict()
    expected = record.to_dict()
    stored.pop("scraped_at")
    expected.pop("scraped_at")
    assert stored == expected


def test_resave_is_not_new(store):
    """A second batch with a known identifier yields no new contracts."""
    store.save_contracts([make_contract("A1", "Publicada")])
    second = [make_contract("A1", "Adjudicada")]

    assert store.get_new_contracts(second) == []
    changes = store.save_contracts(second)
    assert [(c.contract_id, c.old_status, c.new_status) for c in changes] == [("A1", "Publicada", "Adjudicada")]
