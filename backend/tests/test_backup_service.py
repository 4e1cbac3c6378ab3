import copy
import json

import pytest

from canteen.errors import ConstraintViolation, ValidationError
from canteen.extensions import db
from canteen.models import Customer, LedgerTransaction, Product
from canteen.services import backup_service, correction_service, ledger_service, reporting_service, settings_service


@pytest.fixture
def populated(make_customer, make_product, coffee, staff_type):
    settings_service.update_app_settings(brand_name="Canteen", global_discount_flat="0.10")
    make_customer("1001", 2500, type_id=staff_type.id)
    make_customer("1002", 800)
    make_product("SNACK", 120, barcode="111")

    first = ledger_service.process_purchase("1001", product_id="COFFEE", selected_options={"size": "l"})
    ledger_service.process_purchase("1002", barcode="111")
    correction_service.update_purchase_transaction(first.transaction.transaction_id, customer_id="1001", product_id="SNACK")
    ledger_service.process_withdrawal("1002", 100)


def test_export_shape(populated):
    snapshot = backup_service.export_snapshot()

    assert snapshot["format"] == backup_service.SNAPSHOT_FORMAT
    assert snapshot["version"] == backup_service.SNAPSHOT_VERSION
    assert snapshot["settings"]["brand_name"] == "Canteen"
    assert snapshot["settings"]["global_discount_flat_cents"] == 10
    assert [c["customer_id"] for c in snapshot["customers"]] == ["1001", "1002"]
    assert snapshot["customers"][0]["type_name"] == "Staff"
    assert {p["product_id"] for p in snapshot["products"]} == {"COFFEE", "SNACK"}
    assert len(snapshot["transactions"]) == 6
    # JSON-serializable as is
    json.dumps(snapshot)


def test_export_then_import_restores_store(populated):
    snapshot = backup_service.export_snapshot()
    before = {c.customer_id: c.balance_cents for c in db.session.query(Customer).all()}

    ledger_service.process_deposit("1001", 5000)
    ledger_service.process_deposit("1002", 5000)

    counts = backup_service.import_snapshot(json.loads(json.dumps(snapshot)))

    assert counts == {"customer_types": 1, "customers": 2, "products": 2, "transactions": 6}
    db.session.expire_all()
    after = {c.customer_id: c.balance_cents for c in db.session.query(Customer).all()}
    assert after == before
    assert reporting_service.verify_balances() == []

    replaced = db.session.query(LedgerTransaction).filter(LedgerTransaction.edit_parent_transaction_id.isnot(None)).one()
    parent = db.session.query(LedgerTransaction).filter_by(transaction_id=replaced.edit_parent_transaction_id).one()
    assert parent.voided is True
    assert parent.void_note == f"Replaced by {replaced.transaction_id}"

    # the restored store keeps working
    result = ledger_service.process_purchase("1002", product_id="SNACK")
    assert result.transaction.amount_cents == -110


def test_import_rejects_balance_drift_and_changes_nothing(populated):
    snapshot = backup_service.export_snapshot()
    tampered = copy.deepcopy(snapshot)
    tampered["customers"][0]["balance_cents"] += 1
    tampered["products"] = []

    with pytest.raises(ConstraintViolation) as exc:
        backup_service.import_snapshot(tampered)

    assert exc.value.details["customers"][0]["difference_cents"] == 1
    db.session.expire_all()
    assert db.session.query(Product).count() == 2
    assert db.session.query(LedgerTransaction).count() == 6


@pytest.mark.parametrize(
    "mutate",
    [
        lambda s: s.update(format="something-else"),
        lambda s: s.update(version=99),
        lambda s: s["transactions"][0].update(amount_cents="12.50"),
        lambda s: s["transactions"][0].update(type="refund"),
        lambda s: s["transactions"][0].pop("customer_id"),
        lambda s: s["customers"][0].update(type_name="Nobody"),
        lambda s: s["transactions"][0].update(customer_id="9999"),
        lambda s: s["transactions"][0].update(edit_parent_transaction_id="TX-MISSING"),
        lambda s: s["transactions"][0].update(edit_parent_transaction_id=s["transactions"][-1]["transaction_id"]),
        lambda s: s["settings"].update(global_discount_percent_bps=50000),
        lambda s: s["settings"].update(global_discount_flat_cents=-10),
        lambda s: s["customer_types"][0].update(discount_percent_bps=-1),
        lambda s: s["customer_types"][0].update(discount_flat_cents=-5),
        lambda s: s["customers"][0].update(discount_percent_bps=10001),
        lambda s: s["products"][0].update(discount_flat_cents=-1),
        lambda s: s["products"][0].update(active="false"),
        lambda s: s["transactions"][0].update(voided="false"),
        lambda s: s["transactions"][0].update(voided=0),
    ],
)
def test_import_rejects_malformed_snapshot(populated, mutate):
    snapshot = backup_service.export_snapshot()
    mutate(snapshot)

    with pytest.raises(ValidationError):
        backup_service.import_snapshot(snapshot)

    db.session.expire_all()
    assert db.session.query(LedgerTransaction).count() == 6


def test_import_into_empty_store(db_session):
    snapshot = {
        "format": backup_service.SNAPSHOT_FORMAT,
        "version": backup_service.SNAPSHOT_VERSION,
        "settings": {},
        "customer_types": [],
        "customers": [{"customer_id": "4242", "name": "Imported", "balance_cents": 300}],
        "products": [],
        "transactions": [{
            "transaction_id": "TXN_legacy_1",
            "customer_id": "4242",
            "type": "deposit",
            "amount_cents": 300,
            "balance_after_cents": 300,
            "timestamp": "2024-01-01T12:00:00Z",
        }],
    }

    backup_service.import_snapshot(snapshot)

    tx = db.session.query(LedgerTransaction).filter_by(transaction_id="TXN_legacy_1").one()
    assert tx.customer_id == "4242"
    assert tx.timestamp.year == 2024
    assert reporting_service.verify_balances() == []
