import json

import pytest

from canteen.extensions import db
from canteen.models import Customer, LedgerTransaction
from canteen.services import ledger_service


def test_seed_demo_is_repeatable(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed-demo"])
    assert result.exit_code == 0, result.output
    assert "PASS Created customer 1001" in result.output

    result = runner.invoke(args=["system", "seed-demo"])
    assert result.exit_code == 0, result.output
    assert "SKIP Customer 1001 already exists" in result.output

    db.session.expire_all()
    assert db.session.query(Customer).count() == 2
    assert db.session.query(LedgerTransaction).count() == 2


def test_verify_reports_drift(app, customer):
    runner = app.test_cli_runner()
    assert "PASS" in runner.invoke(args=["ledger", "verify"]).output

    db.session.query(Customer).filter_by(customer_id=customer.customer_id).update({"balance_cents": 1})
    db.session.commit()

    result = runner.invoke(args=["ledger", "verify"])
    assert result.exit_code == 1
    assert f"FAIL {customer.customer_id}" in result.output


def test_recent(app, customer):
    ledger_service.process_deposit(customer.customer_id, 150, note="top-up")
    result = app.test_cli_runner().invoke(args=["ledger", "recent", "--limit", "1"])
    assert result.exit_code == 0, result.output
    assert "deposit" in result.output
    assert "1.50" in result.output


def test_export_import_round_trip(app, customer, tmp_path):
    runner = app.test_cli_runner()
    path = tmp_path / "backup.json"
    cid = customer.customer_id

    result = runner.invoke(args=["ledger", "export", "--output", str(path)])
    assert result.exit_code == 0, result.output
    assert json.loads(path.read_text())["customers"][0]["customer_id"] == cid

    ledger_service.process_deposit(cid, 1000)

    result = runner.invoke(args=["ledger", "import", str(path), "--yes"])
    assert result.exit_code == 0, result.output
    db.session.expire_all()
    assert db.session.query(Customer).filter_by(customer_id=cid).one().balance_cents == 2500


@pytest.mark.parametrize("command", ["verify", "recent"])
def test_bad_customer_id_is_a_usage_error(app, customer, command):
    result = app.test_cli_runner().invoke(args=["ledger", command, "--customer-id", "12"])
    assert result.exit_code == 1
    assert "Customer ID must be exactly 4 digits" in result.output
    assert "Traceback" not in result.output
