"""Tests for the Excel report."""

from datetime import date

import pytest
from openpyxl import load_workbook

from excel_export import export_excel
from tests.helpers import make_bill, make_group


@pytest.fixture
def workbook(tmp_path):
    lunch = make_bill("Lunch", "20.00", "Alice", ["Bob"])
    gas = make_bill("Gas", "40.00", "Bob", ["Alice"], group_id="g1", date="2024-03-12T08:00:00+00:00")
    old = make_bill("Old", "99.00", "Alice", ["Bob"], date="2023-12-31T08:00:00+00:00")
    trip = make_group("Road trip", ["Alice", "Bob"], [gas])
    path = tmp_path / "report.xlsx"
    export_excel([lunch, gas, old], [trip], "Alice", str(path), start=date(2024, 1, 1))
    return load_workbook(path)


def rows(ws):
    return [list(r) for r in ws.iter_rows(values_only=True)]


def test_sheet_names(workbook):
    assert workbook.sheetnames == ["Bills", "Road trip group", "Balances", "Summary", "Transfers"]


def test_bills_sheet(workbook):
    data = rows(workbook["Bills"])
    assert data[0] == ["date", "name", "payer", "currency", "split", "amount", "Alice", "Bob"]
    assert [r[1] for r in data[1:3]] == ["Lunch", "Gas"]
    assert data[3][0] == "TOTALS"
    assert data[3][5] == "=SUM(F2:F3)"


def test_group_sheet(workbook):
    data = rows(workbook["Road trip group"])
    assert data[0][0] == "Road trip"
    assert data[1][:2] == ["members", "Alice, Bob"]
    assert data[2][0] == "total"
    assert data[2][1] == pytest.approx(40)
    assert data[4][:2] == ["date", "name"]
    assert data[5][1] == "Gas"


def test_balances_and_transfers(workbook):
    # Lunch: Bob owes Alice 10; Gas: Alice owes Bob 20
    balances = rows(workbook["Balances"])
    assert balances[1][0] == "Bob"
    assert balances[1][1] == pytest.approx(-10)
    assert balances[1][2] == "Alice owes"

    transfers = rows(workbook["Transfers"])
    assert transfers[1][:2] == ["Alice", "Bob"]
    assert transfers[1][2] == pytest.approx(10)


def test_summary(workbook):
    summary = {r[0]: r[1:] for r in rows(workbook["Summary"])[1:]}
    assert summary["Alice"] == [pytest.approx(20), pytest.approx(30), pytest.approx(-10)]
    assert summary["Bob"] == [pytest.approx(40), pytest.approx(30), pytest.approx(10)]
