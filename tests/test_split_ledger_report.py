"""Tests for the report command."""

import argparse

import pytest
from openpyxl import load_workbook

from ledger import Ledger
from split_ledger_report import build_parser, run
from store import JsonFileKeyValueStore, LedgerStore


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("SPLIT_LEDGER_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("SPLIT_LEDGER_OWNER", raising=False)
    return tmp_path / "data"


def test_parser_options():
    args = build_parser().parse_args(["--owner", "Alice", "--xlsx", "r.xlsx", "--start", "2024-01-01"])
    assert args.owner == "Alice"
    assert args.xlsx == "r.xlsx"
    assert args.csv is None


@pytest.mark.asyncio
async def test_run_prints_balances_and_exports(data_dir, tmp_path, capsys):
    ledger = Ledger(LedgerStore(JsonFileKeyValueStore(str(data_dir))), "Alice")
    await ledger.add_bill("Lunch", "20.00", "Alice", ["Bob"])
    await ledger.add_bill("Movie", "30.00", "Carol", ["Alice"])

    xlsx = tmp_path / "report.xlsx"
    csv_path = tmp_path / "bills.csv"
    args = build_parser().parse_args([
        "--owner", "Alice", "--data-dir", str(data_dir), "--xlsx", str(xlsx), "--csv", str(csv_path),
    ])
    loaded = await run(args)

    out = capsys.readouterr().out
    assert "Bob owes you 10.00" in out
    assert "You owe Carol 15.00" in out
    assert len(loaded.bills) == 2
    assert "Balances" in load_workbook(xlsx).sheetnames
    assert csv_path.read_text(encoding="utf-8").count("\n") == 3


@pytest.mark.asyncio
async def test_run_with_empty_data(data_dir, capsys):
    args = argparse.Namespace(owner=None, data_dir=str(data_dir), xlsx=None, csv=None, start=None, end=None)
    ledger = await run(args)
    assert ledger.owner_id == "You"
    assert capsys.readouterr().out == ""
