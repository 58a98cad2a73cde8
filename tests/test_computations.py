"""Unit tests for balance aggregation and report computations."""

from datetime import date

import pytest

from computations import (
    balance_matrix,
    compute_summary,
    compute_transfers,
    filter_bills_by_date,
    filter_bills_by_period,
    filter_friends,
    friend_balances,
    group_total,
    net_balances,
    search_bills,
    sort_bills,
)
from models import Friend, SplitPolicy
from money import Money
from tests.helpers import make_bill, make_group


def m(text):
    return Money.parse(text)


class TestNetBalances:
    """Per-counterparty netting relative to self."""

    def test_zero_sum_netting(self):
        bill = make_bill("Dinner", "30.00", "P", ["P", "A", "B"])

        assert net_balances([bill], "P") == {"A": m("10.00"), "B": m("10.00")}
        assert net_balances([bill], "A") == {"P": m("-10.00")}
        assert net_balances([bill], "B") == {"P": m("-10.00")}

    def test_bill_without_self_ignored(self):
        bill = make_bill("Taxi", "20.00", "Bob", ["Carol"])
        assert net_balances([bill], "Alice") == {}

    def test_netting_across_bills(self):
        bills = [
            make_bill("Lunch", "20.00", "Alice", ["Bob"]),
            make_bill("Movie", "30.00", "Bob", ["Alice"]),
        ]
        # Bob owes 10 for lunch, Alice owes 15 for the movie
        assert net_balances(bills, "Alice") == {"Bob": m("-5.00")}
        assert net_balances(bills, "Bob") == {"Alice": m("5.00")}

    def test_custom_allocation_used(self):
        bill = make_bill("Hotel", "100.00", "Alice", ["Bob"], SplitPolicy.CUSTOM,
                         {"Alice": "25.00", "Bob": "75.00"})
        assert net_balances([bill], "Alice") == {"Bob": m("75.00")}

    def test_settled_counterparty_kept_as_zero(self):
        bills = [
            make_bill("A", "20.00", "Alice", ["Bob"]),
            make_bill("B", "20.00", "Bob", ["Alice"]),
        ]
        assert net_balances(bills, "Alice") == {"Bob": Money.zero()}

    def test_matrix_antisymmetric(self):
        bills = [
            make_bill("Dinner", "100.00", "Alice", ["Alice", "Bob", "Carol"]),
            make_bill("Taxi", "17.35", "Bob", ["Carol", "Dave"]),
            make_bill("Tickets", "60.00", "Carol", ["Alice", "Dave"], SplitPolicy.CUSTOM,
                      {"Carol": "10.00", "Alice": "20.00", "Dave": "30.00"}),
        ]
        matrix = balance_matrix(bills)
        people = list(matrix)
        assert set(people) == {"Alice", "Bob", "Carol", "Dave"}
        for a in people:
            for b in people:
                if a == b:
                    continue
                ab = matrix[a].get(b, Money.zero())
                ba = matrix[b].get(a, Money.zero())
                assert ab == -ba

    def test_per_bill_nets_to_zero(self):
        bill = make_bill("Trip", "99.99", "Carol", ["Alice", "Bob", "Carol", "Dave"])
        total = Money.zero()
        for p in bill.participants:
            total = total + sum(net_balances([bill], p).values(), Money.zero())
        assert total == Money.zero()

    def test_friend_balances_seeded(self):
        bill = make_bill("Lunch", "20.00", "Alice", ["Bob"])
        result = friend_balances([bill], "Alice", ["Bob", "Carol", "Alice"])
        assert result == {"Bob": m("10.00"), "Carol": Money.zero()}


class TestGroupTotal:

    def test_sum_of_amounts_not_netting(self):
        bills = [
            make_bill("Groceries", "45.50", "Alice", ["Bob"], group_id="g1"),
            make_bill("Gas", "30.25", "Bob", ["Alice"], group_id="g1"),
        ]
        group = make_group("Trip", ["Alice", "Bob"], bills)
        assert group_total(group) == m("75.75")

    def test_empty_group(self):
        assert group_total(make_group("Empty", ["Alice"])) == Money.zero()


class TestSummaryAndTransfers:

    def test_summary(self):
        bills = [make_bill("Dinner", "30.00", "Alice", ["Bob", "Carol"])]
        summary = compute_summary(bills)
        assert summary["Alice"] == {"paid": m("30.00"), "consumed": m("10.00"), "net": m("20.00")}
        assert summary["Bob"]["net"] == m("-10.00")

    def test_transfers_settle_net(self):
        net = {"Alice": m("20.00"), "Bob": m("-10.00"), "Carol": m("-10.00")}
        transfers = compute_transfers(net)
        assert sorted(transfers) == [("Bob", "Alice", m("10.00")), ("Carol", "Alice", m("10.00"))]

    def test_transfers_empty_when_settled(self):
        assert compute_transfers({"Alice": Money.zero()}) == []


class TestHistoryFilters:

    @pytest.fixture
    def bills(self):
        return [
            make_bill("Coffee", "4.50", "Alice", ["Bob"], date="2024-03-01T08:00:00+00:00"),
            make_bill("Rent", "1200.00", "Bob", ["Alice"], date="2024-03-14T08:00:00+00:00",
                      note="march rent"),
            make_bill("Pizza", "25.00", "Carol", ["Alice", "Bob"], date="2024-02-20T20:00:00Z"),
        ]

    def test_date_range(self, bills):
        result = filter_bills_by_date(bills, date(2024, 3, 1), date(2024, 3, 10))
        assert [b.name for b in result] == ["Coffee"]

    def test_this_month(self, bills):
        result = filter_bills_by_period(bills, "this_month", today=date(2024, 3, 15))
        assert [b.name for b in result] == ["Coffee", "Rent"]

    def test_this_week_starts_sunday(self, bills):
        # 2024-03-15 is a Friday; week starts Sunday 2024-03-10
        result = filter_bills_by_period(bills, "this_week", today=date(2024, 3, 15))
        assert [b.name for b in result] == ["Rent"]

    def test_unknown_period(self, bills):
        with pytest.raises(ValueError):
            filter_bills_by_period(bills, "yesterday")

    def test_search(self, bills):
        assert [b.name for b in search_bills(bills, "RENT")] == ["Rent"]
        assert [b.name for b in search_bills(bills, "carol")] == ["Pizza"]
        assert len(search_bills(bills, "  ")) == 3

    def test_sort(self, bills):
        assert [b.name for b in sort_bills(bills, "date")] == ["Rent", "Coffee", "Pizza"]
        assert [b.name for b in sort_bills(bills, "amount")] == ["Rent", "Pizza", "Coffee"]
        assert [b.name for b in sort_bills(bills, "name")] == ["Coffee", "Pizza", "Rent"]

    def test_filter_friends(self):
        friends = [Friend("Bob"), Friend("Carol"), Friend("Dave")]
        balances = {"Bob": m("25.00"), "Carol": m("-3.00")}
        assert [f.name for f in filter_friends(friends, balances, "settled")] == ["Dave"]
        assert [f.name for f in filter_friends(friends, balances, "owes")] == ["Bob", "Carol"]
        assert [f.name for f in filter_friends(friends, balances, "high_balance")] == ["Bob"]
        assert len(filter_friends(friends, balances)) == 3
        with pytest.raises(ValueError):
            filter_friends(friends, balances, "richest")
