"""Tests for the expense store: CRUD, ownership, filtering and pagination."""

import math
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from expense_api.core.errors import NotFoundError, ValidationError
from expense_api.models.expense import ExpenseCreate, ExpenseQuery, ExpenseUpdate
from expense_api.models.user import User
from expense_api.services import expense_service


@pytest.fixture
def owner(session):
    user = User(name="Ann", email="ann@x.com", hashed_password="x")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def _create(client, headers, **fields):
    payload = {"amount": 10.0, "category": "Food & Dining", "date": "2024-01-15"}
    payload.update(fields)
    resp = client.post("/expenses", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _parse_timestamp(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TestExpenseModels:
    @pytest.mark.parametrize("amount", [0, -1, -0.01])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(ValueError):
            ExpenseCreate(amount=amount, category="Food", date="2024-01-15")
        with pytest.raises(ValueError):
            ExpenseUpdate(amount=amount)

    def test_bare_date_is_midnight(self):
        expense = ExpenseCreate(amount=1, category="Food", date="2024-01-15")
        assert expense.date == datetime(2024, 1, 15, tzinfo=timezone.utc)

    def test_aware_date_normalized_to_utc(self):
        expense = ExpenseCreate(amount=1, category="Food", date="2024-01-15T12:00:00+02:00")
        assert expense.date == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def test_query_end_date_covers_whole_day(self):
        query = ExpenseQuery(start_date="2024-01-01", end_date="2024-01-31")
        assert query.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert query.end_date.date() == datetime(2024, 1, 31).date()
        assert query.end_date.hour == 23
        assert query.end_date.tzinfo == timezone.utc

    @pytest.mark.parametrize("amount", [float("inf"), float("nan"), 1e308, 1_000_000_000.01])
    def test_amount_must_be_finite_and_bounded(self, amount):
        with pytest.raises(ValueError):
            ExpenseCreate(amount=amount, category="Food", date="2024-01-15")
        with pytest.raises(ValueError):
            ExpenseUpdate(amount=amount)

    @pytest.mark.parametrize("amount", [0.004, 1.005, 10.123])
    def test_amount_allows_at_most_two_decimals(self, amount):
        with pytest.raises(ValueError):
            ExpenseCreate(amount=amount, category="Food", date="2024-01-15")

    def test_largest_amount_accepted(self):
        assert ExpenseCreate(amount=1_000_000_000, category="Food", date="2024-01-15").amount == 1_000_000_000

    def test_query_rejects_inverted_ranges(self):
        with pytest.raises(ValueError):
            ExpenseQuery(start_date="2024-02-01", end_date="2024-01-01")
        with pytest.raises(ValueError):
            ExpenseQuery(min_amount=10, max_amount=5)

    def test_query_offset(self):
        assert ExpenseQuery(page=3, limit=20).offset == 40


class TestExpenseService:
    def test_create_and_get(self, session, owner):
        created = expense_service.create_expense(
            session, owner.id, ExpenseCreate(amount=45.99, category="Food & Dining", date="2024-01-15", note="Lunch")
        )
        fetched = expense_service.get_expense(session, owner.id, created.id)
        assert fetched.amount == 45.99
        assert fetched.note == "Lunch"
        assert fetched.user_id == owner.id

    def test_timestamps_are_aware_utc(self, session, owner):
        created = expense_service.create_expense(
            session, owner.id, ExpenseCreate(amount=5, category="Food", date="2024-01-15T12:00:00+02:00")
        )
        session.expire_all()
        fetched = expense_service.get_expense(session, owner.id, created.id)
        assert fetched.date == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        assert fetched.created_at.tzinfo is not None
        assert fetched.created_at.utcoffset().total_seconds() == 0
        assert fetched.updated_at.utcoffset().total_seconds() == 0

    def test_update_is_partial(self, session, owner):
        created = expense_service.create_expense(
            session, owner.id, ExpenseCreate(amount=5, category="Food", date="2024-01-15", note="Snack")
        )
        updated = expense_service.update_expense(session, owner.id, created.id, ExpenseUpdate(amount=7.5))
        assert updated.amount == 7.5
        assert updated.category == "Food"
        assert updated.note == "Snack"

    def test_update_can_clear_note_but_not_amount(self, session, owner):
        created = expense_service.create_expense(
            session, owner.id, ExpenseCreate(amount=5, category="Food", date="2024-01-15", note="Snack")
        )
        updated = expense_service.update_expense(session, owner.id, created.id, ExpenseUpdate(note=None))
        assert updated.note is None
        with pytest.raises(ValidationError):
            expense_service.update_expense(session, owner.id, created.id, ExpenseUpdate(amount=None))

    def test_missing_expense(self, session, owner):
        with pytest.raises(NotFoundError):
            expense_service.get_expense(session, owner.id, uuid.uuid4())
        with pytest.raises(NotFoundError):
            expense_service.delete_expense(session, owner.id, uuid.uuid4())

    def test_pages_cover_every_record_once(self, session, owner):
        # Same date and amount everywhere so ordering relies on the id tie-break
        for _ in range(23):
            expense_service.create_expense(
                session, owner.id, ExpenseCreate(amount=1, category="Food", date="2024-01-15")
            )
        seen = []
        first_page, pagination = expense_service.list_expenses(session, owner.id, ExpenseQuery(limit=5))
        assert pagination.total == 23
        assert pagination.total_pages == math.ceil(23 / 5) == 5
        for page in range(1, pagination.total_pages + 1):
            expenses, _ = expense_service.list_expenses(session, owner.id, ExpenseQuery(page=page, limit=5))
            seen.extend(e.id for e in expenses)
        assert len(seen) == 23
        assert len(set(seen)) == 23

    def test_empty_list_has_zero_pages(self, session, owner):
        expenses, pagination = expense_service.list_expenses(session, owner.id, ExpenseQuery())
        assert expenses == []
        assert pagination.total == 0
        assert pagination.total_pages == 0


class TestExpenseEndpoints:
    def test_create_returns_camel_case_record(self, client, auth_headers):
        data = _create(client, auth_headers, amount=45.99, note="Lunch at restaurant")
        assert data["amount"] == 45.99
        assert data["category"] == "Food & Dining"
        assert data["note"] == "Lunch at restaurant"
        assert data["date"].startswith("2024-01-15T00:00:00")
        for field in ("date", "createdAt", "updatedAt"):
            assert _parse_timestamp(data[field]).utcoffset() == timedelta(0)
        assert {"id", "userId", "createdAt", "updatedAt"} <= set(data)

    @pytest.mark.parametrize(
        "payload",
        [
            {"amount": 0, "category": "Food", "date": "2024-01-15"},
            {"amount": -3, "category": "Food", "date": "2024-01-15"},
            {"amount": 0.004, "category": "Food", "date": "2024-01-15"},
            {"amount": 1e308, "category": "Food", "date": "2024-01-15"},
            {"category": "Food", "date": "2024-01-15"},
            {"amount": 5, "date": "2024-01-15"},
            {"amount": 5, "category": "Food"},
            {"amount": 5, "category": "Food", "date": "yesterday"},
            {"amount": 5, "category": "Food", "date": "2024-01-15", "note": "x" * 501},
        ],
    )
    def test_create_validation(self, client, auth_headers, payload):
        resp = client.post("/expenses", json=payload, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    @pytest.mark.parametrize("token", ["Infinity", "-Infinity", "NaN"])
    def test_create_rejects_non_finite_json_amount(self, client, auth_headers, token):
        body = '{"amount": ' + token + ', "category": "Food", "date": "2024-01-15"}'
        resp = client.post(
            "/expenses", content=body, headers={**auth_headers, "Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert client.get("/expenses", headers=auth_headers).json()["data"]["pagination"]["total"] == 0

    def test_update_rejects_non_finite_json_amount(self, client, auth_headers):
        expense = _create(client, auth_headers)
        resp = client.patch(
            f"/expenses/{expense['id']}",
            content='{"amount": Infinity}',
            headers={**auth_headers, "Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert client.get(f"/expenses/{expense['id']}", headers=auth_headers).json()["data"]["amount"] == 10.0

    def test_category_is_free_form(self, client, auth_headers):
        data = _create(client, auth_headers, category="Something Unlisted")
        assert data["category"] == "Something Unlisted"

    def test_update_put_and_patch(self, client, auth_headers):
        expense = _create(client, auth_headers)
        put = client.put(f"/expenses/{expense['id']}", json={"amount": 12.5}, headers=auth_headers)
        assert put.status_code == 200
        assert put.json()["data"]["amount"] == 12.5

        patch = client.patch(f"/expenses/{expense['id']}", json={"note": "Dinner"}, headers=auth_headers)
        assert patch.status_code == 200
        assert patch.json()["data"]["amount"] == 12.5
        assert patch.json()["data"]["note"] == "Dinner"

    def test_update_rejects_non_positive_amount(self, client, auth_headers):
        expense = _create(client, auth_headers)
        resp = client.put(f"/expenses/{expense['id']}", json={"amount": 0}, headers=auth_headers)
        assert resp.status_code == 400
        unchanged = client.get(f"/expenses/{expense['id']}", headers=auth_headers)
        assert unchanged.json()["data"]["amount"] == 10.0

    def test_delete(self, client, auth_headers):
        expense = _create(client, auth_headers)
        resp = client.delete(f"/expenses/{expense['id']}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Expense deleted successfully"
        assert client.get(f"/expenses/{expense['id']}", headers=auth_headers).status_code == 404
        assert client.delete(f"/expenses/{expense['id']}", headers=auth_headers).status_code == 404

    def test_expenses_are_private(self, client, register):
        _, ann = register("Ann", "ann@x.com")
        _, bob = register("Bob", "bob@x.com")
        expense = _create(client, ann)

        assert client.get(f"/expenses/{expense['id']}", headers=bob).status_code == 404
        assert client.put(f"/expenses/{expense['id']}", json={"amount": 1}, headers=bob).status_code == 404
        assert client.delete(f"/expenses/{expense['id']}", headers=bob).status_code == 404
        assert client.get("/expenses", headers=bob).json()["data"]["pagination"]["total"] == 0

    def test_list_defaults_to_date_descending(self, client, auth_headers):
        for day in ("2024-01-10", "2024-03-01", "2024-02-05"):
            _create(client, auth_headers, date=day)
        resp = client.get("/expenses", headers=auth_headers)
        assert resp.status_code == 200
        dates = [e["date"][:10] for e in resp.json()["data"]["expenses"]]
        assert dates == ["2024-03-01", "2024-02-05", "2024-01-10"]
        assert resp.json()["data"]["pagination"] == {"page": 1, "limit": 10, "total": 3, "totalPages": 1}

    def test_list_filters(self, client, auth_headers):
        _create(client, auth_headers, amount=5, category="Food", date="2024-01-10")
        _create(client, auth_headers, amount=50, category="Food", date="2024-01-31T18:30:00Z")
        _create(client, auth_headers, amount=20, category="Travel", date="2024-02-02")

        def total(**params):
            resp = client.get("/expenses", params=params, headers=auth_headers)
            assert resp.status_code == 200, resp.text
            return resp.json()["data"]["pagination"]["total"]

        assert total(category="Food") == 2
        assert total(startDate="2024-01-01", endDate="2024-01-31") == 2
        assert total(startDate="2024-02-01") == 1
        assert total(endDate="2024-01-10") == 1
        assert total(minAmount=10) == 2
        assert total(minAmount=5, maxAmount=20) == 2
        assert total(category="Food", minAmount=10) == 1

    def test_list_sorting(self, client, auth_headers):
        for amount in (30, 10, 20):
            _create(client, auth_headers, amount=amount)
        resp = client.get("/expenses", params={"sortBy": "amount", "sortOrder": "asc"}, headers=auth_headers)
        assert [e["amount"] for e in resp.json()["data"]["expenses"]] == [10, 20, 30]

    def test_list_pagination(self, client, auth_headers):
        for i in range(7):
            _create(client, auth_headers, amount=i + 1)
        resp = client.get("/expenses", params={"page": 2, "limit": 3}, headers=auth_headers)
        data = resp.json()["data"]
        assert len(data["expenses"]) == 3
        assert data["pagination"] == {"page": 2, "limit": 3, "total": 7, "totalPages": 3}

    @pytest.mark.parametrize(
        "params",
        [
            {"page": 0},
            {"limit": 101},
            {"limit": "ten"},
            {"sortBy": "note"},
            {"sortOrder": "sideways"},
            {"startDate": "not-a-date"},
            {"startDate": "2024-02-01", "endDate": "2024-01-01"},
            {"minAmount": 10, "maxAmount": 1},
            {"colour": "red"},
        ],
    )
    def test_list_rejects_bad_query(self, client, auth_headers, params):
        resp = client.get("/expenses", params=params, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_requires_auth(self, client):
        assert client.get("/expenses").status_code == 401
        assert client.post("/expenses", json={"amount": 1, "category": "Food", "date": "2024-01-01"}).status_code == 401

    def test_deleting_category_keeps_expenses(self, client, auth_headers):
        category = client.post("/categories", json={"name": "Pets"}, headers=auth_headers).json()["data"]
        expense = _create(client, auth_headers, category="Pets", amount=30)

        resp = client.delete(f"/categories/{category['id']}", headers=auth_headers)
        assert resp.status_code == 200

        fetched = client.get(f"/expenses/{expense['id']}", headers=auth_headers)
        assert fetched.status_code == 200
        assert fetched.json()["data"] == expense
