import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from storefront.db.transaction import is_retryable, run_in_transaction
from storefront.domain.errors import ConflictError, ValidationError


class FakeSession:
    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class TestRunInTransaction:
    def test_commits_once_on_success(self):
        session = FakeSession()
        assert run_in_transaction(session, lambda db, x: x * 2, 21) == 42
        assert (session.commits, session.rollbacks) == (1, 0)

    def test_retries_stale_data_then_succeeds(self):
        session = FakeSession()
        calls = []

        def flaky(db):
            calls.append(1)
            if len(calls) < 3:
                raise StaleDataError("version mismatch")
            return "done"

        assert run_in_transaction(session, flaky) == "done"
        assert len(calls) == 3
        assert session.rollbacks == 2
        assert session.commits == 1

    def test_gives_up_with_conflict_error(self):
        session = FakeSession()

        def always_stale(db):
            raise StaleDataError("version mismatch")

        with pytest.raises(ConflictError, match="modified concurrently"):
            run_in_transaction(session, always_stale)
        assert session.commits == 0
        assert session.rollbacks == 3

    def test_domain_errors_are_not_retried(self):
        session = FakeSession()
        calls = []

        def invalid(db):
            calls.append(1)
            raise ValidationError("Discount cannot be negative")

        with pytest.raises(ValidationError):
            run_in_transaction(session, invalid)
        assert len(calls) == 1
        assert session.rollbacks == 1


class DriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def operational_error(message, sqlstate=None):
    return OperationalError("UPDATE orders SET total=?", {}, DriverError(message, sqlstate))


class TestRetryableErrors:
    @pytest.mark.parametrize(
        "error",
        [
            StaleDataError("version mismatch"),
            operational_error("could not serialize access", "40001"),
            operational_error("deadlock detected", "40P01"),
            operational_error("database is locked"),
        ],
    )
    def test_conflicts_are_retryable(self, error):
        assert is_retryable(error)

    @pytest.mark.parametrize(
        "error",
        [
            operational_error("connection refused", "08006"),
            operational_error("could not connect to server"),
            ValidationError("Quantity must be at least 1"),
        ],
    )
    def test_other_failures_are_not(self, error):
        assert not is_retryable(error)

    def test_serialization_failure_exhausts_into_conflict(self):
        session = FakeSession()

        def serialization_failure(db):
            raise operational_error("could not serialize access", "40001")

        with pytest.raises(ConflictError, match="modified concurrently"):
            run_in_transaction(session, serialization_failure)
        assert session.rollbacks == 3

    def test_unreachable_database_is_not_reported_as_conflict(self):
        session = FakeSession()
        calls = []

        def unreachable(db):
            calls.append(1)
            raise operational_error("connection refused", "08006")

        with pytest.raises(OperationalError, match="connection refused"):
            run_in_transaction(session, unreachable)
        assert len(calls) == 1
        assert (session.commits, session.rollbacks) == (0, 1)
