from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import make_url

TEST_DB_MARKER = "test"
ALLOWED_LOCAL_HOSTS = frozenset(
    {
        "localhost",
        "127.0.0.1",
        "::1",
        "postgres",
        "affiliate_postgres",
    }
)


@dataclass(frozen=True, slots=True)
class IntegrationDbTarget:
    backend: str
    database_name: str
    host: str

    @property
    def rejection_reason(self) -> str | None:
        if self.backend != "postgresql":
            return "Integration tests run only against PostgreSQL."
        if not self.database_name:
            return "Database name is empty."
        if TEST_DB_MARKER not in self.database_name.lower():
            return f"Database name must contain '{TEST_DB_MARKER}'."
        if self.host not in ALLOWED_LOCAL_HOSTS:
            return "Host is not a local integration-test host."
        return None


def describe_integration_db(database_url: str) -> IntegrationDbTarget:
    parsed = make_url(database_url)
    return IntegrationDbTarget(
        backend=parsed.get_backend_name(),
        database_name=(parsed.database or "").strip(),
        host=(parsed.host or "").strip().lower(),
    )


def assert_safe_integration_db(database_url: str) -> None:
    target = describe_integration_db(database_url)
    reason = target.rejection_reason
    if reason is None:
        return

    raise RuntimeError(
        "Refusing to truncate ledger tables outside a test database.\n"
        f"Reason: {reason}\n"
        f"Resolved DB: name='{target.database_name}' host='{target.host}'"
    )
