"""SQL dialect used by the store adapter and the write path."""

from __future__ import annotations


class Dialect:
    """Base dialect that defines SQL quoting and placeholder behavior."""

    name: str = "generic"
    paramstyle: str = "qmark"
    quote_char: str = '"'
    supports_returning: bool = False

    def q(self, ident: str) -> str:
        """Quote SQL identifier."""

        escaped = ident.replace(self.quote_char, self.quote_char * 2)
        return f"{self.quote_char}{escaped}{self.quote_char}"

    def placeholder(self, key: str) -> str:
        """Return parameter placeholder for current param style."""

        if self.paramstyle == "named":
            return f":{key}"
        if self.paramstyle == "qmark":
            return "?"
        if self.paramstyle == "format":
            return "%s"
        raise ValueError(f"Unsupported paramstyle: {self.paramstyle}")

    def placeholders(self, count: int) -> str:
        """Comma-separated positional placeholders, e.g. for `IN (...)` lists."""

        if count <= 0:
            raise ValueError("placeholder count must be positive.")
        return ", ".join(self.placeholder(f"p{i}") for i in range(count))

    def returning_clause(self, pk_name: str) -> str:
        """Return `RETURNING` clause when dialect supports it."""

        if self.supports_returning:
            return f" RETURNING {self.q(pk_name)}"
        return ""


class SQLiteDialect(Dialect):
    """SQLite dialect (`?` parameters, supports `RETURNING`)."""

    name = "sqlite"
    paramstyle = "qmark"
    quote_char = '"'
    supports_returning = True
