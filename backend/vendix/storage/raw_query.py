"""
Read-only query text support for the raw-query escape hatch.

The embedded backend hands SELECT statements to SQLite unchanged. The
document store understands the subset reporting views actually use:

    SELECT * | field[, field...] FROM collection
        [WHERE field op value [AND field op value ...]]
        [ORDER BY field [ASC|DESC]]
        [LIMIT n]

where op is one of = != <> < <= > >= and value is a number, a quoted
string, a `?` placeholder (positional params) or `:name` (mapping params).
"""
from __future__ import annotations

import operator
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from ..validation import ValidationError

_SELECT_RE = re.compile(
    r"""^\s*SELECT\s+(?P<fields>\*|\w+(?:\s*,\s*\w+)*)
        \s+FROM\s+(?P<collection>\w+)
        (?:\s+WHERE\s+(?P<where>.+?))?
        (?:\s+ORDER\s+BY\s+(?P<order_field>\w+)(?:\s+(?P<order_dir>ASC|DESC))?)?
        (?:\s+LIMIT\s+(?P<limit>\d+|\?|:\w+))?
        \s*;?\s*$""",
    re.IGNORECASE | re.DOTALL | re.VERBOSE,
)

_CONDITION_RE = re.compile(
    r"""^\s*(?P<field>\w+)\s*(?P<op>=|!=|<>|<=|>=|<|>)\s*
        (?P<value>\?|:\w+|'(?:[^']|'')*'|-?\d+(?:\.\d+)?)\s*$""",
    re.VERBOSE,
)

_AND_RE = re.compile(r"\s+AND\s+", re.IGNORECASE)

_OPERATORS = {
    "=": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_WRITE_KEYWORDS = re.compile(
    r"\b(INSERT|UPDATE|DELETE|DROP|ALTER|CREATE|ATTACH|DETACH|PRAGMA|VACUUM)\b",
    re.IGNORECASE,
)

_QUOTED_RE = re.compile(r"'(?:[^']|'')*'" r'|"(?:[^"]|"")*"')


def ensure_select_statement(query_text: str) -> None:
    if not isinstance(query_text, str) or not query_text.strip():
        raise ValidationError("query text is required")
    # Keywords and semicolons inside literals or quoted identifiers are data
    bare = _QUOTED_RE.sub("''", query_text).strip()
    head = bare.split(None, 1)[0].upper()
    if head not in ("SELECT", "WITH"):
        raise ValidationError("only SELECT queries are allowed")
    if _WRITE_KEYWORDS.search(bare):
        raise ValidationError("only SELECT queries are allowed")
    if ";" in bare.rstrip(";"):
        raise ValidationError("only a single statement is allowed")


@dataclass
class Condition:
    field: str
    op: str
    value: Any

    def matches(self, doc: Mapping[str, Any]) -> bool:
        left = doc.get(self.field)
        # SQL semantics: comparisons with NULL are never true
        if left is None or self.value is None:
            return False
        try:
            return _OPERATORS[self.op](left, self.value)
        except TypeError:
            return False


@dataclass
class SelectQuery:
    collection: str
    fields: list[str] | None
    conditions: list[Condition] = field(default_factory=list)
    order_field: str | None = None
    descending: bool = False
    limit: int | None = None

    def apply(self, docs: Iterable[Mapping[str, Any]]) -> list[dict]:
        rows = [d for d in docs if all(c.matches(d) for c in self.conditions)]
        if self.order_field:
            key = self.order_field
            # NULLs sort first ascending, as in SQLite
            rows.sort(
                key=lambda d: (d.get(key) is not None, d.get(key) if d.get(key) is not None else 0),
                reverse=self.descending,
            )
        if self.limit is not None:
            rows = rows[: self.limit]
        if self.fields is None:
            return [dict(d) for d in rows]
        return [{f: d.get(f) for f in self.fields} for d in rows]


class _Params:
    def __init__(self, params: Sequence | Mapping | None):
        self.params = params
        self.position = 0

    def resolve(self, token: str) -> Any:
        if token == "?":
            if not isinstance(self.params, (list, tuple)):
                raise ValidationError("positional placeholder used without a parameter list")
            if self.position >= len(self.params):
                raise ValidationError("not enough query parameters")
            value = self.params[self.position]
            self.position += 1
            return value
        if token.startswith(":"):
            name = token[1:]
            if not isinstance(self.params, Mapping) or name not in self.params:
                raise ValidationError(f"missing query parameter: {name}")
            return self.params[name]
        if token.startswith("'"):
            return token[1:-1].replace("''", "'")
        return float(token) if "." in token else int(token)


def parse_select(query_text: str, params: Sequence | Mapping | None = None) -> SelectQuery:
    ensure_select_statement(query_text)
    match = _SELECT_RE.match(query_text)
    if match is None:
        raise ValidationError("unsupported query for the document store")

    resolver = _Params(params)

    conditions = []
    if match.group("where"):
        for part in _AND_RE.split(match.group("where")):
            cond = _CONDITION_RE.match(part)
            if cond is None:
                raise ValidationError(f"unsupported condition: {part.strip()}")
            conditions.append(
                Condition(cond.group("field"), cond.group("op"), resolver.resolve(cond.group("value")))
            )

    limit = None
    if match.group("limit"):
        raw_limit = resolver.resolve(match.group("limit"))
        try:
            limit = int(raw_limit)
        except (TypeError, ValueError):
            raise ValidationError("LIMIT must be an integer")
        if limit < 0:
            raise ValidationError("LIMIT must be >= 0")

    fields_group = match.group("fields").strip()
    fields = None if fields_group == "*" else [f.strip() for f in fields_group.split(",")]

    return SelectQuery(
        collection=match.group("collection"),
        fields=fields,
        conditions=conditions,
        order_field=match.group("order_field"),
        descending=(match.group("order_dir") or "").upper() == "DESC",
        limit=limit,
    )
