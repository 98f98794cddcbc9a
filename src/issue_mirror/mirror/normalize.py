"""Field normalization applied to every record before it is stored.

GitHub payloads carry a lot of data that is either derivable from the
record identity (self URLs), redundant (per-user API URLs, a one-element
``assignees`` list next to ``assignee``) or volatile (milestone counters
and timestamps).  Storing it would bloat the mirror and, worse, make
records look changed when nothing meaningful changed.

The rules are a declarative table: one ``Schema`` (a tuple of rules) per
entity kind, applied in order by a single generic transform.  Two kinds of
rule exist:

* ``Drop(field, when)`` -- remove *field* if present and ``when(value)``
  holds (the default condition always holds).
* ``Nested(field, schema, many)`` -- apply *schema* to the sub-record (or,
  with ``many=True``, to each element of the list) stored under *field*.

Normalization is pure: the input is never mutated, the same input always
yields the same output and the same changed flag, and applying it twice is
the same as applying it once.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Union


def _always(value: Any) -> bool:
    return True


def _is_zero(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value == 0


def _no_reactions(value: Any) -> bool:
    """A reaction summary with a zero or absent total carries nothing."""
    return isinstance(value, dict) and not value.get("total_count")


def _single_entry(value: Any) -> bool:
    return isinstance(value, list) and len(value) == 1


@dataclass(frozen=True)
class Drop:
    field: str
    when: Callable[[Any], bool] = _always


@dataclass(frozen=True)
class Nested:
    field: str
    schema: Schema
    many: bool = False


Rule = Union[Drop, Nested]
Schema = tuple[Rule, ...]


def _drop(*fields: str) -> tuple[Drop, ...]:
    return tuple(Drop(name) for name in fields)


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

REACTION_KINDS = (
    "+1",
    "-1",
    "laugh",
    "confused",
    "heart",
    "hooray",
    "rocket",
    "eyes",
)

USER: Schema = _drop(
    "avatar_url",
    "html_url",
    "gravatar_id",
    "url",
    "events_url",
    "following_url",
    "followers_url",
    "gists_url",
    "organizations_url",
    "received_events_url",
    "repos_url",
    "starred_url",
    "subscriptions_url",
)

LABEL: Schema = _drop("url", "color")

# Only the identity and title of a milestone are worth keeping.
MILESTONE: Schema = _drop(
    "url",
    "html_url",
    "labels_url",
    "state",
    "description",
    "creator",
    "created_at",
    "updated_at",
    "closed_at",
    "due_on",
    "open_issues",
    "closed_issues",
)

REACTIONS: Schema = (Drop("url"),) + tuple(
    Drop(kind, _is_zero) for kind in REACTION_KINDS
)

ISSUE: Schema = (
    *_drop("url", "html_url"),
    Nested("user", USER),
    Nested("labels", LABEL, many=True),
    Drop("reactions", _no_reactions),
    Nested("reactions", REACTIONS),
    Nested("assignee", USER),
    Nested("milestone", MILESTONE),
    # Redundant with "assignee" when there is only one.
    Drop("assignees", _single_entry),
    Nested("assignees", USER, many=True),
)

COMMENT: Schema = (
    *_drop("url", "html_url", "issue_url"),
    Nested("user", USER),
    Drop("reactions", _no_reactions),
    Nested("reactions", REACTIONS),
)


# ---------------------------------------------------------------------------
# Transform
# ---------------------------------------------------------------------------


def apply_schema(record: dict, schema: Schema) -> tuple[dict, bool]:
    """Apply *schema* to *record*.

    Returns:
        ``(normalized, changed)`` where *normalized* is a new dict and
        *changed* reports whether any field was removed at any depth.
    """
    out = dict(record)
    changed = False
    for rule in schema:
        if rule.field not in out:
            continue
        value = out[rule.field]
        if isinstance(rule, Drop):
            if rule.when(value):
                del out[rule.field]
                changed = True
            continue

        if rule.many:
            if not isinstance(value, list):
                continue
            items = []
            for item in value:
                if isinstance(item, dict):
                    item, item_changed = apply_schema(item, rule.schema)
                    changed = changed or item_changed
                items.append(item)
            out[rule.field] = items
        elif isinstance(value, dict):
            out[rule.field], sub_changed = apply_schema(value, rule.schema)
            changed = changed or sub_changed
    return out, changed


def normalize_issue(issue: dict) -> tuple[dict, bool]:
    """Strip derivable, redundant and volatile fields from an issue."""
    return apply_schema(issue, ISSUE)


def normalize_comment(comment: dict) -> tuple[dict, bool]:
    """Strip derivable, redundant and volatile fields from a comment."""
    return apply_schema(comment, COMMENT)
