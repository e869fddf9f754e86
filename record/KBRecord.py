# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Description: KBRecord
# -----------------------------------------------------------------------------
from __future__ import annotations

import json
from collections.abc import MutableMapping
from typing import Any, Dict, Iterator, List, Optional

EMBEDDING_FIELD = "embedding"


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


class KBRecord(MutableMapping):
    """
    One knowledge record (a JSON object from one input line).

    Behaves as a plain mapping so unknown fields survive serialisation in their
    original order. The known optional fields get typed accessors; the only
    field the pipeline ever writes is ``embedding``.
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Optional[Dict[str, Any]] = None) -> None:
        self._fields: Dict[str, Any] = dict(fields) if fields else {}

    # ---- mapping protocol ----
    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._fields[key] = value

    def __delitem__(self, key: str) -> None:
        del self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"KBRecord({self._fields!r})"

    # ---- typed accessors ----
    @property
    def dense_context(self) -> Optional[str]:
        return _non_empty_str(self._fields.get("dense_context"))

    @property
    def question(self) -> Optional[str]:
        return _non_empty_str(self._fields.get("question"))

    @property
    def answer(self) -> Optional[str]:
        return _non_empty_str(self._fields.get("answer"))

    @property
    def text(self) -> Optional[str]:
        return _non_empty_str(self._fields.get("text"))

    @property
    def embedding(self) -> Optional[List[Any]]:
        value = self._fields.get(EMBEDDING_FIELD)
        return value if isinstance(value, list) else None

    def has_embedding(self) -> bool:
        """A non-empty list in ``embedding`` counts as already embedded."""
        vec = self.embedding
        return vec is not None and len(vec) > 0

    def set_embedding(self, vector: List[float]) -> None:
        self._fields[EMBEDDING_FIELD] = vector

    def embedding_text(self) -> str:
        """
        Text to embed, by fixed priority:
          dense_context -> "Q: {question}\\nA: {answer}" -> text -> "" (nothing to embed)
        Never raises and never mutates the record.
        """
        if self.dense_context:
            return self.dense_context
        if self.question and self.answer:
            return f"Q: {self.question}\nA: {self.answer}"
        return self.text or ""

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._fields)

    def to_json_line(self) -> str:
        return json.dumps(self._fields, ensure_ascii=False, separators=(",", ":"))
