from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class QuestionView:
    question_id: str
    category: str
    text: str
    options: tuple[str, ...]
