"""Grouping and percentage helpers for survey results."""

from typing import Dict, Iterable


def group_answers(answers: Iterable[str]) -> Dict[str, int]:
    """Count answers by their literal text.

    The returned dict keeps the order in which each distinct answer was
    first seen, which is the display order of the results.
    """
    counts: Dict[str, int] = {}
    for answer in answers:
        counts[answer] = counts.get(answer, 0) + 1
    return counts


def answer_percentages(counts: Dict[str, int]) -> Dict[str, float]:
    """Share of each answer in percent of all counted responses.

    Callers must not pass an empty mapping: the total is used as a
    divisor as-is and an empty one raises `ZeroDivisionError`.
    """
    scale = 100 / sum(counts.values())
    return {answer: count * scale for answer, count in counts.items()}
