"""Year/chapter discovery, filtering and ordering of question lists."""
import re
from collections.abc import Iterable, Mapping

from pyqdeck.models import UNCATEGORIZED, Question

MODULE_PATTERN = re.compile(r"^module\s*[-_:.#]?\s*(\d+)", re.IGNORECASE)


def _numeric_year(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def unique_years(questions: Iterable[Question]) -> list[int]:
    years = {y for y in (_numeric_year(q.year) for q in questions) if y is not None}
    return sorted(years, reverse=True)


def _chapter_sort_key(label: str) -> tuple:
    match = MODULE_PATTERN.match(label)
    if match:
        return (0, int(match.group(1)), label)
    return (1, 0, label.casefold(), label)


def unique_chapters(questions: Iterable[Question]) -> list[str]:
    """Distinct chapter labels: "Module N" first by N, then the rest A-Z, then Uncategorized."""
    chapters: set[str] = set()
    has_uncategorized = False
    for q in questions:
        label = q.chapter_label
        if label == UNCATEGORIZED and not (q.chapter and q.chapter.strip()):
            has_uncategorized = True
        else:
            chapters.add(label)
    ordered = sorted(chapters, key=_chapter_sort_key)
    if has_uncategorized:
        if UNCATEGORIZED in ordered:
            ordered.remove(UNCATEGORIZED)
        ordered.append(UNCATEGORIZED)
    return ordered


def filter_questions(
    questions: Iterable[Question],
    selected_years: set[int] | None = None,
    selected_chapters: set[str] | None = None,
) -> list[Question]:
    """Keep questions matching the selection. An empty selection does not filter."""
    result = list(questions)
    if selected_years:
        result = [q for q in result if _numeric_year(q.year) in selected_years]
    if selected_chapters:
        result = [q for q in result if q.chapter_label in selected_chapters]
    return result


def _display_key(q: Question) -> tuple:
    return (-(_numeric_year(q.year) or 0), q.q_number or "")


def sort_questions(questions: Iterable[Question]) -> list[Question]:
    """Year descending (missing year last), then question number. Stable."""
    return sorted(questions, key=_display_key)


def sort_for_review(questions: Iterable[Question], completion: Mapping[str, bool]) -> list[Question]:
    """Incomplete questions first, each half in display order."""
    return sorted(
        questions,
        key=lambda q: (completion.get(q.question_id) is True, *_display_key(q)),
    )


def questions_for_view(questions: Iterable[Question], mode: str, value) -> list[Question]:
    """Questions for one chapter ("chapter" mode) or one year ("year" mode), in display order."""
    if mode == "chapter":
        selected = filter_questions(questions, selected_chapters={value})
    elif mode == "year":
        selected = filter_questions(questions, selected_years={int(value)})
    else:
        raise ValueError(f"unknown organization mode: {mode}")
    return sort_questions(selected)
