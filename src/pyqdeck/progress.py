"""Completion progress for any node of the catalog tree."""
import math
from collections.abc import Iterable, Mapping

from pyqdeck.models import Branch, Catalog, Progress, Question, Semester, Subject

Node = Catalog | Branch | Semester | Subject


def aggregate(question_ids: Iterable[str], completion: Mapping[str, bool]) -> Progress:
    """Count completed ids. Absent ids count as not completed.

    percent is None (no data) when there are no questions at all.
    """
    ids = list(question_ids)
    total = len(ids)
    completed = sum(1 for qid in ids if completion.get(qid) is True)
    if total == 0:
        return Progress(total=0, completed=0, percent=None)
    # half-up rounding, so 12.5% shows as 13%
    return Progress(total=total, completed=completed, percent=math.floor(completed / total * 100 + 0.5))


def question_ids_under(node: Node) -> list[str]:
    if isinstance(node, Subject):
        return [q.question_id for q in node.questions]
    if isinstance(node, Semester):
        return [qid for subject in node.subjects for qid in question_ids_under(subject)]
    if isinstance(node, Branch):
        return [qid for sem in node.semesters for qid in question_ids_under(sem)]
    if isinstance(node, Catalog):
        return [qid for branch in node.branches for qid in question_ids_under(branch)]
    raise TypeError(f"not a catalog node: {type(node).__name__}")


def node_progress(node: Node, completion: Mapping[str, bool]) -> Progress:
    return aggregate(question_ids_under(node), completion)


def _children(node: Node) -> tuple:
    if isinstance(node, Catalog):
        return node.branches
    if isinstance(node, Branch):
        return node.semesters
    if isinstance(node, Semester):
        return node.subjects
    return ()


def children_progress(node: Node, completion: Mapping[str, bool]) -> list[tuple[Node, Progress]]:
    """Progress of each immediate child, in catalog order."""
    return [(child, node_progress(child, completion)) for child in _children(node)]


def group_progress(
    questions: Iterable[Question],
    completion: Mapping[str, bool],
    by: str = "chapter",
) -> dict:
    """Progress per chapter label or per year, keyed in first-seen order."""
    if by not in ("chapter", "year"):
        raise ValueError(f"unknown grouping: {by}")
    groups: dict = {}
    for q in questions:
        key = q.chapter_label if by == "chapter" else q.year
        groups.setdefault(key, []).append(q.question_id)
    return {key: aggregate(ids, completion) for key, ids in groups.items()}


def progress_label(progress: Progress) -> str:
    if not progress.has_data:
        return "No Data"
    return f"{progress.completed} / {progress.total} done"


def progress_color(progress: Progress) -> str:
    if progress.percent is None:
        return "dim"
    if progress.percent >= 100:
        return "green"
    elif progress.percent >= 50:
        return "yellow"
    elif progress.percent > 0:
        return "dark_orange"
    return "red"
