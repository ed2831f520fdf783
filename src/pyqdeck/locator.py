"""Resolve a branch/semester/subject path in the catalog."""
from pyqdeck.models import Catalog, LocateError, LocateResult


def locate(
    catalog: Catalog,
    branch_id: str,
    semester_id: str | None = None,
    subject_id: str | None = None,
) -> LocateResult:
    """Walk the catalog by exact id match at each given level.

    Not-found levels come back as a tagged result that keeps whatever was
    resolved above the failing level. The questions list is a fresh copy.
    Raises ValueError only when branch_id is missing.
    """
    if not branch_id:
        raise ValueError("branch_id is required")

    branch = next((b for b in catalog.branches if b.id == branch_id), None)
    if branch is None:
        return LocateResult(error=LocateError.BRANCH_NOT_FOUND)
    if not semester_id:
        return LocateResult(branch=branch)

    semester = next((s for s in branch.semesters if s.id == semester_id), None)
    if semester is None:
        return LocateResult(branch=branch, error=LocateError.SEMESTER_NOT_FOUND)
    if not subject_id:
        return LocateResult(branch=branch, semester=semester)

    subject = next((s for s in semester.subjects if s.id == subject_id), None)
    if subject is None:
        return LocateResult(branch=branch, semester=semester, error=LocateError.SUBJECT_NOT_FOUND)

    return LocateResult(
        branch=branch,
        semester=semester,
        subject=subject,
        questions=list(subject.questions),
    )
