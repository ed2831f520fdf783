"""Load the static question catalog into an immutable tree."""
import json
import logging
from pathlib import Path

from pyqdeck.config import CATALOG_PATH
from pyqdeck.models import (
    Branch, Catalog, CatalogEntry, IconRef, Module, Question, Semester, Subject,
)

logger = logging.getLogger(__name__)


class CatalogError(ValueError):
    """The catalog document is malformed or violates an invariant."""


def read_catalog_document(path: str) -> dict:
    """Read a catalog file (.json, .yaml or .yml) into plain Python data."""
    file_path = Path(path)
    suffix = file_path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        import yaml
        data = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    else:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not isinstance(data.get("branches"), list):
        raise CatalogError(f"{path}: expected an object with a 'branches' list")
    return data


def _year(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _marks(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise CatalogError(f"invalid marks {value!r}") from None


def _question(raw: dict) -> Question:
    try:
        question_id = raw["questionId"]
    except KeyError:
        raise CatalogError(f"question without questionId: {raw!r}") from None
    return Question(
        question_id=str(question_id),
        q_number=str(raw.get("qNumber") or ""),
        text=raw.get("text") or "",
        year=_year(raw.get("year")),
        chapter=None if raw.get("chapter") is None else str(raw["chapter"]),
        type=raw.get("type") or "",
        marks=_marks(raw.get("marks")),
        options=tuple(raw.get("options") or ()),
    )


def _subject(raw: dict) -> Subject:
    return Subject(
        id=raw["id"],
        name=raw.get("name", ""),
        code=raw.get("code", ""),
        modules=tuple(Module(id=m.get("id", ""), name=m.get("name", "")) for m in raw.get("modules") or ()),
        questions=tuple(_question(q) for q in raw.get("questions") or ()),
    )


def _semester(raw: dict) -> Semester:
    number = int(raw.get("number", 0))
    if number < 1:
        raise CatalogError(f"semester {raw.get('id')!r} has invalid number {number}")
    return Semester(
        id=raw["id"],
        number=number,
        subjects=tuple(_subject(s) for s in raw.get("subjects") or ()),
    )


def _branch(raw: dict) -> Branch:
    icon = raw.get("icon") or {}
    return Branch(
        id=raw["id"],
        name=raw.get("name", ""),
        icon=IconRef(set=icon.get("set", "Ionicons"), name=icon.get("name", "school-outline")),
        semesters=tuple(_semester(s) for s in raw.get("semesters") or ()),
    )


def build_catalog(data: dict) -> Catalog:
    """Build the catalog tree and check that every question id is unique."""
    try:
        catalog = Catalog(branches=tuple(_branch(b) for b in data.get("branches") or ()))
    except KeyError as exc:
        raise CatalogError(f"catalog node missing required field {exc}") from None
    seen: set[str] = set()
    for entry in flatten_catalog(catalog):
        qid = entry.question.question_id
        if qid in seen:
            raise CatalogError(f"duplicate questionId {qid!r} in subject {entry.subject.id!r}")
        seen.add(qid)
    logger.info("Loaded catalog: %d branches, %d questions", len(catalog.branches), len(seen))
    return catalog


def load_catalog(path: str = CATALOG_PATH) -> Catalog:
    return build_catalog(read_catalog_document(path))


def flatten_catalog(catalog: Catalog) -> list[CatalogEntry]:
    """Every question in catalog order, with its branch, semester and subject."""
    return [
        CatalogEntry(question=q, branch=branch, semester=sem, subject=subject)
        for branch in catalog.branches
        for sem in branch.semesters
        for subject in sem.subjects
        for q in subject.questions
    ]
