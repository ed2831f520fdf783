"""Data classes for the question catalog and persisted study state."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class IconRef:
    set: str = "Ionicons"
    name: str = "school-outline"


@dataclass(frozen=True)
class Module:
    id: str
    name: str


@dataclass(frozen=True)
class Question:
    question_id: str
    q_number: str
    text: str
    year: Optional[int] = None
    chapter: Optional[str] = None
    type: str = ""
    marks: Optional[float] = None
    options: tuple[str, ...] = ()

    @property
    def chapter_label(self) -> str:
        """Chapter name, or the Uncategorized bucket when blank."""
        if self.chapter and self.chapter.strip():
            return self.chapter.strip()
        return UNCATEGORIZED


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    code: str
    modules: tuple[Module, ...] = ()
    questions: tuple[Question, ...] = ()


@dataclass(frozen=True)
class Semester:
    id: str
    number: int
    subjects: tuple[Subject, ...] = ()


@dataclass(frozen=True)
class Branch:
    id: str
    name: str
    icon: IconRef = field(default_factory=IconRef)
    semesters: tuple[Semester, ...] = ()


@dataclass(frozen=True)
class Catalog:
    branches: tuple[Branch, ...] = ()


@dataclass(frozen=True)
class CatalogEntry:
    """A question together with its ancestry."""
    question: Question
    branch: Branch
    semester: Semester
    subject: Subject


class LocateError(Enum):
    BRANCH_NOT_FOUND = "Branch not found"
    SEMESTER_NOT_FOUND = "Semester not found"
    SUBJECT_NOT_FOUND = "Subject not found"


@dataclass
class LocateResult:
    branch: Optional[Branch] = None
    semester: Optional[Semester] = None
    subject: Optional[Subject] = None
    questions: list[Question] = field(default_factory=list)
    error: Optional[LocateError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Progress:
    total: int
    completed: int
    percent: Optional[int]  # None when the node has no questions

    @property
    def has_data(self) -> bool:
        return self.total > 0


@dataclass
class JourneyRecord:
    branch_id: str
    sem_id: str
    subject_id: str
    branch_name: Optional[str] = None
    semester_name: Optional[str] = None
    subject_name: Optional[str] = None


@dataclass
class StreakRecord:
    streak: int = 0
    best_streak: int = 0
    today_count: int = 0
    last_active_date: Optional[str] = None  # ISO date, UTC
