import copy

import pytest

from pyqdeck.catalog import build_catalog
from pyqdeck.db import init_db

SAMPLE_CATALOG = {
    "branches": [
        {
            "id": "it",
            "name": "Information Technology",
            "icon": {"set": "Ionicons", "name": "laptop-outline"},
            "semesters": [
                {
                    "id": "it_sem3",
                    "number": 3,
                    "subjects": [
                        {
                            "id": "it301",
                            "name": "OOP Using C++",
                            "code": "IT301",
                            "modules": [{"id": "m1", "name": "Module 1: Intro"}],
                            "questions": [
                                {"questionId": "q1", "year": 2021, "qNumber": "Q2", "chapter": "Module 2: Classes", "text": "Explain classes.", "type": "Explanation", "marks": 7},
                                {"questionId": "q2", "year": 2023, "qNumber": "Q1", "chapter": "Module 1: Intro", "text": "What is OOP?", "type": "Explanation", "marks": 5},
                                {"questionId": "q3", "year": 2021, "qNumber": "Q1", "chapter": None, "text": "Purpose of `main`?", "type": "MCQ", "marks": 2},
                            ],
                        },
                        {
                            "id": "it302",
                            "name": "Data Structures",
                            "code": "IT302",
                            "questions": [
                                {"questionId": "q4", "year": 2022, "qNumber": "Q6a", "chapter": "Module 4: Trees", "text": "Define a BST.", "type": "Definition", "marks": 7},
                                {"questionId": "q5", "year": None, "qNumber": "Q7a", "chapter": "  ", "text": "Explain DFS.", "type": "Explanation", "marks": None},
                            ],
                        },
                    ],
                },
                {
                    "id": "it_sem4",
                    "number": 4,
                    "subjects": [
                        {
                            "id": "it402",
                            "name": "DBMS",
                            "code": "IT402",
                            "questions": [
                                {"questionId": "q6", "year": 2022, "qNumber": "Q2a", "chapter": "Module 3: SQL", "text": "Write a query.", "type": "Code", "marks": 7},
                            ],
                        },
                    ],
                },
            ],
        },
        {"id": "ece", "name": "Electronics", "semesters": []},
    ]
}


@pytest.fixture
def tmp_db(tmp_path):
    """Provide an initialized temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_pyqdeck.db")
    init_db(db_path)
    return db_path


@pytest.fixture
def catalog():
    return build_catalog(SAMPLE_CATALOG)


@pytest.fixture
def catalog_data():
    """A fresh, mutable copy of the sample catalog document."""
    return copy.deepcopy(SAMPLE_CATALOG)
