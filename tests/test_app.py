import pytest
from unittest.mock import patch

from pyqdeck.app import (
    BackRequested, cmd_bookmarks, cmd_reset, cmd_resume, nav_prompt, open_subject, pick_view,
    prompt_filters, run_question_session,
)
from pyqdeck.bookmarks import is_bookmarked, toggle_bookmark
from pyqdeck.completion import is_completed, toggle_completed
from pyqdeck.explain import RequestType, SubjectContext
from pyqdeck.journey import load_journey, save_journey
from pyqdeck.locator import locate
from pyqdeck.models import JourneyRecord


def test_back_requested_is_exception():
    with pytest.raises(BackRequested):
        raise BackRequested()


@pytest.mark.parametrize("answer", ["b", "back", "BACK"])
def test_nav_prompt_raises_on_back(answer):
    with patch("pyqdeck.app.Prompt.ask", return_value=answer):
        with pytest.raises(BackRequested):
            nav_prompt("test prompt")


def test_nav_prompt_returns_normal_input():
    with patch("pyqdeck.app.Prompt.ask", return_value=" 2 "):
        assert nav_prompt("test prompt", choices=["1", "2"]) == "2"


def test_nav_prompt_reasks_on_invalid_choice():
    with patch("pyqdeck.app.Prompt.ask", side_effect=["9", "1"]) as ask:
        assert nav_prompt("pick", choices=["1", "2"]) == "1"
    assert ask.call_count == 2


def test_question_session_toggles_completion_and_bookmark(tmp_db, catalog):
    questions = locate(catalog, "it", "it_sem3", "it301").questions
    with patch("pyqdeck.app.Prompt.ask", side_effect=["c 1", "s 2", "b"]):
        run_question_session(tmp_db, questions)
    assert is_completed(tmp_db, questions[0].question_id) is True
    assert is_bookmarked(tmp_db, questions[1].question_id) is True


def test_question_session_rejects_bad_number(tmp_db, catalog):
    questions = locate(catalog, "it", "it_sem3", "it301").questions
    with patch("pyqdeck.app.Prompt.ask", side_effect=["c 99", "x", "back"]):
        run_question_session(tmp_db, questions)
    assert not any(is_completed(tmp_db, q.question_id) for q in questions)


def test_pick_view_by_chapter(catalog):
    questions = locate(catalog, "it", "it_sem3", "it301").questions
    # chapters: Module 1: Intro, Module 2: Classes, Uncategorized
    with patch("pyqdeck.app.Prompt.ask", side_effect=["chapter", "3"]):
        selected = pick_view(questions, {})
    assert [q.question_id for q in selected] == ["q3"]


def test_pick_view_all_puts_incomplete_first(catalog):
    questions = locate(catalog, "it", "it_sem3", "it301").questions
    with patch("pyqdeck.app.Prompt.ask", return_value="all"):
        selected = pick_view(questions, {"q2": True})
    assert [q.question_id for q in selected] == ["q3", "q1", "q2"]


def test_open_subject_saves_journey(tmp_db, catalog):
    with patch("pyqdeck.app.Prompt.ask", return_value="b"):
        open_subject(tmp_db, catalog, "it", "it_sem3", "it302")
    journey = load_journey(tmp_db)
    assert journey.subject_id == "it302"
    assert journey.subject_name == "Data Structures"


def test_open_subject_unknown_does_not_save(tmp_db, catalog):
    open_subject(tmp_db, catalog, "it", "it_sem3", "missing")
    assert load_journey(tmp_db) is None


def test_resume_without_journey(tmp_db, catalog):
    with patch("pyqdeck.app.console.print") as printed:
        cmd_resume(tmp_db, catalog)
    assert "Nothing to resume" in printed.call_args.args[0]


def test_bookmarks_empty_state(tmp_db, catalog):
    with patch("pyqdeck.app.console.print") as printed:
        cmd_bookmarks(tmp_db, catalog)
    assert "No bookmarked questions yet" in printed.call_args.args[0]


def test_bookmarks_view_can_unbookmark(tmp_db, catalog):
    toggle_bookmark(tmp_db, "q4")
    with patch("pyqdeck.app.Prompt.ask", side_effect=["s 1", "b"]):
        cmd_bookmarks(tmp_db, catalog)
    assert is_bookmarked(tmp_db, "q4") is False


def test_reset_subject_clears_only_that_subject(tmp_db, catalog):
    toggle_completed(tmp_db, "q1")
    toggle_completed(tmp_db, "q4")
    save_journey(tmp_db, JourneyRecord(branch_id="it", sem_id="it_sem3", subject_id="it301"))
    with patch("pyqdeck.app.Prompt.ask", return_value="subject"), \
            patch("pyqdeck.app.Confirm.ask", return_value=True):
        cmd_reset(tmp_db, catalog)
    assert is_completed(tmp_db, "q1") is False
    assert is_completed(tmp_db, "q4") is True


def test_reset_everything_needs_confirmation(tmp_db, catalog):
    toggle_completed(tmp_db, "q4")
    with patch("pyqdeck.app.Prompt.ask", return_value="everything"), \
            patch("pyqdeck.app.Confirm.ask", return_value=False):
        cmd_reset(tmp_db, catalog)
    assert is_completed(tmp_db, "q4") is True
    with patch("pyqdeck.app.Prompt.ask", return_value="everything"), \
            patch("pyqdeck.app.Confirm.ask", return_value=True):
        cmd_reset(tmp_db, catalog)
    assert is_completed(tmp_db, "q4") is False


def test_prompt_filters_multi_select_chapters(catalog):
    questions = locate(catalog, "it", "it_sem3", "it301").questions
    # chapters: 1 Module 1: Intro, 2 Module 2: Classes, 3 Uncategorized
    with patch("pyqdeck.app.Prompt.ask", side_effect=["", "1, 3"]):
        selected = prompt_filters(questions)
    assert [q.question_id for q in selected] == ["q2", "q3"]


def test_question_session_filter_then_toggle(tmp_db, catalog):
    questions = locate(catalog, "it", "it_sem3", "it301").questions
    with patch("pyqdeck.app.Prompt.ask", side_effect=["f", "2021", "", "c 1", "b"]):
        run_question_session(tmp_db, questions)
    assert is_completed(tmp_db, "q3") is True
    assert is_completed(tmp_db, "q1") is False


def test_question_session_filter_without_matches_keeps_list(tmp_db, catalog):
    questions = locate(catalog, "it", "it_sem3", "it301").questions
    with patch("pyqdeck.app.Prompt.ask", side_effect=["f", "2023", "2", "c 1", "b"]):
        run_question_session(tmp_db, questions)
    assert is_completed(tmp_db, "q1") is True


def test_question_session_custom_query(tmp_db, catalog):
    questions = locate(catalog, "it", "it_sem3", "it301").questions
    context = SubjectContext(subject_name="OOP Using C++")
    with patch("pyqdeck.app.Prompt.ask", side_effect=["ask", "What is a vtable?", "b"]), \
            patch("pyqdeck.app.explain", return_value="A table of function pointers.") as explain:
        run_question_session(tmp_db, questions, context)
    explain.assert_called_once_with(RequestType.CUSTOM_QUERY, "What is a vtable?", context)
