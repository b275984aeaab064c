"""
Tests for drill aggregation and difficulty recommendations.
"""
import pytest

from libs.domain_types import InsightsStatus, SessionStatus

from insights.core.aggregation import (
    InsightsDataLoader,
    build_drill_results,
    recommended_level,
)

VIC = "VIC Selective Entry (Year 9 Entry)"
SECTION = "Mathematical Reasoning"


@pytest.fixture
def loader(db_session):
    return InsightsDataLoader(db_session, user_id=1, product_type=VIC)


@pytest.fixture
def add_drill(add_questions, add_session, add_response):
    """Insert a completed drill session answering `correct` of `served` questions."""

    def _add(sub_skill, difficulty, served, correct, answered=None, status=SessionStatus.COMPLETED):
        answered = served if answered is None else answered
        questions = add_questions(
            served,
            section_name=SECTION,
            sub_skill_name=sub_skill,
            test_mode="drill",
            difficulty=difficulty,
        )
        session = add_session(
            test_mode="drill",
            section_name=SECTION,
            difficulty=difficulty,
            question_order=[q.id for q in questions],
            total_questions=served,
            status=status,
        )
        for index, question in enumerate(questions[:answered]):
            add_response(session, question, is_correct=index < correct)
        return session

    return _add


class TestRecommendedLevel:
    @pytest.mark.parametrize(
        "by_difficulty,expected",
        [
            ({1: None, 2: None, 3: None}, 1),
            ({1: 79, 2: None, 3: None}, 1),
            ({1: 80, 2: None, 3: None}, 2),
            ({1: 85, 2: 60, 3: None}, 2),
            ({1: 90, 2: 80, 3: None}, 3),
            ({1: 50, 2: 95, 3: 95}, 1),
        ],
    )
    def test_levels_unlock_in_order(self, by_difficulty, expected):
        assert recommended_level(by_difficulty, mastery_threshold=80) == expected


class TestBuildDrillResults:
    def test_no_drills_is_not_started(self, loader):
        results = build_drill_results(loader, mastery_threshold=80, recent_limit=10)

        assert results.status == InsightsStatus.NOT_STARTED
        assert results.overall is None
        assert results.sections == {}

    def test_in_progress_drills_are_ignored(self, loader, add_drill):
        add_drill("Algebra", difficulty=1, served=5, correct=5, status=SessionStatus.IN_PROGRESS)

        results = build_drill_results(loader, mastery_threshold=80, recent_limit=10)

        assert results.status == InsightsStatus.NOT_STARTED

    def test_single_drill_is_available_without_gating(self, loader, add_drill):
        add_drill("Algebra", difficulty=1, served=5, correct=4)

        results = build_drill_results(loader, mastery_threshold=80, recent_limit=10)

        assert results.status == InsightsStatus.AVAILABLE
        assert results.sessions_completed == 1
        summary = results.sections[SECTION][0]
        assert summary.sub_skill_name == "Algebra"
        assert summary.score == 80
        assert summary.accuracy_by_difficulty == {1: 80, 2: None, 3: None}
        assert summary.recommended_level == 2

    def test_served_but_unanswered_questions_lower_score(self, loader, add_drill):
        add_drill("Geometry", difficulty=1, served=10, correct=6, answered=8)

        results = build_drill_results(loader, mastery_threshold=80, recent_limit=10)

        summary = results.sections[SECTION][0]
        assert summary.questions_total == 10
        assert summary.questions_attempted == 8
        assert summary.score == 60
        assert summary.accuracy == 75
        activity = results.recent_activity[0]
        assert activity.score == 60
        assert activity.accuracy == 75

    def test_accuracy_tracked_per_difficulty(self, loader, add_drill):
        add_drill("Algebra", difficulty=1, served=5, correct=5)
        add_drill("Algebra", difficulty=2, served=5, correct=4)
        add_drill("Algebra", difficulty=3, served=4, correct=1)

        results = build_drill_results(loader, mastery_threshold=80, recent_limit=10)

        summary = results.sections[SECTION][0]
        assert summary.accuracy_by_difficulty == {1: 100, 2: 80, 3: 25}
        assert summary.recommended_level == 3
        assert summary.sessions_completed == 3
        assert summary.questions_correct == 10
        assert summary.questions_total == 14

    def test_recent_activity_newest_first_and_limited(self, loader, add_drill):
        first = add_drill("Algebra", difficulty=1, served=2, correct=1)
        second = add_drill("Geometry", difficulty=1, served=2, correct=2)
        third = add_drill("Algebra", difficulty=2, served=2, correct=0)

        results = build_drill_results(loader, mastery_threshold=80, recent_limit=2)

        assert [a.session_id for a in results.recent_activity] == [third.id, second.id]
        assert results.sessions_completed == 3
        assert first.id not in [a.session_id for a in results.recent_activity]

    def test_missing_difficulty_defaults_to_level_one(
        self, loader, add_questions, add_session, add_response
    ):
        questions = add_questions(2, section_name=SECTION, sub_skill_name="Ratios", test_mode="drill")
        session = add_session(
            test_mode="drill",
            section_name=SECTION,
            question_order=[q.id for q in questions],
        )
        add_response(session, questions[0], is_correct=True)
        add_response(session, questions[1], is_correct=True)

        results = build_drill_results(loader, mastery_threshold=80, recent_limit=10)

        assert results.recent_activity[0].difficulty == 1
        assert results.sections[SECTION][0].accuracy_by_difficulty[1] == 100

    def test_sub_skills_grouped_under_their_section(self, loader, add_drill):
        add_drill("Algebra", difficulty=1, served=2, correct=2)
        add_drill("Geometry", difficulty=1, served=2, correct=0)

        results = build_drill_results(loader, mastery_threshold=80, recent_limit=10)

        names = [s.sub_skill_name for s in results.sections[SECTION]]
        assert names == ["Algebra", "Geometry"]
        assert results.overall.overall_score == 50
