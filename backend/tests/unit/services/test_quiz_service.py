import pytest

from schoolmaster.core.exceptions import BusinessRuleException, NotFoundException
from schoolmaster.models.quiz import Quiz, QuizAttempt, QuizQuestion
from schoolmaster.services.quiz_service import QuizService, grade_answer, score_percent


@pytest.fixture
def quiz(unit_db, topics):
    quiz = Quiz(topic_id="MAT-L01", title="Liczby - sprawdzian", passing_score=70, xp_reward=30, max_attempts=5)
    quiz.questions = [
        QuizQuestion(
            id="q1",
            question_type="multiple_choice",
            question_text="2 + 2 = ?",
            options=["3", "4", "5"],
            correct_answer="4",
            points=2,
            order=1,
        ),
        QuizQuestion(
            id="q2",
            question_type="true_false",
            question_text="0 jest liczbą parzystą",
            correct_answer="true",
            points=1,
            order=2,
        ),
        QuizQuestion(
            id="q3",
            question_type="multiple_select",
            question_text="Które liczby są pierwsze?",
            options=["2", "4", "5", "9"],
            correct_answer=["2", "5"],
            points=1,
            order=3,
        ),
    ]
    unit_db.add(quiz)
    unit_db.commit()
    return quiz


ALL_CORRECT = [
    {"question_id": "q1", "answer": "4"},
    {"question_id": "q2", "answer": "True"},
    {"question_id": "q3", "answer": ["5", "2"]},
]
ALL_WRONG = [
    {"question_id": "q1", "answer": "5"},
    {"question_id": "q2", "answer": "false"},
    {"question_id": "q3", "answer": ["2"]},
]


class TestGradeAnswer:
    @pytest.mark.parametrize(
        "question_type,correct,given,expected",
        [
            ("multiple_choice", "4", " 4 ", True),
            ("multiple_choice", "b", "B", True),
            ("multiple_choice", "4", "5", False),
            ("true_false", "true", "TRUE", True),
            ("short_answer", "Pitagoras", "pitagoras", True),
            ("multiple_select", ["a", "c"], ["c", "a"], True),
            ("multiple_select", ["a", "c"], '["a", "c"]', True),
            ("multiple_select", ["a", "c"], ["a"], False),
            ("multiple_select", ["a", "c"], "not json", False),
            ("math_problem", "3/4", "3/4", True),
            ("math_problem", "3/4", "0.75", False),
            ("essay", "x", "x", False),
            ("multiple_choice", "4", None, False),
            ("multiple_choice", "4", "   ", False),
            ("multiple_select", ["a"], [], False),
        ],
    )
    def test_grade_answer(self, question_type, correct, given, expected):
        assert grade_answer(question_type, correct, given) is expected

    def test_score_percent(self):
        assert score_percent(3, 4) == 75
        assert score_percent(2, 3) == 67
        assert score_percent(0, 0) == 0

    @pytest.mark.parametrize("earned,total,expected", [(1, 8, 13), (5, 8, 63), (3, 8, 38), (7, 8, 88)])
    def test_score_percent_rounds_halves_up(self, earned, total, expected):
        assert score_percent(earned, total) == expected


class TestQuizService:
    def test_perfect_attempt_passes_and_pays_xp(self, unit_db, student, quiz):
        result = QuizService(unit_db).submit_attempt(quiz.id, student, ALL_CORRECT, time_taken=95)

        assert result["score"] == 100
        assert result["passed"] is True
        assert result["earned_points"] == 4
        assert result["total_points"] == 4
        assert result["xp_awarded"] == 30
        assert student.xp == 30
        assert [item["correct"] for item in result["question_results"]] == [True, True, True]
        assert result["attempt"].time_taken == 95

    def test_xp_only_for_first_pass(self, unit_db, student, quiz):
        service = QuizService(unit_db)
        service.submit_attempt(quiz.id, student, ALL_CORRECT)

        second = service.submit_attempt(quiz.id, student, ALL_CORRECT)

        assert second["passed"] is True
        assert second["xp_awarded"] == 0
        assert student.xp == 30
        assert unit_db.query(QuizAttempt).filter_by(student_id=student.id).count() == 2

    def test_failed_attempt_and_help_hint(self, unit_db, student, quiz):
        service = QuizService(unit_db)

        first = service.submit_attempt(quiz.id, student, ALL_WRONG)
        service.submit_attempt(quiz.id, student, ALL_WRONG)
        third = service.submit_attempt(quiz.id, student, ALL_WRONG)

        assert first["score"] == 0
        assert first["passed"] is False
        assert first["suggest_help"] is False
        assert third["suggest_help"] is True
        assert student.xp == 0

    def test_missing_answers_count_as_wrong(self, unit_db, student, quiz):
        result = QuizService(unit_db).submit_attempt(quiz.id, student, [{"question_id": "q1", "answer": "4"}])

        assert result["score"] == 50
        assert result["passed"] is False

    def test_attempt_limit(self, unit_db, student, quiz):
        quiz.max_attempts = 1
        unit_db.commit()
        service = QuizService(unit_db)
        service.submit_attempt(quiz.id, student, ALL_WRONG)

        with pytest.raises(BusinessRuleException) as exc:
            service.submit_attempt(quiz.id, student, ALL_CORRECT)

        assert exc.value.code == "MAX_ATTEMPTS_REACHED"

    def test_inactive_quiz(self, unit_db, student, quiz):
        quiz.is_active = False
        unit_db.commit()

        with pytest.raises(NotFoundException):
            QuizService(unit_db).submit_attempt(quiz.id, student, ALL_CORRECT)
