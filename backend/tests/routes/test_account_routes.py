from datetime import datetime, timedelta, timezone
from decimal import Decimal

from schoolmaster.models.invitation import LessonInvitation
from schoolmaster.models.quiz import Quiz, QuizQuestion


def test_balance_and_ledger(client, auth_headers, student, tutor, topics, lesson_time):
    client.post(
        "/api/lessons/book",
        json={"tutorId": tutor.id, "timeSlot": lesson_time.isoformat(), "paymentMethod": "balance"},
        headers=auth_headers(student),
    )

    balance = client.get("/api/balance", headers=auth_headers(student))
    ledger = client.get("/api/balance/transactions", headers=auth_headers(student))

    assert balance.status_code == 200
    assert balance.json() == {"balance": 200.0, "loyaltyBalance": 0.0, "referralBalance": 0.0}
    assert ledger.status_code == 200
    assert [(row["type"], row["amount"]) for row in ledger.json()] == [("payment", -100.0)]


def test_quiz_attempt(client, auth_headers, unit_db, student, topics):
    quiz = Quiz(topic_id="MAT-L01", title="Sprawdzian", passing_score=50, xp_reward=20)
    quiz.questions = [
        QuizQuestion(id="rq1", question_type="multiple_choice", question_text="1+1", correct_answer="2"),
    ]
    unit_db.add(quiz)
    unit_db.commit()

    response = client.post(
        f"/api/quizzes/{quiz.id}/attempts",
        json={"answers": [{"questionId": "rq1", "answer": "2"}], "timeTaken": 30},
        headers=auth_headers(student),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["score"] == 100
    assert body["passed"] is True
    assert body["xpAwarded"] == 20


def test_matches_without_preferences(client, auth_headers, student):
    response = client.get("/api/student/matches", headers=auth_headers(student))

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NO_MATCHING_PREFERENCES"


def test_admin_runs_expiry_sweep(client, auth_headers, unit_db, admin, student, tutor, topics, lesson_time):
    unit_db.add(
        LessonInvitation(
            student_id=student.id,
            tutor_id=tutor.id,
            subject_id="MATH",
            topic_id="MAT-L01",
            scheduled_at=lesson_time,
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
            payment_method="balance",
            amount=Decimal("100.00"),
        )
    )
    unit_db.commit()

    response = client.post("/api/admin/process-expired-invitations", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["expired"] == 1


def test_admin_routes_are_admin_only(client, auth_headers, tutor):
    response = client.post("/api/admin/send-unread-notifications", headers=auth_headers(tutor))

    assert response.status_code == 403
