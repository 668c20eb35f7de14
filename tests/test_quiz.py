from types import SimpleNamespace

import pytest
from conftest import auth

from coursehub import models, schemas
from coursehub.errors import BadRequest
from coursehub.services.quiz import grade_submission


def build_quiz(db, course):
    quiz = next(c for c in course.modules[0].contents if c.content_type == "QUIZ")
    questions = []
    for text in ("2 + 2?", "Capital of France?"):
        question = models.Question(question_text=text, content_id=quiz.id)
        question.options = [models.AnswerOption(option_text="right", is_correct=True),
                            models.AnswerOption(option_text="wrong", is_correct=False)]
        db.add(question)
        questions.append(question)
    db.commit()
    return quiz, questions


def answer(question, correct=True):
    option = next(o for o in question.options if o.is_correct is correct)
    return {"question_id": question.id, "answer_option_id": option.id}


def fake_question(qid, correct_option, wrong_option):
    return SimpleNamespace(id=qid, options=[SimpleNamespace(id=correct_option, is_correct=True),
                                             SimpleNamespace(id=wrong_option, is_correct=False)])


def submitted(*pairs):
    return [schemas.SubmittedAnswer(question_id=q, answer_option_id=o) for q, o in pairs]


def test_grade_first_answer_wins_and_unanswered_scores_zero():
    questions = [fake_question(1, 10, 11), fake_question(2, 20, 21), fake_question(3, 30, 31)]
    assert grade_submission(questions, submitted((1, 10), (1, 11))) == (1, 3, 33.33)
    assert grade_submission(questions, submitted((1, 11), (1, 10), (2, 20))) == (1, 3, 33.33)


def test_grade_ignores_foreign_questions():
    questions = [fake_question(1, 10, 11)]
    assert grade_submission(questions, submitted((99, 10), (1, 10))) == (1, 1, 100.0)


def test_grade_rejects_option_of_another_question():
    questions = [fake_question(1, 10, 11), fake_question(2, 20, 21)]
    with pytest.raises(BadRequest):
        grade_submission(questions, submitted((1, 20)))


def test_student_view_hides_correct_flags(client, db, student, make_course, enroll):
    course = make_course(quiz=True)
    enroll(student, course)
    quiz, _ = build_quiz(db, course)

    body = client.get(f"/quiz/{quiz.id}", headers=auth(student)).json()
    assert len(body["questions"]) == 2
    assert all("is_correct" not in o for q in body["questions"] for o in q["options"])


def test_submit_records_attempt(client, db, student, make_course, enroll):
    course = make_course(quiz=True)
    enroll(student, course)
    quiz, questions = build_quiz(db, course)
    headers = auth(student)

    response = client.post(f"/quiz/submit/{quiz.id}", headers=headers,
                           json={"answers": [answer(questions[0]), answer(questions[1], correct=False)]})
    assert response.status_code == 200
    assert response.json()["score"] == 50.0

    client.post(f"/quiz/submit/{quiz.id}", headers=headers, json={"answers": [answer(q) for q in questions]})

    attempts = client.get(f"/quiz/{quiz.id}/attempts", headers=headers).json()
    assert sorted(a["score"] for a in attempts) == [50.0, 100.0]
    history = client.get("/quiz/history", headers=headers).json()
    assert {h["quiz_title"] for h in history} == {"Checkpoint"}


def test_mismatched_option_creates_no_attempt(client, db, student, make_course, enroll):
    course = make_course(quiz=True)
    enroll(student, course)
    quiz, questions = build_quiz(db, course)

    foreign = questions[1].options[0].id
    response = client.post(f"/quiz/submit/{quiz.id}", headers=auth(student),
                           json={"answers": [{"question_id": questions[0].id, "answer_option_id": foreign}]})
    assert response.status_code == 400
    assert response.json()["code"] == "ANSWER_OPTION_NOT_FOUND"
    assert db.query(models.QuizAttempt).count() == 0


def test_submit_edge_cases(client, db, student, course, make_course, enroll):
    enroll(student, course)
    video = course.modules[0].contents[0]
    headers = auth(student)

    assert client.post(f"/quiz/submit/{video.id}", headers=headers,
                       json={"answers": [{"question_id": 1, "answer_option_id": 1}]}).status_code == 400
    assert client.post("/quiz/submit/999", headers=headers, json={"answers": []}).status_code == 404

    quiz_course = make_course(title="Quizzes", quiz=True)
    enroll(student, quiz_course)
    empty_quiz = quiz_course.modules[0].contents[-1]
    response = client.post(f"/quiz/submit/{empty_quiz.id}", headers=headers,
                           json={"answers": [{"question_id": 1, "answer_option_id": 1}]})
    assert response.json()["code"] == "QUIZ_HAS_NO_QUESTIONS"
    response = client.post(f"/quiz/submit/{empty_quiz.id}", headers=headers, json={"answers": []})
    assert response.json()["code"] == "INVALID_ANSWERS"


def test_unenrolled_student_cannot_take_quiz(client, db, student, make_course):
    course = make_course(quiz=True)
    quiz, _ = build_quiz(db, course)
    assert client.get(f"/quiz/{quiz.id}", headers=auth(student)).status_code == 403


def test_teacher_authors_quiz(client, db, teacher, make_user, make_course):
    course = make_course(quiz=True)
    quiz = course.modules[0].contents[-1]
    video = course.modules[0].contents[0]
    headers = auth(teacher)

    question = client.post("/questions", json={"content_id": quiz.id, "question_text": "Why?"}, headers=headers)
    assert question.status_code == 201
    question_id = question.json()["id"]
    option = client.post("/options", json={"question_id": question_id, "option_text": "Because",
                                           "is_correct": True}, headers=headers)
    assert option.status_code == 201

    managed = client.get(f"/quiz/{quiz.id}/manage", headers=headers).json()
    assert managed["questions"][0]["options"][0]["is_correct"] is True

    response = client.post("/questions", json={"content_id": video.id, "question_text": "?"}, headers=headers)
    assert response.json()["code"] == "NOT_A_QUIZ"

    other = make_user(models.Role.TEACHER)
    assert client.delete(f"/questions/{question_id}", headers=auth(other)).status_code == 403

    assert client.delete(f"/options/{option.json()['id']}", headers=headers).status_code == 200
    assert client.delete(f"/questions/{question_id}", headers=headers).status_code == 200
    assert db.query(models.Question).count() == 0
