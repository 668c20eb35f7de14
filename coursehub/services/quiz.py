"""Quiz delivery, grading and authoring."""
import logging
from datetime import datetime
from typing import Iterable, Sequence, Tuple

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import BadRequest, Forbidden, NotFound
from ..security import can_manage_course
from .enrollment import require_enrollment

logger = logging.getLogger(__name__)


def grade_submission(questions: Sequence[models.Question],
                     answers: Iterable[schemas.SubmittedAnswer]) -> Tuple[int, int, float]:
    """Grade answers against a quiz's questions.

    Returns ``(correct, total, score)``. Only the first answer given for a
    question counts, answers to questions outside the quiz are ignored and an
    unanswered question scores zero. An option that does not belong to the
    question it is submitted for rejects the whole submission.
    """
    by_id = {question.id: question for question in questions}
    chosen = {}
    for answer in answers:
        if answer.question_id in by_id and answer.question_id not in chosen:
            chosen[answer.question_id] = answer.answer_option_id

    correct = 0
    for question_id, option_id in chosen.items():
        option = next((o for o in by_id[question_id].options if o.id == option_id), None)
        if option is None:
            raise BadRequest("ANSWER_OPTION_NOT_FOUND",
                             f"Answer option {option_id} does not belong to question {question_id}")
        if option.is_correct:
            correct += 1

    total = len(by_id)
    score = round(100 * correct / total, 2) if total else 0.0
    return correct, total, score


def _get_quiz(db: Session, content_id: int) -> models.Content:
    content = db.get(models.Content, content_id)
    if not content:
        raise NotFound("QUIZ_NOT_FOUND", "Quiz not found")
    if content.content_type != models.ContentType.QUIZ.value:
        raise BadRequest("NOT_A_QUIZ", "This content is not a quiz")
    return content


def _ensure_owner(user: models.User, content: models.Content) -> None:
    if not can_manage_course(user, content.module.course):
        raise Forbidden("COURSE_FORBIDDEN", "You are not the owner of this course")


def _attempt_out(attempt: models.QuizAttempt) -> dict:
    return {
        "id": attempt.id,
        "score": attempt.score,
        "start_time": attempt.start_time,
        "end_time": attempt.end_time,
        "quiz_content_id": attempt.quiz_content_id,
    }


def get_quiz_for_student(db: Session, student_id: int, content_id: int) -> dict:
    quiz = _get_quiz(db, content_id)
    require_enrollment(db, student_id, quiz.module.course_id)
    return {
        "id": quiz.id,
        "title": quiz.title,
        "time_limit_in_minutes": quiz.time_limit_in_minutes,
        "course_id": quiz.module.course_id,
        # correctness flags stay server-side
        "questions": [
            {
                "id": question.id,
                "question_text": question.question_text,
                "options": [{"id": o.id, "option_text": o.option_text} for o in question.options],
            }
            for question in quiz.questions
        ],
    }


def submit_quiz(db: Session, student_id: int, content_id: int, submission: schemas.QuizSubmission) -> dict:
    quiz = _get_quiz(db, content_id)
    require_enrollment(db, student_id, quiz.module.course_id)
    if not submission.answers:
        raise BadRequest("INVALID_ANSWERS", "Answers must be a non-empty list")
    if not quiz.questions:
        raise BadRequest("QUIZ_HAS_NO_QUESTIONS", "This quiz has no questions")

    started = datetime.utcnow()
    correct, total, score = grade_submission(quiz.questions, submission.answers)

    attempt = models.QuizAttempt(score=score, start_time=started, end_time=datetime.utcnow(),
                                 student_id=student_id, quiz_content_id=quiz.id)
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    logger.info("Quiz %s submitted by student %s: %s/%s", quiz.id, student_id, correct, total)
    return {
        "attempt_id": attempt.id,
        "score": score,
        "correct_answers": correct,
        "total_questions": total,
    }


def quiz_history(db: Session, student_id: int):
    attempts = (db.query(models.QuizAttempt).filter(models.QuizAttempt.student_id == student_id)
                .order_by(models.QuizAttempt.start_time.desc(), models.QuizAttempt.id.desc()).all())
    return [
        {
            **_attempt_out(attempt),
            "quiz_title": attempt.quiz_content.title,
            "course_id": attempt.quiz_content.module.course_id,
            "course_title": attempt.quiz_content.module.course.title,
        }
        for attempt in attempts
    ]


def quiz_attempts(db: Session, student_id: int, content_id: int):
    quiz = _get_quiz(db, content_id)
    attempts = (db.query(models.QuizAttempt)
                .filter(models.QuizAttempt.student_id == student_id,
                        models.QuizAttempt.quiz_content_id == quiz.id)
                .order_by(models.QuizAttempt.start_time.desc(), models.QuizAttempt.id.desc()).all())
    return [_attempt_out(attempt) for attempt in attempts]


def get_quiz_for_management(db: Session, user: models.User, content_id: int) -> dict:
    quiz = _get_quiz(db, content_id)
    _ensure_owner(user, quiz)
    return {
        "id": quiz.id,
        "title": quiz.title,
        "time_limit_in_minutes": quiz.time_limit_in_minutes,
        "course_id": quiz.module.course_id,
        "questions": [
            {
                "id": question.id,
                "question_text": question.question_text,
                "options": [{"id": o.id, "option_text": o.option_text, "is_correct": o.is_correct}
                            for o in question.options],
            }
            for question in quiz.questions
        ],
    }


def create_question(db: Session, user: models.User, data: schemas.QuestionCreate) -> models.Question:
    quiz = _get_quiz(db, data.content_id)
    _ensure_owner(user, quiz)
    question = models.Question(question_text=data.question_text, content_id=quiz.id)
    db.add(question)
    db.commit()
    db.refresh(question)
    return question


def delete_question(db: Session, user: models.User, question_id: int) -> None:
    question = db.get(models.Question, question_id)
    if not question:
        raise NotFound("QUESTION_NOT_FOUND", "Question not found")
    _ensure_owner(user, question.content)
    db.delete(question)
    db.commit()


def create_option(db: Session, user: models.User, data: schemas.OptionCreate) -> models.AnswerOption:
    question = db.get(models.Question, data.question_id)
    if not question:
        raise NotFound("QUESTION_NOT_FOUND", "Question not found")
    _ensure_owner(user, question.content)
    option = models.AnswerOption(option_text=data.option_text, is_correct=data.is_correct,
                                 question_id=question.id)
    db.add(option)
    db.commit()
    db.refresh(option)
    return option


def delete_option(db: Session, user: models.User, option_id: int) -> None:
    option = db.get(models.AnswerOption, option_id)
    if not option:
        raise NotFound("OPTION_NOT_FOUND", "Answer option not found")
    _ensure_owner(user, option.question.content)
    db.delete(option)
    db.commit()
