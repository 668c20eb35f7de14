"""Student-side learning activity: progress, quizzes and content comments."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..security import get_current_user, student_only
from ..services import comments as comment_service
from ..services import progress as progress_service
from ..services import quiz as quiz_service

router = APIRouter()


@router.post("/progress/content/{content_id}/complete", tags=["progress"])
def mark_complete(content_id: int, current_user: models.User = Depends(student_only),
                  db: Session = Depends(get_db)):
    return progress_service.mark_complete(db, current_user.id, content_id)


@router.delete("/progress/content/{content_id}/complete", tags=["progress"])
def unmark_complete(content_id: int, current_user: models.User = Depends(student_only),
                    db: Session = Depends(get_db)):
    return progress_service.unmark_complete(db, current_user.id, content_id)


@router.get("/progress/course/{course_id}/completed", tags=["progress"])
def completed_contents(course_id: int, current_user: models.User = Depends(student_only),
                       db: Session = Depends(get_db)):
    return progress_service.completed_contents(db, current_user.id, course_id)


# history is declared before /quiz/{content_id} so it is not read as an id
@router.get("/quiz/history", tags=["quiz"])
def quiz_history(current_user: models.User = Depends(student_only), db: Session = Depends(get_db)):
    return quiz_service.quiz_history(db, current_user.id)


@router.get("/quiz/{content_id}", tags=["quiz"])
def get_quiz(content_id: int, current_user: models.User = Depends(student_only), db: Session = Depends(get_db)):
    """Questions and options without the correctness flags."""
    return quiz_service.get_quiz_for_student(db, current_user.id, content_id)


@router.post("/quiz/submit/{content_id}", tags=["quiz"])
def submit_quiz(content_id: int, submission: schemas.QuizSubmission,
                current_user: models.User = Depends(student_only), db: Session = Depends(get_db)):
    return quiz_service.submit_quiz(db, current_user.id, content_id, submission)


@router.get("/quiz/{content_id}/attempts", tags=["quiz"])
def quiz_attempts(content_id: int, current_user: models.User = Depends(student_only),
                  db: Session = Depends(get_db)):
    return quiz_service.quiz_attempts(db, current_user.id, content_id)


@router.get("/comments/{content_id}", tags=["comments"])
def get_comments(content_id: int, db: Session = Depends(get_db)):
    return comment_service.get_comments(db, content_id)


@router.post("/comments/{content_id}", status_code=status.HTTP_201_CREATED, tags=["comments"])
def post_comment(content_id: int, data: schemas.CommentIn, current_user: models.User = Depends(get_current_user),
                 db: Session = Depends(get_db)):
    return comment_service.post_comment(db, current_user, content_id, data)
