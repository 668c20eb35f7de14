"""Quiz authoring and file uploads for teachers and admins."""
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import settings
from ..database import get_db
from ..security import teacher_or_admin
from ..services import quiz as quiz_service
from ..services import uploads

router = APIRouter(tags=["authoring"])


@router.get("/quiz/{content_id}/manage")
def manage_quiz(content_id: int, current_user: models.User = Depends(teacher_or_admin),
                db: Session = Depends(get_db)):
    return quiz_service.get_quiz_for_management(db, current_user, content_id)


@router.post("/questions", status_code=status.HTTP_201_CREATED)
def create_question(data: schemas.QuestionCreate, current_user: models.User = Depends(teacher_or_admin),
                    db: Session = Depends(get_db)):
    question = quiz_service.create_question(db, current_user, data)
    return {"id": question.id, "question_text": question.question_text, "content_id": question.content_id,
            "options": []}


@router.delete("/questions/{question_id}")
def delete_question(question_id: int, current_user: models.User = Depends(teacher_or_admin),
                    db: Session = Depends(get_db)):
    quiz_service.delete_question(db, current_user, question_id)
    return {"message": "Question deleted successfully"}


@router.post("/options", status_code=status.HTTP_201_CREATED)
def create_option(data: schemas.OptionCreate, current_user: models.User = Depends(teacher_or_admin),
                  db: Session = Depends(get_db)):
    option = quiz_service.create_option(db, current_user, data)
    return {"id": option.id, "option_text": option.option_text, "is_correct": option.is_correct,
            "question_id": option.question_id}


@router.delete("/options/{option_id}")
def delete_option(option_id: int, current_user: models.User = Depends(teacher_or_admin),
                  db: Session = Depends(get_db)):
    quiz_service.delete_option(db, current_user, option_id)
    return {"message": "Option deleted successfully"}


@router.post("/upload", status_code=status.HTTP_201_CREATED)
def upload_file(file: UploadFile = File(...), current_user: models.User = Depends(teacher_or_admin)):
    # one byte past the limit is enough to reject without reading the rest
    data = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
    url = uploads.upload_file(data, file.filename, file.content_type)
    return {"url": url}
