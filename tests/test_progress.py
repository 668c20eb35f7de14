import pytest
from conftest import auth

from coursehub import models
from coursehub.services.progress import calculate_progress


@pytest.mark.parametrize("completed,total,expected", [(0, 0, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100),
                                                       (1, 8, 13), (5, 8, 63), (1, 40, 3)])
def test_calculate_progress(completed, total, expected):
    assert calculate_progress(completed, total) == expected


def test_mark_and_unmark(client, db, student, make_course, enroll):
    course = make_course(contents=("A", "B", "C"))
    enrollment = enroll(student, course)
    ids = [c.id for c in course.modules[0].contents]
    headers = auth(student)

    assert client.post(f"/progress/content/{ids[0]}/complete", headers=headers).json()["progress"] == 33
    # marking twice does not double count
    assert client.post(f"/progress/content/{ids[0]}/complete", headers=headers).json()["progress"] == 33
    assert client.post(f"/progress/content/{ids[1]}/complete", headers=headers).json()["progress"] == 67

    done = client.post(f"/progress/content/{ids[2]}/complete", headers=headers).json()
    assert done["progress"] == 100
    assert done["completion_date"] is not None

    undone = client.delete(f"/progress/content/{ids[2]}/complete", headers=headers).json()
    assert undone["progress"] == 67
    assert undone["completion_date"] is None

    completed = client.get(f"/progress/course/{course.id}/completed", headers=headers).json()
    assert completed["completed_content_ids"] == sorted(ids[:2])

    db.expire_all()
    row = db.get(models.Enrollment, enrollment.id)
    assert row.progress == 67
    assert row.completion_date is None
    assert db.query(models.ContentProgress).count() == 2


def test_progress_uses_live_content_count(client, db, student, teacher, make_course, enroll):
    course = make_course(contents=("A",))
    enroll(student, course)
    first = course.modules[0].contents[0].id

    assert client.post(f"/progress/content/{first}/complete", headers=auth(student)).json()["progress"] == 100

    client.post("/contents", json={"module_id": course.modules[0].id, "title": "New", "content_type": "DOCUMENT"},
                headers=auth(teacher))
    # the stored value only moves on the next mark or unmark
    assert client.post(f"/progress/content/{first}/complete", headers=auth(student)).json()["progress"] == 50


def test_progress_requires_enrollment(client, student, course):
    content_id = course.modules[0].contents[0].id
    response = client.post(f"/progress/content/{content_id}/complete", headers=auth(student))
    assert response.status_code == 403
    assert response.json()["code"] == "NOT_ENROLLED"
    assert client.post("/progress/content/999/complete", headers=auth(student)).status_code == 404
