from conftest import auth

from coursehub import models
from coursehub.main import seed


def test_admin_routes_require_admin(client, teacher):
    assert client.get("/admin/stats").status_code == 401
    assert client.get("/admin/stats", headers=auth(teacher)).status_code == 403


def test_stats(client, admin, student, course, enroll):
    enroll(student, course)
    stats = client.get("/admin/stats", headers=auth(admin)).json()
    assert stats["total_users"] == 3
    assert stats["total_enrollments"] == 1
    assert stats["users_by_role"] == {"ADMIN": 1, "STUDENT": 1, "TEACHER": 1}
    assert len(stats["recent_users"]) == 3


def test_category_management(client, admin, course, category):
    headers = auth(admin)
    created = client.post("/admin/categories", json={"name": "Design"}, headers=headers)
    assert created.status_code == 201
    assert client.post("/admin/categories", json={"name": "Design"}, headers=headers).status_code == 409

    renamed = client.put(f"/admin/categories/{created.json()['id']}", json={"name": "UX"}, headers=headers)
    assert renamed.json()["name"] == "UX"

    response = client.delete(f"/admin/categories/{category.id}", headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "CATEGORY_IN_USE"
    assert client.delete(f"/admin/categories/{created.json()['id']}", headers=headers).status_code == 200


def test_user_management(client, db, admin, student):
    headers = auth(admin)
    created = client.post("/admin/users", json={"email": "tina@example.com", "username": "tina",
                                                "password": "secret123", "role": "TEACHER"}, headers=headers)
    assert created.status_code == 201
    assert created.json()["is_verified"] is True

    teachers = client.get("/admin/users", params={"role": "teacher"}, headers=headers).json()
    assert [u["username"] for u in teachers] == ["tina"]
    found = client.get("/admin/users", params={"search": "ALI"}, headers=headers).json()
    assert [u["username"] for u in found] == ["alice"]

    promoted = client.put(f"/admin/users/{student.id}/role", json={"role": "TEACHER"}, headers=headers)
    assert promoted.json()["role"] == "TEACHER"

    assert client.delete(f"/admin/users/{admin.id}", headers=headers).status_code == 400
    assert client.delete(f"/admin/users/{student.id}", headers=headers).status_code == 200
    assert client.delete(f"/admin/users/{student.id}", headers=headers).status_code == 404


def test_course_management(client, db, admin, teacher, student, category, course, enroll):
    headers = auth(admin)
    created = client.post("/admin/courses", json={"title": "Go", "description": "d", "price": 10,
                                                  "category_id": category.id, "teacher_id": teacher.id},
                          headers=headers)
    assert created.status_code == 201
    course_id = created.json()["id"]

    bad = client.post("/admin/courses", json={"title": "Go", "description": "d", "price": 10,
                                              "category_id": category.id, "teacher_id": student.id},
                      headers=headers)
    assert bad.status_code == 400

    listing = client.get("/admin/courses", params={"search": "go"}, headers=headers).json()
    assert [c["title"] for c in listing] == ["Go"]
    assert client.get(f"/admin/courses/{course.id}", headers=headers).json()["total_enrollments"] == 0

    enroll(student, course)
    response = client.delete(f"/admin/courses/{course.id}", headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "COURSE_HAS_ENROLLMENTS"
    assert client.delete(f"/admin/courses/{course_id}", headers=headers).status_code == 200


def test_seed_is_idempotent(db):
    seed(db)
    seed(db)
    assert db.query(models.User).filter_by(role="ADMIN").count() == 1
    assert db.query(models.Category).count() == 1
