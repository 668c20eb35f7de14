from datetime import datetime
from types import SimpleNamespace

from conftest import auth

from coursehub import models
from coursehub.services.comments import build_comment_tree


def test_review_upsert_and_summary(client, db, student, make_user, course, enroll):
    enroll(student, course)
    bob = make_user(username="bob")
    enroll(bob, course)

    response = client.post(f"/courses/{course.id}/reviews", json={"rating": 4, "comment": "Good"},
                           headers=auth(student))
    assert response.status_code == 201
    response = client.post(f"/courses/{course.id}/reviews", json={"rating": 5, "comment": "Great"},
                           headers=auth(student))
    assert response.status_code == 200
    client.post(f"/courses/{course.id}/reviews", json={"rating": 2}, headers=auth(bob))

    summary = client.get(f"/courses/{course.id}/reviews").json()
    assert summary["total_reviews"] == 2
    assert summary["average_rating"] == 3.5
    assert summary["rating_distribution"]["5"] == 1
    assert db.query(models.Review).count() == 2

    mine = client.get(f"/courses/{course.id}/reviews/my", headers=auth(student)).json()["review"]
    assert mine["comment"] == "Great"

    assert client.delete(f"/reviews/{mine['id']}", headers=auth(bob)).status_code == 403
    assert client.delete(f"/reviews/{mine['id']}", headers=auth(student)).status_code == 200


def test_review_requires_enrollment_and_valid_rating(client, student, course, enroll):
    assert client.post(f"/courses/{course.id}/reviews", json={"rating": 5}, headers=auth(student)).status_code == 403
    enroll(student, course)
    assert client.post(f"/courses/{course.id}/reviews", json={"rating": 6}, headers=auth(student)).status_code == 400


def node(cid, parent=None):
    return SimpleNamespace(id=cid, text=f"c{cid}", parent_id=parent, created_at=datetime(2024, 1, cid),
                           author=None)


def test_comment_tree_nests_and_promotes_orphans():
    tree = build_comment_tree([node(1), node(2, 1), node(3, 2), node(4, 77), node(5, 1)])
    assert [n["id"] for n in tree] == [1, 4]
    assert [n["id"] for n in tree[0]["replies"]] == [2, 5]
    assert tree[0]["replies"][0]["replies"][0]["id"] == 3


def test_post_and_read_comments(client, student, course, enroll):
    content_id = course.modules[0].contents[0].id
    other_content = course.modules[0].contents[1].id

    assert client.post(f"/comments/{content_id}", json={"text": "hi"}, headers=auth(student)).status_code == 403
    enroll(student, course)

    root = client.post(f"/comments/{content_id}", json={"text": "Question?"}, headers=auth(student))
    assert root.status_code == 201
    root_id = root.json()["id"]
    reply = client.post(f"/comments/{content_id}", json={"text": "Answer", "parent_id": root_id},
                        headers=auth(student))
    assert reply.status_code == 201

    assert client.post(f"/comments/{content_id}", json={"text": "   "}, headers=auth(student)).status_code == 400
    response = client.post(f"/comments/{other_content}", json={"text": "x", "parent_id": root_id},
                           headers=auth(student))
    assert response.status_code == 400

    tree = client.get(f"/comments/{content_id}").json()
    assert len(tree) == 1
    assert tree[0]["author"]["username"] == "alice"
    assert tree[0]["replies"][0]["text"] == "Answer"
