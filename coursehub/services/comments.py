import logging
from typing import Iterable, List

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import BadRequest
from .catalog import get_content_or_404
from .enrollment import require_enrollment
from .users import user_summary

logger = logging.getLogger(__name__)


def build_comment_tree(comments: Iterable[models.Comment]) -> List[dict]:
    """Nest a flat list of comments under their parents.

    Input order is kept among siblings. A comment whose parent is not in the
    list becomes a root.
    """
    nodes = {}
    ordered = []
    for comment in comments:
        node = {
            "id": comment.id,
            "text": comment.text,
            "parent_id": comment.parent_id,
            "created_at": comment.created_at,
            "author": user_summary(comment.author) if comment.author else None,
            "replies": [],
        }
        nodes[comment.id] = node
        ordered.append(node)

    roots = []
    for node in ordered:
        parent = nodes.get(node["parent_id"]) if node["parent_id"] is not None else None
        if parent is not None and parent is not node:
            parent["replies"].append(node)
        else:
            roots.append(node)
    return roots


def get_comments(db: Session, content_id: int) -> List[dict]:
    get_content_or_404(db, content_id)
    comments = (db.query(models.Comment).filter(models.Comment.content_id == content_id)
                .order_by(models.Comment.created_at.asc(), models.Comment.id.asc()).all())
    return build_comment_tree(comments)


def post_comment(db: Session, user: models.User, content_id: int, data: schemas.CommentIn) -> dict:
    content = get_content_or_404(db, content_id)
    require_enrollment(db, user.id, content.module.course_id)

    text = (data.text or "").strip()
    if not text:
        raise BadRequest("COMMENT_EMPTY", "Comment text is required")

    if data.parent_id is not None:
        parent = db.get(models.Comment, data.parent_id)
        if not parent or parent.content_id != content.id:
            raise BadRequest("PARENT_NOT_FOUND", "Parent comment not found on this content")

    comment = models.Comment(text=text, parent_id=data.parent_id, content_id=content.id, author_id=user.id)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info("Comment %s posted on content %s by user %s", comment.id, content.id, user.id)
    return build_comment_tree([comment])[0]
