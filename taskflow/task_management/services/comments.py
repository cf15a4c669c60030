import logging

from notifications.events import TaskCommentAdded, TaskSnapshot
from notifications.jobs import enqueue_task_event
from task_management.models import Task, TaskComment
from taskflow.exceptions import after_commit, atomic_operation

logger = logging.getLogger(__name__)


def comment_recipient_ids(task, author):
    """Assignee and creator, each once, never the author."""
    candidates = [task.assigned_to_id, task.created_by_id]
    return [
        user_id
        for user_id in dict.fromkeys(candidates)
        if user_id is not None and user_id != author.pk
    ]


def add_comment_to_task(*, task, user, content, attachments=None):
    comment = TaskComment(
        task=task,
        user=user,
        content=content,
        attachments=list(attachments or []),
    )
    comment.full_clean(exclude=["task", "user"])

    with atomic_operation("add_comment_to_task"):
        comment.save()

        task = Task.objects.select_related("project").get(pk=task.pk)
        event = TaskCommentAdded(
            task=TaskSnapshot.from_task(task),
            comment_id=comment.pk,
            author_id=user.pk,
            author_name=user.display_name,
            content=comment.content,
            recipient_ids=comment_recipient_ids(task, user),
        )
        after_commit(enqueue_task_event, event)

    logger.info("Comment %s added to task %s by user %s", comment.pk, task.pk, user.pk)
    return comment
