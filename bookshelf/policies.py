"""Row-ownership policies for books and notes."""
from fastapi import HTTPException, status

from . import models


class BookPolicy:
    @staticmethod
    def view(user: models.User, book: models.Book) -> bool:
        return user.id == book.user_id

    @staticmethod
    def update(user: models.User, book: models.Book) -> bool:
        return user.id == book.user_id

    @staticmethod
    def delete(user: models.User, book: models.Book) -> bool:
        return user.id == book.user_id


class NotePolicy:
    @staticmethod
    def update(user: models.User, note: models.Note) -> bool:
        return user.id == note.user_id

    @staticmethod
    def delete(user: models.User, note: models.Note) -> bool:
        return user.id == note.user_id


POLICIES = {
    models.Book: BookPolicy,
    models.Note: NotePolicy,
}


def authorize(action: str, user: models.User, row) -> None:
    """Raise 403 unless the row's policy allows `action` for `user`."""
    policy = POLICIES[type(row)]
    check = getattr(policy, action, None)
    if check is None or not check(user, row):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This action is unauthorized")
