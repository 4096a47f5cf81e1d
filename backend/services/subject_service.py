from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy.orm import Session

from core.database import note_change
from models.feedback import Feedback
from models.subject import Subject
from models.timetable_entry import TimetableEntry


@dataclass(frozen=True)
class SubjectDeletion:
    timetable_entries: int
    feedback: int


def delete_subject_and_dependents(db: Session, subject: Subject) -> SubjectDeletion:
    """Delete a subject with its timetable entries and feedback in one transaction.

    The caller commits.
    """

    subject_id: uuid.UUID = subject.id
    entries = db.execute(delete(TimetableEntry).where(TimetableEntry.subject_id == subject_id)).rowcount
    feedback = db.execute(delete(Feedback).where(Feedback.subject_id == subject_id)).rowcount
    db.delete(subject)

    # Bulk deletes skip the flush hooks.
    if entries:
        note_change(db, "timetables", "DELETE")
    if feedback:
        note_change(db, "feedback", "DELETE")
    return SubjectDeletion(timetable_entries=int(entries or 0), feedback=int(feedback or 0))
