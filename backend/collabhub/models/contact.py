"""Contact relationship model.

A contact is stored as a single directed edge whose direction records who
initiated it. The normalized pair columns carry a unique constraint so a pair
of users can never have more than one edge, whichever way it points.
"""

import enum

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from collabhub.db.base import BaseModel
from collabhub.models.user import User


class ContactStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"


def ordered_pair(a: int, b: int) -> tuple[int, int]:
    """Normalize two user ids into (low, high) for pairwise lookups."""
    return (a, b) if a <= b else (b, a)


class Contact(BaseModel):
    """Directed contact edge between two users."""

    __tablename__ = "contacts"
    __table_args__ = (
        UniqueConstraint("pair_low_id", "pair_high_id", name="uq_contact_pair"),
        CheckConstraint("user_id <> contact_id", name="ck_contact_not_self"),
        Index("ix_contacts_user_status", "user_id", "status"),
        Index("ix_contacts_contact_status", "contact_id", "status"),
    )

    # Initiator of the current state (requester, or blocker)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    contact_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    pair_low_id: Mapped[int] = mapped_column(Integer, nullable=False)
    pair_high_id: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[ContactStatus] = mapped_column(
        Enum(
            ContactStatus,
            name="contact_status",
            values_callable=lambda e: [m.value for m in e],
            native_enum=False,
            create_constraint=True,
            validate_strings=True,
        ),
        nullable=False,
        default=ContactStatus.PENDING,
    )

    # Relationships
    user: Mapped[User] = relationship(User, foreign_keys=[user_id], lazy="joined")
    contact: Mapped[User] = relationship(User, foreign_keys=[contact_id], lazy="joined")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.user_id is not None and self.contact_id is not None:
            self.pair_low_id, self.pair_high_id = ordered_pair(self.user_id, self.contact_id)

    def set_direction(self, initiator_id: int, other_id: int) -> None:
        """Point the edge from ``initiator_id`` to ``other_id`` within the same pair."""
        if ordered_pair(initiator_id, other_id) != (self.pair_low_id, self.pair_high_id):
            raise ValueError("Edge direction must stay within the same user pair")
        self.user_id = initiator_id
        self.contact_id = other_id

    def other_party(self, user_id: int) -> User:
        """The endpoint that is not ``user_id``."""
        return self.contact if self.user_id == user_id else self.user

    def __repr__(self) -> str:
        return f"<Contact {self.user_id}->{self.contact_id} {self.status.value}>"
