"""Contact schemas."""

from datetime import datetime

from pydantic import BaseModel

from collabhub.models.contact import Contact, ContactStatus
from collabhub.schemas.user import UserSummary


class SendRequestBody(BaseModel):
    contact_id: int


class ContactResponse(BaseModel):
    """A contact edge as seen by one of its endpoints."""

    id: int
    user_id: int
    contact_id: int
    status: ContactStatus
    contact: UserSummary
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_edge(cls, edge: Contact, viewer_id: int) -> "ContactResponse":
        """Build the response, with ``contact`` set to the viewer's counterparty."""
        return cls(
            id=edge.id,
            user_id=edge.user_id,
            contact_id=edge.contact_id,
            status=edge.status,
            contact=UserSummary.model_validate(edge.other_party(viewer_id)),
            created_at=edge.created_at,
            updated_at=edge.updated_at,
        )
