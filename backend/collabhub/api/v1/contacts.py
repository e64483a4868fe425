"""Contact request endpoints."""

from fastapi import APIRouter, Query, status

from collabhub.api.deps import ContactServiceDep, CurrentUser
from collabhub.models.contact import ContactStatus
from collabhub.schemas.contact import ContactResponse, SendRequestBody
from collabhub.schemas.user import UserSummary

router = APIRouter()


@router.post("/requests", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def send_request(
    body: SendRequestBody,
    current_user: CurrentUser,
    contacts: ContactServiceDep,
) -> ContactResponse:
    edge = await contacts.send_request(current_user.id, body.contact_id)
    return ContactResponse.from_edge(edge, current_user.id)


@router.put("/requests/{edge_id}/accept", response_model=ContactResponse)
async def accept_request(
    edge_id: int,
    current_user: CurrentUser,
    contacts: ContactServiceDep,
) -> ContactResponse:
    edge = await contacts.accept_request(current_user.id, edge_id)
    return ContactResponse.from_edge(edge, current_user.id)


@router.put("/requests/{edge_id}/reject", response_model=ContactResponse)
async def reject_request(
    edge_id: int,
    current_user: CurrentUser,
    contacts: ContactServiceDep,
) -> ContactResponse:
    edge = await contacts.reject_request(current_user.id, edge_id)
    return ContactResponse.from_edge(edge, current_user.id)


@router.get("/requests/incoming", response_model=list[ContactResponse])
async def incoming_requests(
    current_user: CurrentUser,
    contacts: ContactServiceDep,
) -> list[ContactResponse]:
    edges = await contacts.get_incoming_requests(current_user.id)
    return [ContactResponse.from_edge(edge, current_user.id) for edge in edges]


@router.get("/requests/outgoing", response_model=list[ContactResponse])
async def outgoing_requests(
    current_user: CurrentUser,
    contacts: ContactServiceDep,
) -> list[ContactResponse]:
    edges = await contacts.get_outgoing_requests(current_user.id)
    return [ContactResponse.from_edge(edge, current_user.id) for edge in edges]


@router.post("/block/{user_id}", response_model=ContactResponse)
async def block_user(
    user_id: int,
    current_user: CurrentUser,
    contacts: ContactServiceDep,
) -> ContactResponse:
    edge = await contacts.block_user(current_user.id, user_id)
    return ContactResponse.from_edge(edge, current_user.id)


@router.delete("/block/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_user(
    user_id: int,
    current_user: CurrentUser,
    contacts: ContactServiceDep,
) -> None:
    await contacts.unblock_user(current_user.id, user_id)


@router.get("/status/{user_id}", response_model=ContactResponse | None)
async def contact_status(
    user_id: int,
    current_user: CurrentUser,
    contacts: ContactServiceDep,
) -> ContactResponse | None:
    """Relationship with another user, whoever initiated it. Null if none."""
    edge = await contacts.get_contact_status(current_user.id, user_id)
    return ContactResponse.from_edge(edge, current_user.id) if edge else None


@router.get("/search", response_model=list[UserSummary])
async def search_users(
    current_user: CurrentUser,
    contacts: ContactServiceDep,
    q: str = Query(..., max_length=100),
) -> list[UserSummary]:
    users = await contacts.search_users(current_user.id, q)
    return [UserSummary.model_validate(u) for u in users]


@router.get("", response_model=list[ContactResponse])
async def list_contacts(
    current_user: CurrentUser,
    contacts: ContactServiceDep,
    status_filter: ContactStatus | None = Query(None, alias="status"),
) -> list[ContactResponse]:
    """Contacts initiated by the current user, optionally filtered by status."""
    edges = await contacts.get_contacts(current_user.id, status_filter)
    return [ContactResponse.from_edge(edge, current_user.id) for edge in edges]


@router.delete("/{edge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_contact(
    edge_id: int,
    current_user: CurrentUser,
    contacts: ContactServiceDep,
) -> None:
    await contacts.remove_contact(current_user.id, edge_id)
