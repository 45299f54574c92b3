"""
api/routes/snippets.py -- Snippet CRUD endpoints.

Routes:
  GET    /snippets?search=&category=  -- public list, newest first
  POST   /snippets                    -- create (requires a session)
  PUT    /snippets/{snippet_id}       -- update (owner or super user)
  DELETE /snippets/{snippet_id}       -- delete (owner or super user)

Ownership cannot be checked until the row is loaded, so PUT/DELETE only
require a session here and hand the principal to SnippetStore, which runs the
UPDATE_SNIPPET / DELETE_SNIPPET policy rule after the 404 check.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from api.dependencies import get_snippet_store
from api.models import MessageResponse, SnippetResponse, SnippetWrite
from auth.dependencies import get_current_principal, require
from auth.models import Principal
from auth.policy import Action
from snippets.store import SnippetStore

router = APIRouter()


@router.get("/snippets", response_model=list[SnippetResponse], dependencies=[Depends(require(Action.LIST_SNIPPETS))])
def list_snippets(
    search: Optional[str] = None,
    category: Optional[str] = None,
    store: SnippetStore = Depends(get_snippet_store),
) -> list[SnippetResponse]:
    """Search over description and code (case-insensitive) and/or filter by exact category."""
    return [SnippetResponse.from_snippet(s) for s in store.list_snippets(search=search, category=category)]


@router.post("/snippets", response_model=SnippetResponse)
def create_snippet(
    body: SnippetWrite,
    principal: Principal = Depends(require(Action.CREATE_SNIPPET)),
    store: SnippetStore = Depends(get_snippet_store),
) -> SnippetResponse:
    """Create a snippet owned by the caller. The category must already exist."""
    created = store.create_snippet(body.description, body.category, body.css_code, owner_id=principal.user_id)
    return SnippetResponse.from_snippet(created)


@router.put("/snippets/{snippet_id}", response_model=SnippetResponse)
def update_snippet(
    snippet_id: int,
    body: SnippetWrite,
    principal: Principal = Depends(get_current_principal),
    store: SnippetStore = Depends(get_snippet_store),
) -> SnippetResponse:
    updated = store.update_snippet(snippet_id, body.description, body.category, body.css_code, principal)
    return SnippetResponse.from_snippet(updated)


@router.delete("/snippets/{snippet_id}", response_model=MessageResponse)
def delete_snippet(
    snippet_id: int,
    principal: Principal = Depends(get_current_principal),
    store: SnippetStore = Depends(get_snippet_store),
) -> MessageResponse:
    store.delete_snippet(snippet_id, principal)
    return MessageResponse(message="Snippet deleted successfully")
