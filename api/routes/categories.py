"""
api/routes/categories.py -- Category endpoints.

Routes:
  GET    /categories         -- public, alphabetical list of names
  POST   /categories         -- create (requires a session)
  DELETE /categories/{name}  -- delete an unused category (super user); the
                                path converter lets names contain "/"

DELETE answers 400 with the number of snippets still filed under the
category (error.count) instead of cascading.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_snippet_store
from api.models import CategoryCreate, CategoryResponse, MessageResponse
from auth.dependencies import require
from auth.policy import Action
from snippets.store import SnippetStore

router = APIRouter()


@router.get("/categories", response_model=list[str], dependencies=[Depends(require(Action.LIST_CATEGORIES))])
def list_categories(store: SnippetStore = Depends(get_snippet_store)) -> list[str]:
    return store.list_categories()


@router.post("/categories", response_model=CategoryResponse, dependencies=[Depends(require(Action.CREATE_CATEGORY))])
def create_category(body: CategoryCreate, store: SnippetStore = Depends(get_snippet_store)) -> CategoryResponse:
    """Create a category. The name is trimmed; duplicates are rejected."""
    return CategoryResponse(name=store.create_category(body.name))


@router.delete(
    "/categories/{name:path}",
    response_model=MessageResponse,
    dependencies=[Depends(require(Action.DELETE_CATEGORY))],
)
def delete_category(name: str, store: SnippetStore = Depends(get_snippet_store)) -> MessageResponse:
    store.delete_category(name)
    return MessageResponse(message=f'Category "{name}" deleted successfully')
