"""
snippets/models.py -- Domain dataclass for snippets.

Pure data containers. Validation, the category-existence rule and ownership
checks live in snippets/store.py; authorization rules live in auth/policy.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Snippet:
    """A stored code fragment.

    category holds the name of the category it was filed under (matched by exact
    string). user_id is the owner; author_email is read-only join output and
    is None when the owning user has been deleted or the snippet predates
    user accounts.
    """

    description: str
    category: str
    css_code: str
    user_id: Optional[int] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    author_email: Optional[str] = None
