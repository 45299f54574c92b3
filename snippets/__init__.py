"""snippets/ -- Snippet and category repository for Snips.

Layer rule: snippets/ imports from core/ and auth/ (for Principal, the policy
and the users table it joins for author emails). It does NOT import from
api/ or notify/.
"""
