"""auth/ -- Authentication and authorization package for Snips.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, snippets/, or notify/.
api/ and snippets/ import from auth/, not the other way around.
"""
