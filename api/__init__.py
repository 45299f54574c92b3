"""api/ -- FastAPI application and HTTP routes for Snips.

Layer rule: api/ may import from every other package. Nothing imports from api/
except asgi.py and the tests.
"""
