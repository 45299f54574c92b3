"""notify/ -- Outbound notifications (email) for Snips.

Layer rule: notify/ imports only core/ and third-party libraries.
"""
