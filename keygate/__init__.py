"""
Risk-controlled session issuance and encrypted-envelope gateway.

Keygate is a Flask application that hands out short-lived bearer sessions to
holders of a long-lived key. Before a session is issued, the caller's IP
address is resolved to a province and city, and the key is bound to the first
province it is used from and to at most two cities within it. A key that is
used from a second province or a third city is banned permanently.

Every protected request must carry an integrity signature (see
:mod:`keygate.integrity`) and a bearer token (see :mod:`keygate.tokens`).
Responses from protected routes are sealed with :mod:`keygate.envelope` under
the caller's long-lived key, so that only holders of the key can read them.

The gateway endpoint (see :mod:`keygate.controllers.gateway`) multiplexes a
set of opaque target codes onto a single route.
"""
