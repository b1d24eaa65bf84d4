"""
Request controllers for keygate.

Controllers return a ``(data, status_code, headers)`` tuple, and never raise
for expected failures; the routes only serialize what they are given.
"""
