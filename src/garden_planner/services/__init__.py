"""
Shared service utilities.

- http.py   - requests session factory and per-request deadlines
"""
