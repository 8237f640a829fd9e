"""External data source integrations.

Each subdirectory is one data source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants, errors
    ├── models.py         # Dataclasses / models for requests and responses
    ├── validation.py     # Response contract checks
    └── {feature}.py      # Fetch functions or client classes

Sources
-------
- ``climate/``  Open-Meteo archive (daily history -> monthly 0-100 scores)
- ``scoring/``  AI plant fit scoring (OpenAI-compatible chat completions)

Clients take a ``requests.Session`` (see ``services/http.py``) and wrap each
call in a ``RequestDeadline`` so the timeout is a hard budget for the whole
call, not just a socket timeout.
"""
