"""
Prefect flows for batch climate maintenance.

Flows:
- refresh: Ensure every (or selected) plan has a fresh 12-month climate window

Usage (local):
    python -m garden_planner.flows.refresh

Usage (CLI):
    garden-planner refresh --all
"""
