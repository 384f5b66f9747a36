# PATH: strategy/jobs/__init__.py
"""
Strategy jobs package.

Available entry points:
    spreadwatch                            # console script
    python -m strategy.jobs.run_monitor    # same, without installing

NOTE: This __init__.py intentionally does NOT import run_monitor
to avoid CLI side effects when importing the package.
"""

__all__: list[str] = []
